"""Engine layer: world loop and service wiring."""

from eternity.engine.world_loop import WorldLoop
from eternity.engine.setup import build_world_loop

__all__ = ["WorldLoop", "build_world_loop"]
