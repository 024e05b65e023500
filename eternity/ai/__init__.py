"""AI layer: pathfinding and the entity state machine."""

from eternity.ai.pathfinding import Pathfinder
from eternity.ai.states import STATE_HANDLERS, StateMachine

__all__ = ["Pathfinder", "STATE_HANDLERS", "StateMachine"]
