"""Construct every simulation service from a config and wire them together."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from eternity.ai.pathfinding import Pathfinder
from eternity.ai.states import StateMachine
from eternity.core.ledger import Stockpile
from eternity.core.world_state import WorldState
from eternity.engine.world_loop import WorldLoop
from eternity.systems.formations import FormationManager
from eternity.systems.generator import MapGenerator
from eternity.systems.rng import DeterministicRNG
from eternity.systems.spatial_hash import SpatialHash
from eternity.systems.visibility import VisibilityField
from eternity.utils.events import EventBus

if TYPE_CHECKING:
    from eternity.config import SimulationConfig
    from eternity.utils.event_log import EventLog

logger = logging.getLogger(__name__)


def build_world_loop(
    config: SimulationConfig,
    event_log: EventLog | None = None,
    populate: bool = True,
) -> WorldLoop:
    """Generate the map, seed both civilizations and return a ready WorldLoop.

    Services are constructed once here and passed by reference; nothing
    reaches for module-level state.
    """
    rng = DeterministicRNG(config.world_seed)
    generator = MapGenerator(config, rng)
    terrain = generator.generate_terrain()
    world = WorldState(
        seed=config.world_seed,
        terrain=terrain,
        spatial_index=SpatialHash(config.spatial_cell_size),
    )

    bus = EventBus(event_log)
    stockpile = Stockpile({owner: config.starting_resources for owner in config.civilizations})
    machine = StateMachine(config, world, Pathfinder.from_config(terrain, config), bus, stockpile)
    formations = FormationManager(config, world, machine, bus)
    visibility = VisibilityField(terrain, config, config.civilizations)

    if populate:
        generator.populate(world)
    visibility.recompute(world.active_entities())

    logger.info(
        "World built: %dx%d, %d entities, civilizations=%s",
        terrain.width, terrain.height, len(world.entities), ", ".join(config.civilizations),
    )
    return WorldLoop(config, world, machine, formations, visibility, bus, stockpile)
