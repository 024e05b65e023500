"""WorldLoop: the authoritative per-frame update sweep.

Phase cycle:
  1. Entities: every active entity's state machine advances
  2. Formations: centroids, arrival checks, skirmish retreat
  3. Visibility: throttled fog-of-war recompute
  4. Cleanup & Advancement: reap the dead after their grace period, advance tick
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from eternity.core.snapshot import Snapshot

if TYPE_CHECKING:
    from eternity.ai.states import StateMachine
    from eternity.config import SimulationConfig
    from eternity.core.ledger import Stockpile
    from eternity.core.world_state import WorldState
    from eternity.systems.formations import FormationManager
    from eternity.systems.visibility import VisibilityField
    from eternity.utils.events import EventBus

logger = logging.getLogger(__name__)


class WorldLoop:
    """The heartbeat of the simulation.

    Single-threaded, cooperative mutation of WorldState.  Nothing here
    blocks: pathfinding and visibility run to completion inside the call
    that triggers them.
    """

    __slots__ = (
        "_config",
        "_world",
        "_machine",
        "_formations",
        "_visibility",
        "_bus",
        "_stockpile",
        "_removed",
    )

    def __init__(
        self,
        config: SimulationConfig,
        world: WorldState,
        machine: StateMachine,
        formations: FormationManager,
        visibility: VisibilityField,
        bus: EventBus,
        stockpile: Stockpile | None = None,
    ) -> None:
        self._config = config
        self._world = world
        self._machine = machine
        self._formations = formations
        self._visibility = visibility
        self._bus = bus
        self._stockpile = stockpile
        self._removed: int = 0

    @property
    def world(self) -> WorldState:
        return self._world

    @property
    def machine(self) -> StateMachine:
        return self._machine

    @property
    def formations(self) -> FormationManager:
        return self._formations

    @property
    def visibility(self) -> VisibilityField:
        return self._visibility

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def stockpile(self) -> Stockpile | None:
        return self._stockpile

    @property
    def removed_count(self) -> int:
        """Entities reaped since this loop was built."""
        return self._removed

    def update(self, delta_time: float) -> None:
        """Advance the world by *delta_time* seconds."""
        world = self._world
        self._bus.tick = world.tick

        # Snapshot the id order: handlers may spawn or kill entities mid-sweep
        for eid in sorted(world.entities):
            entity = world.entities.get(eid)
            if entity is not None and entity.active:
                self._machine.update(entity, delta_time)

        self._formations.update(delta_time)
        self._visibility.update(delta_time, world.active_entities())
        self._reap(delta_time)

        world.elapsed += delta_time
        world.tick += 1

    def tick_once(self) -> bool:
        """Execute a single fixed-delta tick. Returns False if the simulation should stop."""
        if self._world.tick >= self._config.max_ticks:
            logger.info("Tick %d: Max ticks reached.", self._world.tick)
            return False
        self.update(self._config.tick_delta)
        return True

    def create_snapshot(self) -> Snapshot:
        """Create an immutable snapshot of the current world state."""
        return Snapshot.from_world(self._world, self._formations, self._visibility, self._stockpile)

    def run(self) -> None:
        """Execute the simulation until max_ticks."""
        logger.info("=== Simulation started (seed=%d) ===", self._world.seed)
        while self.tick_once():
            if self._world.tick % 100 == 0:
                logger.info(
                    "Tick %d: %d active entities, %d formations",
                    self._world.tick,
                    sum(1 for _ in self._world.active_entities()),
                    len(self._formations.formations),
                )
        logger.info("=== Simulation finished at tick %d ===", self._world.tick)

    def _reap(self, delta_time: float) -> None:
        """Remove inactive entities once their death grace period has elapsed."""
        grace = self._config.death_grace_seconds
        expired: list[int] = []
        for eid, entity in self._world.entities.items():
            if entity.active:
                continue
            entity.dead_time += delta_time
            if entity.dead_time >= grace:
                expired.append(eid)
        for eid in expired:
            removed = self._world.remove_entity(eid)
            if removed is not None:
                self._removed += 1
                logger.debug("Tick %d: removed %s #%d", self._world.tick, removed.subtype, eid)
