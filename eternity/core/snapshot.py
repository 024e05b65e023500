"""Immutable snapshot of the world state for API readers."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from eternity.core.terrain import TerrainGrid
from eternity.core.walls import connection_type

if TYPE_CHECKING:
    from eternity.core.ledger import Stockpile
    from eternity.core.world_state import WorldState
    from eternity.systems.formations import FormationManager
    from eternity.systems.visibility import VisibilityField


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Read-only view of one tick, safe to share across threads.

    Entities are stored as their serialized records and wrapped in a
    MappingProxyType, so readers can never reach live simulation objects.
    """

    tick: int
    elapsed: float
    seed: int
    terrain: TerrainGrid
    entities: Mapping[int, dict[str, Any]]
    formations: tuple[dict[str, Any], ...] = ()
    visibility: Mapping[str, bytes] = field(default_factory=dict)
    resources: Mapping[str, dict[str, float]] = field(default_factory=dict)

    @classmethod
    def from_world(
        cls,
        world: WorldState,
        formations: FormationManager | None = None,
        visibility: VisibilityField | None = None,
        stockpile: Stockpile | None = None,
    ) -> Snapshot:
        records: dict[int, dict[str, Any]] = {}
        for eid, e in world.entities.items():
            rec = e.serialize()
            if e.wall is not None:
                rec["attributes"]["connection"] = connection_type(e)
            records[eid] = rec
        fog: dict[str, bytes] = {}
        if visibility is not None:
            fog = {owner: visibility.export(owner) for owner in visibility.owners}
        balances: dict[str, dict[str, float]] = {}
        if stockpile is not None and visibility is not None:
            balances = {owner: stockpile.balance(owner) for owner in visibility.owners}
        return cls(
            tick=world.tick,
            elapsed=world.elapsed,
            seed=world.seed,
            terrain=world.terrain,  # terrain never changes after generation
            entities=MappingProxyType(records),
            formations=tuple(f.to_dict() for f in formations.formations.values()) if formations else (),
            visibility=MappingProxyType(fog),
            resources=MappingProxyType(balances),
        )

    def entity(self, entity_id: int) -> dict[str, Any] | None:
        return self.entities.get(entity_id)

    def entities_for(self, owner: str) -> list[dict[str, Any]]:
        return [rec for rec in self.entities.values() if rec["owner"] == owner]
