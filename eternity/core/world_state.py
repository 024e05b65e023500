"""Mutable authoritative world state: the entity registry."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Callable, Iterator

from eternity.core.capabilities import capability_for
from eternity.core.enums import EntityKind
from eternity.core.models import Entity, Point, Vector2
from eternity.core.terrain import TerrainGrid

if TYPE_CHECKING:
    from eternity.systems.spatial_hash import SpatialHash


class WorldState:
    """The single source of truth for the simulation.

    Registry of entities (create / lookup / remove) plus the queries by
    kind, owner and region used by formations and combat targeting.
    Inactive entities are excluded from every query except ``get``.
    """

    __slots__ = ("tick", "elapsed", "seed", "terrain", "entities", "spatial_index",
                 "_next_entity_id", "_structures")

    def __init__(
        self,
        seed: int,
        terrain: TerrainGrid,
        spatial_index: SpatialHash,
    ) -> None:
        self.tick: int = 0
        self.elapsed: float = 0.0
        self.seed: int = seed
        self.terrain: TerrainGrid = terrain
        self.entities: dict[int, Entity] = {}
        self.spatial_index: SpatialHash = spatial_index
        self._next_entity_id: int = 1
        # Footprint tile -> structure id (buildings, walls, resources)
        self._structures: dict[tuple[int, int], int] = {}

    # -- registry --

    def allocate_entity_id(self) -> int:
        eid = self._next_entity_id
        self._next_entity_id += 1
        return eid

    def add_entity(self, entity: Entity) -> None:
        self.entities[entity.id] = entity
        self._next_entity_id = max(self._next_entity_id, entity.id + 1)
        self.spatial_index.insert(entity.id, entity.tile)
        if entity.kind != EntityKind.UNIT:
            for tile in entity.footprint():
                self._structures[tile] = entity.id

    def remove_entity(self, entity_id: int) -> Entity | None:
        entity = self.entities.pop(entity_id, None)
        if entity is not None:
            self.spatial_index.remove(entity_id)
            if entity.kind != EntityKind.UNIT:
                for tile in entity.footprint():
                    if self._structures.get(tile) == entity_id:
                        del self._structures[tile]
        return entity

    def get(self, entity_id: int | None) -> Entity | None:
        if entity_id is None:
            return None
        return self.entities.get(entity_id)

    def move_entity(self, entity: Entity, x: float, y: float) -> None:
        entity.x = x
        entity.y = y
        self.spatial_index.update(entity.id, entity.tile)

    # -- queries --

    def active_entities(self) -> Iterator[Entity]:
        return (e for e in self.entities.values() if e.active)

    def by_kind(self, kind: EntityKind) -> list[Entity]:
        return [e for e in self.entities.values() if e.active and e.kind == kind]

    def by_owner(self, owner: str) -> list[Entity]:
        return [e for e in self.entities.values() if e.active and e.owner == owner]

    def by_type(self, subtype: str, owner: str | None = None) -> list[Entity]:
        return [
            e for e in self.entities.values()
            if e.active and e.subtype == subtype and (owner is None or e.owner == owner)
        ]

    def in_radius(
        self,
        center: Point,
        radius: float,
        predicate: Callable[[Entity], bool] | None = None,
    ) -> list[Entity]:
        """Active entities whose centre lies within *radius* tiles of *center*."""
        tile = Vector2(math.floor(center.x), math.floor(center.y))
        result: list[Entity] = []
        for eid in self.spatial_index.query_radius(tile, radius):
            e = self.entities.get(eid)
            if e is None or not e.active:
                continue
            if math.hypot(e.x - center.x, e.y - center.y) > radius:
                continue
            if predicate is None or predicate(e):
                result.append(e)
        result.sort(key=lambda e: e.id)
        return result

    def structure_at(self, x: int, y: int) -> Entity | None:
        """The active (or breached) structure occupying tile (x, y), if any."""
        eid = self._structures.get((x, y))
        if eid is None:
            return None
        entity = self.entities.get(eid)
        if entity is None or not entity.active:
            return None
        return entity

    def is_area_free(self, x: int, y: int, w: int, h: int) -> bool:
        return all(
            self.structure_at(tx, ty) is None
            for ty in range(y, y + h)
            for tx in range(x, x + w)
        )

    def blocked_tiles_for(self, mover: Entity) -> set[tuple[int, int]]:
        """Footprint tiles of structures *mover* cannot pass through."""
        blocked: set[tuple[int, int]] = set()
        for tile, eid in self._structures.items():
            structure = self.entities.get(eid)
            if structure is None or not structure.active:
                continue
            cap = capability_for(structure)
            if cap.blocks_movement and not cap.can_pass(structure, mover):
                blocked.add(tile)
        return blocked
