"""Bucketed index of entity tiles for radius queries."""

from __future__ import annotations

import math
from collections import defaultdict

from eternity.core.models import Vector2


class SpatialHash:
    """Buckets entity ids by ``cell_size``-tile cells.

    The index remembers each entity's cell, so callers only hand over the
    new tile on a move.  ``query_radius`` returns candidates; exact
    distance filtering is left to the caller.
    """

    __slots__ = ("_cell_size", "_buckets", "_cell_of")

    def __init__(self, cell_size: int = 8) -> None:
        if cell_size < 1:
            raise ValueError("cell_size must be >= 1")
        self._cell_size = cell_size
        self._buckets: dict[tuple[int, int], set[int]] = defaultdict(set)
        self._cell_of: dict[int, tuple[int, int]] = {}

    def _cell(self, tile: Vector2) -> tuple[int, int]:
        return tile.x // self._cell_size, tile.y // self._cell_size

    def insert(self, entity_id: int, tile: Vector2) -> None:
        if entity_id in self._cell_of:
            self.update(entity_id, tile)
            return
        cell = self._cell(tile)
        self._cell_of[entity_id] = cell
        self._buckets[cell].add(entity_id)

    def remove(self, entity_id: int) -> None:
        cell = self._cell_of.pop(entity_id, None)
        if cell is None:
            return
        bucket = self._buckets[cell]
        bucket.discard(entity_id)
        if not bucket:
            del self._buckets[cell]

    def update(self, entity_id: int, tile: Vector2) -> None:
        cell = self._cell(tile)
        if self._cell_of.get(entity_id) == cell:
            return
        self.remove(entity_id)
        self._cell_of[entity_id] = cell
        self._buckets[cell].add(entity_id)

    def query_radius(self, tile: Vector2, radius: float) -> set[int]:
        reach = math.ceil(radius)
        lo_x, lo_y = self._cell(Vector2(tile.x - reach, tile.y - reach))
        hi_x, hi_y = self._cell(Vector2(tile.x + reach, tile.y + reach))
        found: set[int] = set()
        for cy in range(lo_y, hi_y + 1):
            for cx in range(lo_x, hi_x + 1):
                bucket = self._buckets.get((cx, cy))
                if bucket:
                    found |= bucket
        return found

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._cell_of

    def __len__(self) -> int:
        return len(self._cell_of)

    def clear(self) -> None:
        self._buckets.clear()
        self._cell_of.clear()
