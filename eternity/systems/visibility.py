"""Per-civilization fog of war.

Each civilization owns a flat ``bytearray`` the size of the map holding
0 (unexplored), 1 (explored) or 2 (visible).  A full recompute first
downgrades every visible cell to explored, then reveals a disk around
every active entity of that civilization.  Cells never return to
unexplored except through the administrative ``reset``.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Iterable

from eternity.core.enums import EntityKind, Visibility

if TYPE_CHECKING:
    from eternity.config import SimulationConfig
    from eternity.core.models import Entity
    from eternity.core.terrain import TerrainGrid

logger = logging.getLogger(__name__)

_VISIBLE = int(Visibility.VISIBLE)
_EXPLORED = int(Visibility.EXPLORED)
# Byte translation table: visible -> explored, everything else unchanged
_DOWNGRADE = bytes([0, _EXPLORED, _EXPLORED]) + bytes(range(3, 256))


class VisibilityField:
    """Dual-layer (explored / visible) knowledge grid per civilization."""

    __slots__ = ("_terrain", "_config", "_grids", "_accumulator")

    def __init__(
        self,
        terrain: TerrainGrid,
        config: SimulationConfig,
        owners: Iterable[str] = (),
    ) -> None:
        self._terrain = terrain
        self._config = config
        self._grids: dict[str, bytearray] = {}
        self._accumulator = 0.0
        for owner in owners:
            self.grid_for(owner)

    @property
    def owners(self) -> list[str]:
        return list(self._grids)

    def grid_for(self, owner: str) -> bytearray:
        grid = self._grids.get(owner)
        if grid is None:
            grid = bytearray(self._terrain.width * self._terrain.height)
            self._grids[owner] = grid
        return grid

    # -- queries --

    def value(self, x: int, y: int, owner: str) -> int:
        if not self._terrain.in_bounds(x, y):
            return 0
        grid = self._grids.get(owner)
        if grid is None:
            return 0
        return grid[y * self._terrain.width + x]

    def is_visible(self, x: int, y: int, owner: str) -> bool:
        return self.value(math.floor(x), math.floor(y), owner) == _VISIBLE

    def is_explored(self, x: int, y: int, owner: str) -> bool:
        return self.value(math.floor(x), math.floor(y), owner) >= _EXPLORED

    def export(self, owner: str) -> bytes:
        """Immutable copy of *owner*'s grid (row-major)."""
        return bytes(self.grid_for(owner))

    # -- updates --

    def reveal_area(self, cx: float, cy: float, radius: int, owner: str) -> None:
        """Mark every cell within *radius* of (cx, cy) visible, subject to sight.

        Cells within ``radius - 1`` are revealed unconditionally; the outer
        ring needs a clear Bresenham line against terrain.
        """
        terrain = self._terrain
        ox, oy = math.floor(cx), math.floor(cy)
        if not terrain.in_bounds(ox, oy):
            return
        grid = self.grid_for(owner)
        width = terrain.width
        r_sq = radius * radius
        inner_sq = (radius - 1) * (radius - 1)
        for dy in range(-radius, radius + 1):
            y = oy + dy
            if y < 0 or y >= terrain.height:
                continue
            for dx in range(-radius, radius + 1):
                x = ox + dx
                if x < 0 or x >= width:
                    continue
                dist_sq = dx * dx + dy * dy
                if dist_sq > r_sq:
                    continue
                if dist_sq > inner_sq and not terrain.has_line_of_sight(ox, oy, x, y):
                    continue
                grid[y * width + x] = _VISIBLE

    def view_radius(self, entity: Entity) -> int:
        cfg = self._config
        if entity.subtype in cfg.tower_types:
            radius = cfg.view_radius_tower
        elif entity.kind == EntityKind.UNIT:
            radius = cfg.view_radius_unit
        elif entity.kind == EntityKind.BUILDING:
            radius = cfg.view_radius_building
        else:
            radius = cfg.view_radius_default
        return radius + entity.vision_bonus()

    def recompute(self, entities: Iterable[Entity]) -> None:
        """Downgrade visible→explored everywhere, then reveal around owned entities."""
        for grid in self._grids.values():
            grid[:] = grid.translate(_DOWNGRADE)
        for entity in entities:
            if not entity.active or entity.owner is None:
                continue
            self.reveal_area(entity.x, entity.y, self.view_radius(entity), entity.owner)

    def update(self, delta_time: float, entities: Iterable[Entity]) -> bool:
        """Throttled recompute.  Returns True when a recompute ran."""
        self._accumulator += delta_time
        if self._accumulator < self._config.visibility_interval:
            return False
        self._accumulator = 0.0
        self.recompute(entities)
        return True

    # -- administrative overrides --

    def reveal_map(self, owner: str | None = None) -> None:
        for key in ([owner] if owner is not None else list(self._grids)):
            grid = self.grid_for(key)
            grid[:] = bytes([_VISIBLE]) * len(grid)

    def reset(self, owner: str | None = None) -> None:
        for key in ([owner] if owner is not None else list(self._grids)):
            grid = self.grid_for(key)
            grid[:] = bytes(len(grid))
        if owner is None:
            self._accumulator = 0.0
