"""Terrain grid: static per-tile terrain, movement cost, passability, buildability."""

from __future__ import annotations

from dataclasses import dataclass

from eternity.core.enums import TerrainType


@dataclass(frozen=True, slots=True)
class TileInfo:
    """Immutable per-tile record."""

    terrain_type: TerrainType
    movement_cost: float
    passable: bool
    buildable: bool


# ---------------------------------------------------------------------------
# Terrain registry
# ---------------------------------------------------------------------------
# Cost 1.0 = baseline.  Costs >= the pathfinder's impassable threshold (10)
# block movement even when ``passable`` is True; WATER stays ``passable`` so
# it never blocks line of sight.

TERRAIN_TABLE: dict[TerrainType, TileInfo] = {
    TerrainType.GRASS:    TileInfo(TerrainType.GRASS, 1.0, passable=True, buildable=True),
    TerrainType.FOREST:   TileInfo(TerrainType.FOREST, 1.5, passable=True, buildable=False),
    TerrainType.HILL:     TileInfo(TerrainType.HILL, 2.0, passable=True, buildable=True),
    TerrainType.MOUNTAIN: TileInfo(TerrainType.MOUNTAIN, 5.0, passable=False, buildable=False),
    TerrainType.WATER:    TileInfo(TerrainType.WATER, 10.0, passable=True, buildable=False),
}


class TerrainGrid:
    """2D tile grid backed by a flat list for cache-friendly access.

    Read-only once generation has finished; ``set`` exists for generators
    and test fixtures.
    """

    __slots__ = ("width", "height", "_tiles")

    def __init__(self, width: int, height: int, default: TerrainType = TerrainType.GRASS) -> None:
        self.width = width
        self.height = height
        self._tiles: list[TerrainType] = [default] * (width * height)

    # -- access --

    def _idx(self, x: int, y: int) -> int:
        return y * self.width + x

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def terrain_at(self, x: int, y: int) -> TerrainType | None:
        if 0 <= x < self.width and 0 <= y < self.height:
            return self._tiles[y * self.width + x]
        return None

    def get_tile(self, x: int, y: int) -> TileInfo | None:
        """Return the tile record at (x, y), or None outside the map."""
        terrain = self.terrain_at(x, y)
        if terrain is None:
            return None
        return TERRAIN_TABLE[terrain]

    def set(self, x: int, y: int, terrain: TerrainType) -> None:
        if self.in_bounds(x, y):
            self._tiles[self._idx(x, y)] = terrain

    def fill_rect(self, x: int, y: int, w: int, h: int, terrain: TerrainType) -> None:
        for ty in range(y, y + h):
            for tx in range(x, x + w):
                self.set(tx, ty, terrain)

    def movement_cost(self, x: int, y: int) -> float:
        terrain = self.terrain_at(x, y)
        if terrain is None:
            return float("inf")
        return TERRAIN_TABLE[terrain].movement_cost

    def is_passable(self, x: int, y: int) -> bool:
        terrain = self.terrain_at(x, y)
        return terrain is not None and TERRAIN_TABLE[terrain].passable

    def is_terrain_buildable(self, x: int, y: int, w: int = 1, h: int = 1) -> bool:
        """True when every tile of the w x h rectangle at (x, y) is buildable."""
        for ty in range(y, y + h):
            for tx in range(x, x + w):
                terrain = self.terrain_at(tx, ty)
                if terrain is None or not TERRAIN_TABLE[terrain].buildable:
                    return False
        return True

    # -- line-of-sight (Bresenham) --

    def has_line_of_sight(self, x0: int, y0: int, x1: int, y1: int) -> bool:
        """Check if there is a clear line of sight between two tiles.

        Uses Bresenham's line algorithm. Returns False if any impassable
        tile lies on the line between (x0,y0) and (x1,y1), exclusive of
        endpoints.
        """
        dx = abs(x1 - x0)
        dy = abs(y1 - y0)
        sx = 1 if x0 < x1 else -1
        sy = 1 if y0 < y1 else -1
        err = dx - dy
        cx, cy = x0, y0
        while True:
            if cx == x1 and cy == y1:
                return True
            e2 = 2 * err
            if e2 > -dy:
                err -= dy
                cx += sx
            if e2 < dx:
                err += dx
                cy += sy
            if (cx != x1 or cy != y1) and not self.is_passable(cx, cy):
                return False

    # -- export --

    def codes(self) -> list[int]:
        """Flat row-major terrain codes."""
        return [int(t) for t in self._tiles]

    def copy(self) -> TerrainGrid:
        new = TerrainGrid.__new__(TerrainGrid)
        new.width = self.width
        new.height = self.height
        new._tiles = list(self._tiles)
        return new
