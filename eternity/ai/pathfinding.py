"""A* pathfinding over the terrain grid.

Provides a `Pathfinder` class that turns a start/goal tile pair into a
list of tile-centre waypoints, respecting terrain movement costs and an
optional occupied-tile set (structures the mover cannot pass).

Usage:
    pf = Pathfinder(terrain)
    path = pf.find_path(0, 0, 3, 0)     # list[Point], empty when unreachable

An unwalkable goal is swapped for the nearest walkable tile within
``goal_search_radius`` rings.  A mover standing on an unwalkable tile
(stranded in shallow water, say) is routed off it, but that tile is left
out of the returned waypoints.

The heuristic is plain Manhattan distance while diagonal steps cost
sqrt(2) x tile cost.  The heuristic can overestimate on diagonal routes, so
returned paths are always connected but not guaranteed to be the cheapest.
"""

from __future__ import annotations

import heapq
import logging
import math
from typing import TYPE_CHECKING

from eternity.core.models import NEIGHBOR_OFFSETS, Point, Vector2

if TYPE_CHECKING:
    from eternity.config import SimulationConfig
    from eternity.core.terrain import TerrainGrid

logger = logging.getLogger(__name__)

Occupied = frozenset[tuple[int, int]] | set[tuple[int, int]]


class Pathfinder:
    """A* pathfinder operating on the terrain grid.

    Reads only from the immutable terrain, so it is safe to share.
    Performance-bounded: expands at most ``max_nodes`` before giving up.
    """

    __slots__ = ("_terrain", "_max_nodes", "_impassable_cost", "_diagonal", "_goal_radius")

    def __init__(
        self,
        terrain: TerrainGrid,
        max_nodes: int = 20000,
        impassable_cost: float = 10.0,
        diagonal_multiplier: float = math.sqrt(2),
        goal_search_radius: int = 10,
    ) -> None:
        self._terrain = terrain
        self._max_nodes = max_nodes
        self._impassable_cost = impassable_cost
        self._diagonal = diagonal_multiplier
        self._goal_radius = goal_search_radius

    @classmethod
    def from_config(cls, terrain: TerrainGrid, config: SimulationConfig) -> Pathfinder:
        return cls(
            terrain,
            max_nodes=config.pathfinding_max_nodes,
            impassable_cost=config.impassable_cost,
            diagonal_multiplier=config.diagonal_multiplier,
            goal_search_radius=config.goal_search_radius,
        )

    def is_walkable(self, x: int, y: int) -> bool:
        """Passable terrain whose cost is below the impassable threshold."""
        tile = self._terrain.get_tile(x, y)
        return tile is not None and tile.passable and tile.movement_cost < self._impassable_cost

    def nearest_walkable(
        self,
        tile: Vector2,
        occupied: Occupied | None = None,
        max_radius: int | None = None,
    ) -> Vector2 | None:
        """Closest walkable, unoccupied tile to *tile*, or None.

        Scans square rings of growing Chebyshev radius and returns the
        candidate of the first non-empty ring that lies nearest in straight
        line; ties go to the lowest (y, x).  *tile* itself counts as ring 0.
        """
        occ = occupied or set()
        radius = self._goal_radius if max_radius is None else max_radius
        if self.is_walkable(tile.x, tile.y) and (tile.x, tile.y) not in occ:
            return tile
        for r in range(1, radius + 1):
            best: tuple[int, int, int] | None = None
            for dy in range(-r, r + 1):
                for dx in range(-r, r + 1):
                    if abs(dx) != r and abs(dy) != r:
                        continue
                    x, y = tile.x + dx, tile.y + dy
                    if (x, y) in occ or not self.is_walkable(x, y):
                        continue
                    key = (dx * dx + dy * dy, y, x)
                    if best is None or key < best:
                        best = key
            if best is not None:
                return Vector2(best[2], best[1])
        return None

    def find_path(
        self,
        start_x: float,
        start_y: float,
        end_x: float,
        end_y: float,
        occupied: Occupied | None = None,
    ) -> list[Point]:
        """Compute an A* path between two tiles.

        Coordinates may be fractional; they are floored to tiles.  Returns
        tile-centre waypoints from the start tile to the goal tile
        (inclusive of both), or an empty list when the goal is unreachable,
        either endpoint is off the map, or the node limit is reached.

        An unwalkable goal is redirected to :meth:`nearest_walkable`; the
        path then ends there.  An unwalkable start tile is dropped, so
        every returned waypoint is walkable.

        *occupied* tiles are skipped during expansion, except the goal,
        which stays reachable so structures can be approached.
        """
        tiles = self.find_tiles(
            Vector2(math.floor(start_x), math.floor(start_y)),
            Vector2(math.floor(end_x), math.floor(end_y)),
            occupied,
        )
        return [t.center() for t in tiles]

    def find_tiles(
        self,
        start: Vector2,
        goal: Vector2,
        occupied: Occupied | None = None,
    ) -> list[Vector2]:
        """Tile-level search backing :meth:`find_path`."""
        terrain = self._terrain
        if not terrain.in_bounds(start.x, start.y) or not terrain.in_bounds(goal.x, goal.y):
            return []
        occ = occupied or set()
        if not self.is_walkable(goal.x, goal.y):
            shore = self.nearest_walkable(goal, occ)
            if shore is None:
                return []
            logger.debug("Goal %s unwalkable, redirected to %s", goal, shore)
            goal = shore
        if start == goal:
            return [start]

        start_walkable = self.is_walkable(start.x, start.y)
        gx, gy = goal.x, goal.y

        # A* open set: (f_score, counter, x, y); counter keeps FIFO order on ties
        counter = 0
        open_heap: list[tuple[float, int, int, int]] = []
        heapq.heappush(open_heap, (0.0, counter, start.x, start.y))

        g_score: dict[tuple[int, int], float] = {(start.x, start.y): 0.0}
        came_from: dict[tuple[int, int], tuple[int, int]] = {}
        closed: set[tuple[int, int]] = set()
        nodes_explored = 0

        while open_heap and nodes_explored < self._max_nodes:
            _, _, cx, cy = heapq.heappop(open_heap)
            ckey = (cx, cy)

            if cx == gx and cy == gy:
                path = self._reconstruct(came_from, ckey)
                return path if start_walkable else path[1:]

            if ckey in closed:
                continue
            closed.add(ckey)
            nodes_explored += 1

            current_g = g_score[ckey]

            for dx, dy in NEIGHBOR_OFFSETS:
                nx, ny = cx + dx, cy + dy
                nkey = (nx, ny)

                if nkey in closed:
                    continue
                if not self.is_walkable(nx, ny):
                    continue
                if nkey in occ and not (nx == gx and ny == gy):
                    continue

                step_cost = terrain.movement_cost(nx, ny)
                if dx != 0 and dy != 0:
                    step_cost *= self._diagonal
                tentative_g = current_g + step_cost

                if tentative_g < g_score.get(nkey, float("inf")):
                    g_score[nkey] = tentative_g
                    came_from[nkey] = ckey
                    h = abs(nx - gx) + abs(ny - gy)  # Manhattan heuristic
                    counter += 1
                    heapq.heappush(open_heap, (tentative_g + h, counter, nx, ny))

        if nodes_explored >= self._max_nodes:
            logger.debug("Path %s -> %s abandoned after %d nodes", start, goal, nodes_explored)
        return []

    @staticmethod
    def _reconstruct(
        came_from: dict[tuple[int, int], tuple[int, int]],
        current: tuple[int, int],
    ) -> list[Vector2]:
        """Walk back through came_from to build the path (start included)."""
        path: list[Vector2] = [Vector2(current[0], current[1])]
        while current in came_from:
            current = came_from[current]
            path.append(Vector2(current[0], current[1]))
        path.reverse()
        return path
