"""Unit + integration tests for A* pathfinding over the terrain grid."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from eternity.ai.pathfinding import Pathfinder
from eternity.core.enums import EntityState, TerrainType
from eternity.core.models import Point, Vector2
from eternity.core.terrain import TerrainGrid
from tests.helpers.arena import Arena


def _grid(w: int = 10, h: int = 10) -> TerrainGrid:
    return TerrainGrid(w, h, default=TerrainType.GRASS)


def _tiles(path: list[Point]) -> list[Vector2]:
    return [p.tile() for p in path]


def _assert_adjacent(path: list[Point]) -> None:
    tiles = _tiles(path)
    for a, b in zip(tiles, tiles[1:]):
        assert a.chebyshev(b) == 1, f"{a} -> {b} is not a single step"


# ---------------------------------------------------------------------------
# Basic A* tests
# ---------------------------------------------------------------------------

class TestAStarBasic:
    def test_straight_line_path(self):
        pf = Pathfinder(_grid())
        path = pf.find_path(0, 0, 3, 0)
        assert _tiles(path) == [Vector2(0, 0), Vector2(1, 0), Vector2(2, 0), Vector2(3, 0)]

    def test_waypoints_are_tile_centres(self):
        pf = Pathfinder(_grid())
        path = pf.find_path(0, 0, 2, 0)
        assert path[0] == Point(0.5, 0.5)
        assert path[-1] == Point(2.5, 0.5)

    def test_fractional_coordinates_are_floored(self):
        pf = Pathfinder(_grid())
        path = pf.find_path(0.9, 0.2, 3.7, 0.99)
        assert _tiles(path)[0] == Vector2(0, 0)
        assert _tiles(path)[-1] == Vector2(3, 0)

    def test_same_start_and_goal(self):
        pf = Pathfinder(_grid())
        assert _tiles(pf.find_path(3, 3, 3, 3)) == [Vector2(3, 3)]

    def test_diagonal_moves_allowed(self):
        pf = Pathfinder(_grid())
        path = pf.find_path(0, 0, 3, 3)
        assert len(path) == 4
        _assert_adjacent(path)

    def test_path_around_mountain_ridge(self):
        g = _grid()
        for y in range(5):
            g.set(3, y, TerrainType.MOUNTAIN)
        pf = Pathfinder(g)
        path = pf.find_path(2, 2, 4, 2)
        assert len(path) > 3
        assert _tiles(path)[-1] == Vector2(4, 2)
        _assert_adjacent(path)
        for t in _tiles(path):
            assert g.terrain_at(t.x, t.y) != TerrainType.MOUNTAIN

    def test_prefers_cheap_terrain(self):
        g = _grid(7, 3)
        # Hills along y=1 make the straight route expensive
        for x in range(1, 6):
            g.set(x, 1, TerrainType.HILL)
        pf = Pathfinder(g)
        path = pf.find_path(0, 1, 6, 1)
        assert any(t.y != 1 for t in _tiles(path)[1:-1])


# ---------------------------------------------------------------------------
# Failure modes
# ---------------------------------------------------------------------------

class TestAStarFailure:
    def test_out_of_bounds_start(self):
        pf = Pathfinder(_grid())
        assert pf.find_path(-1, 0, 3, 0) == []

    def test_out_of_bounds_goal(self):
        pf = Pathfinder(_grid())
        assert pf.find_path(0, 0, 10, 10) == []

    def test_disconnected_by_mountains(self):
        g = _grid()
        for y in range(10):
            g.set(5, y, TerrainType.MOUNTAIN)
        pf = Pathfinder(g)
        assert pf.find_path(1, 1, 8, 8) == []

    def test_water_blocks_by_cost(self):
        """Water stays passable for sight but its cost keeps it out of paths."""
        g = _grid()
        for y in range(10):
            g.set(5, y, TerrainType.WATER)
        assert g.is_passable(5, 0)
        pf = Pathfinder(g)
        assert pf.find_path(1, 1, 8, 8) == []

    def test_goal_without_walkable_neighbourhood(self):
        g = _grid()
        g.fill_rect(3, 3, 3, 3, TerrainType.MOUNTAIN)
        pf = Pathfinder(g, goal_search_radius=1)
        assert pf.find_path(0, 0, 4, 4) == []

    def test_node_limit_returns_empty(self):
        pf = Pathfinder(_grid(50, 50), max_nodes=5)
        assert pf.find_path(0, 0, 49, 49) == []

    def test_terminates_on_large_enclosed_start(self):
        g = _grid(30, 30)
        for i in range(30):
            g.set(i, 20, TerrainType.MOUNTAIN)
        pf = Pathfinder(g)
        assert pf.find_path(0, 0, 29, 29) == []


# ---------------------------------------------------------------------------
# Unwalkable endpoints
# ---------------------------------------------------------------------------

class TestUnwalkableEndpoints:
    def test_goal_on_mountain_ends_at_nearest_tile(self):
        g = _grid()
        g.set(4, 4, TerrainType.MOUNTAIN)
        pf = Pathfinder(g)
        path = pf.find_path(0, 0, 4, 4)
        assert path
        _assert_adjacent(path)
        assert _tiles(path)[-1] == Vector2(4, 3)

    def test_goal_inside_lake_reaches_the_shore(self):
        g = _grid()
        g.fill_rect(3, 3, 3, 3, TerrainType.WATER)
        pf = Pathfinder(g)
        end = _tiles(pf.find_path(0, 0, 4, 4))[-1]
        assert end == Vector2(4, 2)
        assert g.movement_cost(end.x, end.y) < 10

    def test_nearest_walkable_skips_occupied(self):
        g = _grid()
        g.set(4, 4, TerrainType.MOUNTAIN)
        pf = Pathfinder(g)
        assert pf.nearest_walkable(Vector2(4, 4), {(4, 3)}) == Vector2(3, 4)
        assert pf.nearest_walkable(Vector2(1, 1)) == Vector2(1, 1)

    def test_nearest_walkable_respects_radius(self):
        g = _grid()
        g.fill_rect(2, 2, 5, 5, TerrainType.MOUNTAIN)
        pf = Pathfinder(g)
        assert pf.nearest_walkable(Vector2(4, 4), max_radius=2) is None
        assert pf.nearest_walkable(Vector2(4, 4), max_radius=3) == Vector2(4, 1)

    def test_stranded_start_is_left_out(self):
        g = _grid()
        g.set(0, 0, TerrainType.WATER)
        pf = Pathfinder(g)
        path = pf.find_path(0.5, 0.5, 3, 0)
        tiles = _tiles(path)
        assert tiles[0] != Vector2(0, 0)
        assert tiles[0].chebyshev(Vector2(0, 0)) == 1
        assert tiles[-1] == Vector2(3, 0)
        _assert_adjacent(path)
        for t in tiles:
            assert g.movement_cost(t.x, t.y) < 10

    def test_stranded_unit_walks_ashore(self):
        arena = Arena()
        arena.set_tiles([(5, 5)], TerrainType.WATER)
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        assert arena.machine.move_to(u, 8, 5)
        assert u.path_index == 0
        assert all(arena.terrain.movement_cost(p.tile().x, p.tile().y) < 10 for p in u.path)
        arena.run_until(lambda: u.state == EntityState.IDLE, max_ticks=200)
        assert u.tile == Vector2(8, 5)


# ---------------------------------------------------------------------------
# Occupied tiles
# ---------------------------------------------------------------------------

class TestOccupiedTiles:
    def test_occupied_tiles_are_avoided(self):
        pf = Pathfinder(_grid())
        occupied = {(x, y) for x in (2,) for y in range(0, 9)}
        path = pf.find_path(0, 0, 4, 0, occupied)
        assert path
        assert not any((t.x, t.y) in occupied for t in _tiles(path))
        _assert_adjacent(path)

    def test_goal_tile_is_exempt(self):
        pf = Pathfinder(_grid())
        path = pf.find_path(0, 0, 3, 0, {(3, 0)})
        assert _tiles(path)[-1] == Vector2(3, 0)


# ---------------------------------------------------------------------------
# Property: every successful path is adjacent and avoids high-cost tiles
# ---------------------------------------------------------------------------

class TestPathProperties:
    def test_random_obstacles_paths_are_valid(self):
        g = _grid(20, 20)
        blocked = [(x, (x * 7) % 20) for x in range(0, 20, 2)] + [(10, y) for y in range(3, 17)]
        for x, y in blocked:
            g.set(x, y, TerrainType.WATER if x % 4 == 0 else TerrainType.MOUNTAIN)
        pf = Pathfinder(g)
        for sx, sy, ex, ey in [(0, 0, 19, 19), (1, 18, 18, 1), (5, 5, 15, 15), (0, 10, 19, 10)]:
            path = pf.find_path(sx, sy, ex, ey)
            if not path:
                continue
            _assert_adjacent(path)
            for t in _tiles(path):
                assert g.movement_cost(t.x, t.y) < 10
