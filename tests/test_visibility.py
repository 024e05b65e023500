"""Tests for the per-civilization fog of war."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from eternity.config import SimulationConfig
from eternity.core.enums import TerrainType, Visibility
from eternity.core.models import StatModifier
from eternity.core.terrain import TerrainGrid
from eternity.systems.visibility import VisibilityField
from tests.helpers.arena import Arena


def _field(w: int = 40, h: int = 40, owners=("SOLARI", "LUNARI"), terrain=None) -> VisibilityField:
    terrain = terrain or TerrainGrid(w, h, default=TerrainType.GRASS)
    return VisibilityField(terrain, SimulationConfig(grid_width=w, grid_height=h), owners)


class TestRevealArea:
    def test_radius_limits_sight(self):
        vis = _field()
        vis.reveal_area(10, 10, 4, "SOLARI")
        assert vis.is_visible(10, 10, "SOLARI")
        assert vis.is_visible(14, 10, "SOLARI")
        assert not vis.is_visible(16, 10, "SOLARI")
        assert not vis.is_visible(10, 10, "LUNARI")

    def test_disk_not_square(self):
        vis = _field()
        vis.reveal_area(10, 10, 4, "SOLARI")
        assert not vis.is_visible(14, 14, "SOLARI")
        assert vis.is_visible(13, 12, "SOLARI")

    def test_mountain_blocks_outer_ring(self):
        terrain = TerrainGrid(40, 40)
        terrain.set(12, 10, TerrainType.MOUNTAIN)
        vis = _field(terrain=terrain)
        vis.reveal_area(10, 10, 4, "SOLARI")
        assert vis.is_visible(12, 10, "SOLARI")
        assert not vis.is_visible(14, 10, "SOLARI")

    def test_water_does_not_block_sight(self):
        terrain = TerrainGrid(40, 40)
        terrain.fill_rect(12, 0, 1, 40, TerrainType.WATER)
        vis = _field(terrain=terrain)
        vis.reveal_area(10, 10, 4, "SOLARI")
        assert vis.is_visible(14, 10, "SOLARI")

    def test_edge_of_map_is_clipped(self):
        vis = _field(10, 10)
        vis.reveal_area(0, 0, 4, "SOLARI")
        assert vis.is_visible(0, 0, "SOLARI")
        assert vis.value(-1, 0, "SOLARI") == 0
        assert len(vis.export("SOLARI")) == 100


class TestRecompute:
    def test_visible_downgrades_to_explored(self):
        vis = _field()
        vis.reveal_area(10, 10, 4, "SOLARI")
        vis.recompute([])
        assert not vis.is_visible(10, 10, "SOLARI")
        assert vis.is_explored(10, 10, "SOLARI")
        assert vis.value(10, 10, "SOLARI") == Visibility.EXPLORED

    def test_explored_never_reverts(self):
        arena = Arena(40, 40)
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        arena.visibility.recompute(arena.world.active_entities())
        seen = [i for i, v in enumerate(arena.visibility.export("SOLARI")) if v]
        arena.machine.move_to(u, 30, 30)
        for _ in range(40):
            arena.run_ticks(10)
            grid = arena.visibility.export("SOLARI")
            assert all(grid[i] >= Visibility.EXPLORED for i in seen)

    def test_own_tile_visible_after_recompute(self):
        arena = Arena(40, 40)
        units = [
            arena.spawn("archer", "SOLARI", 3, 3),
            arena.spawn("villager", "LUNARI", 30, 12),
            arena.spawn("house", "LUNARI", 20, 20),
        ]
        arena.visibility.recompute(arena.world.active_entities())
        for e in units:
            assert arena.visibility.is_visible(e.x, e.y, e.owner)

    def test_resources_reveal_nothing(self):
        arena = Arena(40, 40)
        arena.spawn("tree", None, 10, 10)
        arena.visibility.recompute(arena.world.active_entities())
        for owner in arena.config.civilizations:
            assert not any(arena.visibility.export(owner))

    def test_tower_sees_further_than_units(self):
        arena = Arena(40, 40)
        arena.spawn("tower", "SOLARI", 20, 20)
        arena.spawn("swordsman", "LUNARI", 20, 20)
        arena.visibility.recompute(arena.world.active_entities())
        assert arena.visibility.is_visible(27, 20, "SOLARI")
        assert not arena.visibility.is_visible(27, 20, "LUNARI")

    def test_line_of_sight_modifier_widens_view(self):
        arena = Arena(40, 40)
        u = arena.spawn("swordsman", "SOLARI", 10, 10)
        assert arena.visibility.view_radius(u) == arena.config.view_radius_unit
        u.apply_modifier(StatModifier("f_1", line_of_sight=1))
        assert arena.visibility.view_radius(u) == arena.config.view_radius_unit + 1

    def test_dead_units_stop_revealing(self):
        arena = Arena(40, 40)
        u = arena.spawn("swordsman", "SOLARI", 10, 10)
        arena.visibility.recompute(arena.world.active_entities())
        arena.machine.take_damage(u, 1000)
        arena.visibility.recompute(arena.world.active_entities())
        assert not arena.visibility.is_visible(10, 10, "SOLARI")
        assert arena.visibility.is_explored(10, 10, "SOLARI")


class TestThrottle:
    def test_update_waits_for_interval(self):
        vis = _field()
        assert not vis.update(0.2, [])
        assert not vis.update(0.2, [])
        assert vis.update(0.2, [])
        assert not vis.update(0.2, [])


class TestAdministrative:
    def test_reveal_map_single_owner(self):
        vis = _field(10, 10)
        vis.reveal_map("SOLARI")
        assert all(v == Visibility.VISIBLE for v in vis.export("SOLARI"))
        assert not any(vis.export("LUNARI"))

    def test_reset_clears_to_unexplored(self):
        vis = _field(10, 10)
        vis.reveal_map()
        vis.reset("LUNARI")
        assert not any(vis.export("LUNARI"))
        assert all(vis.export("SOLARI"))
        vis.reset()
        assert not any(vis.export("SOLARI"))

    def test_unknown_owner_reads_unexplored(self):
        vis = _field(10, 10)
        assert vis.value(3, 3, "NOBODY") == 0
        assert "NOBODY" not in vis.owners
