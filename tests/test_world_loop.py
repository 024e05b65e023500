"""Tests for the world loop, world construction and snapshots."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from eternity.config import SimulationConfig
from eternity.core.enums import EntityKind, TerrainType
from eternity.engine.setup import build_world_loop
from eternity.systems.generator import MapGenerator
from eternity.systems.rng import DeterministicRNG
from eternity.utils.event_log import EventLog
from tests.helpers.arena import Arena


class TestTicking:
    def test_tick_and_elapsed_advance(self):
        arena = Arena()
        arena.run_ticks(10)
        assert arena.world.tick == 10
        assert arena.world.elapsed == pytest.approx(0.5)

    def test_tick_once_stops_at_max_ticks(self):
        arena = Arena(max_ticks=3)
        assert [arena.loop.tick_once() for _ in range(4)] == [True, True, True, False]
        assert arena.world.tick == 3

    def test_events_carry_the_tick(self):
        arena = Arena()
        a = arena.spawn("swordsman", "SOLARI", 5, 5)
        b = arena.spawn("spearman", "LUNARI", 12, 5)
        arena.run_ticks(7)
        arena.machine.attack(a, b)
        arena.run_until(lambda: b.hp < b.base.max_hp)
        events = arena.log.latest(100)
        assert events
        assert all(e.tick >= 7 for e in events)


class TestReaper:
    def test_dead_linger_for_grace_period(self):
        arena = Arena()
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        arena.machine.take_damage(u, 1000)
        arena.run_ticks(30)
        assert arena.world.get(u.id) is u
        arena.run_ticks(15)
        assert arena.world.get(u.id) is None
        assert arena.loop.removed_count == 1

    def test_breached_walls_are_never_reaped(self):
        arena = Arena()
        wall = arena.spawn("wall", "SOLARI", 5, 5)
        arena.machine.take_damage(wall, 10_000)
        arena.run_ticks(100)
        assert arena.world.get(wall.id) is wall
        assert arena.world.structure_at(5, 5) is wall

    def test_depleted_node_frees_its_tile(self):
        arena = Arena()
        tree = arena.spawn("tree", None, 5, 5)
        tree.amount = 0.01
        v = arena.spawn("villager", "SOLARI", 4, 5)
        arena.machine.gather(v, tree)
        arena.run_ticks(60)
        assert arena.world.structure_at(5, 5) is None


class TestSnapshot:
    def test_snapshot_is_read_only(self):
        arena = Arena()
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        snap = arena.loop.create_snapshot()
        with pytest.raises(TypeError):
            snap.entities[999] = {}
        assert snap.entity(u.id)["type"] == "swordsman"
        assert snap.entity(12345) is None

    def test_snapshot_does_not_track_later_changes(self):
        arena = Arena()
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        snap = arena.loop.create_snapshot()
        arena.machine.take_damage(u, 10)
        assert snap.entity(u.id)["hp"] == 60

    def test_snapshot_contents(self):
        arena = Arena()
        units = [arena.spawn("swordsman", "SOLARI", 5 + i, 5) for i in range(2)]
        arena.spawn("wall", "LUNARI", 10, 10)
        arena.formations.create_formation(units, "line", "SOLARI")
        arena.run_ticks(10)
        snap = arena.loop.create_snapshot()
        assert snap.tick == 10
        assert [f["id"] for f in snap.formations] == ["f_1"]
        assert set(snap.visibility) == set(arena.config.civilizations)
        assert len(snap.visibility["SOLARI"]) == 20 * 20
        assert snap.resources["SOLARI"]["wood"] == 1000
        assert len(snap.entities_for("SOLARI")) == 2
        wall = snap.entities_for("LUNARI")[0]
        assert wall["attributes"]["connection"] == "single"


class TestBuildWorld:
    def _config(self, seed=7):
        return SimulationConfig(world_seed=seed, grid_width=48, grid_height=48)

    def test_same_seed_same_world(self):
        a = build_world_loop(self._config())
        b = build_world_loop(self._config())
        assert a.world.terrain.codes() == b.world.terrain.codes()
        assert [e.serialize() for e in a.world.entities.values()] == [
            e.serialize() for e in b.world.entities.values()
        ]
        for loop in (a, b):
            for _ in range(50):
                loop.tick_once()
        assert dict(a.create_snapshot().entities) == dict(b.create_snapshot().entities)

    def test_different_seed_different_terrain(self):
        a = build_world_loop(self._config(1))
        b = build_world_loop(self._config(2))
        assert a.world.terrain.codes() != b.world.terrain.codes()

    def test_each_civilization_is_seeded(self):
        config = self._config()
        loop = build_world_loop(config)
        starts = MapGenerator(config, DeterministicRNG(config.world_seed)).starting_positions()
        for owner in config.civilizations:
            units = [e for e in loop.world.by_owner(owner) if e.kind == EntityKind.UNIT]
            villagers = [u for u in units if u.is_villager]
            assert len(villagers) == config.starting_villagers
            assert len(units) - len(villagers) == config.starting_soldiers
            assert len(loop.world.by_type("town_center", owner)) == 1
            start = starts[owner]
            assert loop.world.terrain.terrain_at(start.x, start.y) == TerrainType.GRASS
        assert loop.world.by_kind(EntityKind.RESOURCE)

    def test_home_areas_start_visible(self):
        config = self._config()
        loop = build_world_loop(config)
        for e in loop.world.by_kind(EntityKind.UNIT):
            assert loop.visibility.is_visible(e.x, e.y, e.owner)

    def test_unpopulated_world(self):
        loop = build_world_loop(self._config(), populate=False)
        assert loop.world.entities == {}

    def test_events_reach_the_log(self):
        log = EventLog()
        loop = build_world_loop(self._config(), event_log=log)
        soldiers = [
            e for e in loop.world.by_owner("SOLARI")
            if e.kind == EntityKind.UNIT and not e.is_villager
        ]
        loop.formations.create_formation(soldiers, "line", "SOLARI")
        assert any(e.category == "formation" for e in log.latest())
