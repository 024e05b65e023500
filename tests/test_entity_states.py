"""Tests for the entity state machine: movement orders and state transitions."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from eternity.ai.states import STATE_HANDLERS
from eternity.core.enums import EntityState, TerrainType
from eternity.core.models import Vector2
from eternity.utils.events import MoveFinished, MoveStarted
from tests.helpers.arena import Arena


class TestHandlerRegistry:
    def test_every_state_has_a_handler(self):
        assert set(STATE_HANDLERS) == set(EntityState)


class TestMoveTo:
    def test_walks_to_destination_then_idles(self):
        arena = Arena()
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        assert arena.machine.move_to(u, 8, 5)
        assert u.state == EntityState.MOVING
        arena.run_until(lambda: u.state == EntityState.IDLE)
        assert u.state == EntityState.IDLE
        assert u.tile == Vector2(8, 5)
        assert u.x == 8.5 and u.y == 5.5
        assert u.path is None

    def test_publishes_start_and_finish(self):
        arena = Arena()
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        arena.machine.move_to(u, 7, 7)
        arena.run_until(lambda: u.state == EntityState.IDLE)
        started = arena.events_of(MoveStarted)
        assert [(e.entity_id, e.x, e.y) for e in started] == [(u.id, 7, 7)]
        assert [e.entity_id for e in arena.events_of(MoveFinished)] == [u.id]

    def test_speed_bounds_progress_per_tick(self):
        arena = Arena()
        u = arena.spawn("swordsman", "SOLARI", 2, 5)
        arena.machine.move_to(u, 12, 5)
        arena.run_ticks(4)  # 0.2s at 2.5 tiles/s
        assert abs(u.x - 3.0) < 1e-6

    def test_unreachable_goal_keeps_state(self):
        arena = Arena()
        arena.set_tiles([(15, y) for y in range(20)], TerrainType.MOUNTAIN)
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        assert not arena.machine.move_to(u, 18, 5)
        assert u.state == EntityState.IDLE
        assert u.path is None

    def test_failed_order_does_not_interrupt_current_move(self):
        arena = Arena()
        arena.set_tiles([(15, y) for y in range(20)], TerrainType.MOUNTAIN)
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        arena.machine.move_to(u, 8, 8)
        path = u.path
        assert not arena.machine.move_to(u, 18, 5)
        assert u.state == EntityState.MOVING
        assert u.path is path

    def test_new_order_replaces_path(self):
        arena = Arena()
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        arena.machine.move_to(u, 10, 5)
        arena.run_ticks(5)
        arena.machine.move_to(u, 5, 10)
        assert u.destination == Vector2(5, 10)
        arena.run_until(lambda: u.state == EntityState.IDLE)
        assert u.tile == Vector2(5, 10)

    def test_buildings_cannot_move(self):
        arena = Arena()
        house = arena.spawn("house", "SOLARI", 5, 5)
        assert not arena.machine.move_to(house, 10, 10)
        assert house.state == EntityState.IDLE

    def test_routes_around_buildings(self):
        arena = Arena()
        arena.spawn("barracks", "SOLARI", 7, 4)
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        arena.machine.move_to(u, 12, 5)
        blocked = {(7 + dx, 4 + dy) for dx in range(3) for dy in range(3)}
        assert not any((p.tile().x, p.tile().y) in blocked for p in u.path)

    def test_stop_returns_to_idle(self):
        arena = Arena()
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        arena.machine.move_to(u, 10, 5)
        arena.machine.stop(u)
        assert u.state == EntityState.IDLE
        assert u.path is None and u.destination is None


class TestTerminalStates:
    def test_dead_entity_does_not_update(self):
        arena = Arena()
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        arena.machine.move_to(u, 10, 5)
        arena.machine.take_damage(u, 1000)
        x = u.x
        arena.run_ticks(5)
        assert u.state == EntityState.DEAD
        assert u.x == x

    def test_dead_entity_refuses_orders(self):
        arena = Arena()
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        arena.machine.take_damage(u, 1000)
        assert not arena.machine.move_to(u, 10, 5)
        arena.machine.stop(u)
        assert u.state == EntityState.DEAD
