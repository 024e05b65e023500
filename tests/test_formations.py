"""Tests for the formation engine: layouts, membership, bonuses, movement."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from eternity.core.enums import EntityState, Facing, FormationType, TerrainType
from eternity.core.models import Point
from eternity.systems.formations import FORMATION_TYPES, LAYOUTS, parse_formation_type
from eternity.utils.events import FormationCreated, FormationDisbanded
from tests.helpers.arena import Arena


def _squad(arena, template="swordsman", owner="SOLARI", n=4, x=5, y=5):
    return [arena.spawn(template, owner, x + i, y) for i in range(n)]


# ---------------------------------------------------------------------------
# Layouts
# ---------------------------------------------------------------------------

class TestLayouts:
    def test_square_of_four(self):
        arena = Arena()
        units = [
            arena.spawn("swordsman", "SOLARI", 5, 5),
            arena.spawn("swordsman", "SOLARI", 6, 5),
            arena.spawn("swordsman", "SOLARI", 5, 6),
            arena.spawn("swordsman", "SOLARI", 6, 6),
        ]
        f = arena.formations.create_formation(units, "square", "SOLARI")
        offsets = sorted((s.offset.x, s.offset.y) for s in f.slots.values())
        assert offsets == [
            pytest.approx((-0.45, -0.45)),
            pytest.approx((-0.45, 0.45)),
            pytest.approx((0.45, -0.45)),
            pytest.approx((0.45, 0.45)),
        ]

    def test_square_faces_outward(self):
        arena = Arena()
        f = arena.formations.create_formation(_squad(arena, n=9), "square", "SOLARI")
        facings = [f.slots[uid].facing for uid in f.members]
        assert facings[:3] == [Facing.UP] * 3
        assert facings[3] == Facing.LEFT and facings[5] == Facing.RIGHT
        assert facings[6:] == [Facing.DOWN] * 3

    def test_line_is_centred(self):
        arena = Arena()
        f = arena.formations.create_formation(_squad(arena, n=3), "line", "SOLARI")
        xs = [f.slots[uid].offset.x for uid in f.members]
        assert xs == pytest.approx([-1.2, 0.0, 1.2])
        assert all(f.slots[uid].offset.y == 0 for uid in f.members)

    def test_wedge_leader_at_point(self):
        arena = Arena()
        units = _squad(arena, n=5)
        f = arena.formations.create_formation(units, "wedge", "SOLARI")
        lead = f.slots[f.leader_id].offset
        assert (lead.x, lead.y) == pytest.approx((0.0, -2.2))
        assert all(f.slots[u.id].offset.y > lead.y for u in units[1:])

    def test_spacing_follows_footprint(self):
        arena = Arena()
        units = _squad(arena, n=2)
        for u in units:
            u.width = 2
        f = arena.formations.create_formation(units, "line", "SOLARI")
        xs = sorted(s.offset.x for s in f.slots.values())
        assert xs[1] - xs[0] == pytest.approx(2.4)

    @pytest.mark.parametrize("ftype", list(FormationType))
    def test_every_layout_gives_one_distinct_slot_per_unit(self, ftype):
        arena = Arena()
        units = _squad(arena, n=7)
        slots = LAYOUTS[ftype](units, 1.0, FORMATION_TYPES[ftype].facing)
        assert set(slots) == {u.id for u in units}
        points = {(round(s.offset.x, 6), round(s.offset.y, 6)) for s in slots.values()}
        assert len(points) == len(units)

    def test_preview_does_not_create(self):
        arena = Arena()
        units = _squad(arena, n=3)
        positions = arena.formations.preview(units, "line", Point(10, 10))
        assert arena.formations.formations == {}
        assert sorted(p.x for p in positions.values()) == pytest.approx([8.8, 10.0, 11.2])
        assert all(u.formation_id is None for u in units)


# ---------------------------------------------------------------------------
# Creation and membership
# ---------------------------------------------------------------------------

class TestMembership:
    def test_create_publishes_and_tags_members(self):
        arena = Arena()
        units = _squad(arena)
        f = arena.formations.create_formation(units, FormationType.LINE, "SOLARI")
        assert f.id == "f_1"
        assert f.leader_id == units[0].id
        assert all(u.formation_id == f.id for u in units)
        created = arena.events_of(FormationCreated)
        assert created[0].member_ids == tuple(u.id for u in units)

    def test_ids_increase(self):
        arena = Arena()
        a = arena.formations.create_formation(_squad(arena, n=2), "line", "SOLARI")
        b = arena.formations.create_formation(_squad(arena, n=2, y=8), "line", "SOLARI")
        assert (a.id, b.id) == ("f_1", "f_2")
        assert arena.formations.formations_for("SOLARI") == [a, b]
        assert arena.formations.formations_for("LUNARI") == []

    def test_villagers_and_enemies_are_filtered(self):
        arena = Arena()
        soldiers = _squad(arena, n=2)
        villager = arena.spawn("villager", "SOLARI", 5, 8)
        enemy = arena.spawn("swordsman", "LUNARI", 6, 8)
        house = arena.spawn("house", "SOLARI", 10, 10)
        f = arena.formations.create_formation(soldiers + [villager, enemy, house], "line", "SOLARI")
        assert f.members == [u.id for u in soldiers]
        assert len(f.slots) == 2
        assert villager.formation_id is None

    def test_no_eligible_units(self):
        arena = Arena()
        villager = arena.spawn("villager", "SOLARI", 5, 8)
        assert arena.formations.create_formation([villager], "line", "SOLARI") is None
        assert arena.events_of(FormationCreated) == []

    def test_unknown_type_falls_back_to_line(self):
        arena = Arena()
        assert parse_formation_type("phalanx") == FormationType.LINE
        f = arena.formations.create_formation(_squad(arena, n=2), "phalanx", "SOLARI")
        assert f.type == FormationType.LINE

    def test_remove_shrinks_slots_by_one(self):
        arena = Arena()
        units = _squad(arena, n=5)
        f = arena.formations.create_formation(units, "circle", "SOLARI")
        assert len(f.slots) == 5
        assert arena.formations.remove_units_from_formation(f.id, [units[2]]) == 1
        assert len(f.slots) == 4
        assert units[2].id not in f.slots
        assert units[2].formation_id is None

    def test_leader_promotion(self):
        arena = Arena()
        units = _squad(arena, n=3)
        f = arena.formations.create_formation(units, "wedge", "SOLARI")
        arena.formations.remove_units_from_formation(f.id, [units[0]])
        assert f.leader_id == units[1].id

    def test_removing_last_member_disbands(self):
        arena = Arena()
        units = _squad(arena, n=1)
        f = arena.formations.create_formation(units, "line", "SOLARI")
        arena.formations.remove_units_from_formation(f.id, units)
        assert arena.formations.get(f.id) is None
        assert [e.formation_id for e in arena.events_of(FormationDisbanded)] == [f.id]

    def test_death_removes_member(self):
        arena = Arena()
        units = _squad(arena, n=3)
        f = arena.formations.create_formation(units, "line", "SOLARI")
        arena.machine.take_damage(units[1], 1000)
        assert units[1].id not in f.members
        assert len(f.slots) == 2

    def test_joining_a_new_formation_leaves_the_old_one(self):
        arena = Arena()
        units = _squad(arena, n=3)
        first = arena.formations.create_formation(units, "line", "SOLARI")
        second = arena.formations.create_formation(units[:1], "column", "SOLARI")
        assert units[0].id not in first.members
        assert units[0].formation_id == second.id
        assert first.id not in units[0].modifiers

    def test_add_units(self):
        arena = Arena()
        units = _squad(arena, n=2)
        f = arena.formations.create_formation(units, "line", "SOLARI")
        extra = arena.spawn("spearman", "SOLARI", 5, 9)
        assert arena.formations.add_units_to_formation(f.id, [extra, units[0]]) == 1
        assert len(f.slots) == 3
        assert extra.effective_dp() == extra.base.dp + 1


# ---------------------------------------------------------------------------
# Bonuses
# ---------------------------------------------------------------------------

class TestBonuses:
    def test_bonus_applied_and_reverted_on_disband(self):
        arena = Arena()
        units = _squad(arena, n=2)
        f = arena.formations.create_formation(units, "square", "SOLARI")
        assert units[0].effective_dp() == units[0].base.dp + 2
        assert arena.formations.disband_formation(f.id)
        assert units[0].effective_dp() == units[0].base.dp
        assert units[0].modifiers == {}
        assert not arena.formations.disband_formation(f.id)

    def test_change_type_replaces_layer(self):
        arena = Arena()
        units = _squad(arena, n=2)
        f = arena.formations.create_formation(units, "square", "SOLARI")
        arena.formations.change_formation_type(f.id, "wedge")
        assert units[0].effective_dp() == units[0].base.dp
        assert units[0].effective_ar() == units[0].base.ar + 1
        assert list(units[0].modifiers) == [f.id]

    def test_wedge_charge_on_first_strike(self):
        arena = Arena()
        a = arena.spawn("swordsman", "SOLARI", 5, 5)
        b = arena.spawn("spearman", "LUNARI", 6, 5)
        arena.formations.create_formation([a], "wedge", "SOLARI")
        arena.machine.attack(a, b)
        # (10 + 1) * 1.2 charge, slashing bonus against dp 12
        assert b.hp == pytest.approx(55 - 11 * 1.2 * 1.25)
        assert a.charge_ready is False

    def test_skirmish_extends_range(self):
        arena = Arena()
        archer = arena.spawn("archer", "SOLARI", 5, 5)
        arena.formations.create_formation([archer], "skirmish", "SOLARI")
        assert archer.effective_attack_range() == 7


# ---------------------------------------------------------------------------
# Movement
# ---------------------------------------------------------------------------

class TestMovement:
    def test_members_march_to_slots(self):
        arena = Arena()
        units = _squad(arena, n=3, x=3, y=10)
        f = arena.formations.create_formation(units, "line", "SOLARI")
        assert arena.formations.move_formation(f.id, 15, 10)
        assert f.moving
        assert f.facing == Facing.RIGHT
        assert all(u.state == EntityState.MOVING for u in units)
        arena.run_until(lambda: not f.moving)
        assert not f.moving
        assert sorted(u.tile.x for u in units) == [13, 15, 16]
        assert all(u.speed_override is None for u in units)

    def test_speed_matches_slowest_member(self):
        arena = Arena()
        foot = arena.spawn("swordsman", "SOLARI", 3, 3)
        horse = arena.spawn("cavalry", "SOLARI", 4, 3)
        f = arena.formations.create_formation([foot, horse], "column", "SOLARI")
        arena.formations.move_formation(f.id, 12, 12)
        assert f.speed == pytest.approx(2.5 * 1.1)
        assert horse.effective_speed() == pytest.approx(2.75)
        assert foot.effective_speed() == pytest.approx(2.75)
        assert foot.effective_turn_rate() == pytest.approx(foot.base.turn_rate * 1.2)

    def test_stuck_member_keeps_own_speed(self):
        arena = Arena()
        foot = arena.spawn("swordsman", "SOLARI", 10, 10)
        horse = arena.spawn("cavalry", "SOLARI", 3, 3)
        ring = [(x, y) for x in range(2, 5) for y in range(2, 5) if (x, y) != (3, 3)]
        arena.set_tiles(ring, TerrainType.MOUNTAIN)
        f = arena.formations.create_formation([foot, horse], "column", "SOLARI")
        assert arena.formations.move_formation(f.id, 12, 12)
        assert foot.state == EntityState.MOVING
        assert foot.speed_override == pytest.approx(2.75)
        assert horse.state == EntityState.IDLE
        assert horse.speed_override is None
        assert horse.effective_speed() == 4.0

    def test_scatter_keeps_individual_speeds(self):
        arena = Arena()
        foot = arena.spawn("swordsman", "SOLARI", 3, 3)
        horse = arena.spawn("cavalry", "SOLARI", 4, 3)
        f = arena.formations.create_formation([foot, horse], "scatter", "SOLARI")
        arena.formations.move_formation(f.id, 12, 12)
        assert f.speed is None
        assert horse.effective_speed() == 4.0

    def test_move_unknown_formation(self):
        arena = Arena()
        assert not arena.formations.move_formation("f_99", 1, 1)

    def test_skirmish_falls_back_from_enemies(self):
        arena = Arena()
        archers = [arena.spawn("archer", "SOLARI", 5, 10), arena.spawn("archer", "SOLARI", 6, 10)]
        f = arena.formations.create_formation(archers, "skirmish", "SOLARI")
        arena.spawn("swordsman", "LUNARI", 9, 10)
        arena.run_ticks(1)
        assert f.moving
        assert f.facing == Facing.LEFT
        assert all(a.destination.x < 6 for a in archers)

    def test_skirmish_holds_without_threats(self):
        arena = Arena()
        archers = [arena.spawn("archer", "SOLARI", 5, 10), arena.spawn("archer", "SOLARI", 6, 10)]
        f = arena.formations.create_formation(archers, "skirmish", "SOLARI")
        arena.run_ticks(5)
        assert not f.moving

    def test_to_dict(self):
        arena = Arena()
        units = _squad(arena, n=2)
        f = arena.formations.create_formation(units, "staggered", "SOLARI")
        record = f.to_dict()
        assert record["type"] == "staggered"
        assert record["members"] == [u.id for u in units]
        assert set(record["slots"]) == {str(u.id) for u in units}
        assert record["speed_factor"] == 1.0
