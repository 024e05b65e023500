"""Tests for entity records: serialize / deserialize."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from eternity.core.enums import DamageType, EntityKind, EntityState, GateState
from eternity.core.models import Entity, StatModifier
from tests.helpers.arena import Arena

RECORD_KEYS = {
    "id", "type", "owner", "x", "y", "width", "height",
    "hp", "maxHp", "dp", "ar", "state", "active", "attributes", "tags",
}


class TestSerialize:
    def test_record_keys(self):
        arena = Arena()
        u = arena.spawn("archer", "SOLARI", 5, 5)
        record = u.serialize()
        assert set(record) == RECORD_KEYS
        assert record["type"] == "archer"
        assert record["maxHp"] == 40
        assert record["state"] == "idle"
        assert record["attributes"]["damage_type"] == "piercing"

    def test_base_stats_only(self):
        arena = Arena()
        u = arena.spawn("swordsman", "SOLARI", 5, 5)
        u.apply_modifier(StatModifier("f_1", armor=2, attack=1))
        record = u.serialize()
        assert record["dp"] == 10
        assert record["ar"] == 10

    def test_wall_payload(self):
        arena = Arena()
        gate = arena.spawn("gate", "LUNARI", 5, 5)
        attrs = gate.serialize()["attributes"]
        assert attrs["kind"] == "wall"
        assert attrs["wall_type"] == "gate"
        assert attrs["gate_state"] == "closed"
        assert attrs["breached"] is False
        assert set(attrs["connected"]) == {"north", "east", "south", "west"}

    def test_units_have_no_wall_payload(self):
        arena = Arena()
        u = arena.spawn("villager", "SOLARI", 5, 5)
        assert "wall_type" not in u.serialize()["attributes"]


class TestDeserialize:
    def test_round_trip_unit(self):
        arena = Arena()
        u = arena.spawn("maceman", "LUNARI", 7, 3)
        arena.machine.take_damage(u, 20)
        copy = Entity.deserialize(u.serialize())
        assert copy.id == u.id
        assert copy.kind == EntityKind.UNIT
        assert copy.base == u.base
        assert copy.base.damage_type == DamageType.BLUNT
        assert (copy.x, copy.y, copy.hp) == (u.x, u.y, u.hp)
        assert copy.tags == u.tags

    def test_round_trip_breached_wall(self):
        arena = Arena()
        wall = arena.spawn("gate", "SOLARI", 5, 5)
        arena.machine.toggle_gate(wall)
        arena.machine.take_damage(wall, 10_000)
        copy = Entity.deserialize(wall.serialize())
        assert copy.state == EntityState.BREACHED
        assert copy.breached
        assert copy.wall.gate_state == GateState.OPEN
        assert copy.active

    def test_hp_clamped_on_load(self):
        arena = Arena()
        record = arena.spawn("villager", "SOLARI", 5, 5).serialize()
        record["hp"] = 9999
        assert Entity.deserialize(record).hp == 25
        record["hp"] = -3
        assert Entity.deserialize(record).hp == 0

    def test_missing_required_field(self):
        arena = Arena()
        record = arena.spawn("villager", "SOLARI", 5, 5).serialize()
        del record["maxHp"]
        with pytest.raises(KeyError):
            Entity.deserialize(record)

    def test_bad_state_name(self):
        arena = Arena()
        record = arena.spawn("villager", "SOLARI", 5, 5).serialize()
        record["state"] = "dancing"
        with pytest.raises(KeyError):
            Entity.deserialize(record)
