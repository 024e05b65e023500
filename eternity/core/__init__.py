"""Core data models and world representation."""

from eternity.core.enums import (
    DamageType,
    EntityKind,
    EntityState,
    Facing,
    FormationType,
    TerrainType,
    Visibility,
)
from eternity.core.models import BaseStats, Entity, Point, StatModifier, Vector2
from eternity.core.terrain import TerrainGrid
from eternity.core.world_state import WorldState
from eternity.core.snapshot import Snapshot

__all__ = [
    "BaseStats",
    "DamageType",
    "Entity",
    "EntityKind",
    "EntityState",
    "Facing",
    "FormationType",
    "Point",
    "Snapshot",
    "StatModifier",
    "TerrainGrid",
    "TerrainType",
    "Vector2",
    "Visibility",
    "WorldState",
]
