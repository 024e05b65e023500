"""Enumerations used throughout the engine."""

from __future__ import annotations

from enum import Enum, IntEnum, unique


@unique
class EntityKind(IntEnum):
    """Discriminant for the entity variants handled by the capability table."""

    UNIT = 0
    BUILDING = 1
    WALL = 2
    RESOURCE = 3


@unique
class EntityState(IntEnum):
    """Behavioral states of the per-entity state machine."""

    IDLE = 0
    MOVING = 1
    ATTACKING = 2
    GATHERING = 3
    CONSTRUCTING = 4
    REPAIRING = 5
    DEAD = 6
    BREACHED = 7    # Walls only: destroyed but present and passable


@unique
class DamageType(IntEnum):
    """Weapon damage categories resolved against defense bands."""

    SLASHING = 0
    PIERCING = 1
    BLUNT = 2


@unique
class TerrainType(IntEnum):
    """Static terrain per tile."""

    GRASS = 0
    FOREST = 1
    HILL = 2
    MOUNTAIN = 3
    WATER = 4


@unique
class Visibility(IntEnum):
    """Fog-of-war cell values, ordered so that ``>= EXPLORED`` means seen."""

    UNEXPLORED = 0
    EXPLORED = 1
    VISIBLE = 2


@unique
class Facing(str, Enum):
    """Unit facing labels used by formations."""

    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    OUT = "out"     # Per-slot outward facing (square, circle)


@unique
class FormationType(str, Enum):
    """The eight formation shapes."""

    LINE = "line"
    COLUMN = "column"
    WEDGE = "wedge"
    SQUARE = "square"
    CIRCLE = "circle"
    SCATTER = "scatter"
    SKIRMISH = "skirmish"
    STAGGERED = "staggered"


@unique
class GateState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


@unique
class Domain(IntEnum):
    """RNG domains for deterministic randomness isolation."""

    ELEVATION = 0
    MOISTURE = 1
    SPAWN = 2
