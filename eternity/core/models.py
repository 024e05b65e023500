"""Core data models: Vector2, Point, BaseStats, StatModifier, Entity."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from eternity.core.enums import DamageType, EntityKind, EntityState, GateState


@dataclass(frozen=True, slots=True)
class Vector2:
    """Immutable 2D integer tile coordinate."""

    x: int = 0
    y: int = 0

    def __add__(self, other: Vector2) -> Vector2:
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vector2) -> Vector2:
        return Vector2(self.x - other.x, self.y - other.y)

    def chebyshev(self, other: Vector2) -> int:
        return max(abs(self.x - other.x), abs(self.y - other.y))

    def center(self) -> Point:
        return Point(self.x + 0.5, self.y + 0.5)

    def __repr__(self) -> str:
        return f"({self.x}, {self.y})"


@dataclass(frozen=True, slots=True)
class Point:
    """Immutable fractional grid coordinate (1.0 == one tile)."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Point) -> Point:
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point) -> Point:
        return Point(self.x - other.x, self.y - other.y)

    def distance(self, other: Point) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def tile(self) -> Vector2:
        return Vector2(math.floor(self.x), math.floor(self.y))


# 8-connected neighbourhood: cardinals first, then diagonals
NEIGHBOR_OFFSETS: tuple[tuple[int, int], ...] = (
    (1, 0), (-1, 0), (0, 1), (0, -1),
    (1, 1), (1, -1), (-1, 1), (-1, -1),
)

# Wall connection directions → tile offsets
CARDINAL_OFFSETS: dict[str, tuple[int, int]] = {
    "north": (0, -1),
    "east": (1, 0),
    "south": (0, 1),
    "west": (-1, 0),
}


@dataclass(frozen=True, slots=True)
class BaseStats:
    """Immutable per-entity base statistics.  Never mutated after creation."""

    max_hp: float = 100.0
    ar: float = 0.0                 # Attack rating
    dp: float = 0.0                 # Defense rating
    damage_type: DamageType | None = None
    attack_range: int = 1           # Chebyshev tiles
    attack_cooldown: float = 1.0    # Seconds between strikes
    speed: float = 0.0              # Tiles per second (0 = immobile)
    turn_rate: float = 1.0
    gather_rate: float = 0.0        # Resource units per second
    build_rate: float = 0.0         # Build points per second
    repair_rate: float = 0.0        # HP per second


@dataclass(frozen=True, slots=True)
class StatModifier:
    """One layer of derived bonuses, keyed by the source that applied it.

    Additive: attack, armor, attack_range, line_of_sight.
    Multiplicative (fractions of base): speed, attack_rate, turn_rate.
    Behavior flags: charge_bonus, area_resistance, retreat_on_close.
    """

    source: str
    attack: float = 0.0
    armor: float = 0.0
    attack_range: int = 0
    line_of_sight: int = 0
    speed: float = 0.0
    attack_rate: float = 0.0
    turn_rate: float = 0.0
    charge_bonus: float = 0.0
    area_resistance: float = 0.0
    retreat_on_close: bool = False


@dataclass(slots=True)
class WallInfo:
    """Variant payload carried only by WALL entities."""

    wall_type: str = "wall"         # "wall" | "gate"
    gate_state: GateState = GateState.CLOSED
    breached: bool = False
    connected: dict[str, bool] = field(default_factory=lambda: {
        "north": False, "east": False, "south": False, "west": False,
    })

    @property
    def is_gate(self) -> bool:
        return self.wall_type == "gate"

    def copy(self) -> WallInfo:
        return WallInfo(
            wall_type=self.wall_type, gate_state=self.gate_state,
            breached=self.breached, connected=dict(self.connected),
        )


@dataclass(slots=True)
class Entity:
    """A grid-positioned, owned, statted simulation entity.

    ``x``/``y`` hold the footprint centre in fractional tile units, so a
    1x1 unit standing on tile (3, 4) sits at (3.5, 4.5).
    """

    id: int
    kind: EntityKind
    subtype: str
    owner: str | None
    x: float
    y: float
    base: BaseStats
    hp: float
    width: int = 1
    height: int = 1
    state: EntityState = EntityState.IDLE
    active: bool = True
    current_cooldown: float = 0.0

    # -- movement --
    path: list[Point] | None = None
    path_index: int = 0
    destination: Vector2 | None = None

    # -- tasking (attack / gather / construct / repair target) --
    target_id: int | None = None
    task_phase: str = ""
    charge_ready: bool = False

    # -- formation back-reference and layered stats --
    formation_id: str | None = None
    modifiers: dict[str, StatModifier] = field(default_factory=dict)
    speed_override: float | None = None

    # -- variant payloads --
    wall: WallInfo | None = None
    constructed: bool = True
    build_progress: float = 0.0
    build_time: float = 0.0
    carried: float = 0.0
    carry_type: str | None = None
    amount: float = 0.0             # Remaining stock on resource nodes

    dead_time: float = 0.0
    tags: list[str] = field(default_factory=list)

    # -- geometry --

    @property
    def pos(self) -> Point:
        return Point(self.x, self.y)

    @property
    def tile(self) -> Vector2:
        return Vector2(math.floor(self.x), math.floor(self.y))

    @property
    def origin(self) -> Vector2:
        """Top-left tile of the footprint."""
        return Vector2(
            math.floor(self.x - self.width / 2 + 1e-9),
            math.floor(self.y - self.height / 2 + 1e-9),
        )

    def footprint(self) -> list[tuple[int, int]]:
        o = self.origin
        return [
            (o.x + dx, o.y + dy)
            for dy in range(self.height)
            for dx in range(self.width)
        ]

    def nearest_tile_to(self, tile: Vector2) -> Vector2:
        """Footprint tile closest to *tile* (clamped per axis)."""
        o = self.origin
        return Vector2(
            min(max(tile.x, o.x), o.x + self.width - 1),
            min(max(tile.y, o.y), o.y + self.height - 1),
        )

    def tile_distance(self, other: Entity) -> int:
        """Chebyshev distance from this entity's tile to *other*'s footprint."""
        here = self.tile
        return here.chebyshev(other.nearest_tile_to(here))

    # -- relationships --

    def is_hostile(self, other: Entity) -> bool:
        return (
            self.owner is not None
            and other.owner is not None
            and self.owner != other.owner
        )

    @property
    def is_mobile(self) -> bool:
        return self.kind == EntityKind.UNIT and self.base.speed > 0

    @property
    def is_villager(self) -> bool:
        return "villager" in self.tags

    @property
    def breached(self) -> bool:
        return self.wall is not None and self.wall.breached

    @property
    def hp_ratio(self) -> float:
        return self.hp / self.base.max_hp if self.base.max_hp > 0 else 0.0

    # -- layered stats --

    def apply_modifier(self, modifier: StatModifier) -> None:
        self.modifiers[modifier.source] = modifier

    def remove_modifier(self, source: str) -> StatModifier | None:
        return self.modifiers.pop(source, None)

    def _sum(self, name: str) -> float:
        return sum(getattr(m, name) for m in self.modifiers.values())

    def effective_ar(self) -> float:
        return max(0.0, self.base.ar + self._sum("attack"))

    def effective_dp(self) -> float:
        return max(0.0, self.base.dp + self._sum("armor"))

    def effective_attack_range(self) -> int:
        return max(0, self.base.attack_range + int(self._sum("attack_range")))

    def effective_speed(self) -> float:
        if self.speed_override is not None:
            return self.speed_override
        return self.base.speed * max(0.0, 1.0 + self._sum("speed"))

    def effective_turn_rate(self) -> float:
        return self.base.turn_rate * max(0.0, 1.0 + self._sum("turn_rate"))

    def effective_attack_cooldown(self) -> float:
        return self.base.attack_cooldown * max(0.1, 1.0 - self._sum("attack_rate"))

    def vision_bonus(self) -> int:
        return int(self._sum("line_of_sight"))

    def charge_bonus(self) -> float:
        return self._sum("charge_bonus")

    def area_resistance(self) -> float:
        return min(1.0, self._sum("area_resistance"))

    # -- persistence --

    def serialize(self) -> dict[str, Any]:
        """Flat in-memory record; base stats only, modifiers are re-derived."""
        attributes: dict[str, Any] = {
            "kind": self.kind.name.lower(),
            "damage_type": self.base.damage_type.name.lower() if self.base.damage_type is not None else None,
            "attack_range": self.base.attack_range,
            "attack_cooldown": self.base.attack_cooldown,
            "current_cooldown": self.current_cooldown,
            "speed": self.base.speed,
            "turn_rate": self.base.turn_rate,
            "gather_rate": self.base.gather_rate,
            "build_rate": self.base.build_rate,
            "repair_rate": self.base.repair_rate,
            "formation_id": self.formation_id,
            "constructed": self.constructed,
            "build_progress": self.build_progress,
            "build_time": self.build_time,
            "carried": self.carried,
            "carry_type": self.carry_type,
            "amount": self.amount,
            "area_resistance": self.area_resistance(),
        }
        if self.wall is not None:
            attributes["wall_type"] = self.wall.wall_type
            attributes["gate_state"] = self.wall.gate_state.value
            attributes["breached"] = self.wall.breached
            attributes["connected"] = dict(self.wall.connected)
        return {
            "id": self.id,
            "type": self.subtype,
            "owner": self.owner,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "hp": self.hp,
            "maxHp": self.base.max_hp,
            "dp": self.base.dp,
            "ar": self.base.ar,
            "state": self.state.name.lower(),
            "active": self.active,
            "attributes": attributes,
            "tags": list(self.tags),
        }

    @classmethod
    def deserialize(cls, data: dict[str, Any]) -> Entity:
        """Rebuild an entity from :meth:`serialize` output.

        Raises ``KeyError`` / ``ValueError`` on malformed records.
        """
        attrs = dict(data.get("attributes") or {})
        dmg = attrs.get("damage_type")
        base = BaseStats(
            max_hp=float(data["maxHp"]),
            ar=float(data["ar"]),
            dp=float(data["dp"]),
            damage_type=DamageType[dmg.upper()] if dmg else None,
            attack_range=int(attrs.get("attack_range", 1)),
            attack_cooldown=float(attrs.get("attack_cooldown", 1.0)),
            speed=float(attrs.get("speed", 0.0)),
            turn_rate=float(attrs.get("turn_rate", 1.0)),
            gather_rate=float(attrs.get("gather_rate", 0.0)),
            build_rate=float(attrs.get("build_rate", 0.0)),
            repair_rate=float(attrs.get("repair_rate", 0.0)),
        )
        wall = None
        if "wall_type" in attrs:
            wall = WallInfo(
                wall_type=attrs["wall_type"],
                gate_state=GateState(attrs.get("gate_state", GateState.CLOSED.value)),
                breached=bool(attrs.get("breached", False)),
                connected=dict(attrs.get("connected") or {
                    "north": False, "east": False, "south": False, "west": False,
                }),
            )
        hp = min(max(float(data["hp"]), 0.0), base.max_hp)
        return cls(
            id=int(data["id"]),
            kind=EntityKind[str(attrs.get("kind", "unit")).upper()],
            subtype=str(data["type"]),
            owner=data.get("owner"),
            x=float(data["x"]),
            y=float(data["y"]),
            width=int(data.get("width", 1)),
            height=int(data.get("height", 1)),
            base=base,
            hp=hp,
            state=EntityState[str(data.get("state", "idle")).upper()],
            active=bool(data.get("active", True)),
            current_cooldown=float(attrs.get("current_cooldown", 0.0)),
            formation_id=attrs.get("formation_id"),
            wall=wall,
            constructed=bool(attrs.get("constructed", True)),
            build_progress=float(attrs.get("build_progress", 0.0)),
            build_time=float(attrs.get("build_time", 0.0)),
            carried=float(attrs.get("carried", 0.0)),
            carry_type=attrs.get("carry_type"),
            amount=float(attrs.get("amount", 0.0)),
            tags=list(data.get("tags") or []),
        )
