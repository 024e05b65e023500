"""EntityBuilder: fluent API for constructing Entity instances from templates.

Every villager / unit / building / wall / resource variant is described
once in ``ENTITY_TEMPLATES``; the builder turns a template plus an owner
and a tile into a live Entity.

Usage::

    archer = (
        EntityBuilder(world.allocate_entity_id(), "archer")
        .owned_by("SOLARI")
        .at_tile(10, 12)
        .build()
    )
    world.add_entity(archer)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from eternity.core.enums import DamageType, EntityKind, EntityState
from eternity.core.models import BaseStats, Entity, WallInfo

if TYPE_CHECKING:
    from eternity.core.world_state import WorldState


@dataclass(frozen=True, slots=True)
class EntityTemplate:
    kind: EntityKind
    stats: BaseStats
    width: int = 1
    height: int = 1
    tags: tuple[str, ...] = ()
    cost: dict[str, float] = field(default_factory=dict)
    build_time: float = 0.0         # Build points needed to finish construction
    wall_type: str | None = None
    amount: float = 0.0             # Starting stock for resource nodes


# ---------------------------------------------------------------------------
# Template registry
# ---------------------------------------------------------------------------

ENTITY_TEMPLATES: dict[str, EntityTemplate] = {
    # -- units --
    "villager": EntityTemplate(
        EntityKind.UNIT,
        BaseStats(max_hp=25, ar=3, dp=1, attack_range=1, attack_cooldown=1.5, speed=2.0,
                  gather_rate=1.0, build_rate=10.0, repair_rate=5.0),
        tags=("villager", "worker"), cost={"food": 50},
    ),
    "swordsman": EntityTemplate(
        EntityKind.UNIT,
        BaseStats(max_hp=60, ar=10, dp=10, damage_type=DamageType.SLASHING,
                  attack_range=1, attack_cooldown=1.0, speed=2.5),
        tags=("military", "infantry"), cost={"food": 60, "gold": 20},
    ),
    "spearman": EntityTemplate(
        EntityKind.UNIT,
        BaseStats(max_hp=55, ar=8, dp=12, damage_type=DamageType.PIERCING,
                  attack_range=1, attack_cooldown=1.0, speed=2.5),
        tags=("military", "infantry"), cost={"food": 50, "wood": 20},
    ),
    "maceman": EntityTemplate(
        EntityKind.UNIT,
        BaseStats(max_hp=65, ar=9, dp=14, damage_type=DamageType.BLUNT,
                  attack_range=1, attack_cooldown=1.2, speed=2.2),
        tags=("military", "infantry"), cost={"food": 60, "gold": 25},
    ),
    "archer": EntityTemplate(
        EntityKind.UNIT,
        BaseStats(max_hp=40, ar=7, dp=5, damage_type=DamageType.PIERCING,
                  attack_range=5, attack_cooldown=1.5, speed=2.5),
        tags=("military", "ranged"), cost={"food": 40, "wood": 40},
    ),
    "cavalry": EntityTemplate(
        EntityKind.UNIT,
        BaseStats(max_hp=90, ar=12, dp=15, damage_type=DamageType.SLASHING,
                  attack_range=1, attack_cooldown=1.2, speed=4.0, turn_rate=0.8),
        tags=("military", "mounted"), cost={"food": 80, "gold": 60},
    ),
    # -- buildings --
    "town_center": EntityTemplate(
        EntityKind.BUILDING, BaseStats(max_hp=1200, dp=30),
        width=3, height=3, tags=("building", "dropoff"),
        cost={"wood": 300, "stone": 200}, build_time=600.0,
    ),
    "house": EntityTemplate(
        EntityKind.BUILDING, BaseStats(max_hp=400, dp=20),
        width=2, height=2, tags=("building",), cost={"wood": 50}, build_time=150.0,
    ),
    "barracks": EntityTemplate(
        EntityKind.BUILDING, BaseStats(max_hp=800, dp=25),
        width=3, height=3, tags=("building",), cost={"wood": 150}, build_time=400.0,
    ),
    "storehouse": EntityTemplate(
        EntityKind.BUILDING, BaseStats(max_hp=500, dp=20),
        width=2, height=2, tags=("building", "dropoff"), cost={"wood": 100}, build_time=200.0,
    ),
    "tower": EntityTemplate(
        EntityKind.BUILDING, BaseStats(max_hp=500, dp=30),
        tags=("building", "defense"), cost={"stone": 100}, build_time=250.0,
    ),
    "watchtower": EntityTemplate(
        EntityKind.BUILDING, BaseStats(max_hp=350, dp=25),
        tags=("building", "defense"), cost={"wood": 75}, build_time=180.0,
    ),
    # -- walls --
    "wall": EntityTemplate(
        EntityKind.WALL, BaseStats(max_hp=300, dp=35),
        tags=("wall", "defense"), cost={"stone": 5}, build_time=10.0, wall_type="wall",
    ),
    "gate": EntityTemplate(
        EntityKind.WALL, BaseStats(max_hp=400, dp=35),
        tags=("wall", "gate", "defense"), cost={"stone": 20}, build_time=40.0, wall_type="gate",
    ),
    # -- resource nodes --
    "tree": EntityTemplate(EntityKind.RESOURCE, BaseStats(max_hp=1), tags=("resource", "wood"), amount=100.0),
    "gold_mine": EntityTemplate(EntityKind.RESOURCE, BaseStats(max_hp=1), tags=("resource", "gold"), amount=800.0),
    "stone_quarry": EntityTemplate(EntityKind.RESOURCE, BaseStats(max_hp=1), tags=("resource", "stone"), amount=600.0),
    "berry_bush": EntityTemplate(EntityKind.RESOURCE, BaseStats(max_hp=1), tags=("resource", "food"), amount=150.0),
}

# Which stock a resource node yields, by template name
RESOURCE_YIELDS: dict[str, str] = {
    "tree": "wood",
    "gold_mine": "gold",
    "stone_quarry": "stone",
    "berry_bush": "food",
}


def get_template(name: str) -> EntityTemplate:
    """Look up a template; raises KeyError for unknown names."""
    return ENTITY_TEMPLATES[name]


class EntityBuilder:
    """Fluent builder for Entity construction.

    All chain methods return ``self``.  Call ``build()`` to produce the
    final Entity.
    """

    __slots__ = (
        "_eid", "_name", "_template", "_owner",
        "_tile", "_center", "_under_construction",
    )

    def __init__(self, entity_id: int, template: str) -> None:
        self._eid = entity_id
        self._name = template
        self._template = get_template(template)
        self._owner: str | None = None
        self._tile: tuple[int, int] | None = None
        self._center: tuple[float, float] | None = None
        self._under_construction = False

    def owned_by(self, owner: str | None) -> EntityBuilder:
        self._owner = owner
        return self

    def at_tile(self, x: int, y: int) -> EntityBuilder:
        """Place the footprint's top-left corner on tile (x, y)."""
        self._tile = (x, y)
        self._center = None
        return self

    def at(self, x: float, y: float) -> EntityBuilder:
        """Place the footprint centre at fractional coordinates."""
        self._center = (x, y)
        self._tile = None
        return self

    def under_construction(self, flag: bool = True) -> EntityBuilder:
        self._under_construction = flag and self._template.build_time > 0
        return self

    def build(self) -> Entity:
        t = self._template
        if self._center is not None:
            cx, cy = self._center
        else:
            tx, ty = self._tile or (0, 0)
            cx, cy = tx + t.width / 2, ty + t.height / 2

        hp = t.stats.max_hp
        if self._under_construction:
            hp = max(1.0, t.stats.max_hp * 0.1)

        return Entity(
            id=self._eid,
            kind=t.kind,
            subtype=self._name,
            owner=None if t.kind == EntityKind.RESOURCE else self._owner,
            x=float(cx),
            y=float(cy),
            width=t.width,
            height=t.height,
            base=t.stats,
            hp=float(hp),
            state=EntityState.IDLE,
            wall=WallInfo(wall_type=t.wall_type) if t.kind == EntityKind.WALL else None,
            constructed=not self._under_construction,
            build_time=t.build_time,
            amount=t.amount,
            tags=list(t.tags),
        )


def spawn(
    world: WorldState,
    template: str,
    owner: str | None,
    tile_x: int,
    tile_y: int,
    under_construction: bool = False,
) -> Entity:
    """Build an entity from *template* and register it with *world*."""
    entity = (
        EntityBuilder(world.allocate_entity_id(), template)
        .owned_by(owner)
        .at_tile(tile_x, tile_y)
        .under_construction(under_construction)
        .build()
    )
    world.add_entity(entity)
    return entity
