"""Formation engine: grouped movement, layouts and stat bonuses.

A formation groups military units of one owner, computes a relative
offset per member from one of eight layout algorithms, applies the
type's bonuses as a StatModifier layer keyed by the formation id, and
issues batched move orders through the StateMachine.

Offsets are in tiles, axis-aligned: the front of a layout is -y (the
wedge leader stands at (0, -2 * spacing)).  Distances the formation
reasons about in world units (arrival tolerance, threat scan, retreat)
are converted through ``SimulationConfig.tile_size``.

To add a formation type:
  1. Add a FormationType member.
  2. Register a FormationSpec in FORMATION_TYPES.
  3. Register a layout function in LAYOUTS.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Callable, Iterable

from eternity.core.enums import EntityKind, EntityState, Facing, FormationType
from eternity.core.models import Entity, Point, StatModifier
from eternity.utils.events import EntityDied, FormationCreated, FormationDisbanded

if TYPE_CHECKING:
    from eternity.ai.states import StateMachine
    from eternity.config import SimulationConfig
    from eternity.core.world_state import WorldState
    from eternity.utils.events import EventBus

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Formation definitions
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class FormationSpec:
    """Static definition of one formation type."""

    name: str
    description: str
    bonuses: StatModifier
    unit_spacing: float
    facing: Facing
    speed_matching: bool

    @property
    def speed_factor(self) -> float:
        return 1.0 + self.bonuses.speed

    def modifier_for(self, formation_id: str) -> StatModifier:
        return replace(self.bonuses, source=formation_id)


FORMATION_TYPES: dict[FormationType, FormationSpec] = {
    FormationType.LINE: FormationSpec(
        "Line", "Units side by side; good all-round defense.",
        StatModifier("", armor=1, attack_range=1), 1.2, Facing.DOWN, True,
    ),
    FormationType.COLUMN: FormationSpec(
        "Column", "Units in single file; fast on the march.",
        StatModifier("", speed=0.1, turn_rate=0.2), 1.0, Facing.DOWN, True,
    ),
    FormationType.WEDGE: FormationSpec(
        "Wedge", "Leader at the point; strong opening charge.",
        StatModifier("", attack=1, charge_bonus=0.2), 1.1, Facing.DOWN, True,
    ),
    FormationType.SQUARE: FormationSpec(
        "Square", "Tight block facing outward on every edge.",
        StatModifier("", armor=2, speed=-0.1), 0.9, Facing.OUT, True,
    ),
    FormationType.CIRCLE: FormationSpec(
        "Circle", "Ring facing outward; no exposed flank.",
        StatModifier("", armor=1, attack_range=1), 1.0, Facing.OUT, True,
    ),
    FormationType.SCATTER: FormationSpec(
        "Scatter", "Loose spiral that blunts area damage.",
        StatModifier("", area_resistance=0.3), 2.0, Facing.DOWN, False,
    ),
    FormationType.SKIRMISH: FormationSpec(
        "Skirmish", "Ranged units in an arc that falls back from threats.",
        StatModifier("", attack_range=2, retreat_on_close=True), 1.5, Facing.DOWN, False,
    ),
    FormationType.STAGGERED: FormationSpec(
        "Staggered", "Offset rows with clear firing lanes.",
        StatModifier("", attack_rate=0.1, line_of_sight=1), 1.3, Facing.DOWN, True,
    ),
}


def parse_formation_type(value: FormationType | str) -> FormationType:
    """Resolve a formation type, defaulting to LINE for unknown names."""
    if isinstance(value, FormationType):
        return value
    try:
        return FormationType(str(value).lower())
    except ValueError:
        logger.info("Unknown formation type %r, using line", value)
        return FormationType.LINE


# ---------------------------------------------------------------------------
# Formation record
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class FormationSlot:
    offset: Point
    facing: Facing


@dataclass(slots=True)
class Formation:
    id: str
    type: FormationType
    owner: str
    members: list[int]
    leader_id: int | None
    center: Point = Point()
    facing: Facing = Facing.DOWN
    slots: dict[int, FormationSlot] = field(default_factory=dict)
    moving: bool = False
    target: Point | None = None
    speed: float | None = None      # Matched march speed, when speed matching applies

    @property
    def spec(self) -> FormationSpec:
        return FORMATION_TYPES[self.type]

    @property
    def speed_factor(self) -> float:
        return self.spec.speed_factor

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "owner": self.owner,
            "members": list(self.members),
            "leader_id": self.leader_id,
            "center": {"x": self.center.x, "y": self.center.y},
            "facing": self.facing.value,
            "moving": self.moving,
            "target": None if self.target is None else {"x": self.target.x, "y": self.target.y},
            "speed_factor": self.speed_factor,
            "slots": {
                str(uid): {"x": s.offset.x, "y": s.offset.y, "facing": s.facing.value}
                for uid, s in self.slots.items()
            },
        }


# ---------------------------------------------------------------------------
# Layout algorithms: (units, spacing, facing) -> {unit_id: slot}
# ---------------------------------------------------------------------------

Layout = Callable[[list[Entity], float, Facing], dict[int, FormationSlot]]

_GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


def _dominant_facing(dx: float, dy: float) -> Facing:
    """Facing along the dominant axis of (dx, dy); ties go horizontal."""
    if abs(dx) >= abs(dy):
        return Facing.RIGHT if dx >= 0 else Facing.LEFT
    return Facing.DOWN if dy > 0 else Facing.UP


def _layout_line(units: list[Entity], s: float, facing: Facing) -> dict[int, FormationSlot]:
    start = -(len(units) - 1) * s / 2
    return {u.id: FormationSlot(Point(start + i * s, 0.0), facing) for i, u in enumerate(units)}


def _layout_column(units: list[Entity], s: float, facing: Facing) -> dict[int, FormationSlot]:
    start = -(len(units) - 1) * s / 2
    return {u.id: FormationSlot(Point(0.0, start + i * s), facing) for i, u in enumerate(units)}


def _layout_wedge(units: list[Entity], s: float, facing: Facing) -> dict[int, FormationSlot]:
    leader, rest = units[0], units[1:]
    slots = {leader.id: FormationSlot(Point(0.0, -2 * s), facing)}
    half = math.ceil(len(rest) / 2)
    for i, u in enumerate(rest[:half]):
        slots[u.id] = FormationSlot(Point(-s * (i + 1), s * i), facing)
    for i, u in enumerate(rest[half:]):
        slots[u.id] = FormationSlot(Point(s * (i + 1), s * i), facing)
    return slots


def _layout_square(units: list[Entity], s: float, facing: Facing) -> dict[int, FormationSlot]:
    n = len(units)
    side = math.ceil(math.sqrt(n))
    last_row = (n - 1) // side
    slots: dict[int, FormationSlot] = {}
    for i, u in enumerate(units):
        row, col = divmod(i, side)
        offset = Point((col - (side - 1) / 2) * s, (row - (side - 1) / 2) * s)
        slot_facing = facing
        if facing == Facing.OUT:
            if row == 0:
                slot_facing = Facing.UP
            elif row == last_row:
                slot_facing = Facing.DOWN
            elif col == 0:
                slot_facing = Facing.LEFT
            elif col == side - 1:
                slot_facing = Facing.RIGHT
            else:
                slot_facing = Facing.DOWN
        slots[u.id] = FormationSlot(offset, slot_facing)
    return slots


def _layout_circle(units: list[Entity], s: float, facing: Facing) -> dict[int, FormationSlot]:
    n = len(units)
    radius = max(s, s * n / (2 * math.pi))
    slots: dict[int, FormationSlot] = {}
    for i, u in enumerate(units):
        angle = i / n * 2 * math.pi
        dx, dy = math.sin(angle), math.cos(angle)
        slot_facing = _dominant_facing(dx, dy) if facing == Facing.OUT else facing
        slots[u.id] = FormationSlot(Point(dx * radius, dy * radius), slot_facing)
    return slots


def _layout_scatter(units: list[Entity], s: float, facing: Facing) -> dict[int, FormationSlot]:
    slots: dict[int, FormationSlot] = {}
    for i, u in enumerate(units):
        angle = i * _GOLDEN_ANGLE
        dist = s * math.sqrt(i)
        slots[u.id] = FormationSlot(Point(math.sin(angle) * dist, math.cos(angle) * dist), facing)
    return slots


def _layout_skirmish(units: list[Entity], s: float, facing: Facing) -> dict[int, FormationSlot]:
    n = len(units)
    ordered = sorted(units, key=lambda u: u.effective_attack_range(), reverse=True)
    radius = s * math.sqrt(n) * 1.2
    arc = min(n * s, 2 * math.pi * radius / 3)
    slots: dict[int, FormationSlot] = {}
    for i, u in enumerate(ordered):
        x = -arc / 2 + (i / (n - 1)) * arc if n > 1 else 0.0
        # Longer reach stands further back
        y = s * (u.effective_attack_range() / 5)
        slots[u.id] = FormationSlot(Point(x, y), facing)
    return slots


def _layout_staggered(units: list[Entity], s: float, facing: Facing) -> dict[int, FormationSlot]:
    n = len(units)
    rows = math.ceil(math.sqrt(n))
    cols = math.ceil(n / rows)
    slots: dict[int, FormationSlot] = {}
    for i, u in enumerate(units):
        row, col = divmod(i, cols)
        stagger = s / 2 if row % 2 else 0.0
        offset = Point((col - (cols - 1) / 2) * s + stagger, (row - (rows - 1) / 2) * s)
        slots[u.id] = FormationSlot(offset, facing)
    return slots


LAYOUTS: dict[FormationType, Layout] = {
    FormationType.LINE: _layout_line,
    FormationType.COLUMN: _layout_column,
    FormationType.WEDGE: _layout_wedge,
    FormationType.SQUARE: _layout_square,
    FormationType.CIRCLE: _layout_circle,
    FormationType.SCATTER: _layout_scatter,
    FormationType.SKIRMISH: _layout_skirmish,
    FormationType.STAGGERED: _layout_staggered,
}


def unit_spacing(units: list[Entity], formation_type: FormationType) -> float:
    """Spacing in tiles: the larger mean footprint side times the type multiplier."""
    avg_w = sum(u.width for u in units) / len(units)
    avg_h = sum(u.height for u in units) / len(units)
    return max(avg_w, avg_h) * FORMATION_TYPES[formation_type].unit_spacing


def centroid(units: Iterable[Entity]) -> Point:
    units = list(units)
    if not units:
        return Point()
    return Point(
        sum(u.x for u in units) / len(units),
        sum(u.y for u in units) / len(units),
    )


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------

class FormationManager:
    """Owns every live formation and keeps members' back-references honest."""

    __slots__ = ("_config", "_world", "_machine", "_bus", "_formations", "_next_id")

    def __init__(
        self,
        config: SimulationConfig,
        world: WorldState,
        machine: StateMachine,
        bus: EventBus,
    ) -> None:
        self._config = config
        self._world = world
        self._machine = machine
        self._bus = bus
        self._formations: dict[str, Formation] = {}
        self._next_id = 1
        bus.subscribe(EntityDied, self.handle_entity_death)

    # -- queries --

    @property
    def formations(self) -> dict[str, Formation]:
        return self._formations

    def get(self, formation_id: str) -> Formation | None:
        return self._formations.get(formation_id)

    def formations_for(self, owner: str) -> list[Formation]:
        return [f for f in self._formations.values() if f.owner == owner]

    @staticmethod
    def formation_types() -> dict[FormationType, FormationSpec]:
        return dict(FORMATION_TYPES)

    def members_of(self, formation: Formation) -> list[Entity]:
        result = []
        for uid in formation.members:
            e = self._world.get(uid)
            if e is not None and e.active:
                result.append(e)
        return result

    # -- validation --

    @staticmethod
    def _eligible(unit: Entity | None, owner: str) -> bool:
        return (
            unit is not None
            and unit.active
            and unit.kind == EntityKind.UNIT
            and unit.owner == owner
            and not unit.is_villager
        )

    # -- lifecycle --

    def create_formation(
        self,
        units: Iterable[Entity],
        formation_type: FormationType | str,
        owner: str,
    ) -> Formation | None:
        """Group the eligible *units* of *owner*; None when none qualify."""
        ftype = parse_formation_type(formation_type)
        valid: list[Entity] = []
        seen: set[int] = set()
        for u in units:
            if self._eligible(u, owner) and u.id not in seen:
                valid.append(u)
                seen.add(u.id)
        if not valid:
            return None

        for u in valid:
            if u.formation_id is not None:
                self.remove_units_from_formation(u.formation_id, [u])

        fid = f"f_{self._next_id}"
        self._next_id += 1
        formation = Formation(
            id=fid,
            type=ftype,
            owner=owner,
            members=[u.id for u in valid],
            leader_id=valid[0].id,
            center=centroid(valid),
            facing=self._base_facing(ftype),
        )
        modifier = formation.spec.modifier_for(fid)
        for u in valid:
            u.apply_modifier(modifier)
            u.formation_id = fid
        self._formations[fid] = formation
        self.calculate_positions(formation)

        logger.info("Created %s formation %s with %d units", ftype.value, fid, len(valid))
        self._bus.publish(FormationCreated(fid, owner, ftype.value, tuple(formation.members)))
        return formation

    def disband_formation(self, formation_id: str) -> bool:
        formation = self._formations.pop(formation_id, None)
        if formation is None:
            return False
        for uid in formation.members:
            e = self._world.get(uid)
            if e is not None:
                self._release(e, formation_id)
        formation.members.clear()
        formation.slots.clear()
        logger.info("Disbanded formation %s", formation_id)
        self._bus.publish(FormationDisbanded(formation_id))
        return True

    def change_formation_type(self, formation_id: str, formation_type: FormationType | str) -> bool:
        formation = self._formations.get(formation_id)
        if formation is None:
            return False
        ftype = parse_formation_type(formation_type)
        formation.type = ftype
        modifier = formation.spec.modifier_for(formation_id)
        for e in self.members_of(formation):
            e.apply_modifier(modifier)   # Same source key replaces the old layer
        if not formation.moving:
            formation.facing = self._base_facing(ftype)
        self.calculate_positions(formation)
        if formation.moving and formation.target is not None:
            self.move_formation(formation_id, formation.target.x, formation.target.y)
        return True

    # -- membership --

    def add_units_to_formation(self, formation_id: str, units: Iterable[Entity]) -> int:
        formation = self._formations.get(formation_id)
        if formation is None:
            return 0
        modifier = formation.spec.modifier_for(formation_id)
        added = 0
        for u in units:
            if not self._eligible(u, formation.owner) or u.id in formation.members:
                continue
            if u.formation_id is not None:
                self.remove_units_from_formation(u.formation_id, [u])
            formation.members.append(u.id)
            u.apply_modifier(modifier)
            u.formation_id = formation_id
            added += 1
        if added:
            if formation.leader_id is None:
                formation.leader_id = formation.members[0]
            self.calculate_positions(formation)
            if formation.moving and formation.target is not None:
                self.move_formation(formation_id, formation.target.x, formation.target.y)
        return added

    def remove_units_from_formation(self, formation_id: str, units: Iterable[Entity]) -> int:
        """Detach *units*; promotes a new leader and disbands when empty."""
        formation = self._formations.get(formation_id)
        if formation is None:
            return 0
        removed = 0
        for u in units:
            if u.id not in formation.members:
                continue
            formation.members.remove(u.id)
            formation.slots.pop(u.id, None)
            self._release(u, formation_id)
            removed += 1
        if not removed:
            return 0

        if not formation.members:
            self.disband_formation(formation_id)
            return removed
        if formation.leader_id not in formation.members:
            formation.leader_id = formation.members[0]
        self.calculate_positions(formation)
        if formation.moving and formation.target is not None:
            self.move_formation(formation_id, formation.target.x, formation.target.y)
        return removed

    def handle_entity_death(self, event: EntityDied) -> None:
        entity = self._world.get(event.entity_id)
        if entity is None or entity.formation_id is None:
            return
        self.remove_units_from_formation(entity.formation_id, [entity])

    @staticmethod
    def _release(entity: Entity, formation_id: str) -> None:
        entity.remove_modifier(formation_id)
        entity.speed_override = None
        if entity.formation_id == formation_id:
            entity.formation_id = None

    # -- layout --

    @staticmethod
    def _base_facing(ftype: FormationType) -> Facing:
        facing = FORMATION_TYPES[ftype].facing
        return Facing.DOWN if facing == Facing.OUT else facing

    def calculate_positions(self, formation: Formation) -> dict[int, FormationSlot]:
        """Recompute one slot per live member from the type's layout."""
        units = self.members_of(formation)
        if not units:
            formation.slots = {}
            return formation.slots
        layout_facing = Facing.OUT if formation.spec.facing == Facing.OUT else formation.facing
        spacing = unit_spacing(units, formation.type)
        formation.slots = LAYOUTS[formation.type](units, spacing, layout_facing)
        return formation.slots

    def preview(
        self,
        units: Iterable[Entity],
        formation_type: FormationType | str,
        center: Point | None = None,
    ) -> dict[int, Point]:
        """Absolute slot positions a formation would take, without creating it."""
        units = [u for u in units if u is not None and u.active and u.kind == EntityKind.UNIT]
        if not units:
            return {}
        ftype = parse_formation_type(formation_type)
        origin = center if center is not None else centroid(units)
        spec = FORMATION_TYPES[ftype]
        slots = LAYOUTS[ftype](units, unit_spacing(units, ftype), spec.facing)
        return {uid: origin + slot.offset for uid, slot in slots.items()}

    # -- movement --

    def move_formation(self, formation_id: str, x: float, y: float) -> bool:
        """Send every member to target + its offset.  False if nobody could move."""
        formation = self._formations.get(formation_id)
        if formation is None:
            return False
        units = self.members_of(formation)
        if not units:
            return False

        target = Point(x, y)
        dx = target.x - formation.center.x
        dy = target.y - formation.center.y
        if dx or dy:
            formation.facing = _dominant_facing(dx, dy)
        self.calculate_positions(formation)

        spec = formation.spec
        if spec.speed_matching:
            formation.speed = min(u.base.speed for u in units) * spec.speed_factor
        else:
            formation.speed = None

        moved = 0
        for u in units:
            slot = formation.slots.get(u.id)
            if slot is None:
                continue
            if self._machine.move_to(u, target.x + slot.offset.x, target.y + slot.offset.y):
                u.speed_override = formation.speed
                moved += 1
            else:
                u.speed_override = None

        formation.target = target
        formation.moving = moved > 0
        if not moved:
            logger.debug("Formation %s: no member could reach %s", formation_id, target)
        return moved > 0

    # -- per-tick --

    def update(self, delta_time: float) -> None:
        for formation in list(self._formations.values()):
            self._update_formation(formation)

    def _update_formation(self, formation: Formation) -> None:
        units = self.members_of(formation)
        if not units:
            self.disband_formation(formation.id)
            return
        formation.center = centroid(units)

        if formation.moving and formation.target is not None:
            tolerance = self._config.to_tiles(self._config.formation_arrival_tolerance)
            marching = [u for u in units if u.state == EntityState.MOVING]
            if formation.center.distance(formation.target) < tolerance or not marching:
                formation.moving = False
                for u in units:
                    if u.state == EntityState.MOVING:
                        self._machine.stop(u)
                    u.speed_override = None

        if formation.spec.bonuses.retreat_on_close and not formation.moving:
            self._retreat_from_threats(formation)

    def _retreat_from_threats(self, formation: Formation) -> None:
        cfg = self._config
        scan = cfg.to_tiles(cfg.formation_scan_radius)
        center = formation.center
        threats = self._world.in_radius(
            center, scan,
            lambda e: e.kind in (EntityKind.UNIT, EntityKind.BUILDING)
            and e.owner is not None and e.owner != formation.owner,
        )
        if not threats:
            return
        nearest = min(threats, key=lambda e: math.hypot(e.x - center.x, e.y - center.y))
        dx = center.x - nearest.x
        dy = center.y - nearest.y
        mag = math.hypot(dx, dy)
        if mag == 0:
            dx, dy, mag = 0.0, 1.0, 1.0
        dist = cfg.to_tiles(cfg.formation_retreat_distance)
        tx = min(max(center.x + dx / mag * dist, 0.0), self._world.terrain.width - 1e-6)
        ty = min(max(center.y + dy / mag * dist, 0.0), self._world.terrain.height - 1e-6)
        logger.debug("Formation %s falling back from #%d", formation.id, nearest.id)
        self.move_formation(formation.id, tx, ty)
