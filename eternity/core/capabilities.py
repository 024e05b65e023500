"""Per-variant behavior table keyed by EntityKind.

Pass-through and zero-hp handling are looked up here instead of being
overridden per class, so the wall rule (no deactivation on zero hp, flip
to breached and become passable) is one explicit branch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from eternity.core.enums import EntityKind, EntityState, GateState
from eternity.core.models import Entity


@dataclass(frozen=True, slots=True)
class Capability:
    blocks_movement: bool
    can_pass: Callable[[Entity, Entity], bool]      # (structure, mover) -> bool
    on_zero_hp: Callable[[Entity], bool]            # returns True if deactivated


# ---------------------------------------------------------------------------
# can_pass
# ---------------------------------------------------------------------------

def _always_pass(structure: Entity, mover: Entity) -> bool:
    return True


def _never_pass(structure: Entity, mover: Entity) -> bool:
    return not structure.active


def _wall_can_pass(wall: Entity, mover: Entity) -> bool:
    if not mover.active:
        return False
    if not wall.active:
        return True
    info = wall.wall
    if info is not None:
        if info.breached:
            return True
        if info.is_gate and info.gate_state == GateState.OPEN:
            return True
    return wall.owner is not None and wall.owner == mover.owner


# ---------------------------------------------------------------------------
# on_zero_hp
# ---------------------------------------------------------------------------

def _deactivate(entity: Entity) -> bool:
    entity.hp = 0.0
    entity.active = False
    entity.state = EntityState.DEAD
    return True


def _breach(entity: Entity) -> bool:
    entity.hp = 0.0
    entity.state = EntityState.BREACHED
    if entity.wall is not None:
        entity.wall.breached = True
    return False


CAPABILITIES: dict[EntityKind, Capability] = {
    EntityKind.UNIT:     Capability(blocks_movement=False, can_pass=_always_pass, on_zero_hp=_deactivate),
    EntityKind.BUILDING: Capability(blocks_movement=True, can_pass=_never_pass, on_zero_hp=_deactivate),
    EntityKind.WALL:     Capability(blocks_movement=True, can_pass=_wall_can_pass, on_zero_hp=_breach),
    EntityKind.RESOURCE: Capability(blocks_movement=True, can_pass=_never_pass, on_zero_hp=_deactivate),
}


def capability_for(entity: Entity) -> Capability:
    return CAPABILITIES[entity.kind]


def can_pass(structure: Entity, mover: Entity) -> bool:
    """Whether *mover* may walk through *structure*'s footprint."""
    return capability_for(structure).can_pass(structure, mover)


def is_targetable(entity: Entity) -> bool:
    """Live, damageable entity.  Breached walls read as terrain, not targets."""
    return entity.active and entity.hp > 0 and not entity.breached
