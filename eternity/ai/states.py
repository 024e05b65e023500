"""Entity state machine: class-based handlers plus the StateMachine service.

Architecture:
  - StateContext bundles everything a handler needs (entity, world,
    machine, delta time).  Adding context only requires extending the
    dataclass, not every handler signature.
  - Each handler is a class implementing ``handle``; handlers are
    registered in STATE_HANDLERS by EntityState.
  - StateMachine is the public command surface (move_to / attack /
    take_damage / gather / construct / repair / stop) and owns all
    mutation of entity behavior fields.

State machine:
  IDLE → MOVING | ATTACKING | GATHERING | CONSTRUCTING | REPAIRING
  MOVING → IDLE (arrived) | ATTACKING (attack order)
  ATTACKING → ATTACKING (pursuit, target out of range) | IDLE (target gone)
  GATHERING → IDLE (node depleted)
  CONSTRUCTING → IDLE (complete or site gone)
  REPAIRING → IDLE (full hp, site gone, or insufficient resources)
  any → DEAD (hp 0, units/buildings/resources; terminal)
  any → BREACHED (hp 0, walls; stays active, repair returns it to IDLE)
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from eternity.actions.combat import CombatAction
from eternity.actions.damage import DamageEvent
from eternity.actions.work import WorkAction
from eternity.core.capabilities import capability_for, is_targetable
from eternity.core.enums import EntityKind, EntityState
from eternity.core.models import Entity, Vector2
from eternity.core.walls import toggle_gate
from eternity.utils.events import (
    AttackPerformed,
    EntityDamaged,
    EntityDied,
    GateToggled,
    MoveFinished,
    MoveStarted,
    WallBreached,
    WallCritical,
)

if TYPE_CHECKING:
    from eternity.ai.pathfinding import Pathfinder
    from eternity.config import SimulationConfig
    from eternity.core.ledger import ResourceLedger
    from eternity.core.world_state import WorldState
    from eternity.utils.events import EventBus

logger = logging.getLogger(__name__)

# States that carry a target and fall back to IDLE when it becomes invalid
TASK_STATES = frozenset({
    EntityState.ATTACKING,
    EntityState.GATHERING,
    EntityState.CONSTRUCTING,
    EntityState.REPAIRING,
})

TERMINAL_STATES = frozenset({EntityState.DEAD, EntityState.BREACHED})


# =====================================================================
# Context: single object passed to every handler
# =====================================================================

@dataclass(slots=True)
class StateContext:
    entity: Entity
    world: WorldState
    machine: StateMachine
    delta_time: float


# =====================================================================
# Handlers
# =====================================================================

class StateHandler(ABC):
    """Base class for per-state behavior."""

    @abstractmethod
    def handle(self, ctx: StateContext) -> None:
        """Advance *ctx.entity* by one tick in this state."""


class IdleHandler(StateHandler):
    def handle(self, ctx: StateContext) -> None:
        return None


class MovingHandler(StateHandler):
    def handle(self, ctx: StateContext) -> None:
        if ctx.machine.follow_path(ctx.entity, ctx.delta_time):
            ctx.machine.finish_move(ctx.entity)


class AttackingHandler(StateHandler):
    """Strike when in range and off cooldown; otherwise pursue."""

    def handle(self, ctx: StateContext) -> None:
        actor = ctx.entity
        machine = ctx.machine
        target = ctx.world.get(actor.target_id)
        if target is None or not is_targetable(target):
            machine.stop(actor)
            return

        reached = machine.approach(actor, target, actor.effective_attack_range(), ctx.delta_time)
        if reached is None:
            logger.debug("#%d lost route to target #%d", actor.id, target.id)
            machine.stop(actor)
            return
        if reached and actor.current_cooldown <= 0:
            machine.strike(actor, target)


class GatheringHandler(StateHandler):
    def handle(self, ctx: StateContext) -> None:
        WorkAction.gather(ctx)


class ConstructingHandler(StateHandler):
    def handle(self, ctx: StateContext) -> None:
        WorkAction.construct(ctx)


class RepairingHandler(StateHandler):
    def handle(self, ctx: StateContext) -> None:
        WorkAction.repair(ctx)


class InertHandler(StateHandler):
    """DEAD and BREACHED entities take no action."""

    def handle(self, ctx: StateContext) -> None:
        return None


STATE_HANDLERS: dict[EntityState, StateHandler] = {
    EntityState.IDLE: IdleHandler(),
    EntityState.MOVING: MovingHandler(),
    EntityState.ATTACKING: AttackingHandler(),
    EntityState.GATHERING: GatheringHandler(),
    EntityState.CONSTRUCTING: ConstructingHandler(),
    EntityState.REPAIRING: RepairingHandler(),
    EntityState.DEAD: InertHandler(),
    EntityState.BREACHED: InertHandler(),
}


# =====================================================================
# StateMachine service
# =====================================================================

class StateMachine:
    """Drives every entity's behavior.  Constructed once and shared."""

    __slots__ = ("config", "world", "pathfinder", "bus", "ledger")

    def __init__(
        self,
        config: SimulationConfig,
        world: WorldState,
        pathfinder: Pathfinder,
        bus: EventBus,
        ledger: ResourceLedger | None = None,
    ) -> None:
        self.config = config
        self.world = world
        self.pathfinder = pathfinder
        self.bus = bus
        self.ledger = ledger

    # -- per-tick --

    def update(self, entity: Entity, delta_time: float) -> None:
        """Decrement the attack cooldown, then dispatch on state."""
        if not entity.active:
            return
        if entity.current_cooldown > 0:
            entity.current_cooldown = max(0.0, entity.current_cooldown - delta_time)
        handler = STATE_HANDLERS[entity.state]
        handler.handle(StateContext(entity, self.world, self, delta_time))

    # -- movement --

    def move_to(self, entity: Entity, x: float, y: float) -> bool:
        """Order *entity* to walk to tile (x, y).

        Returns False (state unchanged) when the entity cannot move or no
        route exists.  A new order replaces any current path.
        """
        if not entity.active or not entity.is_mobile:
            return False
        goal = Vector2(math.floor(x), math.floor(y))
        if not self.route(entity, goal):
            logger.debug("#%d: no path to %s", entity.id, goal)
            return False
        self._clear_task(entity)
        entity.state = EntityState.MOVING
        self.bus.publish(MoveStarted(entity.id, goal.x, goal.y))
        return True

    def route(self, entity: Entity, goal: Vector2) -> bool:
        """Request a path to *goal* and install it without touching state."""
        occupied = self.world.blocked_tiles_for(entity)
        path = self.pathfinder.find_path(entity.x, entity.y, goal.x, goal.y, occupied)
        if not path:
            return False
        entity.path = path
        entity.path_index = 1 if path[0].tile() == entity.tile else 0
        entity.destination = goal
        return True

    def follow_path(self, entity: Entity, delta_time: float) -> bool:
        """Advance toward the current waypoint.  Returns True once the path is done."""
        path = entity.path
        if not path or entity.path_index >= len(path):
            return True
        waypoint = path[entity.path_index]
        step = entity.effective_speed() * delta_time
        dx = waypoint.x - entity.x
        dy = waypoint.y - entity.y
        dist = math.hypot(dx, dy)
        if dist <= step:
            self.world.move_entity(entity, waypoint.x, waypoint.y)
            entity.path_index += 1
        elif step > 0:
            self.world.move_entity(entity, entity.x + dx / dist * step, entity.y + dy / dist * step)
        return entity.path_index >= len(path)

    def finish_move(self, entity: Entity) -> None:
        self.stop(entity)
        self.bus.publish(MoveFinished(entity.id))

    def approach(self, entity: Entity, target: Entity, reach: int, delta_time: float) -> bool | None:
        """Close in on *target* until within *reach* tiles of its footprint.

        True when in reach (path cleared), False while en route, None when
        no route exists.
        """
        if entity.tile_distance(target) <= reach:
            entity.path = None
            return True
        if not entity.is_mobile:
            return None
        goal = target.nearest_tile_to(entity.tile)
        exhausted = entity.path is None or entity.path_index >= len(entity.path)
        if exhausted or (target.is_mobile and entity.destination != goal):
            if not self.route(entity, goal):
                return None
        self.follow_path(entity, delta_time)
        if entity.tile_distance(target) <= reach:
            entity.path = None
            return True
        return False

    def stop(self, entity: Entity) -> None:
        """Drop path and task; return to IDLE unless dead or breached."""
        entity.path = None
        entity.path_index = 0
        entity.destination = None
        self._clear_task(entity)
        if entity.state not in TERMINAL_STATES:
            entity.state = EntityState.IDLE

    @staticmethod
    def _clear_task(entity: Entity) -> None:
        entity.target_id = None
        entity.task_phase = ""
        entity.charge_ready = False

    # -- combat --

    def attack(self, entity: Entity, target: Entity | None) -> bool:
        """Order *entity* to attack *target*, pursuing it when out of range."""
        if not entity.active:
            return False
        if target is None or not is_targetable(target) or not CombatAction.can_attack(entity, target):
            logger.debug("#%d: invalid attack target", entity.id)
            if entity.state in TASK_STATES:
                self.stop(entity)
            return False

        in_range = CombatAction.in_range(entity, target)
        if in_range:
            entity.path = None
        elif not entity.is_mobile or not self.route(entity, target.nearest_tile_to(entity.tile)):
            logger.debug("#%d: target #%d unreachable", entity.id, target.id)
            return False

        if entity.target_id != target.id or entity.state != EntityState.ATTACKING:
            entity.charge_ready = entity.charge_bonus() > 0
        entity.state = EntityState.ATTACKING
        entity.target_id = target.id
        entity.task_phase = ""
        if in_range and entity.current_cooldown <= 0:
            self.strike(entity, target)
        return True

    def strike(self, attacker: Entity, target: Entity) -> DamageEvent:
        """Resolve and apply one hit, then reset the attacker's cooldown."""
        event = CombatAction.strike(attacker, target)
        attacker.current_cooldown = attacker.effective_attack_cooldown()
        self.bus.publish(AttackPerformed(
            attacker.id, target.id, event.amount,
            event.damage_type.name.lower() if event.damage_type is not None else None,
        ))
        self.take_damage(target, event.amount, attacker)
        return event

    def take_damage(self, entity: Entity, amount: float, attacker: Entity | None = None) -> float:
        """Apply *amount* (clamped to [0, max_hp]); returns the hp actually removed."""
        if not entity.active or entity.breached:
            return 0.0
        before = entity.hp
        entity.hp = min(max(entity.hp - amount, 0.0), entity.base.max_hp)
        dealt = before - entity.hp
        attacker_id = attacker.id if attacker is not None else None
        self.bus.publish(EntityDamaged(entity.id, attacker_id, dealt, entity.hp))

        if (
            entity.kind == EntityKind.WALL
            and 0 < entity.hp_ratio <= self.config.wall_critical_ratio
        ):
            self.bus.publish(WallCritical(entity.id, entity.hp))

        if entity.hp <= 0:
            self._on_zero_hp(entity, attacker_id)
        elif entity.state == EntityState.IDLE and attacker is not None:
            self._counter_attack(entity)
        return dealt

    def _counter_attack(self, entity: Entity) -> None:
        """An idle armed unit that gets hit engages the nearest enemy close by."""
        if not entity.is_mobile or entity.is_villager or entity.effective_ar() <= 0:
            return
        radius = self.config.to_tiles(self.config.counter_attack_radius)
        enemies = self.world.in_radius(
            entity.pos, radius,
            lambda e: entity.is_hostile(e) and e.kind != EntityKind.RESOURCE and is_targetable(e),
        )
        if not enemies:
            return
        nearest = min(enemies, key=lambda e: math.hypot(e.x - entity.x, e.y - entity.y))
        logger.debug("#%d counter-attacks #%d", entity.id, nearest.id)
        self.attack(entity, nearest)

    def _on_zero_hp(self, entity: Entity, killer_id: int | None) -> None:
        entity.path = None
        entity.destination = None
        self._clear_task(entity)
        entity.speed_override = None
        if capability_for(entity).on_zero_hp(entity):
            logger.debug("#%d (%s) destroyed", entity.id, entity.subtype)
            self.bus.publish(EntityDied(entity.id, entity.owner, killer_id))
        else:
            logger.debug("Wall #%d breached", entity.id)
            self.bus.publish(WallBreached(entity.id, entity.owner))

    # -- work orders --

    def gather(self, entity: Entity, resource: Entity | None) -> bool:
        if not WorkAction.can_gather(entity, resource):
            return self._reject(entity, "gather")
        return self._begin_task(entity, resource, EntityState.GATHERING, phase="collect")

    def construct(self, entity: Entity, site: Entity | None) -> bool:
        if not WorkAction.can_construct(entity, site):
            return self._reject(entity, "construct")
        return self._begin_task(entity, site, EntityState.CONSTRUCTING)

    def repair(self, entity: Entity, target: Entity | None) -> bool:
        if not WorkAction.can_repair(entity, target):
            return self._reject(entity, "repair")
        return self._begin_task(entity, target, EntityState.REPAIRING)

    def place_structure(self, template: str, owner: str, tile_x: int, tile_y: int) -> Entity | None:
        return WorkAction.place(self, template, owner, tile_x, tile_y)

    def toggle_gate(self, wall: Entity) -> bool:
        if not toggle_gate(wall):
            return False
        self.bus.publish(GateToggled(wall.id, wall.wall.gate_state.value))
        return True

    def _begin_task(self, entity: Entity, target: Entity, state: EntityState, phase: str = "") -> bool:
        reach = self.config.interact_range
        if entity.tile_distance(target) > reach:
            if not self.route(entity, target.nearest_tile_to(entity.tile)):
                logger.debug("#%d: no route to #%d", entity.id, target.id)
                return False
        else:
            entity.path = None
        entity.state = state
        entity.target_id = target.id
        entity.task_phase = phase
        return True

    def _reject(self, entity: Entity, verb: str) -> bool:
        logger.debug("#%d: invalid %s target", entity.id, verb)
        if entity.active and entity.state in TASK_STATES:
            self.stop(entity)
        return False
