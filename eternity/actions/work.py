"""Villager work: gathering, construction, repair and structure placement."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from eternity.core.capabilities import capability_for
from eternity.core.entity_builder import RESOURCE_YIELDS, get_template, spawn
from eternity.core.enums import EntityKind, EntityState
from eternity.core.models import Entity
from eternity.core.walls import refresh_neighbourhood
from eternity.utils.events import (
    Alert,
    ConstructionCompleted,
    ResourceDepleted,
    ResourcesDeposited,
    WallRepaired,
)

if TYPE_CHECKING:
    from eternity.ai.states import StateContext, StateMachine

logger = logging.getLogger(__name__)


class WorkAction:
    """Stateless work steps invoked by the state handlers."""

    # -- validation --

    @staticmethod
    def can_gather(entity: Entity, resource: Entity | None) -> bool:
        return (
            entity.active
            and entity.is_mobile
            and entity.base.gather_rate > 0
            and resource is not None
            and resource.kind == EntityKind.RESOURCE
            and resource.active
            and resource.amount > 0
        )

    @staticmethod
    def can_construct(entity: Entity, site: Entity | None) -> bool:
        return (
            entity.active
            and entity.base.build_rate > 0
            and site is not None
            and site.kind in (EntityKind.BUILDING, EntityKind.WALL)
            and site.active
            and not site.constructed
            and site.owner == entity.owner
        )

    @staticmethod
    def can_repair(entity: Entity, target: Entity | None) -> bool:
        return (
            entity.active
            and entity.base.repair_rate > 0
            and target is not None
            and target.kind in (EntityKind.BUILDING, EntityKind.WALL)
            and target.active
            and target.constructed
            and target.owner == entity.owner
            and target.hp < target.base.max_hp
        )

    # -- gathering --

    @staticmethod
    def gather(ctx: StateContext) -> None:
        """Collect from the target node; haul to the nearest drop-off when full."""
        actor = ctx.entity
        machine = ctx.machine
        cfg = machine.config
        node = ctx.world.get(actor.target_id)
        node_ok = node is not None and node.active and node.amount > 0

        if actor.task_phase == "return" or actor.carried >= cfg.gather_capacity or (not node_ok and actor.carried > 0):
            actor.task_phase = "return"
            dropoff = WorkAction.nearest_dropoff(machine, actor)
            if dropoff is not None:
                reached = machine.approach(actor, dropoff, cfg.interact_range, ctx.delta_time)
                if reached is False:
                    return
            WorkAction.deposit(machine, actor)
            if not node_ok:
                machine.stop(actor)
                return
            actor.task_phase = "collect"
            # Head back on the next tick
            actor.path = None
            return

        if not node_ok:
            machine.stop(actor)
            return

        reached = machine.approach(actor, node, cfg.interact_range, ctx.delta_time)
        if reached is None:
            machine.stop(actor)
            return
        if not reached:
            return

        yield_type = RESOURCE_YIELDS.get(node.subtype, node.subtype)
        if actor.carried > 0 and actor.carry_type != yield_type:
            actor.task_phase = "return"
            return

        take = min(actor.base.gather_rate * ctx.delta_time, node.amount, cfg.gather_capacity - actor.carried)
        actor.carry_type = yield_type
        actor.carried += take
        node.amount -= take
        if node.amount <= 1e-9:
            node.amount = 0.0
            capability_for(node).on_zero_hp(node)
            machine.bus.publish(ResourceDepleted(node.id))

    @staticmethod
    def nearest_dropoff(machine: StateMachine, actor: Entity) -> Entity | None:
        if actor.owner is None:
            return None
        best: Entity | None = None
        best_d = math.inf
        for e in machine.world.by_owner(actor.owner):
            if e.subtype not in machine.config.dropoff_types or not e.constructed:
                continue
            d = math.hypot(e.x - actor.x, e.y - actor.y)
            if d < best_d:
                best, best_d = e, d
        return best

    @staticmethod
    def deposit(machine: StateMachine, actor: Entity) -> None:
        if actor.carried <= 0 or actor.carry_type is None:
            return
        if machine.ledger is not None and actor.owner is not None:
            machine.ledger.deposit(actor.owner, actor.carry_type, actor.carried)
        machine.bus.publish(ResourcesDeposited(actor.id, actor.owner, actor.carry_type, actor.carried))
        actor.carried = 0.0
        actor.carry_type = None

    # -- construction --

    @staticmethod
    def construct(ctx: StateContext) -> None:
        actor = ctx.entity
        machine = ctx.machine
        site = ctx.world.get(actor.target_id)
        if site is None or not site.active or site.constructed:
            machine.stop(actor)
            return

        reached = machine.approach(actor, site, machine.config.interact_range, ctx.delta_time)
        if reached is None:
            machine.stop(actor)
            return
        if not reached:
            return

        site.build_progress = min(site.build_time, site.build_progress + actor.base.build_rate * ctx.delta_time)
        ratio = site.build_progress / site.build_time if site.build_time > 0 else 1.0
        site.hp = min(site.base.max_hp, max(site.hp, site.base.max_hp * ratio))
        if site.build_progress >= site.build_time:
            site.constructed = True
            site.hp = site.base.max_hp
            machine.bus.publish(ConstructionCompleted(site.id, actor.id))
            logger.debug("#%d finished building %s #%d", actor.id, site.subtype, site.id)
            machine.stop(actor)

    # -- repair --

    @staticmethod
    def repair(ctx: StateContext) -> None:
        actor = ctx.entity
        machine = ctx.machine
        cfg = machine.config
        target = ctx.world.get(actor.target_id)
        if target is None or not target.active or target.hp >= target.base.max_hp:
            machine.stop(actor)
            return

        reached = machine.approach(actor, target, cfg.interact_range, ctx.delta_time)
        if reached is None:
            machine.stop(actor)
            return
        if not reached:
            return

        amount = actor.base.repair_rate * ctx.delta_time
        if target.breached:
            amount *= cfg.breached_repair_efficiency
        amount = min(amount, target.base.max_hp - target.hp)
        cost = {res: per_hp * amount for res, per_hp in cfg.repair_cost_per_hp.items()}
        if machine.ledger is not None and not machine.ledger.spend(actor.owner, cost):
            machine.bus.publish(Alert(actor.owner, "Not enough resources to repair", target.id))
            machine.stop(actor)
            return

        target.hp += amount
        if target.breached and target.hp > 0:
            target.wall.breached = False
            target.state = EntityState.IDLE
            machine.bus.publish(WallRepaired(target.id, target.hp))
        if target.hp >= target.base.max_hp:
            target.hp = target.base.max_hp
            machine.stop(actor)

    # -- placement --

    @staticmethod
    def place(machine: StateMachine, template: str, owner: str, tile_x: int, tile_y: int) -> Entity | None:
        """Validate terrain and affordability, then create a construction site.

        Raises KeyError for unknown templates and ValueError for templates
        that are not structures.
        """
        t = get_template(template)
        if t.kind not in (EntityKind.BUILDING, EntityKind.WALL):
            raise ValueError(f"{template!r} is not a placeable structure")

        world = machine.world
        if not world.terrain.is_terrain_buildable(tile_x, tile_y, t.width, t.height):
            logger.info("Cannot place %s at (%d, %d): terrain not buildable", template, tile_x, tile_y)
            return None
        if not world.is_area_free(tile_x, tile_y, t.width, t.height):
            logger.info("Cannot place %s at (%d, %d): area occupied", template, tile_x, tile_y)
            return None
        if machine.ledger is not None and not machine.ledger.spend(owner, t.cost):
            machine.bus.publish(Alert(owner, f"Not enough resources to build {template}"))
            return None

        entity = spawn(world, template, owner, tile_x, tile_y, under_construction=True)
        if entity.kind == EntityKind.WALL:
            refresh_neighbourhood(world, entity)
        return entity
