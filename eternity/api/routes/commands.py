"""POST /api/v1/commands/*: orders issued by the input layer or an AI player.

Every command runs between ticks under the engine's world lock.  Unknown
entity ids answer 404; orders the simulation declines (no route, invalid
target, insufficient resources) come back as ``rejected`` ids, not errors.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from fastapi import APIRouter, Depends, HTTPException

from eternity.api.dependencies import get_engine_manager
from eternity.api.engine_manager import EngineManager
from eternity.api.schemas import (
    CommandResponse,
    GateCommand,
    MoveCommand,
    PlaceCommand,
    TargetCommand,
)

if TYPE_CHECKING:
    from eternity.ai.states import StateMachine
    from eternity.core.models import Entity
    from eternity.engine.world_loop import WorldLoop

router = APIRouter(prefix="/commands")


def _lookup(loop: WorldLoop, entity_id: int) -> Entity:
    entity = loop.world.get(entity_id)
    if entity is None:
        raise HTTPException(status_code=404, detail=f"Entity {entity_id} not found.")
    return entity


def _respond(verb: str, accepted: list[int], rejected: list[int]) -> CommandResponse:
    status = "ok" if accepted else "rejected"
    return CommandResponse(
        status=status,
        message=f"{verb}: {len(accepted)} accepted, {len(rejected)} rejected.",
        accepted=accepted,
        rejected=rejected,
    )


@router.post("/move", response_model=CommandResponse)
def move(cmd: MoveCommand, manager: EngineManager = Depends(get_engine_manager)) -> CommandResponse:
    def run(loop: WorldLoop) -> CommandResponse:
        units = [_lookup(loop, eid) for eid in cmd.entity_ids]
        accepted, rejected = [], []
        for unit in units:
            (accepted if loop.machine.move_to(unit, cmd.x, cmd.y) else rejected).append(unit.id)
        return _respond("move", accepted, rejected)

    return manager.execute(run)


def _issue_target_order(
    manager: EngineManager,
    cmd: TargetCommand,
    verb: str,
    order: Callable[[StateMachine, Entity, Entity], bool],
) -> CommandResponse:
    def run(loop: WorldLoop) -> CommandResponse:
        target = _lookup(loop, cmd.target_id)
        units = [_lookup(loop, eid) for eid in cmd.entity_ids]
        accepted, rejected = [], []
        for unit in units:
            (accepted if order(loop.machine, unit, target) else rejected).append(unit.id)
        return _respond(verb, accepted, rejected)

    return manager.execute(run)


@router.post("/attack", response_model=CommandResponse)
def attack(cmd: TargetCommand, manager: EngineManager = Depends(get_engine_manager)) -> CommandResponse:
    return _issue_target_order(manager, cmd, "attack", lambda m, u, t: m.attack(u, t))


@router.post("/gather", response_model=CommandResponse)
def gather(cmd: TargetCommand, manager: EngineManager = Depends(get_engine_manager)) -> CommandResponse:
    return _issue_target_order(manager, cmd, "gather", lambda m, u, t: m.gather(u, t))


@router.post("/construct", response_model=CommandResponse)
def construct(cmd: TargetCommand, manager: EngineManager = Depends(get_engine_manager)) -> CommandResponse:
    return _issue_target_order(manager, cmd, "construct", lambda m, u, t: m.construct(u, t))


@router.post("/repair", response_model=CommandResponse)
def repair(cmd: TargetCommand, manager: EngineManager = Depends(get_engine_manager)) -> CommandResponse:
    return _issue_target_order(manager, cmd, "repair", lambda m, u, t: m.repair(u, t))


@router.post("/gate", response_model=CommandResponse)
def toggle_gate(cmd: GateCommand, manager: EngineManager = Depends(get_engine_manager)) -> CommandResponse:
    def run(loop: WorldLoop) -> CommandResponse:
        wall = _lookup(loop, cmd.wall_id)
        if not loop.machine.toggle_gate(wall):
            return CommandResponse(status="rejected", message="Not a gate.", rejected=[wall.id])
        return CommandResponse(
            status="ok",
            message=f"Gate is now {wall.wall.gate_state.value}.",
            accepted=[wall.id],
            entity_id=wall.id,
        )

    return manager.execute(run)


@router.post("/place", response_model=CommandResponse)
def place(cmd: PlaceCommand, manager: EngineManager = Depends(get_engine_manager)) -> CommandResponse:
    def run(loop: WorldLoop) -> CommandResponse:
        builders = [_lookup(loop, eid) for eid in cmd.builder_ids]
        try:
            site = loop.machine.place_structure(cmd.template, cmd.owner, cmd.x, cmd.y)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Unknown template {cmd.template!r}.")
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        if site is None:
            return CommandResponse(status="rejected", message=f"Cannot place {cmd.template} at ({cmd.x}, {cmd.y}).")

        accepted, rejected = [], []
        for builder in builders:
            (accepted if loop.machine.construct(builder, site) else rejected).append(builder.id)
        return CommandResponse(
            status="ok",
            message=f"Placed {cmd.template} #{site.id}.",
            accepted=accepted,
            rejected=rejected,
            entity_id=site.id,
        )

    return manager.execute(run)
