"""/api/v1/formations: create, move, retype, disband and preview formations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException

from eternity.api.dependencies import get_engine_manager, require_snapshot
from eternity.api.engine_manager import EngineManager
from eternity.api.schemas import (
    FormationCreateRequest,
    FormationMoveRequest,
    FormationPreviewRequest,
    FormationPreviewResponse,
    FormationResponse,
    FormationSchema,
    FormationTypeRequest,
    FormationTypeSchema,
    PointSchema,
)
from eternity.core.models import Point
from eternity.systems.formations import Formation, FormationManager, parse_formation_type

if TYPE_CHECKING:
    from eternity.engine.world_loop import WorldLoop

router = APIRouter(prefix="/formations")

_BONUS_FIELDS = (
    "attack", "armor", "attack_range", "speed", "attack_rate",
    "turn_rate", "line_of_sight", "charge_bonus", "area_resistance", "retreat_on_close",
)


def _schema(formation: Formation) -> FormationSchema:
    return FormationSchema.model_validate(formation.to_dict())


def _require(loop: WorldLoop, formation_id: str) -> Formation:
    formation = loop.formations.get(formation_id)
    if formation is None:
        raise HTTPException(status_code=404, detail=f"Formation {formation_id!r} not found.")
    return formation


@router.get("/types", response_model=list[FormationTypeSchema])
def list_types() -> list[FormationTypeSchema]:
    result = []
    for ftype, spec in FormationManager.formation_types().items():
        bonuses = {
            name: getattr(spec.bonuses, name)
            for name in _BONUS_FIELDS
            if getattr(spec.bonuses, name)
        }
        result.append(FormationTypeSchema(
            type=ftype.value,
            name=spec.name,
            description=spec.description,
            unit_spacing=spec.unit_spacing,
            facing=spec.facing.value,
            speed_matching=spec.speed_matching,
            bonuses=bonuses,
        ))
    return result


@router.get("", response_model=list[FormationSchema])
def list_formations(
    owner: str | None = None,
    manager: EngineManager = Depends(get_engine_manager),
) -> list[FormationSchema]:
    snapshot = require_snapshot(manager)
    return [
        FormationSchema.model_validate(f)
        for f in snapshot.formations
        if owner is None or f["owner"] == owner
    ]


@router.post("", response_model=FormationResponse)
def create_formation(
    req: FormationCreateRequest,
    manager: EngineManager = Depends(get_engine_manager),
) -> FormationResponse:
    def run(loop: WorldLoop) -> FormationResponse:
        units = [loop.world.get(uid) for uid in req.unit_ids]
        formation = loop.formations.create_formation(units, req.type, req.owner)
        if formation is None:
            return FormationResponse(status="rejected", message="No eligible units.")
        return FormationResponse(status="ok", message=f"Created {formation.id}.", formation=_schema(formation))

    return manager.execute(run)


@router.post("/preview", response_model=FormationPreviewResponse)
def preview_formation(
    req: FormationPreviewRequest,
    manager: EngineManager = Depends(get_engine_manager),
) -> FormationPreviewResponse:
    def run(loop: WorldLoop) -> FormationPreviewResponse:
        units = [loop.world.get(uid) for uid in req.unit_ids]
        center = Point(req.x, req.y) if req.x is not None and req.y is not None else None
        positions = loop.formations.preview(units, req.type, center)
        return FormationPreviewResponse(
            type=parse_formation_type(req.type).value,
            positions={str(uid): PointSchema(x=p.x, y=p.y) for uid, p in positions.items()},
        )

    return manager.execute(run)


@router.get("/{formation_id}", response_model=FormationSchema)
def get_formation(
    formation_id: str,
    manager: EngineManager = Depends(get_engine_manager),
) -> FormationSchema:
    return manager.execute(lambda loop: _schema(_require(loop, formation_id)))


@router.post("/{formation_id}/move", response_model=FormationResponse)
def move_formation(
    formation_id: str,
    req: FormationMoveRequest,
    manager: EngineManager = Depends(get_engine_manager),
) -> FormationResponse:
    def run(loop: WorldLoop) -> FormationResponse:
        formation = _require(loop, formation_id)
        if not loop.formations.move_formation(formation_id, req.x, req.y):
            return FormationResponse(status="rejected", message="No member could reach the target.",
                                     formation=_schema(formation))
        return FormationResponse(status="ok", message=f"{formation_id} moving.", formation=_schema(formation))

    return manager.execute(run)


@router.post("/{formation_id}/type", response_model=FormationResponse)
def change_type(
    formation_id: str,
    req: FormationTypeRequest,
    manager: EngineManager = Depends(get_engine_manager),
) -> FormationResponse:
    def run(loop: WorldLoop) -> FormationResponse:
        formation = _require(loop, formation_id)
        loop.formations.change_formation_type(formation_id, req.type)
        return FormationResponse(status="ok", message=f"{formation_id} is now {formation.type.value}.",
                                 formation=_schema(formation))

    return manager.execute(run)


@router.delete("/{formation_id}", response_model=FormationResponse)
def disband_formation(
    formation_id: str,
    manager: EngineManager = Depends(get_engine_manager),
) -> FormationResponse:
    def run(loop: WorldLoop) -> FormationResponse:
        _require(loop, formation_id)
        loop.formations.disband_formation(formation_id)
        return FormationResponse(status="ok", message=f"Disbanded {formation_id}.")

    return manager.execute(run)
