"""GET /api/v1/visibility/{owner}: one civilization's fog-of-war grid."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from eternity.api.dependencies import get_engine_manager, require_snapshot
from eternity.api.engine_manager import EngineManager
from eternity.api.routes.map import rle_encode
from eternity.api.schemas import VisibilityResponse
from eternity.core.enums import Visibility

router = APIRouter()


@router.get("/visibility/{owner}", response_model=VisibilityResponse)
def get_visibility(
    owner: str,
    manager: EngineManager = Depends(get_engine_manager),
) -> VisibilityResponse:
    snapshot = require_snapshot(manager)
    grid = snapshot.visibility.get(owner)
    if grid is None:
        raise HTTPException(status_code=404, detail=f"Unknown civilization {owner!r}.")

    return VisibilityResponse(
        owner=owner,
        width=snapshot.terrain.width,
        height=snapshot.terrain.height,
        grid=rle_encode(grid),
        visible_count=grid.count(int(Visibility.VISIBLE)),
        explored_count=sum(1 for v in grid if v >= Visibility.EXPLORED),
    )
