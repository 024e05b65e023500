"""GET /api/v1/map: the terrain grid, fetched once per world."""

from __future__ import annotations

from itertools import groupby
from typing import Iterable

from fastapi import APIRouter, Depends, HTTPException

from eternity.api.dependencies import get_engine_manager
from eternity.api.engine_manager import EngineManager
from eternity.api.schemas import MapResponse
from eternity.core.enums import TerrainType

router = APIRouter()


def rle_encode(values: Iterable[int]) -> list[int]:
    """Flatten runs to ``[value, count, value, count, ...]`` (row-major grids)."""
    encoded: list[int] = []
    for value, run in groupby(int(v) for v in values):
        encoded.extend((value, sum(1 for _ in run)))
    return encoded


@router.get("/map", response_model=MapResponse)
def get_map(manager: EngineManager = Depends(get_engine_manager)) -> MapResponse:
    terrain = manager.get_terrain()
    if terrain is None:
        raise HTTPException(status_code=503, detail="Simulation not initialized yet.")
    return MapResponse(
        width=terrain.width,
        height=terrain.height,
        grid=rle_encode(terrain.codes()),
        legend={int(t): t.name.lower() for t in TerrainType},
    )
