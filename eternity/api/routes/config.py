"""GET /api/v1/config: the parameters the running world was built from."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from eternity.api.dependencies import get_engine_manager
from eternity.api.engine_manager import EngineManager
from eternity.api.schemas import SimulationConfigResponse

router = APIRouter()


@router.get("/config", response_model=SimulationConfigResponse)
def get_config(manager: EngineManager = Depends(get_engine_manager)) -> SimulationConfigResponse:
    cfg = manager.config
    # Every response field except the live tick rate mirrors a config attribute
    fields = {
        name: getattr(cfg, name)
        for name in SimulationConfigResponse.model_fields
        if name != "tick_rate"
    }
    fields["civilizations"] = list(cfg.civilizations)
    return SimulationConfigResponse(**fields, tick_rate=manager.tick_rate)
