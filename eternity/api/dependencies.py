"""Request dependencies shared by the route modules."""

from __future__ import annotations

from fastapi import HTTPException, Request

from eternity.api.engine_manager import EngineManager
from eternity.core.snapshot import Snapshot


def get_engine_manager(request: Request) -> EngineManager:
    manager = getattr(request.app.state, "engine", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Simulation engine not initialized.")
    return manager


def require_snapshot(manager: EngineManager) -> Snapshot:
    snapshot = manager.get_snapshot()
    if snapshot is None:
        raise HTTPException(status_code=503, detail="No snapshot available yet.")
    return snapshot
