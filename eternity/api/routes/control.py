"""POST /api/v1/control/{action} and /speed: drive the engine clock."""

from __future__ import annotations

from enum import Enum

from fastapi import APIRouter, Depends, Query

from eternity.api.dependencies import get_engine_manager
from eternity.api.engine_manager import EngineManager, EngineStatus
from eternity.api.schemas import ControlResponse

router = APIRouter()


class ControlAction(str, Enum):
    start = "start"
    pause = "pause"
    resume = "resume"
    step = "step"
    reset = "reset"


# Status each action requires; anything else answers "error"
_REQUIRES: dict[ControlAction, tuple[EngineStatus, ...]] = {
    ControlAction.pause: (EngineStatus.RUNNING,),
    ControlAction.resume: (EngineStatus.PAUSED,),
}


def _reply(manager: EngineManager, status: str, message: str) -> ControlResponse:
    return ControlResponse(status=status, message=message, tick=manager.tick)


@router.post("/control/{action}", response_model=ControlResponse)
def control(
    action: ControlAction,
    manager: EngineManager = Depends(get_engine_manager),
) -> ControlResponse:
    required = _REQUIRES.get(action)
    if required is not None and manager.status not in required:
        return _reply(manager, "error", f"Cannot {action.value} while {manager.status.value}.")

    match action:
        case ControlAction.start:
            if manager.running:
                return _reply(manager, "noop", f"Already {manager.status.value}.")
            manager.start()
            return _reply(manager, "ok", "Engine started.")
        case ControlAction.pause:
            manager.pause()
            return _reply(manager, "ok", "Engine paused.")
        case ControlAction.resume:
            manager.resume()
            return _reply(manager, "ok", "Engine resumed.")
        case ControlAction.step:
            if manager.running:
                manager.step()
                return _reply(manager, "ok", "Engine paused; one tick queued.")
            manager.step_now()
            return _reply(manager, "ok", "Advanced one tick.")
        case ControlAction.reset:
            manager.reset()
            return _reply(manager, "ok", "World rebuilt; engine stopped.")


@router.post("/speed", response_model=ControlResponse)
def set_speed(
    tps: float = Query(20.0, gt=0.5, le=100.0, description="Ticks per second"),
    manager: EngineManager = Depends(get_engine_manager),
) -> ControlResponse:
    manager.tick_rate = 1.0 / tps
    return _reply(manager, "ok", f"Ticking at {1.0 / manager.tick_rate:.1f} tps.")
