"""GET /api/v1/state, /events, /stats: the dynamic side of the world, polled by renderers."""

from __future__ import annotations

from typing import Iterable

from fastapi import APIRouter, Depends, HTTPException, Query

from eternity.api.dependencies import get_engine_manager, require_snapshot
from eternity.api.engine_manager import EngineManager
from eternity.api.schemas import (
    EntitySchema,
    EventSchema,
    FormationSchema,
    SimulationStats,
    WorldStateResponse,
)
from eternity.utils.event_log import FeedEntry

router = APIRouter()


def _events(entries: Iterable[FeedEntry]) -> list[EventSchema]:
    return [
        EventSchema(
            tick=e.tick, category=e.category, message=e.message,
            entity_ids=list(e.entity_ids), kind=e.kind,
        )
        for e in entries
    ]


def _active_count(records: Iterable[dict]) -> int:
    return sum(1 for rec in records if rec["active"])


@router.get("/state", response_model=WorldStateResponse)
def get_state(
    since_tick: int = Query(0, ge=0, description="Only return events since this tick"),
    owner: str | None = Query(None, description="Only return entities of this civilization"),
    manager: EngineManager = Depends(get_engine_manager),
) -> WorldStateResponse:
    snapshot = require_snapshot(manager)
    records = snapshot.entities_for(owner) if owner is not None else snapshot.entities.values()
    # Breached walls stay on the map as rubble
    visible = [rec for rec in records if rec["active"] or rec["attributes"].get("breached")]
    return WorldStateResponse(
        tick=snapshot.tick,
        elapsed=snapshot.elapsed,
        active_count=_active_count(snapshot.entities.values()),
        entities=[EntitySchema.model_validate(rec) for rec in visible],
        formations=[FormationSchema.model_validate(f) for f in snapshot.formations],
        events=_events(manager.event_log.since_tick(since_tick)),
        resources=dict(snapshot.resources),
    )


@router.get("/state/entities/{entity_id}", response_model=EntitySchema)
def get_entity(
    entity_id: int,
    manager: EngineManager = Depends(get_engine_manager),
) -> EntitySchema:
    record = require_snapshot(manager).entity(entity_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Entity {entity_id} not found.")
    return EntitySchema.model_validate(record)


@router.get("/events", response_model=list[EventSchema])
def get_events(
    limit: int = Query(50, ge=1, le=1000),
    entity_id: int | None = Query(None, description="Only events involving this entity"),
    manager: EngineManager = Depends(get_engine_manager),
) -> list[EventSchema]:
    log = manager.event_log
    entries = log.latest(limit) if entity_id is None else log.involving(entity_id, limit)
    return _events(entries)


@router.get("/stats", response_model=SimulationStats)
def get_stats(
    manager: EngineManager = Depends(get_engine_manager),
) -> SimulationStats:
    snapshot = require_snapshot(manager)
    return SimulationStats(
        tick=snapshot.tick,
        active_count=_active_count(snapshot.entities.values()),
        formation_count=len(snapshot.formations),
        total_removed=manager.total_removed,
        running=manager.running,
        paused=manager.paused,
        status=manager.status.value,
        events_dropped=manager.event_log.dropped,
    )
