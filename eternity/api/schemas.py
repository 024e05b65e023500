"""Pydantic request/response models for the REST API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# --- Entity ---

class EntitySchema(BaseModel):
    """Mirror of ``Entity.serialize()``."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    type: str
    owner: str | None
    x: float
    y: float
    width: int = 1
    height: int = 1
    hp: float
    max_hp: float = Field(alias="maxHp")
    dp: float
    ar: float
    state: str
    active: bool
    attributes: dict = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)


# --- Map ---

class MapResponse(BaseModel):
    width: int
    height: int
    grid: list[int] = Field(description="RLE-encoded TerrainType values: [value, count, value, count, ...]")
    legend: dict[int, str] = Field(default_factory=dict)


class VisibilityResponse(BaseModel):
    owner: str
    width: int
    height: int
    grid: list[int] = Field(description="RLE-encoded visibility: 0=unexplored, 1=explored, 2=visible")
    visible_count: int
    explored_count: int


# --- Formations ---

class PointSchema(BaseModel):
    x: float
    y: float


class SlotSchema(BaseModel):
    x: float
    y: float
    facing: str


class FormationSchema(BaseModel):
    id: str
    type: str
    owner: str
    members: list[int]
    leader_id: int | None
    center: PointSchema
    facing: str
    moving: bool
    target: PointSchema | None = None
    speed_factor: float
    slots: dict[str, SlotSchema] = Field(default_factory=dict)


class FormationTypeSchema(BaseModel):
    type: str
    name: str
    description: str
    unit_spacing: float
    facing: str
    speed_matching: bool
    bonuses: dict[str, float | bool]


class FormationCreateRequest(BaseModel):
    unit_ids: list[int] = Field(min_length=1)
    type: str = "line"
    owner: str


class FormationMoveRequest(BaseModel):
    x: float
    y: float


class FormationTypeRequest(BaseModel):
    type: str


class FormationPreviewRequest(BaseModel):
    unit_ids: list[int] = Field(min_length=1)
    type: str = "line"
    x: float | None = None
    y: float | None = None


class FormationPreviewResponse(BaseModel):
    type: str
    positions: dict[str, PointSchema]


class FormationResponse(BaseModel):
    status: str
    message: str
    formation: FormationSchema | None = None


# --- World State ---

class EventSchema(BaseModel):
    tick: int
    category: str
    message: str
    entity_ids: list[int] = Field(default_factory=list)
    kind: str = ""


class WorldStateResponse(BaseModel):
    tick: int
    elapsed: float
    active_count: int
    entities: list[EntitySchema]
    formations: list[FormationSchema] = Field(default_factory=list)
    events: list[EventSchema] = Field(default_factory=list)
    resources: dict[str, dict[str, float]] = Field(default_factory=dict)


class SimulationStats(BaseModel):
    tick: int
    active_count: int
    formation_count: int
    total_removed: int
    running: bool
    paused: bool
    status: str
    events_dropped: int = 0


# --- Commands ---

class MoveCommand(BaseModel):
    entity_ids: list[int] = Field(min_length=1)
    x: float
    y: float


class TargetCommand(BaseModel):
    """Attack / gather / construct / repair: every entity acts on one target."""

    entity_ids: list[int] = Field(min_length=1)
    target_id: int


class GateCommand(BaseModel):
    wall_id: int


class PlaceCommand(BaseModel):
    template: str
    owner: str
    x: int
    y: int
    builder_ids: list[int] = Field(default_factory=list)


class CommandResponse(BaseModel):
    status: str
    message: str
    accepted: list[int] = Field(default_factory=list)
    rejected: list[int] = Field(default_factory=list)
    entity_id: int | None = None


# --- Control ---

class ControlResponse(BaseModel):
    status: str
    message: str
    tick: int = 0


# --- Config ---

class SimulationConfigResponse(BaseModel):
    world_seed: int
    grid_width: int
    grid_height: int
    tile_size: float
    civilizations: list[str]
    max_ticks: int
    tick_delta: float
    visibility_interval: float
    pathfinding_max_nodes: int
    goal_search_radius: int
    formation_arrival_tolerance: float
    formation_scan_radius: float
    formation_retreat_distance: float
    gather_capacity: float
    tick_rate: float
