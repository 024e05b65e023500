"""Wall-specific helpers: gate toggling and neighbour connections."""

from __future__ import annotations

from typing import TYPE_CHECKING

from eternity.core.enums import EntityKind, GateState
from eternity.core.models import CARDINAL_OFFSETS, Entity

if TYPE_CHECKING:
    from eternity.core.world_state import WorldState


def toggle_gate(wall: Entity) -> bool:
    """Flip a gate between open and closed.  Returns False for non-gates."""
    info = wall.wall
    if info is None or not info.is_gate or not wall.active:
        return False
    info.gate_state = GateState.CLOSED if info.gate_state == GateState.OPEN else GateState.OPEN
    return True


def update_connections(world: WorldState, wall: Entity) -> None:
    """Recompute ``connected`` from same-owner walls on the four cardinal tiles."""
    if wall.wall is None:
        return
    here = wall.tile
    for direction, (dx, dy) in CARDINAL_OFFSETS.items():
        neighbour = world.structure_at(here.x + dx, here.y + dy)
        wall.wall.connected[direction] = (
            neighbour is not None
            and neighbour.kind == EntityKind.WALL
            and neighbour.active
            and neighbour.owner == wall.owner
        )


def refresh_neighbourhood(world: WorldState, wall: Entity) -> None:
    """Update *wall* and every adjacent wall after placement or removal."""
    update_connections(world, wall)
    here = wall.tile
    for dx, dy in CARDINAL_OFFSETS.values():
        neighbour = world.structure_at(here.x + dx, here.y + dy)
        if neighbour is not None and neighbour.kind == EntityKind.WALL:
            update_connections(world, neighbour)


def connection_type(wall: Entity) -> str:
    """Renderer-facing shape name derived from the connection flags."""
    if wall.wall is None:
        return "single"
    c = wall.wall.connected
    count = sum(1 for v in c.values() if v)
    if count == 0:
        return "single"
    if count == 1:
        return "end"
    if count == 2:
        if (c["north"] and c["south"]) or (c["east"] and c["west"]):
            return "straight"
        return "corner"
    if count == 3:
        return "tee"
    return "cross"
