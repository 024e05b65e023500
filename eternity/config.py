"""Simulation configuration with sensible defaults."""

from __future__ import annotations

import math
from dataclasses import dataclass, field


@dataclass(frozen=True)
class SimulationConfig:
    """Immutable configuration for the simulation run."""

    # World
    world_seed: int = 42
    grid_width: int = 64
    grid_height: int = 64
    tile_size: float = 32.0                 # World units per tile
    civilizations: tuple[str, ...] = ("SOLARI", "LUNARI")

    # Timing
    max_ticks: int = 5000
    tick_delta: float = 0.05                # Seconds simulated per tick
    death_grace_seconds: float = 2.0        # Inactive entities linger this long before removal

    # Spatial hash
    spatial_cell_size: int = 8

    # Pathfinding
    impassable_cost: float = 10.0           # Tiles at or above this cost are never expanded
    diagonal_multiplier: float = math.sqrt(2)
    pathfinding_max_nodes: int = 20000
    goal_search_radius: int = 10            # Ring search bound when the goal tile is unwalkable

    # Visibility (fog of war)
    visibility_interval: float = 0.5        # Seconds between full recomputes
    view_radius_default: int = 3
    view_radius_unit: int = 4
    view_radius_building: int = 5
    view_radius_tower: int = 8
    tower_types: tuple[str, ...] = ("tower", "watchtower")

    # Formations (distances in world units, converted through tile_size)
    formation_arrival_tolerance: float = 10.0
    formation_scan_radius: float = 150.0
    formation_retreat_distance: float = 100.0

    # Work: gathering / construction / repair
    gather_capacity: float = 10.0
    interact_range: int = 1
    breached_repair_efficiency: float = 0.5
    repair_cost_per_hp: dict[str, float] = field(default_factory=lambda: {"wood": 0.1, "stone": 0.1})
    dropoff_types: tuple[str, ...] = ("town_center", "storehouse")
    wall_critical_ratio: float = 0.25
    counter_attack_radius: float = 150.0     # World units; idle units strike back within this range

    # Map generation
    noise_scale: float = 12.0
    water_threshold: float = 0.28
    hill_threshold: float = 0.66
    mountain_threshold: float = 0.8
    forest_threshold: float = 0.62
    starting_area_radius: int = 6
    starting_villagers: int = 4
    starting_soldiers: int = 4
    starting_resources: dict[str, int] = field(default_factory=lambda: {
        "food": 200, "wood": 200, "stone": 100, "gold": 100,
    })

    # Logging
    log_level: str = "INFO"

    def to_tiles(self, world_units: float) -> float:
        """Convert a world-unit distance into tiles."""
        return world_units / self.tile_size
