"""Map generator: deterministic terrain plus starting areas per civilization."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from eternity.core.entity_builder import get_template, spawn
from eternity.core.enums import Domain, TerrainType
from eternity.core.models import Entity, Vector2
from eternity.core.terrain import TerrainGrid

if TYPE_CHECKING:
    from eternity.config import SimulationConfig
    from eternity.core.world_state import WorldState
    from eternity.systems.rng import DeterministicRNG

logger = logging.getLogger(__name__)

# Starting corners as fractions of the map, in civilization order
_START_ANCHORS: tuple[tuple[float, float], ...] = (
    (0.15, 0.15),
    (0.85, 0.85),
    (0.85, 0.15),
    (0.15, 0.85),
)

# Resource clusters placed around every starting town: (template, count, ring radius)
_START_RESOURCES: tuple[tuple[str, int, int], ...] = (
    ("berry_bush", 4, 4),
    ("tree", 8, 6),
    ("gold_mine", 1, 5),
    ("stone_quarry", 1, 5),
)


class MapGenerator:
    """Builds the terrain grid and seeds each civilization's start.

    Terrain is two octaves of value noise over lattice values drawn from
    the xxhash RNG, so the same seed always yields the same map.
    """

    __slots__ = ("_config", "_rng")

    def __init__(self, config: SimulationConfig, rng: DeterministicRNG) -> None:
        self._config = config
        self._rng = rng

    # -- noise --

    def _value_noise(self, domain: Domain, x: float, y: float) -> float:
        x0, y0 = math.floor(x), math.floor(y)
        fx, fy = x - x0, y - y0
        # Smoothstep fade
        sx = fx * fx * (3 - 2 * fx)
        sy = fy * fy * (3 - 2 * fy)
        v00 = self._rng.lattice(domain, x0, y0)
        v10 = self._rng.lattice(domain, x0 + 1, y0)
        v01 = self._rng.lattice(domain, x0, y0 + 1)
        v11 = self._rng.lattice(domain, x0 + 1, y0 + 1)
        top = v00 + (v10 - v00) * sx
        bottom = v01 + (v11 - v01) * sx
        return top + (bottom - top) * sy

    def sample(self, domain: Domain, x: int, y: int) -> float:
        """Noise in [0, 1) at tile (x, y)."""
        scale = self._config.noise_scale
        coarse = self._value_noise(domain, x / scale, y / scale)
        fine = self._value_noise(domain, x * 2 / scale + 101, y * 2 / scale + 101)
        return (coarse * 2 + fine) / 3

    # -- terrain --

    def classify(self, elevation: float, moisture: float) -> TerrainType:
        cfg = self._config
        if elevation < cfg.water_threshold:
            return TerrainType.WATER
        if elevation >= cfg.mountain_threshold:
            return TerrainType.MOUNTAIN
        if elevation >= cfg.hill_threshold:
            return TerrainType.HILL
        if moisture >= cfg.forest_threshold:
            return TerrainType.FOREST
        return TerrainType.GRASS

    def starting_positions(self) -> dict[str, Vector2]:
        """Centre tile of each civilization's starting area."""
        cfg = self._config
        positions: dict[str, Vector2] = {}
        for i, owner in enumerate(cfg.civilizations):
            fx, fy = _START_ANCHORS[i % len(_START_ANCHORS)]
            positions[owner] = Vector2(int(cfg.grid_width * fx), int(cfg.grid_height * fy))
        return positions

    def generate_terrain(self) -> TerrainGrid:
        cfg = self._config
        grid = TerrainGrid(cfg.grid_width, cfg.grid_height)
        for y in range(cfg.grid_height):
            for x in range(cfg.grid_width):
                elevation = self.sample(Domain.ELEVATION, x, y)
                moisture = self.sample(Domain.MOISTURE, x, y)
                grid.set(x, y, self.classify(elevation, moisture))

        # Flatten every starting area to open grass
        r = cfg.starting_area_radius
        for center in self.starting_positions().values():
            for dy in range(-r, r + 1):
                for dx in range(-r, r + 1):
                    if dx * dx + dy * dy <= r * r and grid.in_bounds(center.x + dx, center.y + dy):
                        grid.set(center.x + dx, center.y + dy, TerrainType.GRASS)
        logger.info("Generated %dx%d terrain (seed=%d)", cfg.grid_width, cfg.grid_height, cfg.world_seed)
        return grid

    # -- population --

    def populate(self, world: WorldState) -> dict[str, list[Entity]]:
        """Spawn each civilization's town centre, villagers, soldiers and nearby resources."""
        cfg = self._config
        placed: dict[str, list[Entity]] = {}
        for owner, center in self.starting_positions().items():
            entities: list[Entity] = []
            tc = get_template("town_center")
            entities.append(spawn(world, "town_center", owner, center.x - tc.width // 2, center.y - tc.height // 2))

            for i in range(cfg.starting_villagers):
                tile = self._free_tile_near(world, center, 2, i)
                if tile is not None:
                    entities.append(spawn(world, "villager", owner, tile.x, tile.y))
            soldiers = ("swordsman", "spearman", "archer", "maceman")
            for i in range(cfg.starting_soldiers):
                tile = self._free_tile_near(world, center, 3, i + cfg.starting_villagers)
                if tile is not None:
                    entities.append(spawn(world, soldiers[i % len(soldiers)], owner, tile.x, tile.y))

            for template, count, ring in _START_RESOURCES:
                for i in range(count):
                    tile = self._free_tile_near(world, center, ring, i + 100 * ring)
                    if tile is not None:
                        spawn(world, template, None, tile.x, tile.y)

            placed[owner] = entities
            logger.info("Seeded %s at %s with %d entities", owner, center, len(entities))
        return placed

    def _free_tile_near(self, world: WorldState, center: Vector2, ring: int, salt: int) -> Vector2 | None:
        """A buildable, unoccupied tile roughly *ring* tiles from *center*."""
        terrain = world.terrain
        start = self._rng.next_float(Domain.SPAWN, salt, center.x * 1000 + center.y)
        for r in range(ring, ring + 4):
            steps = max(8, int(2 * math.pi * r))
            for k in range(steps):
                angle = (start + k / steps) * 2 * math.pi
                x = center.x + round(math.cos(angle) * r)
                y = center.y + round(math.sin(angle) * r)
                if (
                    terrain.is_terrain_buildable(x, y, 1, 1)
                    and world.is_area_free(x, y, 1, 1)
                    and not any(e.tile == Vector2(x, y) for e in world.in_radius(Vector2(x, y).center(), 0.5))
                ):
                    return Vector2(x, y)
        return None
