"""Engine systems: RNG, spatial indexing, map generation, fog of war, formations."""

from eternity.systems.rng import DeterministicRNG
from eternity.systems.spatial_hash import SpatialHash
from eternity.systems.generator import MapGenerator
from eternity.systems.visibility import VisibilityField
from eternity.systems.formations import FORMATION_TYPES, FormationManager

__all__ = [
    "DeterministicRNG",
    "FORMATION_TYPES",
    "FormationManager",
    "MapGenerator",
    "SpatialHash",
    "VisibilityField",
]
