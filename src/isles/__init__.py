"""Pirate isles: streaming procedural island world."""

from .config import WorldGenConfig, load_config
from .exceptions import (
    BiomeSelectionError,
    GenerationFailedError,
    IslandNotFoundError,
    IslandTooLargeError,
    WorldGenError,
)
from .journal import GenerationJournal
from .terrain_types import CollisionClass, TileKind
from .types import (
    DIRECTION_DELTAS,
    NEIGHBOR_DIRECTIONS,
    BoundingBox,
    Direction,
    TilePos,
)
from .worldgen import Island, WorldGenerator

__all__ = [
    # Types
    "BoundingBox",
    "Direction",
    "DIRECTION_DELTAS",
    "NEIGHBOR_DIRECTIONS",
    "TilePos",
    "TileKind",
    "CollisionClass",
    # Config
    "WorldGenConfig",
    "load_config",
    # Generation
    "WorldGenerator",
    "Island",
    "GenerationJournal",
    # Exceptions
    "WorldGenError",
    "BiomeSelectionError",
    "GenerationFailedError",
    "IslandNotFoundError",
    "IslandTooLargeError",
]
