"""Procedural island generation package.

This package implements streaming, seed-deterministic island generation:
noise height field, biome selection, tile classification, neighborhood
sprite rules, flood-fill island extraction and collision meshes.
"""

from .biomes import select_biome, select_world_biome
from .classification import Tile, classify, classify_heights, classify_kind, tile_variant
from .collision import TriMesh, build_collision_meshes
from .generator import GenerationTick, WorldGenerator
from .hashing import SeededHasher, world_hasher
from .islands import GenerationContext, Island, IslandTrace, build_island, trace_island
from .noise import HeightField, NoiseField
from .pool import GenerationFailure, GenerationPool, JobResult
from .ribbon import Ribbon, RowInterval
from .rules import RULES, Rule, resolve
from .validation import ValidationResult, validate_island

__all__ = [
    "GenerationContext",
    "GenerationFailure",
    "GenerationPool",
    "GenerationTick",
    "HeightField",
    "Island",
    "IslandTrace",
    "JobResult",
    "NoiseField",
    "RULES",
    "Ribbon",
    "RowInterval",
    "Rule",
    "SeededHasher",
    "Tile",
    "TriMesh",
    "ValidationResult",
    "WorldGenerator",
    "build_collision_meshes",
    "build_island",
    "classify",
    "classify_heights",
    "classify_kind",
    "resolve",
    "select_biome",
    "select_world_biome",
    "tile_variant",
    "trace_island",
    "validate_island",
    "world_hasher",
]
