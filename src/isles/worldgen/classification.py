"""Tile classification: height thresholds to sea, sand and forest."""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from ..config import GenerationParameters
from ..terrain_types import CollisionClass, TileKind
from .hashing import SeededHasher

VARIANT_COUNT = 8


@dataclass(frozen=True, slots=True)
class Tile:
    """A generated tile.

    ``sprite_id`` stays None until the neighborhood rule pass runs.
    """

    kind: TileKind
    variant: int
    sprite_id: int | None = None


def classify_kind(height: float, params: GenerationParameters) -> TileKind:
    """Map a height to a tile kind using the biome thresholds."""
    if height < params.sea_level:
        return TileKind.SEA
    if height < params.high_level:
        return TileKind.SAND
    return TileKind.FOREST


def tile_variant(hasher: SeededHasher, x: int, y: int) -> int:
    """Stable pseudo-random variant in [0, 8) for a tile position.

    The multiply by 7 decorrelates the result from the low digest bits.
    """
    return hasher.child(x, y).digest() * 7 % VARIANT_COUNT


def classify(
    height: float,
    params: GenerationParameters,
    hasher: SeededHasher,
    x: int,
    y: int,
) -> Tile:
    """Classify a tile from its height and position."""
    return Tile(kind=classify_kind(height, params), variant=tile_variant(hasher, x, y))


def classify_heights(
    heights: NDArray[np.float64],
    params: GenerationParameters,
) -> NDArray[np.uint8]:
    """Vectorized kind classification of a height grid.

    Returns:
        Array of kind codes (see ``kind_value``) with the input's shape.
    """
    kinds = np.full(heights.shape, kind_value(TileKind.FOREST), dtype=np.uint8)
    kinds[heights < params.high_level] = kind_value(TileKind.SAND)
    kinds[heights < params.sea_level] = kind_value(TileKind.SEA)
    return kinds


# Compact storage codes for island grids. SEA is 0 so a zeroed grid is open sea.
_KIND_VALUES: dict[TileKind, int] = {
    TileKind.SEA: 0,
    TileKind.SEA_ROCK: 1,
    TileKind.SAND: 2,
    TileKind.SAND_ROCK: 3,
    TileKind.FOREST: 4,
}
_VALUE_KINDS: dict[int, TileKind] = {v: k for k, v in _KIND_VALUES.items()}

_COLLISION_VALUES: dict[CollisionClass, int] = {
    CollisionClass.NONE: 0,
    CollisionClass.FRICTION: 1,
    CollisionClass.RIGID: 2,
}
_VALUE_COLLISIONS: dict[int, CollisionClass] = {v: k for k, v in _COLLISION_VALUES.items()}


def kind_value(kind: TileKind) -> int:
    """Convert a TileKind to its uint8 storage code."""
    return _KIND_VALUES[kind]


def kind_from_value(value: int) -> TileKind:
    """Convert a storage code back to a TileKind.

    Unknown codes read as open sea, matching out-of-grid lookups.
    """
    return _VALUE_KINDS.get(int(value), TileKind.SEA)


def collision_value(collision: CollisionClass) -> int:
    """Convert a CollisionClass to its uint8 storage code."""
    return _COLLISION_VALUES[collision]


def collision_from_value(value: int) -> CollisionClass:
    """Convert a storage code back to a CollisionClass."""
    return _VALUE_COLLISIONS.get(int(value), CollisionClass.NONE)
