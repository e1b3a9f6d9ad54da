"""Tests for tile classification functions."""

import numpy as np
import pytest

from isles.config import GenerationParameters
from isles.terrain_types import CollisionClass, TileKind
from isles.worldgen.classification import (
    VARIANT_COUNT,
    classify,
    classify_heights,
    classify_kind,
    collision_from_value,
    collision_value,
    kind_from_value,
    kind_value,
    tile_variant,
)
from isles.worldgen.hashing import world_hasher


class TestKindValueConversion:
    """Tests for TileKind <-> uint8 conversion."""

    def test_kind_value_mapping(self) -> None:
        """Each TileKind maps to a unique uint8."""
        values = [kind_value(k) for k in TileKind]
        assert len(values) == len(set(values)), "Duplicate values in mapping"

    def test_round_trip_conversion(self) -> None:
        """kind_from_value inverts kind_value."""
        for kind in TileKind:
            assert kind_from_value(kind_value(kind)) == kind

    def test_sea_is_zero(self) -> None:
        """A zeroed grid is open sea."""
        assert kind_value(TileKind.SEA) == 0

    def test_unknown_value_returns_sea(self) -> None:
        assert kind_from_value(99) == TileKind.SEA

    def test_collision_round_trip(self) -> None:
        for cls in CollisionClass:
            assert collision_from_value(collision_value(cls)) == cls
        assert collision_value(CollisionClass.NONE) == 0


class TestClassifyKind:
    """Tests for height thresholds."""

    def test_thresholds(self, params: GenerationParameters) -> None:
        assert classify_kind(0.0, params) == TileKind.SEA
        assert classify_kind(0.29, params) == TileKind.SEA
        assert classify_kind(0.3, params) == TileKind.SAND
        assert classify_kind(0.59, params) == TileKind.SAND
        assert classify_kind(0.6, params) == TileKind.FOREST
        assert classify_kind(0.75, params) == TileKind.FOREST

    def test_negative_heights_are_sea(self, params: GenerationParameters) -> None:
        assert classify_kind(-0.8, params) == TileKind.SEA


class TestTileVariant:
    """Tests for per-tile variants."""

    def test_in_range(self) -> None:
        hasher = world_hasher(42)
        for x in range(-10, 10):
            for y in range(-10, 10):
                assert 0 <= tile_variant(hasher, x, y) < VARIANT_COUNT

    def test_formula(self) -> None:
        """variant = hash(x, y) * 7 % 8."""
        hasher = world_hasher(42)
        assert tile_variant(hasher, 3, -4) == hasher.child(3, -4).digest() * 7 % 8

    def test_deterministic_and_positional(self) -> None:
        hasher = world_hasher("pirates")
        assert tile_variant(hasher, 1, 2) == tile_variant(world_hasher("pirates"), 1, 2)
        variants = {tile_variant(hasher, x, 0) for x in range(64)}
        assert len(variants) > 1

    def test_depends_on_world_seed(self) -> None:
        a = [tile_variant(world_hasher(1), x, 0) for x in range(32)]
        b = [tile_variant(world_hasher(2), x, 0) for x in range(32)]
        assert a != b


class TestClassify:
    """Tests for classify."""

    def test_forest_example(self, params: GenerationParameters) -> None:
        """Seed 42, height 0.75 at (10, 10) is forest."""
        hasher = world_hasher(42)
        tile = classify(0.75, params, hasher, 10, 10)
        assert tile.kind == TileKind.FOREST
        assert tile.variant == tile_variant(hasher, 10, 10)
        assert tile.sprite_id is None


class TestClassifyHeights:
    """Tests for vectorized classification."""

    def test_matches_scalar(self, params: GenerationParameters) -> None:
        heights = np.array([[0.0, 0.3, 0.45], [0.6, 0.9, -1.0]])
        codes = classify_heights(heights, params)
        assert codes.shape == heights.shape
        assert codes.dtype == np.uint8
        for idx in np.ndindex(heights.shape):
            assert kind_from_value(codes[idx]) == classify_kind(heights[idx], params)

    @pytest.mark.parametrize("height", [0.2999, 0.3, 0.5999, 0.6])
    def test_boundaries(self, params: GenerationParameters, height: float) -> None:
        codes = classify_heights(np.array([height]), params)
        assert kind_from_value(codes[0]) == classify_kind(height, params)
