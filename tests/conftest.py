"""Shared test fixtures for island generation tests."""

from typing import Callable

import pytest

from isles.config import (
    Biome,
    GenerationParameters,
    PoolConfig,
    StreamingConfig,
    WorldGenConfig,
)
from isles.worldgen.hashing import world_hasher
from isles.worldgen.islands import GenerationContext

# Heights per map glyph, against sea_level=0.3 / high_level=0.6
GLYPH_HEIGHTS = {".": 0.0, "s": 0.45, "F": 0.8}


class GridHeightField:
    """Hand-authored height field.

    Rows are written north first, like a map. Tiles outside the map are sea.
    Counts lookups so tests can check memoization and laziness.
    """

    def __init__(self, rows: list[str], origin: tuple[int, int] = (0, 0)):
        self.rows = rows
        self.origin = origin
        self.lookups = 0

    def height(self, x: int, y: int) -> float:
        self.lookups += 1
        col = x - self.origin[0]
        row = len(self.rows) - 1 - (y - self.origin[1])
        if 0 <= row < len(self.rows) and 0 <= col < len(self.rows[row]):
            return GLYPH_HEIGHTS[self.rows[row][col]]
        return 0.0


@pytest.fixture
def params() -> GenerationParameters:
    """Thresholds matching GLYPH_HEIGHTS."""
    return GenerationParameters(sea_level=0.3, high_level=0.6)


@pytest.fixture
def make_field() -> Callable[..., GridHeightField]:
    """Factory for GridHeightField."""
    return GridHeightField


@pytest.fixture
def make_context(params: GenerationParameters) -> Callable[..., GenerationContext]:
    """Factory for a GenerationContext over a hand-authored map."""

    def _make(rows: list[str], origin: tuple[int, int] = (0, 0), **kwargs) -> GenerationContext:
        return GenerationContext(
            hasher=world_hasher(42),
            height_field=GridHeightField(rows, origin),
            params=params,
            tile_world_size=32.0,
            **kwargs,
        )

    return _make


@pytest.fixture
def small_config(params: GenerationParameters) -> WorldGenConfig:
    """Synchronous config with a single biome and a short view distance."""
    return WorldGenConfig(
        seed=42,
        biomes=[Biome(name="test", generation_parameters=params)],
        streaming=StreamingConfig(view_distance=6),
        pool=PoolConfig(max_workers=0, max_retries=1),
    )


@pytest.fixture
def two_islands_map() -> list[str]:
    """Two islands: a forest-topped one to the west and a sand bar to the east.

    Bottom row is y=0, leftmost column is x=0.
    """
    return [
        "....................",
        "..sssss.............",
        "..sFFFs.......sss...",
        "..sFFFs.......sss...",
        "..sFFFs.......sss...",
        "..sssss.............",
        "....................",
    ]
