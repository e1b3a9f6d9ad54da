"""Custom exceptions for island world generation."""


class WorldGenError(Exception):
    """Base exception for world generation errors."""

    pass


class BiomeSelectionError(WorldGenError):
    """Raised when no biome can be selected from the configured list."""

    pass


class IslandNotFoundError(WorldGenError):
    """Raised when looking up an island that was never generated."""

    pass


class GenerationFailedError(WorldGenError):
    """Raised when generating the island around a seed tile fails.

    ``region`` holds the cells the flood fill had reached when it failed.
    """

    def __init__(
        self,
        seed_tile: tuple[int, int],
        cause: BaseException,
        region: frozenset[tuple[int, int]] = frozenset(),
    ):
        self.seed_tile = seed_tile
        self.cause = cause
        self.region = region | {seed_tile}
        super().__init__(
            f"Generation failed for seed {seed_tile}: {type(cause).__name__}: {cause}"
        )


class IslandTooLargeError(WorldGenError):
    """Raised when a flood fill exceeds the configured tile limit."""

    def __init__(self, seed_tile: tuple[int, int], max_tiles: int):
        self.seed_tile = seed_tile
        self.max_tiles = max_tiles
        super().__init__(f"Island at seed {seed_tile} exceeds {max_tiles} tiles")
