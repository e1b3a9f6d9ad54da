"""Island extraction: flood fill from a seed tile, then tile and mesh passes."""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

from ..config import GenerationParameters
from ..exceptions import IslandTooLargeError
from ..terrain_types import CollisionClass, TileKind
from ..types import NEIGHBOR_OFFSETS, BoundingBox, TilePos, neighbors
from .classification import (
    Tile,
    classify,
    collision_from_value,
    collision_value,
    kind_from_value,
    kind_value,
)
from .collision import TriMesh, build_collision_meshes
from .hashing import SeededHasher
from .noise import HeightField
from .ribbon import Ribbon
from .rules import resolve, rock_replacement

_SEA = kind_value(TileKind.SEA)


@dataclass(frozen=True)
class GenerationContext:
    """Read-only inputs shared by every generation job of a world."""

    hasher: SeededHasher
    height_field: HeightField
    params: GenerationParameters
    tile_world_size: float
    biome: str = ""
    max_tiles: int = 250_000

    def is_land(self, x: int, y: int) -> bool:
        """Whether a tile's height reaches sea level."""
        return self.height_field.height(x, y) >= self.params.sea_level


@dataclass
class IslandTrace:
    """Outcome of a flood fill, before any tile is classified."""

    seed: TilePos
    bbox: BoundingBox
    land: frozenset[TilePos]
    visited: frozenset[TilePos]
    # Every cell the fill looked at, in order; replayed into the ribbon
    # when the fill ran off the main thread.
    probed: tuple[TilePos, ...]
    # Land tiles found while back-filling ribbon gaps mid-fill
    backfill: list[TilePos] = field(default_factory=list)


def trace_island(
    seed: TilePos,
    context: GenerationContext,
    ribbon: Ribbon | None = None,
    backfill: list[TilePos] | None = None,
    visited: set[TilePos] | None = None,
) -> IslandTrace | None:
    """Flood fill the 8-connected land region containing ``seed``.

    Sea cells next to the region are visited but not expanded. When a
    ribbon is given, every probed cell is covered as soon as it is seen,
    so the ribbon grows mid-fill and land skipped by a gap is reported
    in ``backfill``.

    ``backfill`` and ``visited`` may be passed in by the caller; they are
    filled in place, so whatever the fill reached before raising is still
    available to it.

    Args:
        seed: Tile to start from.
        context: World generation inputs.
        ribbon: Ribbon to grow while filling, or None on worker threads.
        backfill: List receiving land found in ribbon gaps, as it is found.
        visited: Empty set receiving every cell the fill looks at.

    Returns:
        The trace, or None when the seed tile is sea.

    Raises:
        IslandTooLargeError: If the region grows past ``context.max_tiles``.
    """
    if backfill is None:
        backfill = []
    if visited is None:
        visited = set()
    visited.add(seed)
    if ribbon is not None:
        backfill.extend(ribbon.cover(*seed))
    if not context.is_land(*seed):
        return None

    queue = deque([seed])
    probed = [seed]
    land = []
    min_x = max_x = seed[0]
    min_y = max_y = seed[1]

    while queue:
        x, y = queue.popleft()
        land.append((x, y))
        if len(land) > context.max_tiles:
            raise IslandTooLargeError(seed, context.max_tiles)

        min_x, max_x = min(min_x, x), max(max_x, x)
        min_y, max_y = min(min_y, y), max(max_y, y)

        for pos in neighbors(x, y):
            if pos in visited:
                continue
            visited.add(pos)
            probed.append(pos)
            if ribbon is not None:
                backfill.extend(ribbon.cover(*pos))
            if context.is_land(*pos):
                queue.append(pos)

    return IslandTrace(
        seed=seed,
        bbox=BoundingBox(min_x=min_x, max_x=max_x, min_y=min_y, max_y=max_y),
        land=frozenset(land),
        visited=frozenset(visited),
        probed=tuple(probed),
        backfill=backfill,
    )


def surroundings(kinds: NDArray[np.uint8], col: int, row: int) -> tuple[TileKind, ...]:
    """Neighborhood of a grid cell: itself, then neighbors clockwise from north.

    Cells outside the grid read as sea.
    """
    height, width = kinds.shape
    hood = [kind_from_value(kinds[row, col])]
    for dx, dy in NEIGHBOR_OFFSETS:
        c, r = col + dx, row + dy
        if 0 <= c < width and 0 <= r < height:
            hood.append(kind_from_value(kinds[r, c]))
        else:
            hood.append(TileKind.SEA)
    return tuple(hood)


def apply_rock_pass(kinds: NDArray[np.uint8]) -> int:
    """Turn isolated tiles into rocks, in place.

    Columns are walked west to east, rows south to north, and each
    replacement is visible to the cells visited after it.

    Returns:
        Number of tiles replaced.
    """
    height, width = kinds.shape
    replaced = 0
    for col in range(width):
        for row in range(height):
            if kinds[row, col] == _SEA:
                continue
            rock = rock_replacement(surroundings(kinds, col, row))
            if rock is not None:
                kinds[row, col] = kind_value(rock)
                replaced += 1
    return replaced


def resolve_sprites(
    kinds: NDArray[np.uint8],
    variants: NDArray[np.uint8],
) -> tuple[NDArray[np.uint32], NDArray[np.uint8]]:
    """Run the neighborhood rule table over every cell.

    Returns:
        Tuple of (sprite ids, collision class codes), both shaped like
        ``kinds``.
    """
    height, width = kinds.shape
    sprite_ids = np.zeros((height, width), dtype=np.uint32)
    collision = np.zeros((height, width), dtype=np.uint8)
    for row in range(height):
        for col in range(width):
            sprite_id, cls = resolve(surroundings(kinds, col, row), int(variants[row, col]))
            sprite_ids[row, col] = sprite_id
            collision[row, col] = collision_value(cls)
    return sprite_ids, collision


@dataclass(eq=False)
class Island:
    """A finished island.

    Grids have shape (height, width) and are indexed ``[y - min_y, x - min_x]``.
    Cells of the bounding box outside the island are open sea.
    """

    bbox: BoundingBox
    seed_tile: TilePos
    kinds: NDArray[np.uint8]
    variants: NDArray[np.uint8]
    sprite_ids: NDArray[np.uint32]
    collision: NDArray[np.uint8]
    rigid_mesh: TriMesh | None
    friction_mesh: TriMesh
    biome: str = ""
    generation_ms: float = 0.0
    # Handle of the spawned scene entity, owned by the renderer
    entity: Any = None

    @property
    def width(self) -> int:
        return self.bbox.width

    @property
    def height(self) -> int:
        return self.bbox.height

    @property
    def land_mask(self) -> NDArray[np.bool_]:
        """Cells belonging to the island, rocks included."""
        return self.kinds != _SEA

    @property
    def tile_count(self) -> int:
        return int(np.count_nonzero(self.land_mask))

    def _index(self, x: int, y: int) -> tuple[int, int]:
        if not self.bbox.contains(x, y):
            raise KeyError(f"Tile ({x}, {y}) is outside island {self.bbox}")
        return y - self.bbox.min_y, x - self.bbox.min_x

    def contains(self, x: int, y: int) -> bool:
        """Whether a tile belongs to this island."""
        if not self.bbox.contains(x, y):
            return False
        return bool(self.kinds[self._index(x, y)] != _SEA)

    def tile(self, x: int, y: int) -> Tile:
        """The generated tile at a world position inside the bounding box."""
        idx = self._index(x, y)
        return Tile(
            kind=kind_from_value(self.kinds[idx]),
            variant=int(self.variants[idx]),
            sprite_id=int(self.sprite_ids[idx]),
        )

    def collision_at(self, x: int, y: int) -> CollisionClass:
        return collision_from_value(self.collision[self._index(x, y)])

    def kind_counts(self) -> dict[TileKind, int]:
        """Number of island cells of each kind."""
        values, counts = np.unique(self.kinds[self.land_mask], return_counts=True)
        return {kind_from_value(v): int(c) for v, c in zip(values, counts)}

    def __repr__(self) -> str:
        return f"Island(bbox={self.bbox}, tiles={self.tile_count}, biome={self.biome!r})"


def build_island(trace: IslandTrace, context: GenerationContext) -> Island:
    """Classify a traced region and derive its sprites and collision meshes.

    Args:
        trace: Result of ``trace_island``.
        context: World generation inputs.

    Returns:
        The finished island.
    """
    start = time.perf_counter()
    bbox = trace.bbox
    shape = (bbox.height, bbox.width)
    kinds = np.full(shape, _SEA, dtype=np.uint8)
    variants = np.zeros(shape, dtype=np.uint8)

    for x, y in trace.land:
        tile = classify(context.height_field.height(x, y), context.params, context.hasher, x, y)
        idx = (y - bbox.min_y, x - bbox.min_x)
        kinds[idx] = kind_value(tile.kind)
        variants[idx] = tile.variant

    apply_rock_pass(kinds)
    sprite_ids, collision = resolve_sprites(kinds, variants)
    rigid, friction = build_collision_meshes(
        collision, bbox.min_x, bbox.min_y, context.tile_world_size
    )

    return Island(
        bbox=bbox,
        seed_tile=trace.seed,
        kinds=kinds,
        variants=variants,
        sprite_ids=sprite_ids,
        collision=collision,
        rigid_mesh=rigid,
        friction_mesh=friction,
        biome=context.biome,
        generation_ms=(time.perf_counter() - start) * 1000,
    )


def generate_island_at(
    seed: TilePos,
    context: GenerationContext,
    visited: set[TilePos] | None = None,
) -> tuple[IslandTrace, Island] | None:
    """Trace and build in one step, without a ribbon. Runs on pool workers."""
    trace = trace_island(seed, context, visited=visited)
    if trace is None:
        return None
    return trace, build_island(trace, context)
