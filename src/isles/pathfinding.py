"""Mob pathfinding over an island's walkability grid.

A pathfinder is one of three plain dataclasses; ``find_path`` and
``step`` dispatch on which one they are given. Positions are world
units; a tile covers ``tile_world_size`` units on each side.

The game calls ``find_path`` whenever the mob should re-plan, then
``step`` every frame to get the mob's next position.
"""

import heapq
import math
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from .exceptions import WorldGenError
from .terrain_types import TileKind
from .types import TilePos
from .worldgen.classification import kind_value
from .worldgen.islands import Island

Vec2 = tuple[float, float]

# Samples taken along a line of sight per tile of distance
SAMPLES_PER_TILE = 10

# Cardinal moves only (Manhattan neighborhood)
_MANHATTAN_OFFSETS = ((0, 1), (1, 0), (0, -1), (-1, 0))


class NoPathError(WorldGenError):
    """Raised when no path to the target can be found."""

    pass


class PathFinishedError(WorldGenError):
    """Raised by ``step`` once the mob has reached the end of its path."""

    pass


class PathfindingType(str, Enum):
    """Pathfinding strategies a mob can be configured with."""

    NONE = "none"
    LINE_OF_SIGHT = "line_of_sight"
    ASTAR = "astar"


@dataclass(frozen=True)
class CostGrid:
    """Walking cost per tile, 0 meaning impassable.

    ``costs`` is indexed ``[y - origin_y, x - origin_x]``.
    """

    costs: NDArray[np.int32]
    origin: TilePos = (0, 0)
    tile_world_size: float = 32.0

    def in_bounds(self, tile: TilePos) -> bool:
        height, width = self.costs.shape
        col, row = tile[0] - self.origin[0], tile[1] - self.origin[1]
        return 0 <= col < width and 0 <= row < height

    def cost(self, tile: TilePos, outside: int = 1) -> int:
        """Cost of a tile, or ``outside`` when it is off the grid."""
        if not self.in_bounds(tile):
            return outside
        return int(self.costs[tile[1] - self.origin[1], tile[0] - self.origin[0]])

    def tile_of(self, pos: Vec2) -> TilePos:
        """Tile containing a world position."""
        return (
            math.floor(pos[0] / self.tile_world_size),
            math.floor(pos[1] / self.tile_world_size),
        )

    def center_of(self, tile: TilePos) -> Vec2:
        """World position of a tile's center."""
        return (
            (tile[0] + 0.5) * self.tile_world_size,
            (tile[1] + 0.5) * self.tile_world_size,
        )


def cost_grid_from_island(island: Island, tile_world_size: float = 32.0) -> CostGrid:
    """Walkability of an island: sand and forest cost 1, rocks and sea are blocked."""
    walkable_kinds = [kind_value(k) for k in TileKind if k.is_land and not k.is_rock]
    walkable = np.isin(island.kinds, walkable_kinds)
    return CostGrid(
        costs=walkable.astype(np.int32),
        origin=(island.bbox.min_x, island.bbox.min_y),
        tile_world_size=tile_world_size,
    )


def _lerp(a: Vec2, b: Vec2, t: float) -> Vec2:
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


def _distance(a: Vec2, b: Vec2) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


@dataclass
class NoPathfinding:
    """The mob never moves."""


@dataclass
class LineOfSight:
    """Walk straight at the target while it is visible.

    The target is visible when it is within ``view_distance`` world units
    and every sample along the segment lands on a passable tile. Once a
    path has started, ``step`` keeps heading for where the target was
    last seen even if later ``find_path`` calls fail.
    """

    grid: CostGrid
    view_distance: float
    origin: Vec2 = (0.0, 0.0)
    destination: Vec2 = (0.0, 0.0)
    path_len: float = 0.0
    transition: float = 0.0

    def is_clear(self, start: Vec2, end: Vec2) -> bool:
        path_len = _distance(start, end)
        samples = int(path_len / self.grid.tile_world_size * SAMPLES_PER_TILE)
        for i in range(samples + 1):
            t = i / samples if samples else 0.0
            if self.grid.cost(self.grid.tile_of(_lerp(start, end, t))) <= 0:
                return False
        return True


@dataclass
class GridAStar:
    """A* over the cost grid with cardinal moves, then walk the waypoints."""

    grid: CostGrid
    max_expansions: int = 100_000
    waypoints: list[Vec2] = field(default_factory=list)
    position: Vec2 = (0.0, 0.0)
    next_index: int = 0


Pathfinder = NoPathfinding | LineOfSight | GridAStar


def astar(grid: CostGrid, start: TilePos, goal: TilePos, max_expansions: int = 100_000) -> list[TilePos]:
    """Cheapest cardinal-move tile path from start to goal, both included.

    Tiles off the grid are impassable.

    Raises:
        NoPathError: If the goal cannot be reached.
    """
    if grid.cost(start, outside=0) <= 0 or grid.cost(goal, outside=0) <= 0:
        raise NoPathError(f"No path from {start} to {goal}: endpoint blocked")

    def heuristic(tile: TilePos) -> int:
        return abs(tile[0] - goal[0]) + abs(tile[1] - goal[1])

    open_heap = [(heuristic(start), 0, start)]
    came_from: dict[TilePos, TilePos] = {}
    best: dict[TilePos, int] = {start: 0}
    expansions = 0

    while open_heap:
        _, g, tile = heapq.heappop(open_heap)
        if tile == goal:
            path = [tile]
            while tile in came_from:
                tile = came_from[tile]
                path.append(tile)
            path.reverse()
            return path
        if g > best.get(tile, g):
            continue

        expansions += 1
        if expansions > max_expansions:
            break

        for dx, dy in _MANHATTAN_OFFSETS:
            nxt = (tile[0] + dx, tile[1] + dy)
            cost = grid.cost(nxt, outside=0)
            if cost <= 0:
                continue
            ng = g + cost
            if ng < best.get(nxt, ng + 1):
                best[nxt] = ng
                came_from[nxt] = tile
                heapq.heappush(open_heap, (ng + heuristic(nxt), ng, nxt))

    raise NoPathError(f"No path from {start} to {goal}")


def find_path(pathfinder: Pathfinder, mob_pos: Vec2, target_pos: Vec2) -> None:
    """Plan a path from the mob to the target.

    Raises:
        NoPathError: If the pathfinder cannot reach the target. A
            LineOfSight pathfinder keeps its previous path.
    """
    if isinstance(pathfinder, LineOfSight):
        path_len = _distance(mob_pos, target_pos)
        if path_len > pathfinder.view_distance:
            raise NoPathError("Target out of sight range")
        if not pathfinder.is_clear(mob_pos, target_pos):
            raise NoPathError("Line of sight blocked")
        pathfinder.origin = mob_pos
        pathfinder.destination = target_pos
        pathfinder.path_len = path_len
        pathfinder.transition = 0.0
    elif isinstance(pathfinder, GridAStar):
        grid = pathfinder.grid
        tiles = astar(
            grid, grid.tile_of(mob_pos), grid.tile_of(target_pos), pathfinder.max_expansions
        )
        # Start at the mob, pass through tile centers, end on the target
        pathfinder.waypoints = [grid.center_of(t) for t in tiles[1:-1]] + [target_pos]
        pathfinder.position = mob_pos
        pathfinder.next_index = 0
    else:
        raise NoPathError("Mob has no pathfinding")


def step(pathfinder: Pathfinder, speed: float, delta_time: float) -> Vec2:
    """Advance the mob along its path.

    Args:
        pathfinder: The mob's pathfinder.
        speed: Tiles per second.
        delta_time: Seconds since the previous step.

    Returns:
        The mob's new world position.

    Raises:
        PathFinishedError: Once the end of the path has been passed.
    """
    if isinstance(pathfinder, LineOfSight):
        if pathfinder.path_len <= 0:
            raise PathFinishedError()
        travelled = speed * delta_time * pathfinder.grid.tile_world_size
        pathfinder.transition += travelled / pathfinder.path_len
        if pathfinder.transition > 1.0:
            raise PathFinishedError()
        return _lerp(pathfinder.origin, pathfinder.destination, pathfinder.transition)

    if isinstance(pathfinder, GridAStar):
        if pathfinder.next_index >= len(pathfinder.waypoints):
            raise PathFinishedError()
        budget = speed * delta_time * pathfinder.grid.tile_world_size
        pos = pathfinder.position
        while budget > 0 and pathfinder.next_index < len(pathfinder.waypoints):
            target = pathfinder.waypoints[pathfinder.next_index]
            dist = _distance(pos, target)
            if dist <= budget:
                pos = target
                budget -= dist
                pathfinder.next_index += 1
            else:
                pos = _lerp(pos, target, budget / dist)
                budget = 0
        pathfinder.position = pos
        return pos

    raise PathFinishedError()


def make_pathfinder(
    kind: PathfindingType | str,
    grid: CostGrid,
    view_distance: float = 0.0,
) -> Pathfinder:
    """Build the pathfinder for a configured strategy.

    Args:
        kind: Strategy name.
        grid: Walkability grid of the mob's island.
        view_distance: Sight range in world units, for line of sight.
    """
    kind = PathfindingType(kind)
    if kind is PathfindingType.LINE_OF_SIGHT:
        return LineOfSight(grid=grid, view_distance=view_distance)
    if kind is PathfindingType.ASTAR:
        return GridAStar(grid=grid)
    return NoPathfinding()
