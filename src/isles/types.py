"""Core coordinate types for island generation."""

from enum import IntEnum

from pydantic import BaseModel

TilePos = tuple[int, int]


class Direction(IntEnum):
    """8-direction compass, clockwise from north."""

    NORTH = 1
    NORTHEAST = 2
    EAST = 3
    SOUTHEAST = 4
    SOUTH = 5
    SOUTHWEST = 6
    WEST = 7
    NORTHWEST = 8


# Coordinate system: +X is East, +Y is North
DIRECTION_DELTAS: dict[Direction, tuple[int, int]] = {
    Direction.NORTH: (0, 1),
    Direction.NORTHEAST: (1, 1),
    Direction.EAST: (1, 0),
    Direction.SOUTHEAST: (1, -1),
    Direction.SOUTH: (0, -1),
    Direction.SOUTHWEST: (-1, -1),
    Direction.WEST: (-1, 0),
    Direction.NORTHWEST: (-1, 1),
}

# Order of the 8 neighbors in a neighborhood tuple (index 0 is the tile itself).
# The rock cleanup pass and the sprite rule table both rely on this order.
NEIGHBOR_DIRECTIONS: tuple[Direction, ...] = tuple(Direction)

NEIGHBOR_OFFSETS: tuple[tuple[int, int], ...] = tuple(
    DIRECTION_DELTAS[d] for d in NEIGHBOR_DIRECTIONS
)


def neighbors(x: int, y: int) -> list[TilePos]:
    """Return the 8 neighbors of a tile in neighborhood order."""
    return [(x + dx, y + dy) for dx, dy in NEIGHBOR_OFFSETS]


class BoundingBox(BaseModel, frozen=True):
    """Inclusive tile-space bounding box. Identity of an island."""

    min_x: int
    max_x: int
    min_y: int
    max_y: int

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    def contains(self, x: int, y: int) -> bool:
        """Whether the tile lies inside the box."""
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def distance_to(self, x: int, y: int) -> int:
        """Chebyshev distance from a tile to the box (0 when inside)."""
        dx = max(self.min_x - x, 0, x - self.max_x)
        dy = max(self.min_y - y, 0, y - self.max_y)
        return max(dx, dy)

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.min_x, self.max_x, self.min_y, self.max_y)

    def __hash__(self) -> int:
        return hash(self.as_tuple())

    def __str__(self) -> str:
        return f"[{self.min_x}..{self.max_x}]x[{self.min_y}..{self.max_y}]"
