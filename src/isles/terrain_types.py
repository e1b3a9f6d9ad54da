"""Tile kinds and collision classes with their properties."""

from enum import Enum


class TileKind(str, Enum):
    """Generated tile kinds.

    Rock variants are sand or sea tiles reclassified as impassable
    outcrops by the island cleanup pass.
    """

    SEA = "sea"
    SEA_ROCK = "sea_rock"
    SAND = "sand"
    SAND_ROCK = "sand_rock"
    FOREST = "forest"

    @property
    def is_sea(self) -> bool:
        """Sea tile, rock or not."""
        return self in _SEA_KINDS

    @property
    def is_rock(self) -> bool:
        """Whether the cleanup pass turned this tile into a rock."""
        return self in _ROCK_KINDS

    @property
    def is_land(self) -> bool:
        return not self.is_sea


class CollisionClass(str, Enum):
    """How the physics collaborator treats a tile."""

    NONE = "none"
    FRICTION = "friction"
    RIGID = "rigid"


_SEA_KINDS = frozenset({TileKind.SEA, TileKind.SEA_ROCK})
_ROCK_KINDS = frozenset({TileKind.SEA_ROCK, TileKind.SAND_ROCK})

# Kinds the noise classifier can produce directly
BASE_KINDS: tuple[TileKind, ...] = (TileKind.SEA, TileKind.SAND, TileKind.FOREST)
