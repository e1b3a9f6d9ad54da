"""Collision geometry: triangle soups built from per-tile collision classes."""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from ..terrain_types import CollisionClass
from .classification import collision_value

# Corner order of a tile quad and its two triangles
_CORNERS = np.array([(0, 0), (1, 0), (1, 1), (0, 1)], dtype=np.float32)
_QUAD_TRIANGLES = np.array([(0, 1, 2), (0, 2, 3)], dtype=np.uint32)


@dataclass(frozen=True)
class TriMesh:
    """Triangle soup in world units, for the physics engine."""

    points: NDArray[np.float32]  # Shape: (N, 2)
    indices: NDArray[np.uint32]  # Shape: (M, 3)

    @property
    def triangle_count(self) -> int:
        return int(self.indices.shape[0])

    @property
    def point_count(self) -> int:
        return int(self.points.shape[0])

    @property
    def is_empty(self) -> bool:
        return self.triangle_count == 0

    def contains_point(self, x: float, y: float) -> bool:
        """Whether a world-space point lies in any triangle of the soup."""
        if self.is_empty:
            return False
        tri = self.points[self.indices]  # (M, 3, 2)
        a, b, c = tri[:, 0], tri[:, 1], tri[:, 2]
        p = np.array([x, y], dtype=np.float32)

        def cross(o: NDArray, u: NDArray, v: NDArray) -> NDArray:
            return (u[:, 0] - o[:, 0]) * (v[1] - o[:, 1]) - (u[:, 1] - o[:, 1]) * (v[0] - o[:, 0])

        d1 = cross(a, b, p)
        d2 = cross(b, c, p)
        d3 = cross(c, a, p)
        has_neg = (d1 < 0) | (d2 < 0) | (d3 < 0)
        has_pos = (d1 > 0) | (d2 > 0) | (d3 > 0)
        return bool(np.any(~(has_neg & has_pos)))


def tile_quads(
    tile_xs: NDArray[np.int64],
    tile_ys: NDArray[np.int64],
    tile_world_size: float,
) -> TriMesh:
    """Build a soup of one quad (4 points, 2 triangles) per tile.

    Args:
        tile_xs: World tile x coordinates.
        tile_ys: World tile y coordinates.
        tile_world_size: World units per tile.

    Returns:
        TriMesh covering the given tiles.
    """
    count = len(tile_xs)
    origins = np.stack([tile_xs, tile_ys], axis=1).astype(np.float32)  # (count, 2)
    points = (origins[:, None, :] + _CORNERS[None, :, :]) * np.float32(tile_world_size)
    points = points.reshape(count * 4, 2)

    base = (np.arange(count, dtype=np.uint32) * 4)[:, None, None]
    indices = (base + _QUAD_TRIANGLES[None, :, :]).reshape(count * 2, 3)

    return TriMesh(points=points, indices=indices)


def build_collision_meshes(
    collision: NDArray[np.uint8],
    min_x: int,
    min_y: int,
    tile_world_size: float,
) -> tuple[TriMesh | None, TriMesh]:
    """Convert an island's collision grid to rigid and friction soups.

    Args:
        collision: Collision class codes, shape (height, width), indexed
            [y - min_y, x - min_x].
        min_x: World x of the grid's first column.
        min_y: World y of the grid's first row.
        tile_world_size: World units per tile.

    Returns:
        Tuple of (rigid mesh or None when there is nothing rigid,
        friction mesh, possibly empty).
    """
    meshes = {}
    for cls in (CollisionClass.RIGID, CollisionClass.FRICTION):
        rows, cols = np.nonzero(collision == collision_value(cls))
        meshes[cls] = tile_quads(
            cols.astype(np.int64) + min_x,
            rows.astype(np.int64) + min_y,
            tile_world_size,
        )

    rigid = meshes[CollisionClass.RIGID]
    return (None if rigid.is_empty else rigid), meshes[CollisionClass.FRICTION]
