"""Post-generation island validation."""

import logging

import numpy as np
from numpy.typing import NDArray
from scipy import ndimage

from ..terrain_types import CollisionClass
from .classification import collision_value
from .collision import TriMesh
from .islands import Island

logger = logging.getLogger(__name__)


class ValidationResult:
    """Result of island validation."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.passed = True

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.errors.append(message)
        self.passed = False

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


def validate_island(island: Island) -> ValidationResult:
    """Check a generated island's internal consistency.

    Args:
        island: Island to check.

    Returns:
        ValidationResult with any errors/warnings.
    """
    result = ValidationResult()
    land_mask = island.land_mask

    # Check 1: Land is one 8-connected component
    _check_single_component(land_mask, result)

    # Check 2: Bounding box is tight
    _check_tight_bbox(land_mask, result)

    # Check 3: Sprites only on island cells
    _check_sprites(island, land_mask, result)

    # Check 4: Mesh sizes match collision classes
    _check_meshes(island, result)

    if result.passed:
        logger.debug(f"Island {island.bbox} validation passed")
    else:
        logger.warning(
            f"Island {island.bbox} validation failed with {len(result.errors)} errors"
        )
        for error in result.errors:
            logger.error(f"  - {error}")

    for warning in result.warnings:
        logger.warning(f"  - {warning}")

    return result


def _check_single_component(land_mask: NDArray[np.bool_], result: ValidationResult) -> None:
    """Check that the island is a single land mass."""
    structure = ndimage.generate_binary_structure(2, 2)  # 8-connected
    _, num_features = ndimage.label(land_mask, structure=structure)

    if num_features == 0:
        result.add_error("No land found")
    elif num_features > 1:
        result.add_error(f"Island has {num_features} disconnected land components")


def _check_tight_bbox(land_mask: NDArray[np.bool_], result: ValidationResult) -> None:
    """Check that land touches all four edges of the grid."""
    if not land_mask.any():
        return
    edges = {
        "south": land_mask[0, :],
        "north": land_mask[-1, :],
        "west": land_mask[:, 0],
        "east": land_mask[:, -1],
    }
    for name, edge in edges.items():
        if not edge.any():
            result.add_error(f"Bounding box has an empty {name} edge")


def _check_sprites(island: Island, land_mask: NDArray[np.bool_], result: ValidationResult) -> None:
    """Check sprite ids: none on open sea, and count land drawn as sea."""
    sea_sprites = int(np.count_nonzero(island.sprite_ids[~land_mask]))
    if sea_sprites > 0:
        result.add_error(f"{sea_sprites} open sea cells have a sprite")

    bare_land = int(np.count_nonzero(island.sprite_ids[land_mask] == 0))
    if bare_land > 0:
        result.add_warning(f"{bare_land} island cells resolved to open sea")


def _check_mesh(
    mesh: TriMesh | None,
    tiles: int,
    name: str,
    result: ValidationResult,
) -> None:
    points = 0 if mesh is None else mesh.point_count
    triangles = 0 if mesh is None else mesh.triangle_count
    if points != 4 * tiles or triangles != 2 * tiles:
        result.add_error(
            f"{name} mesh has {points} points / {triangles} triangles "
            f"for {tiles} tiles"
        )


def _check_meshes(island: Island, result: ValidationResult) -> None:
    """Check each collision tile contributed one quad to its mesh."""
    rigid = int(np.count_nonzero(island.collision == collision_value(CollisionClass.RIGID)))
    friction = int(
        np.count_nonzero(island.collision == collision_value(CollisionClass.FRICTION))
    )

    if rigid == 0 and island.rigid_mesh is not None:
        result.add_error("Rigid mesh present without rigid tiles")
    _check_mesh(island.rigid_mesh, rigid, "Rigid", result)
    _check_mesh(island.friction_mesh, friction, "Friction", result)
