"""Weighted, seed-keyed biome selection."""

import logging
from typing import Sequence

from ..config import Biome
from ..exceptions import BiomeSelectionError
from .hashing import SeededHasher

logger = logging.getLogger(__name__)

# Mixed into the world hasher before picking so the pick is not the noise seed
BIOME_SALT = 0xB107E


def select_biome(seed_hash: int, biomes: Sequence[Biome]) -> Biome:
    """Pick a biome from a weighted list.

    Walks the list accumulating weights and returns the first biome
    whose cumulative weight reaches ``seed_hash % total``. The ``>=``
    comparison favours the first biome by one unit of weight; it is kept
    so existing seeds keep their biome.

    Args:
        seed_hash: Unsigned hash keyed by the world seed.
        biomes: Candidate biomes, in priority order.

    Returns:
        The selected biome.

    Raises:
        BiomeSelectionError: If the list is empty or all weights are zero.
    """
    if not biomes:
        raise BiomeSelectionError("No biomes configured")

    total = sum(b.weight for b in biomes)
    if total <= 0:
        raise BiomeSelectionError("Total biome weight must be positive")

    pick = seed_hash % total
    cumulative = 0
    for biome in biomes:
        cumulative += biome.weight
        if cumulative >= pick:
            return biome

    # Unreachable for a well-formed weight list
    logger.warning(f"Biome selection fell through (pick={pick}, total={total})")
    return biomes[0]


def select_world_biome(hasher: SeededHasher, biomes: Sequence[Biome]) -> Biome:
    """Select the biome for a world from its seeded hasher."""
    return select_biome(hasher.child(BIOME_SALT).digest(), biomes)
