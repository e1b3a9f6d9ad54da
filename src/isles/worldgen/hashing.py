"""Deterministic seeded hashing.

Python's built-in ``hash()`` is salted per process, so every value that
must be reproducible across runs (noise seed, biome pick, tile variants)
goes through BLAKE2b instead.
"""

import hashlib
import struct

_U64_MASK = 0xFFFF_FFFF_FFFF_FFFF


def _encode(part: int | str | bytes) -> bytes:
    if isinstance(part, bytes):
        return b"b" + struct.pack("<I", len(part)) + part
    if isinstance(part, str):
        data = part.encode("utf-8")
        return b"s" + struct.pack("<I", len(data)) + data
    if isinstance(part, bool):
        raise TypeError("bool is not a hashable part")
    if -(2**31) <= part < 2**31:
        return b"i" + struct.pack("<i", part)
    return b"q" + struct.pack("<Q", part & _U64_MASK)


class SeededHasher:
    """Immutable hasher state.

    ``child`` mixes more parts into a copy, leaving the parent untouched,
    so one world hasher can be shared by every tile and worker.
    """

    __slots__ = ("_data",)

    def __init__(self, seed: int | str | bytes = b"", *, _data: bytes | None = None):
        self._data = _data if _data is not None else _encode(seed)

    def child(self, *parts: int | str | bytes) -> "SeededHasher":
        """Return a new hasher with extra parts appended."""
        data = self._data + b"".join(_encode(p) for p in parts)
        return SeededHasher(_data=data)

    def digest(self) -> int:
        """Unsigned 64-bit digest of everything written so far."""
        h = hashlib.blake2b(self._data, digest_size=8).digest()
        return struct.unpack("<Q", h)[0]

    def seed32(self) -> int:
        """Low 32 bits of the digest, for seeding the noise function."""
        return self.digest() & 0xFFFF_FFFF

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SeededHasher) and self._data == other._data

    def __hash__(self) -> int:
        return hash(self._data)

    def __repr__(self) -> str:
        return f"SeededHasher(digest={self.digest():#018x})"


WORLD_GEN_DOMAIN = "sea_island_gen"


def world_hasher(seed: int | str) -> SeededHasher:
    """Hasher for the island world of a given world seed."""
    return SeededHasher(seed).child(WORLD_GEN_DOMAIN)
