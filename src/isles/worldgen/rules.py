"""Neighborhood rule table: sprite and collision class from 8 neighbors.

A neighborhood is a 9-tuple of TileKinds: the tile itself followed by
its neighbors clockwise from north (see ``isles.types.NEIGHBOR_DIRECTIONS``).
Rules are tried in order and the first match wins. Several patterns
match the same neighborhood under symmetry, so the order of ``RULES``
is part of the sprite sheet contract.

Pattern tokens, one per neighborhood slot:

    F  forest
    D  sand (rock or not)
    S  sea (rock or not)
    d  sand rock
    s  sea rock
    L  any land (forest or sand)
    *  anything
"""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Sequence

from ..terrain_types import CollisionClass, TileKind

# Sprite sheet offsets. Each entry spans 4 sheet cells (one per half
# variant); FOREST spans 8.
SEA = -1

FOREST_SEA_NW = 0
FOREST_SEA_NE = 4
FOREST_SEA_SE = 8
FOREST_SEA_SW = 12

FOREST_SEA_N = 16
FOREST_SEA_E = 20
FOREST_SEA_S = 24
FOREST_SEA_W = 28

FOREST_SEA_INNER_NW = 32
FOREST_SEA_INNER_NE = 36
FOREST_SEA_INNER_SE = 40
FOREST_SEA_INNER_SW = 44

FOREST_SEA_NESW = 48
FOREST_SEA_NWSE = 52

FOREST_SAND_NW = 56
FOREST_SAND_NE = 60
FOREST_SAND_SE = 64
FOREST_SAND_SW = 68

FOREST_SAND_N = 72
FOREST_SAND_E = 76
FOREST_SAND_S = 80
FOREST_SAND_W = 84

FOREST_SAND_INNER_NW = 88
FOREST_SAND_INNER_NE = 92
FOREST_SAND_INNER_SE = 96
FOREST_SAND_INNER_SW = 100

FOREST_SAND_NESW = 104
FOREST_SAND_NWSE = 108

FOREST = 112

SAND_ROCK = 120

SAND_SEA_NW = 124
SAND_SEA_NE = 128
SAND_SEA_SE = 132
SAND_SEA_SW = 136

SAND_SEA_N = 140
SAND_SEA_E = 144
SAND_SEA_S = 148
SAND_SEA_W = 152

SAND_SEA_INNER_NW = 156
SAND_SEA_INNER_NE = 160
SAND_SEA_INNER_SE = 164
SAND_SEA_INNER_SW = 168

SAND_SEA_NESW = 172
SAND_SEA_NWSE = 176

SAND = 180

SEA_ROCK = 184

# Sprite id of open sea: nothing is drawn over the animated water
NO_SPRITE = 0

_TOKENS: dict[str, frozenset[TileKind]] = {
    "F": frozenset({TileKind.FOREST}),
    "D": frozenset({TileKind.SAND, TileKind.SAND_ROCK}),
    "S": frozenset({TileKind.SEA, TileKind.SEA_ROCK}),
    "d": frozenset({TileKind.SAND_ROCK}),
    "s": frozenset({TileKind.SEA_ROCK}),
    "L": frozenset({TileKind.FOREST, TileKind.SAND, TileKind.SAND_ROCK}),
    "*": frozenset(TileKind),
}

Pattern = tuple[frozenset[TileKind], ...]


def compile_pattern(text: str) -> Pattern:
    """Compile a whitespace separated 9-token pattern."""
    tokens = text.split()
    if len(tokens) != 9:
        raise ValueError(f"Pattern needs 9 tokens, got {len(tokens)}: {text!r}")
    try:
        return tuple(_TOKENS[t] for t in tokens)
    except KeyError as e:
        raise ValueError(f"Unknown pattern token {e.args[0]!r} in {text!r}") from None


def matches(pattern: Pattern, neighborhood: Sequence[TileKind]) -> bool:
    """Whether a neighborhood satisfies a compiled pattern."""
    return all(kind in allowed for kind, allowed in zip(neighborhood, pattern))


class SpriteMode(Enum):
    """How a rule's base offset combines with the tile variant."""

    FIXED = "fixed"  # base
    SEA = "sea"  # SEA - half_variant, always yields NO_SPRITE
    FULL_VARIANT = "full_variant"  # base - half_variant + variant, 8 cells


@dataclass(frozen=True)
class Rule:
    """One row of the rule table."""

    name: str
    patterns: tuple[Pattern, ...]
    base: int
    collision: CollisionClass
    mode: SpriteMode = SpriteMode.FIXED

    def matches(self, neighborhood: Sequence[TileKind]) -> bool:
        return any(matches(p, neighborhood) for p in self.patterns)

    def sprite_id(self, variant: int) -> int:
        """Sprite sheet id for a tile of the given variant.

        The id is ``half_variant + 1 + offset``; id 0 means no sprite.
        """
        half_var = variant // 2
        if self.mode is SpriteMode.SEA:
            offset = SEA - half_var
        elif self.mode is SpriteMode.FULL_VARIANT:
            offset = self.base - half_var + variant
        else:
            offset = self.base
        return half_var + 1 + offset


def _rule(
    name: str,
    patterns: Sequence[str],
    base: int,
    collision: CollisionClass,
    mode: SpriteMode = SpriteMode.FIXED,
) -> Rule:
    return Rule(
        name=name,
        patterns=tuple(compile_pattern(p) for p in patterns),
        base=base,
        collision=collision,
        mode=mode,
    )


def _swap(patterns: Sequence[str], mapping: dict[str, str]) -> list[str]:
    return ["".join(mapping.get(c, c) for c in p) for p in patterns]


# Edge families share their geometry; only the two kinds on either side change.
# Written for a forest tile against sea; other families are token swaps.
_OUTER = {
    "NW": ["F S * F * F * S *", "F F S F * F * S S", "F S * F * F S F S"],
    "NE": ["F S * S * F * F *", "F S S F S F * F *", "F F S S * F * F S"],
    "SE": ["F F * S * S * F *", "F F * S S F S F *", "F F S F S S * F *"],
    "SW": ["F F * F * S * S *", "F F * F * S S F S", "F F * F S F S S *"],
}
_SIDES = {
    "N": ["F S * F * * * F *", "F F S F * * * F S"],
    "E": ["F F * S * F * * *", "F F S F S F * * *"],
    "S": ["F * * F * S * F *", "F * * F S F S F *"],
    "W": ["F F * * * F * S *", "F F * * * F S F S"],
}
_INNER = {
    "NW": ["F F * F S F * F *"],
    "NE": ["F F * F * F S F *"],
    "SE": ["F F * F * F * F S"],
    "SW": ["F F S F * F * F *"],
}
_DOUBLE = {
    "NESW": ["F F * F S F * F S"],
    "NWSE": ["F F S F * F S F *"],
}

_FAMILIES = [
    # (prefix, token swap, collision)
    ("FOREST_SEA", {}, CollisionClass.RIGID),
    ("FOREST_SAND", {"S": "D"}, CollisionClass.RIGID),
    ("SAND_SEA", {"F": "D"}, CollisionClass.FRICTION),
]

# Sand/sea inner corners only need the two adjacent sides to be sand
_SAND_SEA_INNER = {
    "NW": ["D * * D S D * * *"],
    "NE": ["D * * * * D S D *"],
    "SE": ["D D * * * * * D S"],
    "SW": ["D D S D * * * * *"],
}

SPRITE_OFFSETS: dict[str, int] = {
    "FOREST_SEA_NW": FOREST_SEA_NW,
    "FOREST_SEA_NE": FOREST_SEA_NE,
    "FOREST_SEA_SE": FOREST_SEA_SE,
    "FOREST_SEA_SW": FOREST_SEA_SW,
    "FOREST_SEA_N": FOREST_SEA_N,
    "FOREST_SEA_E": FOREST_SEA_E,
    "FOREST_SEA_S": FOREST_SEA_S,
    "FOREST_SEA_W": FOREST_SEA_W,
    "FOREST_SEA_INNER_NW": FOREST_SEA_INNER_NW,
    "FOREST_SEA_INNER_NE": FOREST_SEA_INNER_NE,
    "FOREST_SEA_INNER_SE": FOREST_SEA_INNER_SE,
    "FOREST_SEA_INNER_SW": FOREST_SEA_INNER_SW,
    "FOREST_SEA_NESW": FOREST_SEA_NESW,
    "FOREST_SEA_NWSE": FOREST_SEA_NWSE,
    "FOREST_SAND_NW": FOREST_SAND_NW,
    "FOREST_SAND_NE": FOREST_SAND_NE,
    "FOREST_SAND_SE": FOREST_SAND_SE,
    "FOREST_SAND_SW": FOREST_SAND_SW,
    "FOREST_SAND_N": FOREST_SAND_N,
    "FOREST_SAND_E": FOREST_SAND_E,
    "FOREST_SAND_S": FOREST_SAND_S,
    "FOREST_SAND_W": FOREST_SAND_W,
    "FOREST_SAND_INNER_NW": FOREST_SAND_INNER_NW,
    "FOREST_SAND_INNER_NE": FOREST_SAND_INNER_NE,
    "FOREST_SAND_INNER_SE": FOREST_SAND_INNER_SE,
    "FOREST_SAND_INNER_SW": FOREST_SAND_INNER_SW,
    "FOREST_SAND_NESW": FOREST_SAND_NESW,
    "FOREST_SAND_NWSE": FOREST_SAND_NWSE,
    "FOREST": FOREST,
    "SAND_ROCK": SAND_ROCK,
    "SAND_SEA_NW": SAND_SEA_NW,
    "SAND_SEA_NE": SAND_SEA_NE,
    "SAND_SEA_SE": SAND_SEA_SE,
    "SAND_SEA_SW": SAND_SEA_SW,
    "SAND_SEA_N": SAND_SEA_N,
    "SAND_SEA_E": SAND_SEA_E,
    "SAND_SEA_S": SAND_SEA_S,
    "SAND_SEA_W": SAND_SEA_W,
    "SAND_SEA_INNER_NW": SAND_SEA_INNER_NW,
    "SAND_SEA_INNER_NE": SAND_SEA_INNER_NE,
    "SAND_SEA_INNER_SE": SAND_SEA_INNER_SE,
    "SAND_SEA_INNER_SW": SAND_SEA_INNER_SW,
    "SAND_SEA_NESW": SAND_SEA_NESW,
    "SAND_SEA_NWSE": SAND_SEA_NWSE,
    "SAND": SAND,
    "SEA_ROCK": SEA_ROCK,
}


def _family_rules(
    group: dict[str, list[str]],
    infix: str,
    overrides: dict[str, dict[str, list[str]]] | None = None,
) -> list[Rule]:
    """Expand a geometry group into one rule per family and direction.

    ``overrides`` maps a family prefix to patterns used verbatim instead of
    the token-swapped group.
    """
    overrides = overrides or {}
    rules = []
    for prefix, mapping, collision in _FAMILIES:
        for direction, patterns in group.items():
            name = f"{prefix}_{infix}{direction}"
            if prefix in overrides:
                source = overrides[prefix][direction]
            else:
                source = _swap(patterns, mapping)
            rules.append(_rule(name, source, SPRITE_OFFSETS[name], collision))
    return rules


_TRIPLE_SAND = [
    "* D D D D D * * *",
    "* * * D D D D D *",
    "* D * * * D D D D",
    "* D D D * * * D D",
]
_TRIPLE_SEA = _swap(_TRIPLE_SAND, {"D": "S"})

RULES: tuple[Rule, ...] = (
    # rocks
    _rule("SEA_ROCK", ["s * * * * * * * *"], SEA_ROCK, CollisionClass.RIGID),
    _rule("SAND_ROCK", ["d * * * * * * * *"], SAND_ROCK, CollisionClass.RIGID),
    # double corners
    *_family_rules(_DOUBLE, ""),
    # outer corners, open sea first
    _rule("SEA", ["S * * * * * * * *"], SEA, CollisionClass.NONE, SpriteMode.SEA),
    *_family_rules(_OUTER, ""),
    # sides
    *_family_rules(_SIDES, ""),
    # inner corners
    *_family_rules(_INNER, "INNER_", overrides={"SAND_SEA": _SAND_SEA_INNER}),
    # triple majority
    _rule("SAND_MAJORITY", _TRIPLE_SAND, SAND, CollisionClass.RIGID),
    _rule("SEA_MAJORITY", _TRIPLE_SEA, SEA, CollisionClass.NONE, SpriteMode.SEA),
    # inside
    _rule(
        "FOREST",
        ["F F * F * F * F *"],
        FOREST,
        CollisionClass.RIGID,
        SpriteMode.FULL_VARIANT,
    ),
    _rule("SAND", ["D L * L * L * L *"], SAND, CollisionClass.RIGID),
)

FALLBACK = _rule("FALLBACK", ["* * * * * * * * *"], SEA, CollisionClass.NONE, SpriteMode.SEA)


@lru_cache(maxsize=1 << 16)
def match_rule(neighborhood: tuple[TileKind, ...]) -> Rule:
    """First rule matching a neighborhood, or the fallback."""
    for rule in RULES:
        if rule.matches(neighborhood):
            return rule
    return FALLBACK


def resolve(neighborhood: Sequence[TileKind], variant: int = 0) -> tuple[int, CollisionClass]:
    """Resolve a neighborhood to a sprite id and collision class.

    Args:
        neighborhood: The tile kind followed by its 8 neighbors, clockwise
            from north.
        variant: Tile variant in [0, 8).

    Returns:
        Tuple of (sprite_id, collision class). Sprite id 0 is open sea.
    """
    if len(neighborhood) != 9:
        raise ValueError(f"Neighborhood needs 9 kinds, got {len(neighborhood)}")
    rule = match_rule(tuple(neighborhood))
    return rule.sprite_id(variant), rule.collision


# Cleanup pass: tiles mostly surrounded by another kind become rocks so no
# sliver of a sprite is drawn. Applied before sprite resolution.
ROCK_RULES: tuple[tuple[Pattern, TileKind], ...] = (
    *((compile_pattern("F" + p[1:]), TileKind.SAND_ROCK) for p in _TRIPLE_SAND),
    *((compile_pattern("D" + p[1:]), TileKind.SEA_ROCK) for p in _TRIPLE_SEA),
    *((compile_pattern("F" + p[1:]), TileKind.SEA_ROCK) for p in _TRIPLE_SEA),
)


def rock_replacement(neighborhood: Sequence[TileKind]) -> TileKind | None:
    """Rock kind a tile should become, or None to keep it."""
    for pattern, replacement in ROCK_RULES:
        if matches(pattern, neighborhood):
            return replacement
    return None
