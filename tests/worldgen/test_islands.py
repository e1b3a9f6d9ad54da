"""Tests for island extraction."""

import numpy as np
import pytest

from isles.exceptions import IslandTooLargeError
from isles.terrain_types import CollisionClass, TileKind
from isles.types import BoundingBox
from isles.worldgen import rules
from isles.worldgen.classification import kind_value, tile_variant
from isles.worldgen.islands import (
    apply_rock_pass,
    build_island,
    generate_island_at,
    surroundings,
    trace_island,
)
from isles.worldgen.ribbon import Ribbon

WEST_BBOX = BoundingBox(min_x=2, max_x=6, min_y=1, max_y=5)


class TestTraceIsland:
    """Tests for the flood fill."""

    def test_sea_seed_returns_none(self, make_context, two_islands_map) -> None:
        assert trace_island((0, 0), make_context(two_islands_map)) is None

    def test_finds_whole_island(self, make_context, two_islands_map) -> None:
        trace = trace_island((4, 3), make_context(two_islands_map))
        assert trace.bbox == WEST_BBOX
        assert len(trace.land) == 25
        assert (14, 3) not in trace.land

    def test_sea_border_visited_not_expanded(self, make_context, two_islands_map) -> None:
        """The fill looks at the sea ring around the island but stops there."""
        trace = trace_island((4, 3), make_context(two_islands_map))
        assert len(trace.visited) == 7 * 7
        assert (1, 0) in trace.visited
        assert (1, 0) not in trace.land

    def test_diagonal_connectivity(self, make_context) -> None:
        """Tiles touching only at a corner are one island."""
        rows = [
            "s..",
            ".s.",
            "..s",
        ]
        trace = trace_island((0, 2), make_context(rows))
        assert len(trace.land) == 3
        assert trace.bbox == BoundingBox(min_x=0, max_x=2, min_y=0, max_y=2)

    def test_seed_independent(self, make_context, two_islands_map) -> None:
        """Any seed in the island finds the same region."""
        context = make_context(two_islands_map)
        a = trace_island((2, 1), context)
        b = trace_island((5, 4), context)
        assert a.bbox == b.bbox
        assert a.land == b.land

    def test_probed_starts_at_seed(self, make_context, two_islands_map) -> None:
        trace = trace_island((4, 3), make_context(two_islands_map))
        assert trace.probed[0] == (4, 3)
        assert set(trace.probed) == set(trace.visited)

    def test_size_limit(self, make_context, two_islands_map) -> None:
        context = make_context(two_islands_map, max_tiles=5)
        with pytest.raises(IslandTooLargeError):
            trace_island((4, 3), context)


class TestTraceWithRibbon:
    """Tests for ribbon growth during the flood fill."""

    def test_ribbon_covers_every_visited_cell(self, make_context, two_islands_map) -> None:
        context = make_context(two_islands_map)
        ribbon = Ribbon(context.is_land, view_distance=1)
        ribbon.note_player_position((4, 3))
        trace = trace_island((4, 3), context, ribbon)
        for pos in trace.visited:
            assert pos in ribbon

    def test_gap_is_backfilled(self, make_context, two_islands_map) -> None:
        """A column remembered far to the north is grown down through the island."""
        context = make_context(two_islands_map)
        ribbon = Ribbon(context.is_land, view_distance=1)
        ribbon.cover(4, 10)
        trace = trace_island((3, 3), context, ribbon)
        assert (4, 5) in trace.backfill
        assert all(context.is_land(*pos) for pos in trace.backfill)
        assert (4, 7) in ribbon
        assert ribbon.interval(4).lo == 0

    def test_sinks_kept_when_fill_fails(self, make_context, two_islands_map) -> None:
        """Back-filled land and visited cells reach the caller even if the fill raises."""
        context = make_context(two_islands_map, max_tiles=5)
        ribbon = Ribbon(context.is_land, view_distance=1)
        ribbon.cover(4, 10)
        backfill: list = []
        visited: set = set()
        with pytest.raises(IslandTooLargeError):
            trace_island((3, 3), context, ribbon, backfill=backfill, visited=visited)
        assert (4, 5) in backfill
        assert {(3, 3), (4, 4), (2, 2)} <= visited

    def test_replay_matches_mid_fill_growth(self, make_context, two_islands_map) -> None:
        """Covering probed cells afterwards gives the same ribbon as covering mid-fill."""
        context = make_context(two_islands_map)

        live = Ribbon(context.is_land, view_distance=1)
        live.cover(4, 10)
        live_trace = trace_island((3, 3), context, live)

        replayed = Ribbon(context.is_land, view_distance=1)
        replayed.cover(4, 10)
        trace = trace_island((3, 3), context)
        backfill = []
        for x, y in trace.probed:
            backfill.extend(replayed.cover(x, y))

        assert backfill == live_trace.backfill
        live_columns = [(x, i.lo, i.hi) for x, i in live.columns()]
        replayed_columns = [(x, i.lo, i.hi) for x, i in replayed.columns()]
        assert live_columns == replayed_columns


class TestSurroundings:
    """Tests for neighborhood lookup."""

    def test_order_and_out_of_bounds(self) -> None:
        kinds = np.zeros((2, 2), dtype=np.uint8)
        kinds[1, 0] = kind_value(TileKind.FOREST)  # north of [0, 0]
        kinds[0, 1] = kind_value(TileKind.SAND)  # east of [0, 0]
        hood = surroundings(kinds, 0, 0)
        assert len(hood) == 9
        assert hood[0] == TileKind.SEA
        assert hood[1] == TileKind.FOREST
        assert hood[3] == TileKind.SAND
        assert hood[5] == TileKind.SEA  # off the grid


class TestRockPass:
    """Tests for the rock cleanup pass."""

    def test_isolated_sand_becomes_sea_rock(self) -> None:
        kinds = np.zeros((3, 3), dtype=np.uint8)
        kinds[1, 1] = kind_value(TileKind.SAND)
        assert apply_rock_pass(kinds) == 1
        assert kinds[1, 1] == kind_value(TileKind.SEA_ROCK)

    def test_forest_spike_in_sand_becomes_sand_rock(self) -> None:
        kinds = np.full((3, 3), kind_value(TileKind.SAND), dtype=np.uint8)
        kinds[1, 1] = kind_value(TileKind.FOREST)
        apply_rock_pass(kinds)
        assert kinds[1, 1] == kind_value(TileKind.SAND_ROCK)

    def test_solid_block_untouched(self) -> None:
        kinds = np.full((4, 4), kind_value(TileKind.FOREST), dtype=np.uint8)
        assert apply_rock_pass(kinds) == 0


class TestBuildIsland:
    """Tests for build_island."""

    @pytest.fixture
    def island(self, make_context, two_islands_map):
        context = make_context(two_islands_map, biome="test")
        return build_island(trace_island((4, 3), context), context)

    def test_grid_shape_and_indexing(self, island) -> None:
        assert island.bbox == WEST_BBOX
        assert island.kinds.shape == (5, 5)
        assert island.tile(4, 3).kind == TileKind.FOREST
        assert island.tile(2, 1).kind == TileKind.SAND
        assert island.tile_count == 25
        assert island.biome == "test"

    def test_kind_counts(self, island) -> None:
        assert island.kind_counts() == {TileKind.SAND: 16, TileKind.FOREST: 9}

    def test_forest_interior_sprite(self, island, make_context, two_islands_map) -> None:
        variant = tile_variant(make_context(two_islands_map).hasher, 4, 3)
        tile = island.tile(4, 3)
        assert tile.variant == variant
        assert tile.sprite_id == rules.FOREST + 1 + variant
        assert island.collision_at(4, 3) == CollisionClass.RIGID

    def test_corner_sprite(self, island) -> None:
        tile = island.tile(2, 5)
        assert tile.sprite_id == tile.variant // 2 + 1 + rules.SAND_SEA_NW
        assert island.collision_at(2, 5) == CollisionClass.FRICTION

    def test_collision_meshes(self, island) -> None:
        """Forest is rigid and the sand ring is friction."""
        assert island.rigid_mesh.triangle_count == 2 * 9
        assert island.rigid_mesh.point_count == 4 * 9
        assert island.friction_mesh.triangle_count == 2 * 16
        # Forest tile (4, 3) at 32 units per tile
        assert island.rigid_mesh.contains_point(4.5 * 32, 3.5 * 32)

    def test_outside_bbox(self, island) -> None:
        assert not island.contains(0, 0)
        with pytest.raises(KeyError):
            island.tile(0, 0)

    def test_isolated_tile_is_rock(self, make_context) -> None:
        """A lone land tile in open sea becomes a rigid rock."""
        context = make_context(["...", ".s.", "..."])
        island = build_island(trace_island((1, 1), context), context)
        tile = island.tile(1, 1)
        assert tile.kind == TileKind.SEA_ROCK
        assert tile.sprite_id == tile.variant // 2 + 1 + rules.SEA_ROCK
        assert island.collision_at(1, 1) == CollisionClass.RIGID
        assert island.rigid_mesh.triangle_count == 2
        assert island.friction_mesh.is_empty

    def test_same_island_from_any_seed(self, make_context, two_islands_map) -> None:
        """Approaching from another side builds identical tiles."""
        context = make_context(two_islands_map)
        a = build_island(trace_island((2, 1), context), context)
        b = build_island(trace_island((6, 5), context), context)
        np.testing.assert_array_equal(a.kinds, b.kinds)
        np.testing.assert_array_equal(a.variants, b.variants)
        np.testing.assert_array_equal(a.sprite_ids, b.sprite_ids)
        np.testing.assert_array_equal(a.collision, b.collision)

    def test_generate_island_at(self, make_context, two_islands_map) -> None:
        context = make_context(two_islands_map)
        trace, island = generate_island_at((15, 3), context)
        assert island.bbox == BoundingBox(min_x=14, max_x=16, min_y=2, max_y=4)
        assert trace.seed == (15, 3)
        assert generate_island_at((0, 0), context) is None
