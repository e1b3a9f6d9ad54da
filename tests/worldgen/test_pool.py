"""Tests for the background generation pool."""

import time

import pytest

from isles.exceptions import GenerationFailedError
from isles.types import BoundingBox
from isles.worldgen.hashing import world_hasher
from isles.worldgen.islands import GenerationContext
from isles.worldgen.pool import GenerationPool


class ExplodingHeightField:
    """Height field that raises on every lookup."""

    def __init__(self):
        self.calls = 0

    def height(self, x: int, y: int) -> float:
        self.calls += 1
        raise RuntimeError("noise backend unavailable")


def poll_until(pool: GenerationPool, done, deadline: float = 5.0):
    """Poll until ``done(results, failures)`` holds or the deadline passes."""
    results, failures = [], []
    end = time.monotonic() + deadline
    while time.monotonic() < end:
        new_results, new_failures = pool.poll(timeout=0.1)
        results.extend(new_results)
        failures.extend(new_failures)
        if done(results, failures):
            break
    return results, failures


class TestGenerationPool:
    """Tests for GenerationPool."""

    def test_requires_a_worker(self) -> None:
        with pytest.raises(ValueError):
            GenerationPool(max_workers=0)

    def test_generates_island(self, make_context, two_islands_map) -> None:
        context = make_context(two_islands_map)
        with GenerationPool(max_workers=2) as pool:
            assert pool.submit((4, 3), context)
            results, failures = poll_until(pool, lambda r, f: len(r) == 1)

        assert failures == []
        result = results[0]
        assert result.seed == (4, 3)
        assert result.attempt == 0
        assert result.island.bbox == BoundingBox(min_x=2, max_x=6, min_y=1, max_y=5)
        assert result.thread.startswith("isles-gen")
        assert pool.in_flight == 0

    def test_sea_seed_has_no_island(self, make_context, two_islands_map) -> None:
        with GenerationPool(max_workers=1) as pool:
            pool.submit((0, 0), make_context(two_islands_map))
            results, _ = poll_until(pool, lambda r, f: len(r) == 1)
        assert results[0].trace is None
        assert results[0].island is None

    def test_capacity(self, make_context, two_islands_map) -> None:
        context = make_context(two_islands_map)
        with GenerationPool(max_workers=1, max_pending=2) as pool:
            assert pool.submit((4, 3), context)
            assert pool.submit((15, 3), context)
            assert not pool.has_capacity
            assert not pool.submit((0, 0), context)
            assert pool.in_flight == 2
            poll_until(pool, lambda r, f: len(r) == 2)
            assert pool.has_capacity

    def test_failures_are_retried(self, params) -> None:
        field = ExplodingHeightField()
        context = GenerationContext(
            hasher=world_hasher(1), height_field=field, params=params, tile_world_size=32.0
        )
        with GenerationPool(max_workers=1, max_retries=2) as pool:
            pool.submit((0, 0), context)
            results, failures = poll_until(pool, lambda r, f: len(f) == 3)

        assert results == []
        assert [f.attempt for f in failures] == [0, 1, 2]
        assert [f.will_retry for f in failures] == [True, True, False]
        assert isinstance(failures[0].error, GenerationFailedError)
        assert isinstance(failures[0].error.cause, RuntimeError)
        assert failures[0].error.seed_tile == (0, 0)
        assert field.calls == 3

    def test_failure_carries_region(self, params) -> None:
        """The cells reached before the failure travel with the error."""
        context = GenerationContext(
            hasher=world_hasher(1),
            height_field=ExplodingHeightField(),
            params=params,
            tile_world_size=32.0,
        )
        with GenerationPool(max_workers=1, max_retries=0) as pool:
            pool.submit((0, 0), context)
            _, failures = poll_until(pool, lambda r, f: len(f) == 1)
        assert failures[0].error.region == frozenset({(0, 0)})

    def test_no_retries(self, params) -> None:
        context = GenerationContext(
            hasher=world_hasher(1),
            height_field=ExplodingHeightField(),
            params=params,
            tile_world_size=32.0,
        )
        with GenerationPool(max_workers=1, max_retries=0) as pool:
            pool.submit((0, 0), context)
            _, failures = poll_until(pool, lambda r, f: len(f) == 1)
            assert pool.in_flight == 0
        assert not failures[0].will_retry

    def test_shutdown_refuses_jobs(self, make_context, two_islands_map) -> None:
        pool = GenerationPool(max_workers=1)
        pool.shutdown()
        assert not pool.has_capacity
        assert not pool.submit((4, 3), make_context(two_islands_map))

    def test_poll_empty(self) -> None:
        with GenerationPool(max_workers=1) as pool:
            assert pool.poll() == ([], [])
            assert pool.poll(timeout=0.01) == ([], [])
