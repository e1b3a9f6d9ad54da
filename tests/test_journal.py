"""Tests for the Parquet generation journal."""

import pyarrow.parquet as pq
import pytest

from isles.exceptions import GenerationFailedError
from isles.journal import (
    FAILURES_FILE,
    FAILURE_SCHEMA,
    ISLAND_SCHEMA,
    ISLANDS_FILE,
    GenerationJournal,
)
from isles.worldgen.islands import build_island, trace_island
from isles.worldgen.pool import GenerationFailure


@pytest.fixture
def islands(make_context, two_islands_map):
    context = make_context(two_islands_map, biome="test")
    return [build_island(trace_island(seed, context), context) for seed in [(4, 3), (15, 3)]]


class TestGenerationJournal:
    """Tests for GenerationJournal."""

    def test_creates_run_dir(self, tmp_path) -> None:
        GenerationJournal(tmp_path / "a" / "b")
        assert (tmp_path / "a" / "b").is_dir()

    def test_island_rows(self, tmp_path, islands) -> None:
        journal = GenerationJournal(tmp_path)
        journal.record_island(islands[0], thread="MainThread")
        journal.close()

        table = pq.read_table(tmp_path / ISLANDS_FILE)
        assert table.schema.equals(ISLAND_SCHEMA)
        row = table.to_pylist()[0]
        assert (row["min_x"], row["max_x"], row["min_y"], row["max_y"]) == (2, 6, 1, 5)
        assert (row["seed_x"], row["seed_y"]) == (4, 3)
        assert row["tiles"] == 25
        assert row["sand"] == 16
        assert row["forest"] == 9
        assert row["rigid_triangles"] == 18
        assert row["friction_triangles"] == 32
        assert row["biome"] == "test"
        assert row["thread"] == "MainThread"
        assert journal.islands_written == 1

    def test_buffer_flushes_and_appends(self, tmp_path, islands) -> None:
        journal = GenerationJournal(tmp_path, buffer_size=1)
        journal.record_island(islands[0])
        assert (tmp_path / ISLANDS_FILE).exists()
        journal.record_island(islands[1])
        journal.close()

        rows = pq.read_table(tmp_path / ISLANDS_FILE).to_pylist()
        assert [r["min_x"] for r in rows] == [2, 14]
        assert journal.islands_written == 2

    def test_failure_rows(self, tmp_path) -> None:
        journal = GenerationJournal(tmp_path)
        error = GenerationFailedError((1, 2), ValueError("boom"))
        failure = GenerationFailure(seed=(1, 2), error=error, attempt=1, will_retry=False)
        journal.record_failure(failure)
        journal.flush()

        table = pq.read_table(tmp_path / FAILURES_FILE)
        assert table.schema.equals(FAILURE_SCHEMA)
        row = table.to_pylist()[0]
        assert row["error_type"] == "ValueError"
        assert row["message"] == "boom"
        assert row["attempt"] == 1
        assert row["will_retry"] is False
        assert not (tmp_path / ISLANDS_FILE).exists()

    def test_empty_close_writes_nothing(self, tmp_path) -> None:
        journal = GenerationJournal(tmp_path)
        journal.close()
        assert list(tmp_path.iterdir()) == []

    def test_reused_run_dir_starts_fresh(self, tmp_path, islands) -> None:
        """A new journal replaces files left in its directory by an earlier run."""
        first = GenerationJournal(tmp_path)
        first.record_island(islands[0])
        first.close()

        second = GenerationJournal(tmp_path)
        second.record_island(islands[1])
        second.close()

        rows = pq.read_table(tmp_path / ISLANDS_FILE).to_pylist()
        assert [r["min_x"] for r in rows] == [14]
