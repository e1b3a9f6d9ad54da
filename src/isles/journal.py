"""Parquet journal of island generation, for offline analysis."""

from pathlib import Path
from typing import TYPE_CHECKING

import pyarrow as pa
import pyarrow.parquet as pq
import structlog

from .terrain_types import TileKind

if TYPE_CHECKING:
    from .worldgen.islands import Island
    from .worldgen.pool import GenerationFailure

logger = structlog.get_logger()


ISLAND_SCHEMA = pa.schema([
    ("min_x", pa.int32()),
    ("max_x", pa.int32()),
    ("min_y", pa.int32()),
    ("max_y", pa.int32()),
    ("seed_x", pa.int32()),
    ("seed_y", pa.int32()),
    ("biome", pa.string()),
    ("tiles", pa.int32()),
    ("sand", pa.int32()),
    ("forest", pa.int32()),
    ("sand_rock", pa.int32()),
    ("sea_rock", pa.int32()),
    ("rigid_triangles", pa.int32()),
    ("friction_triangles", pa.int32()),
    ("duration_ms", pa.float64()),
    ("thread", pa.string()),
])

FAILURE_SCHEMA = pa.schema([
    ("seed_x", pa.int32()),
    ("seed_y", pa.int32()),
    ("attempt", pa.int32()),
    ("will_retry", pa.bool_()),
    ("error_type", pa.string()),
    ("message", pa.string()),
])

ISLANDS_FILE = "islands.parquet"
FAILURES_FILE = "failures.parquet"


class GenerationJournal:
    """Writes one row per generated island and per failed job.

    Accumulates rows in memory and writes to Parquet files on flush or close.
    """

    def __init__(self, run_dir: Path | str, buffer_size: int = 100):
        """Initialize GenerationJournal.

        Args:
            run_dir: Directory to write Parquet files to (created if missing)
            buffer_size: Number of island rows to buffer before writing
        """
        self.run_dir = Path(run_dir)
        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.buffer_size = buffer_size

        self._island_data: list[dict] = []
        self._failure_data: list[dict] = []
        self.islands_written = 0
        self.failures_written = 0

        # Files written by this journal (for append mode)
        self._files_written: set[str] = set()

    def record_island(self, island: "Island", thread: str = "") -> None:
        """Buffer one island row."""
        counts = island.kind_counts()
        rigid = island.rigid_mesh
        self._island_data.append({
            "min_x": island.bbox.min_x,
            "max_x": island.bbox.max_x,
            "min_y": island.bbox.min_y,
            "max_y": island.bbox.max_y,
            "seed_x": island.seed_tile[0],
            "seed_y": island.seed_tile[1],
            "biome": island.biome,
            "tiles": island.tile_count,
            "sand": counts.get(TileKind.SAND, 0),
            "forest": counts.get(TileKind.FOREST, 0),
            "sand_rock": counts.get(TileKind.SAND_ROCK, 0),
            "sea_rock": counts.get(TileKind.SEA_ROCK, 0),
            "rigid_triangles": 0 if rigid is None else rigid.triangle_count,
            "friction_triangles": island.friction_mesh.triangle_count,
            "duration_ms": island.generation_ms,
            "thread": thread,
        })

        if len(self._island_data) >= self.buffer_size:
            self.flush()

    def record_failure(self, failure: "GenerationFailure") -> None:
        """Buffer one failure row."""
        cause = failure.error.cause
        self._failure_data.append({
            "seed_x": failure.seed[0],
            "seed_y": failure.seed[1],
            "attempt": failure.attempt,
            "will_retry": failure.will_retry,
            "error_type": type(cause).__name__,
            "message": str(cause),
        })

    def flush(self) -> None:
        """Write buffered rows to Parquet files."""
        if not self._island_data and not self._failure_data:
            return

        self._write_parquet(ISLANDS_FILE, ISLAND_SCHEMA, self._island_data)
        self._write_parquet(FAILURES_FILE, FAILURE_SCHEMA, self._failure_data)
        self.islands_written += len(self._island_data)
        self.failures_written += len(self._failure_data)

        self._island_data.clear()
        self._failure_data.clear()
        logger.debug("journal_flushed", run_dir=str(self.run_dir))

    def close(self) -> None:
        """Flush remaining rows."""
        self.flush()
        logger.info(
            "journal_closed",
            run_dir=str(self.run_dir),
            islands=self.islands_written,
            failures=self.failures_written,
        )

    def _write_parquet(
        self,
        filename: str,
        schema: pa.Schema,
        data: list[dict],
    ) -> None:
        """Write rows to a Parquet file, appending to what this journal wrote before."""
        if not data:
            return

        filepath = self.run_dir / filename
        table = pa.Table.from_pylist(data, schema=schema)

        if filename in self._files_written and filepath.exists():
            # Append by reading, concatenating, and rewriting
            existing = pq.read_table(filepath)
            table = pa.concat_tables([existing, table])

        pq.write_table(table, filepath)
        self._files_written.add(filename)
