"""World generator: owns the ribbon, the processed set and the island map."""

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Iterator

import structlog

from ..config import WorldGenConfig
from ..exceptions import GenerationFailedError, IslandNotFoundError
from ..journal import GenerationJournal
from ..types import BoundingBox, TilePos, neighbors
from .biomes import select_world_biome
from .hashing import world_hasher
from .islands import GenerationContext, Island, IslandTrace, build_island, trace_island
from .noise import HeightField, NoiseField
from .pool import GenerationFailure, GenerationPool, JobResult
from .ribbon import Ribbon
from .validation import validate_island

logger = structlog.get_logger()


@dataclass
class GenerationTick:
    """What one generator step produced."""

    tick_id: int
    position: TilePos
    seeds: list[TilePos] = field(default_factory=list)
    islands: list[Island] = field(default_factory=list)
    failures: list[GenerationFailure] = field(default_factory=list)
    duplicates: int = 0
    pending: int = 0
    in_flight: int = 0
    duration_ms: float = 0.0


class WorldGenerator:
    """Streams islands into existence around a moving player.

    All mutable state lives on the instance, so independent generators
    never interfere. Not thread-safe: drive it from one thread.

    Usage:
        gen = WorldGenerator(config)
        for pos in player_path:
            tick = gen.tick(pos)
            for island in tick.islands:
                spawn(island)
    """

    def __init__(
        self,
        config: WorldGenConfig | None = None,
        height_field: HeightField | None = None,
        pool: GenerationPool | None = None,
        journal: GenerationJournal | None = None,
    ):
        self.config = config or WorldGenConfig()
        self.hasher = world_hasher(self.config.seed)
        self.biome = select_world_biome(self.hasher, self.config.biomes)
        params = self.biome.generation_parameters

        if height_field is None:
            height_field = NoiseField(self.hasher.seed32(), params.noise)
        self.height_field = height_field

        self.context = GenerationContext(
            hasher=self.hasher,
            height_field=height_field,
            params=params,
            tile_world_size=self.config.collision.tile_world_size,
            biome=self.biome.name,
            max_tiles=self.config.streaming.max_island_tiles,
        )
        self.ribbon = Ribbon(
            self.context.is_land,
            view_distance=self.config.streaming.view_distance,
            reset_factor=self.config.streaming.reset_factor,
        )

        pool_config = self.config.pool
        if pool is None and pool_config.max_workers > 0:
            pool = GenerationPool(
                max_workers=pool_config.max_workers,
                max_pending=pool_config.max_pending,
                max_retries=pool_config.max_retries,
            )
        self.pool = pool
        self.journal = journal

        self._processed: set[TilePos] = set()
        self._pending: deque[TilePos] = deque()
        self._pending_set: set[TilePos] = set()
        self._in_flight: set[TilePos] = set()
        self._islands: dict[BoundingBox, Island] = {}
        # Permanently failed seeds and the cells their fills reached
        self._failed: dict[TilePos, frozenset[TilePos]] = {}
        self._failed_cells: set[TilePos] = set()
        self._tick_id = 0
        self.duplicates_discarded = 0

        logger.info(
            "world_generator_created",
            seed=self.config.seed,
            biome=self.biome.name,
            noise_seed=self.hasher.seed32(),
            workers=pool_config.max_workers if self.pool else 0,
        )

    # Island map

    @property
    def islands(self) -> list[Island]:
        """Recorded islands, in the order they were recorded."""
        return list(self._islands.values())

    def __len__(self) -> int:
        return len(self._islands)

    def __iter__(self) -> Iterator[Island]:
        return iter(list(self._islands.values()))

    def get_island(self, bbox: BoundingBox) -> Island:
        try:
            return self._islands[bbox]
        except KeyError:
            raise IslandNotFoundError(f"No island with bounding box {bbox}") from None

    def island_at(self, pos: TilePos) -> Island | None:
        """The island a tile belongs to, if it has been generated."""
        x, y = pos
        for island in self._islands.values():
            if island.contains(x, y):
                return island
        return None

    def islands_near(self, pos: TilePos, radius: int) -> list[Island]:
        """Islands whose bounding box is within ``radius`` tiles of ``pos``."""
        x, y = pos
        return [i for i in self._islands.values() if i.bbox.distance_to(x, y) <= radius]

    def islands_far(self, pos: TilePos, radius: int) -> list[Island]:
        """Islands farther than ``radius`` tiles, candidates for despawning."""
        x, y = pos
        return [i for i in self._islands.values() if i.bbox.distance_to(x, y) > radius]

    def attach_entity(self, bbox: BoundingBox, entity: Any) -> None:
        """Record the scene entity spawned for an island."""
        self.get_island(bbox).entity = entity

    def detach_entity(self, bbox: BoundingBox) -> Any:
        """Forget an island's scene entity, keeping its tiles.

        Returns:
            The previous entity handle, or None.
        """
        island = self.get_island(bbox)
        entity, island.entity = island.entity, None
        return entity

    # Seeds

    @property
    def pending(self) -> int:
        """Seeds waiting to be flood filled."""
        return len(self._pending)

    def is_processed(self, pos: TilePos) -> bool:
        return pos in self._processed

    @property
    def failed_seeds(self) -> list[TilePos]:
        """Seeds whose generation failed after every retry."""
        return list(self._failed)

    def is_failed(self, pos: TilePos) -> bool:
        """Whether a tile lies in the region of a permanently failed fill."""
        return pos in self._failed_cells

    def _mark_failed(self, seed: TilePos, region: frozenset[TilePos]) -> None:
        self._failed[seed] = region
        self._failed_cells.update(region)
        logger.warning("seed_abandoned", seed=seed, cells=len(region))

    def retry_failed(self) -> list[TilePos]:
        """Forget every failed region and queue its seed again.

        Returns:
            The seeds queued.
        """
        seeds = list(self._failed)
        self._failed.clear()
        self._failed_cells.clear()
        return self._queue_seeds(seeds)

    def _queue_seeds(self, seeds: list[TilePos]) -> list[TilePos]:
        queued = []
        for seed in seeds:
            if seed in self._processed or seed in self._pending_set:
                continue
            if seed in self._failed_cells:
                continue
            self._pending.append(seed)
            self._pending_set.add(seed)
            queued.append(seed)
        return queued

    def _pop_seed(self) -> TilePos | None:
        while self._pending:
            seed = self._pending.popleft()
            self._pending_set.discard(seed)
            if seed in self._processed or seed in self._in_flight:
                continue
            if seed not in self._failed_cells:
                return seed
        return None

    def note_player_position(self, pos: TilePos) -> list[TilePos]:
        """Advance the ribbon around the player and queue new land seeds.

        Returns:
            Seeds queued by this call.
        """
        resets = self.ribbon.resets
        seeds = self._queue_seeds(self.ribbon.note_player_position(pos))
        if self.ribbon.resets > resets:
            logger.info(
                "ribbon_column_reset", position=pos, columns=self.ribbon.resets - resets
            )
        return seeds

    # Generation

    def _record(self, island: Island, thread: str) -> Island | None:
        if island.bbox in self._islands:
            self.duplicates_discarded += 1
            logger.debug("island_duplicate_discarded", bbox=str(island.bbox), seed=island.seed_tile)
            return None

        if self.config.validate_islands:
            result = validate_island(island)
            if not result.passed:
                logger.warning(
                    "island_validation_failed", bbox=str(island.bbox), errors=result.errors
                )

        self._islands[island.bbox] = island
        if self.journal is not None:
            self.journal.record_island(island, thread=thread)
        logger.info(
            "island_generated",
            bbox=str(island.bbox),
            seed=island.seed_tile,
            tiles=island.tile_count,
            duration_ms=round(island.generation_ms, 2),
            thread=thread,
        )
        return island

    def _mark_traced(self, trace: IslandTrace) -> None:
        self._processed.update(trace.visited)

    def generate_island(self, seed: TilePos) -> Island | None:
        """Flood fill and build the island containing ``seed`` on this thread.

        The ribbon grows as the fill reaches unexplored cells, and land
        found in back-filled gaps is queued.

        Cells are marked processed only once the island is built, so a
        failed build can be retried from the same seed.

        Returns:
            The new island, or None if the seed is sea, was already
            processed, or belongs to an island already recorded.

        Raises:
            GenerationFailedError: If tracing or building raised.
        """
        if seed in self._processed:
            return None
        backfill: list[TilePos] = []
        visited: set[TilePos] = set()
        try:
            trace = trace_island(
                seed, self.context, self.ribbon, backfill=backfill, visited=visited
            )
        except Exception as e:
            raise GenerationFailedError(seed, e, region=frozenset(visited)) from e
        finally:
            # The ribbon already covers these rows; this is their only report
            self._queue_seeds(backfill)
        if trace is None:
            self._processed.add(seed)
            return None

        if trace.bbox in self._islands:
            self._mark_traced(trace)
            self.duplicates_discarded += 1
            logger.debug("island_duplicate_discarded", bbox=str(trace.bbox), seed=seed)
            return None

        try:
            island = build_island(trace, self.context)
        except Exception as e:
            raise GenerationFailedError(seed, e, region=trace.visited) from e
        self._mark_traced(trace)
        return self._record(island, thread=threading.current_thread().name)

    def _generate_with_retries(
        self, seed: TilePos, failures: list[GenerationFailure]
    ) -> Island | None:
        retries = self.config.pool.max_retries
        for attempt in range(retries + 1):
            try:
                return self.generate_island(seed)
            except GenerationFailedError as e:
                will_retry = attempt < retries
                failure = GenerationFailure(seed=seed, error=e, attempt=attempt, will_retry=will_retry)
                failures.append(failure)
                logger.warning(
                    "generation_failed",
                    seed=seed,
                    attempt=attempt,
                    will_retry=will_retry,
                    error=str(e.cause),
                )
                if self.journal is not None:
                    self.journal.record_failure(failure)
                if not will_retry:
                    self._mark_failed(seed, e.region)
        return None

    def generate_pending(self, failures: list[GenerationFailure] | None = None) -> list[Island]:
        """Synchronously generate every queued seed, including seeds queued
        along the way by ribbon back-fill.

        Args:
            failures: Optional list that receives failure events.

        Returns:
            Islands recorded, in generation order.
        """
        if failures is None:
            failures = []
        islands = []
        while (seed := self._pop_seed()) is not None:
            island = self._generate_with_retries(seed, failures)
            if island is not None:
                islands.append(island)
        return islands

    def _apply_result(self, result: JobResult) -> Island | None:
        self._in_flight.discard(result.seed)
        trace = result.trace
        if trace is None:
            self._processed.add(result.seed)
            return None

        # Replay the fill into the ribbon as if it had run here
        for x, y in trace.probed:
            self._queue_seeds(self.ribbon.cover(x, y))
        self._mark_traced(trace)
        self._queue_seeds(trace.backfill)
        return self._record(result.island, thread=result.thread)

    def _submit_seeds(self) -> None:
        """Submit queued seeds up to the pool's capacity.

        A seed 8-adjacent to an in-flight seed, directly or through other
        queued seeds, lies on the same island, so it waits for that job
        instead of repeating its fill.
        """
        pool = self.pool
        claimed = set(self._in_flight)
        deferred: list[TilePos] = []
        while pool.has_capacity and (seed := self._pop_seed()) is not None:
            if any(pos in claimed for pos in neighbors(*seed)):
                deferred.append(seed)
            elif pool.submit(seed, self.context):
                self._in_flight.add(seed)
            else:
                deferred.append(seed)
            claimed.add(seed)

        for seed in reversed(deferred):
            self._pending.appendleft(seed)
            self._pending_set.add(seed)

    def _drive_pool(self, tick: GenerationTick, timeout: float | None = 0) -> None:
        pool = self.pool
        self._submit_seeds()

        results, failures = pool.poll(timeout=timeout)
        for result in results:
            before = self.duplicates_discarded
            island = self._apply_result(result)
            if island is not None:
                tick.islands.append(island)
            tick.duplicates += self.duplicates_discarded - before
        for failure in failures:
            if not failure.will_retry:
                self._in_flight.discard(failure.seed)
                self._mark_failed(failure.seed, failure.error.region)
            if self.journal is not None:
                self.journal.record_failure(failure)
        tick.failures.extend(failures)

    def tick(self, pos: TilePos) -> GenerationTick:
        """One game-loop step: move the ribbon, then generate.

        Without a pool every queued seed is generated before returning.
        With a pool, queued seeds are submitted up to the pool's capacity
        and finished jobs are collected without blocking.

        Args:
            pos: Player tile position.

        Returns:
            GenerationTick describing the step.
        """
        start = time.perf_counter()
        self._tick_id += 1
        tick = GenerationTick(tick_id=self._tick_id, position=pos)
        tick.seeds = self.note_player_position(pos)

        if self.pool is None:
            before = self.duplicates_discarded
            tick.islands = self.generate_pending(tick.failures)
            tick.duplicates = self.duplicates_discarded - before
        else:
            self._drive_pool(tick)

        tick.pending = self.pending
        tick.in_flight = len(self._in_flight)
        tick.duration_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            "generation_tick",
            tick_id=tick.tick_id,
            position=pos,
            seeds=len(tick.seeds),
            islands=len(tick.islands),
            pending=tick.pending,
            in_flight=tick.in_flight,
        )
        return tick

    def drain(self, timeout: float = 1.0) -> GenerationTick:
        """Generate until no seed is queued or in flight.

        Args:
            timeout: Seconds to wait on each pool poll.

        Returns:
            GenerationTick collecting everything generated.
        """
        start = time.perf_counter()
        tick = GenerationTick(tick_id=self._tick_id, position=(0, 0))
        if self.pool is None:
            tick.islands = self.generate_pending(tick.failures)
        else:
            while (self._pending and self.pool.has_capacity) or self._in_flight:
                self._drive_pool(tick, timeout=timeout)
        tick.duration_ms = (time.perf_counter() - start) * 1000
        return tick

    def close(self) -> None:
        """Shut down the pool and flush the journal."""
        if self.pool is not None:
            self.pool.shutdown(wait=True)
        if self.journal is not None:
            self.journal.flush()

    def __enter__(self) -> "WorldGenerator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
