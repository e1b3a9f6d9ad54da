"""Background island generation on a bounded thread pool.

Jobs are flood fills keyed by a seed tile. Workers only see an immutable
``GenerationContext``; the ribbon and the island map stay on the thread
that polls the pool. Finished futures are pushed to a queue from their
done callback and collected by ``poll`` in arrival order.
"""

import queue
import threading
import time
from concurrent import futures
from dataclasses import dataclass

import structlog

from ..exceptions import GenerationFailedError
from ..types import TilePos
from .islands import GenerationContext, Island, IslandTrace, generate_island_at

logger = structlog.get_logger()


@dataclass
class JobResult:
    """A completed generation job."""

    seed: TilePos
    trace: IslandTrace | None  # None when the seed turned out to be sea
    island: Island | None
    attempt: int
    thread: str
    duration_ms: float


@dataclass
class GenerationFailure:
    """A generation job that raised."""

    seed: TilePos
    error: GenerationFailedError
    attempt: int
    will_retry: bool


def _run_job(seed: TilePos, context: GenerationContext, attempt: int) -> JobResult:
    start = time.perf_counter()
    visited: set[TilePos] = set()
    try:
        generated = generate_island_at(seed, context, visited=visited)
    except Exception as e:
        raise GenerationFailedError(seed, e, region=frozenset(visited)) from e
    trace, island = generated if generated is not None else (None, None)
    return JobResult(
        seed=seed,
        trace=trace,
        island=island,
        attempt=attempt,
        thread=threading.current_thread().name,
        duration_ms=(time.perf_counter() - start) * 1000,
    )


class GenerationPool:
    """Bounded worker pool for island generation.

    Usage:
        pool = GenerationPool(max_workers=4)
        pool.submit(seed, context)
        ...
        results, failures = pool.poll()  # once per tick
    """

    def __init__(self, max_workers: int = 4, max_pending: int = 16, max_retries: int = 2):
        if max_workers < 1:
            raise ValueError("GenerationPool needs at least one worker")
        self.max_pending = max_pending
        self.max_retries = max_retries
        self._executor = futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="isles-gen"
        )
        self._done: queue.SimpleQueue[futures.Future] = queue.SimpleQueue()
        # Only touched by the submitting thread
        self._jobs: dict[futures.Future, tuple[TilePos, GenerationContext, int]] = {}
        self._closed = False

    @property
    def in_flight(self) -> int:
        """Jobs submitted and not yet collected by ``poll``."""
        return len(self._jobs)

    @property
    def has_capacity(self) -> bool:
        return not self._closed and self.in_flight < self.max_pending

    def _start(self, seed: TilePos, context: GenerationContext, attempt: int) -> None:
        future = self._executor.submit(_run_job, seed, context, attempt)
        self._jobs[future] = (seed, context, attempt)
        future.add_done_callback(self._done.put)

    def submit(self, seed: TilePos, context: GenerationContext) -> bool:
        """Queue a flood fill from ``seed``.

        Returns:
            False when the pool is full or shut down; the caller keeps the
            seed and tries again later.
        """
        if not self.has_capacity:
            return False
        self._start(seed, context, attempt=0)
        logger.debug("generation_job_submitted", seed=seed, in_flight=self.in_flight)
        return True

    def poll(self, timeout: float | None = 0) -> tuple[list[JobResult], list[GenerationFailure]]:
        """Collect finished jobs without blocking.

        Failed jobs are resubmitted until they have been retried
        ``max_retries`` times; every failure is reported either way.

        Args:
            timeout: Seconds to wait for the first job when nothing has
                finished yet; 0 never waits, None waits indefinitely.

        Returns:
            Tuple of (completed jobs, failures), in completion order.
        """
        results: list[JobResult] = []
        failures: list[GenerationFailure] = []

        finished: list[futures.Future] = []
        if timeout != 0 and self._jobs and self._done.empty():
            try:
                finished.append(self._done.get(timeout=timeout))
            except queue.Empty:
                pass
        while not self._done.empty():
            finished.append(self._done.get_nowait())

        for future in finished:
            seed, context, attempt = self._jobs.pop(future)
            try:
                results.append(future.result())
            except Exception as e:
                will_retry = attempt < self.max_retries and not self._closed
                if isinstance(e, GenerationFailedError):
                    error = e
                else:
                    error = GenerationFailedError(seed, e)
                failures.append(
                    GenerationFailure(seed=seed, error=error, attempt=attempt, will_retry=will_retry)
                )
                logger.warning(
                    "generation_failed",
                    seed=seed,
                    attempt=attempt,
                    will_retry=will_retry,
                    error=str(error.cause),
                )
                if will_retry:
                    self._start(seed, context, attempt + 1)

        return results, failures

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs and release the worker threads."""
        self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=not wait)

    def __enter__(self) -> "GenerationPool":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
