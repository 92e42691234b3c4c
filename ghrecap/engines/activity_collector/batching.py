"""Fixed-size batch scheduler with a static inter-batch delay."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

import structlog

log = structlog.get_logger("ghrecap.engine")

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_BATCH_SIZE = 3
DEFAULT_BATCH_DELAY = 1.0  # seconds


@dataclass
class BatchResult(Generic[T, R]):
    """Outcome of one completed batch."""

    processed: int
    total: int
    results: list[tuple[T, R]] = field(default_factory=list)
    failures: list[tuple[T, BaseException]] = field(default_factory=list)


class BatchScheduler:
    """Run a worker over items, *batch_size* at a time, strictly in sequence.

    Batch k+1 starts only after every call in batch k has finished and the
    delay has elapsed. Ordering within a batch is not defined. The delay is a
    static backoff; it does not look at rate-limit headers.

    With *isolate_failures* a failing item is reported in
    ``BatchResult.failures`` and the rest of its batch still counts. Without
    it the first failure propagates and ends the run.
    """

    def __init__(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay: float = DEFAULT_BATCH_DELAY,
        *,
        isolate_failures: bool = True,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.batch_size = batch_size
        self.delay = delay
        self.isolate_failures = isolate_failures

    async def _run_batch(
        self,
        batch: Sequence[T],
        worker: Callable[[T], Awaitable[R]],
    ) -> list[R | BaseException]:
        tasks = [asyncio.ensure_future(worker(item)) for item in batch]
        if self.isolate_failures:
            return await asyncio.gather(*tasks, return_exceptions=True)
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            # stop the rest of the batch and collect their outcomes before propagating
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def run(
        self,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[R]],
    ) -> AsyncIterator[BatchResult[T, R]]:
        total = len(items)
        for start in range(0, total, self.batch_size):
            batch = items[start : start + self.batch_size]
            outcomes = await self._run_batch(batch, worker)

            result: BatchResult[T, R] = BatchResult(
                processed=min(start + self.batch_size, total), total=total
            )
            for item, outcome in zip(batch, outcomes, strict=True):
                if isinstance(outcome, BaseException):
                    result.failures.append((item, outcome))
                else:
                    result.results.append((item, outcome))

            log.debug(
                "batch.completed",
                processed=result.processed,
                total=total,
                failed=len(result.failures),
            )
            yield result

            if result.processed < total and self.delay > 0:
                await asyncio.sleep(self.delay)
