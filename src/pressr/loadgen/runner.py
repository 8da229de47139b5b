from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Iterator, Union

from pressr.config import RequestSpec, RunConfig
from pressr.loadgen.transport import HttpxTransport, Transport
from pressr.metrics import ErrorKind, LoadTestSummary, Outcome, ResultAggregator, finalize

logger = logging.getLogger(__name__)

SpecFactory = Callable[[int], RequestSpec]
SpecSource = Union[RequestSpec, SpecFactory]
ProgressCallback = Callable[[int, int], Awaitable[None]]


class SchedulingError(RuntimeError):
    """Raised when the dispatcher cannot start its workers."""


class Dispatcher:
    """Issues ``total_requests`` calls against a transport, ``concurrency`` at a time.

    A fixed pool of worker tasks pulls request indices from one shared
    iterator, so every index is dispatched exactly once and the number of
    transport calls in flight never exceeds the number of workers. Each
    outcome is folded into a fresh ``ResultAggregator`` as it lands, in
    whatever order requests complete.

    Per-request problems, including a spec factory that raises, are recorded
    as failed outcomes. Only configuration and scheduling problems raise.
    """

    def __init__(
        self,
        transport: Transport,
        config: RunConfig,
        progress: ProgressCallback | None = None,
    ) -> None:
        config.validate()
        self.transport = transport
        self.config = config
        self.progress = progress
        self.summary: LoadTestSummary | None = None
        self._stopping = False

    def stop(self) -> None:
        """Stop handing out new requests; in-flight ones finish and are recorded."""
        self._stopping = True

    async def run(self, source: SpecSource) -> LoadTestSummary:
        total = self.config.total_requests
        workers_needed = self.config.effective_concurrency
        aggregator = ResultAggregator()
        indices = iter(range(total))
        self.summary = None

        logger.info("Starting load test: %d requests, %d concurrent", total, workers_needed)
        started = time.perf_counter()
        try:
            workers = self._start_workers(workers_needed, indices, source, aggregator)
            try:
                await asyncio.gather(*workers)
            except asyncio.CancelledError:
                await _cancel_all(workers)
                self.summary = finalize(aggregator, time.perf_counter() - started, total)
                logger.warning(
                    "Load test cancelled after %d of %d requests",
                    self.summary.request_count,
                    total,
                )
                raise
            except BaseException:
                await _cancel_all(workers)
                raise
        finally:
            self._stopping = False
        elapsed = time.perf_counter() - started

        self.summary = finalize(aggregator, elapsed, total)
        logger.info(
            "Load test finished: %d requests, %d failed, duration %.2fs",
            self.summary.request_count,
            self.summary.failure_count,
            elapsed,
        )
        return self.summary

    def _start_workers(
        self,
        count: int,
        indices: Iterator[int],
        source: SpecSource,
        aggregator: ResultAggregator,
    ) -> list[asyncio.Task[None]]:
        workers: list[asyncio.Task[None]] = []
        try:
            for worker_id in range(count):
                workers.append(asyncio.create_task(self._worker(worker_id, indices, source, aggregator)))
        except RuntimeError as exc:
            for task in workers:
                task.cancel()
            msg = f"Could not start {count} workers (started {len(workers)})"
            raise SchedulingError(msg) from exc
        return workers

    async def _worker(
        self,
        worker_id: int,
        indices: Iterator[int],
        source: SpecSource,
        aggregator: ResultAggregator,
    ) -> None:
        while not self._stopping:
            index = next(indices, None)
            if index is None:
                return
            outcome = await self._dispatch_one(index, source)
            completed = aggregator.record(outcome)
            if self.progress:
                await self.progress(completed, self.config.total_requests)

    async def _dispatch_one(self, index: int, source: SpecSource) -> Outcome:
        start = time.perf_counter()
        try:
            spec = source if isinstance(source, RequestSpec) else source(index)
        except Exception as exc:
            logger.warning("Could not build request %d: %s", index, exc)
            return Outcome.failure(ErrorKind.OTHER, _elapsed_ms(start), f"request data error: {exc}")
        logger.debug("Executing request %d/%d", index + 1, self.config.total_requests)
        try:
            return await self.transport.execute(spec)
        except Exception as exc:
            logger.warning("Transport raised on request %d: %r", index, exc)
            return Outcome.failure(ErrorKind.OTHER, _elapsed_ms(start), str(exc) or type(exc).__name__)


async def run_load_test(
    source: SpecSource,
    total_requests: int,
    concurrency: int,
    transport: Transport | None = None,
    progress: ProgressCallback | None = None,
) -> LoadTestSummary:
    config = RunConfig(total_requests=total_requests, concurrency=concurrency)
    if transport is not None:
        return await Dispatcher(transport, config, progress).run(source)
    async with HttpxTransport() as http:
        return await Dispatcher(http, config, progress).run(source)


async def _cancel_all(tasks: list[asyncio.Task[None]]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0
