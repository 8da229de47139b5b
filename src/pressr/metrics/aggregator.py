from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from pressr.metrics.histogram import MICROS_PER_MS, LatencyHistogram
from pressr.metrics.models import ErrorKind, Outcome


@dataclass(frozen=True, slots=True)
class AggregateSnapshot:
    count: int
    success_count: int
    failure_count: int
    total_latency_ms: float
    min_latency_ms: float
    max_latency_ms: float
    latency_m2: float
    histogram: LatencyHistogram
    status_counts: Mapping[int, int]
    error_counts: Mapping[ErrorKind, int]
    error_messages: Mapping[str, int]
    total_bytes: int


class ResultAggregator:
    """Running totals shared by every worker of one dispatch run.

    ``record`` is the only way state changes. Each call takes one lock for a
    constant amount of work, so it can be called from asyncio tasks and OS
    threads alike without losing updates.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self._success_count = 0
        self._failure_count = 0
        self._total_latency_ms = 0.0
        self._mean_ms = 0.0
        self._m2 = 0.0
        self._min_ms = float("inf")
        self._max_ms = 0.0
        self._histogram = LatencyHistogram()
        self._status_counts: Counter[int] = Counter()
        self._error_counts: Counter[ErrorKind] = Counter()
        self._error_messages: Counter[str] = Counter()
        self._total_bytes = 0

    def record(self, outcome: Outcome) -> int:
        """Fold one outcome in and return the number recorded so far."""
        latency_ms = max(0.0, outcome.elapsed_ms)
        latency_us = round(latency_ms * MICROS_PER_MS)
        with self._lock:
            self._count += 1
            if outcome.error is None:
                self._success_count += 1
            else:
                self._failure_count += 1
                self._error_counts[outcome.error] += 1
                if outcome.error is ErrorKind.OTHER and outcome.message:
                    self._error_messages[outcome.message] += 1
            if outcome.status is not None:
                self._status_counts[outcome.status] += 1
            if outcome.bytes_received is not None:
                self._total_bytes += outcome.bytes_received

            self._total_latency_ms += latency_ms
            delta = latency_ms - self._mean_ms
            self._mean_ms += delta / self._count
            self._m2 += delta * (latency_ms - self._mean_ms)
            self._min_ms = min(self._min_ms, latency_ms)
            self._max_ms = max(self._max_ms, latency_ms)
            self._histogram.record(latency_us)
            return self._count

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def snapshot(self) -> AggregateSnapshot:
        with self._lock:
            return AggregateSnapshot(
                count=self._count,
                success_count=self._success_count,
                failure_count=self._failure_count,
                total_latency_ms=self._total_latency_ms,
                min_latency_ms=self._min_ms if self._count else 0.0,
                max_latency_ms=self._max_ms,
                latency_m2=self._m2,
                histogram=self._histogram.copy(),
                status_counts=MappingProxyType(dict(self._status_counts)),
                error_counts=MappingProxyType(dict(self._error_counts)),
                error_messages=MappingProxyType(dict(self._error_messages)),
                total_bytes=self._total_bytes,
            )
