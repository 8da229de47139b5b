from __future__ import annotations

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from pressr.metrics.aggregator import AggregateSnapshot, ResultAggregator
from pressr.metrics.histogram import MICROS_PER_MS
from pressr.metrics.models import ErrorKind

PERCENTILES: Mapping[str, float] = MappingProxyType(
    {
        "p50": 50.0,
        "p75": 75.0,
        "p90": 90.0,
        "p95": 95.0,
        "p99": 99.0,
        "p999": 99.9,
    }
)


@dataclass(frozen=True, slots=True)
class LoadTestSummary:
    request_count: int
    requested_count: int
    success_count: int
    failure_count: int
    success_rate: float
    total_elapsed_sec: float
    average_latency_ms: float
    min_latency_ms: float
    max_latency_ms: float
    latency_std_dev_ms: float
    percentiles: Mapping[str, float]
    throughput_rps: float
    status_counts: Mapping[int, int]
    error_counts: Mapping[ErrorKind, int]
    error_messages: Mapping[str, int]
    total_bytes: int
    transfer_rate: float
    latency_distribution: tuple[tuple[float, float, int], ...] = ()

    @property
    def complete(self) -> bool:
        return self.request_count == self.requested_count

    @property
    def http_success_count(self) -> int:
        return sum(count for status, count in self.status_counts.items() if 200 <= status < 300)

    @property
    def http_success_rate(self) -> float:
        """Share of requests that got a 2xx, for callers that treat 4xx/5xx as failures."""
        if self.request_count == 0:
            return 0.0
        return self.http_success_count / self.request_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_count": self.request_count,
            "requested_count": self.requested_count,
            "complete": self.complete,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "success_rate": self.success_rate,
            "http_success_rate": self.http_success_rate,
            "total_elapsed_sec": self.total_elapsed_sec,
            "average_latency_ms": self.average_latency_ms,
            "min_latency_ms": self.min_latency_ms,
            "max_latency_ms": self.max_latency_ms,
            "latency_std_dev_ms": self.latency_std_dev_ms,
            "percentiles": dict(self.percentiles),
            "throughput_rps": self.throughput_rps,
            "status_counts": {str(status): count for status, count in sorted(self.status_counts.items())},
            "error_counts": {kind.value: count for kind, count in self.error_counts.items()},
            "error_messages": dict(self.error_messages),
            "total_bytes": self.total_bytes,
            "transfer_rate": self.transfer_rate,
            "latency_distribution": [list(bucket) for bucket in self.latency_distribution],
        }


def finalize(
    aggregate: ResultAggregator | AggregateSnapshot,
    wall_clock_elapsed_sec: float,
    requested_count: int | None = None,
) -> LoadTestSummary:
    snapshot = aggregate.snapshot() if isinstance(aggregate, ResultAggregator) else aggregate
    count = snapshot.count
    if requested_count is None:
        requested_count = count

    if count:
        average = snapshot.total_latency_ms / count
        percentiles = {
            name: _clamp(
                snapshot.histogram.value_at_percentile(value) / MICROS_PER_MS,
                snapshot.min_latency_ms,
                snapshot.max_latency_ms,
            )
            for name, value in PERCENTILES.items()
        }
    else:
        average = 0.0
        percentiles = {name: 0.0 for name in PERCENTILES}
    std_dev = math.sqrt(snapshot.latency_m2 / (count - 1)) if count > 1 else 0.0

    elapsed = max(0.0, wall_clock_elapsed_sec)
    throughput = count / elapsed if elapsed > 0 else 0.0
    transfer_rate = snapshot.total_bytes / elapsed if elapsed > 0 else 0.0

    return LoadTestSummary(
        request_count=count,
        requested_count=requested_count,
        success_count=snapshot.success_count,
        failure_count=snapshot.failure_count,
        success_rate=snapshot.success_count / count if count else 0.0,
        total_elapsed_sec=elapsed,
        average_latency_ms=average,
        min_latency_ms=snapshot.min_latency_ms,
        max_latency_ms=snapshot.max_latency_ms,
        latency_std_dev_ms=std_dev,
        percentiles=MappingProxyType(percentiles),
        throughput_rps=throughput,
        status_counts=snapshot.status_counts,
        error_counts=snapshot.error_counts,
        error_messages=snapshot.error_messages,
        total_bytes=snapshot.total_bytes,
        transfer_rate=transfer_rate,
        latency_distribution=tuple(
            (low / MICROS_PER_MS, high / MICROS_PER_MS, samples)
            for low, high, samples in snapshot.histogram.nonzero_buckets()
        ),
    )


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)
