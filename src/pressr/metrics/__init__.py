from __future__ import annotations

from pressr.metrics.aggregator import AggregateSnapshot, ResultAggregator
from pressr.metrics.histogram import LatencyHistogram
from pressr.metrics.models import ErrorKind, Outcome
from pressr.metrics.summary import PERCENTILES, LoadTestSummary, finalize

__all__ = [
    "PERCENTILES",
    "AggregateSnapshot",
    "ErrorKind",
    "LatencyHistogram",
    "LoadTestSummary",
    "Outcome",
    "ResultAggregator",
    "finalize",
]
