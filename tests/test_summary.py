from __future__ import annotations

import pytest

from pressr.metrics import ErrorKind, Outcome, ResultAggregator, finalize


def test_summary_of_one_to_hundred_ms() -> None:
    agg = ResultAggregator()
    for ms in range(100, 0, -1):
        agg.record(Outcome.response(200, float(ms), 1))
    summary = finalize(agg, wall_clock_elapsed_sec=2.0)

    assert summary.min_latency_ms == 1.0
    assert summary.max_latency_ms == 100.0
    assert summary.average_latency_ms == pytest.approx(50.5)
    assert summary.percentiles["p50"] == pytest.approx(50, rel=0.01)
    assert summary.percentiles["p90"] == pytest.approx(90, rel=0.01)
    assert summary.percentiles["p95"] == pytest.approx(95, rel=0.01)
    assert summary.percentiles["p99"] == pytest.approx(99, rel=0.01)
    assert all(1.0 <= value <= 100.0 for value in summary.percentiles.values())
    assert summary.throughput_rps == pytest.approx(50.0)
    assert summary.transfer_rate == pytest.approx(50.0)
    assert summary.latency_std_dev_ms == pytest.approx(29.011, rel=1e-3)
    assert summary.complete


def test_empty_aggregate_does_not_divide_by_zero() -> None:
    summary = finalize(ResultAggregator(), wall_clock_elapsed_sec=0.0, requested_count=10)
    assert summary.request_count == 0
    assert summary.average_latency_ms == 0.0
    assert summary.success_rate == 0.0
    assert summary.throughput_rps == 0.0
    assert summary.min_latency_ms == 0.0
    assert set(summary.percentiles.values()) == {0.0}
    assert not summary.complete


def test_http_success_rate_reclassifies_error_statuses() -> None:
    agg = ResultAggregator()
    agg.record(Outcome.response(200, 1.0))
    agg.record(Outcome.response(204, 1.0))
    agg.record(Outcome.response(503, 1.0))
    agg.record(Outcome.failure(ErrorKind.TIMEOUT, 1.0))
    summary = finalize(agg, wall_clock_elapsed_sec=1.0)
    assert summary.success_rate == 0.75
    assert summary.http_success_count == 2
    assert summary.http_success_rate == 0.5


def test_to_dict_is_json_ready() -> None:
    agg = ResultAggregator()
    agg.record(Outcome.response(200, 5.0, 12))
    agg.record(Outcome.failure(ErrorKind.OTHER, 7.0, "bad row"))
    data = finalize(agg, wall_clock_elapsed_sec=1.0, requested_count=2).to_dict()
    assert data["status_counts"] == {"200": 1}
    assert data["error_counts"] == {"other": 1}
    assert data["error_messages"] == {"bad row": 1}
    assert data["complete"] is True
    assert set(data["percentiles"]) == {"p50", "p75", "p90", "p95", "p99", "p999"}


def test_summary_is_immutable() -> None:
    summary = finalize(ResultAggregator(), wall_clock_elapsed_sec=1.0)
    with pytest.raises(AttributeError):
        summary.request_count = 5  # type: ignore[misc]
    with pytest.raises(TypeError):
        summary.percentiles["p50"] = 1.0  # type: ignore[index]


def test_latency_distribution_covers_every_sample() -> None:
    agg = ResultAggregator()
    for ms in range(1, 101):
        agg.record(Outcome.response(200, float(ms)))
    summary = finalize(agg, wall_clock_elapsed_sec=1.0)

    buckets = summary.latency_distribution
    assert isinstance(buckets, tuple)
    assert sum(count for _, _, count in buckets) == 100
    assert [low for low, _, _ in buckets] == sorted(low for low, _, _ in buckets)
    for ms in range(1, 101):
        inside = [bucket for bucket in buckets if bucket[0] <= ms <= bucket[1]]
        assert len(inside) == 1
    assert summary.to_dict()["latency_distribution"] == [list(bucket) for bucket in buckets]


def test_empty_summary_has_no_distribution() -> None:
    assert finalize(ResultAggregator(), wall_clock_elapsed_sec=1.0).latency_distribution == ()


def test_transfer_rate_counts_only_received_bodies() -> None:
    agg = ResultAggregator()
    agg.record(Outcome.response(200, 1.0, 300))
    agg.record(Outcome.response(200, 1.0, 100))
    agg.record(Outcome.failure(ErrorKind.CONNECTION_FAILED, 1.0))
    summary = finalize(agg, wall_clock_elapsed_sec=2.0)
    assert summary.total_bytes == 400
    assert summary.transfer_rate == pytest.approx(200.0)
