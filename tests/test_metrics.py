"""Tests for the metrics recorder."""

from __future__ import annotations

import threading

import pytest

from planroute.telemetry.metrics import MetricsRecorder


class TestMetricsRecorder:

    def test_stats(self):
        metrics = MetricsRecorder()
        metrics.record("get_tasks", 10, 1)
        metrics.record("get_tasks", 30, 3)
        stats = metrics.stats("get_tasks")
        assert stats.avg == 20
        assert stats.min == 10
        assert stats.max == 30
        assert stats.count == 2
        assert stats.avg_complexity == 2

    def test_unknown_operation(self):
        assert MetricsRecorder().stats("missing") is None

    def test_ring_is_bounded(self):
        metrics = MetricsRecorder(window_size=100)
        for i in range(250):
            metrics.record("op", i, 1)
        stats = metrics.stats("op")
        assert stats.count == 100
        assert stats.min == 150
        assert stats.max == 249

    def test_operations_tracked_separately(self):
        metrics = MetricsRecorder(window_size=2)
        metrics.record("a", 1, 1)
        metrics.record("b", 5, 5)
        snapshot = metrics.get_stats()
        assert set(snapshot) == {"a", "b"}
        assert snapshot["b"]["avg"] == 5

    def test_reset(self):
        metrics = MetricsRecorder()
        metrics.record("a", 1, 1)
        metrics.reset()
        assert metrics.get_stats() == {}

    def test_concurrent_records_not_lost(self):
        metrics = MetricsRecorder(window_size=10_000)

        def worker():
            for _ in range(500):
                metrics.record("op", 1, 1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert metrics.stats("op").count == 4000

    def test_invalid_window(self):
        with pytest.raises(ValueError):
            MetricsRecorder(window_size=0)
