"""Per-operation performance metrics.

Each operation name keeps a bounded ring of its most recent samples
(``window_size``, 100 by default). Recording is O(1) and guarded by a lock,
so concurrent routes never lose or tear a sample.

Example:
    >>> metrics = MetricsRecorder(window_size=3)
    >>> for ms in (10, 20, 30, 40):
    ...     metrics.record("get_tasks", ms, complexity=1)
    >>> metrics.stats("get_tasks").count
    3
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Any, Optional

from planroute.config.settings import DEFAULT_METRICS_WINDOW


@dataclass(frozen=True)
class MetricsSample:
    operation_name: str
    duration_ms: float
    complexity: int


@dataclass(frozen=True)
class OperationStats:
    """Aggregates over one operation's retained samples.

    Attributes:
        avg: Mean duration in ms.
        min: Fastest duration in ms.
        max: Slowest duration in ms.
        count: Retained samples (at most the window size).
        avg_complexity: Mean complexity score.
    """

    avg: float
    min: float
    max: float
    count: int
    avg_complexity: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "avg": round(self.avg, 3),
            "min": self.min,
            "max": self.max,
            "count": self.count,
            "avg_complexity": round(self.avg_complexity, 3),
        }


class MetricsRecorder:
    """Bounded per-operation sample store."""

    def __init__(self, window_size: int = DEFAULT_METRICS_WINDOW) -> None:
        if window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {window_size}")
        self.window_size = window_size
        self._samples: dict[str, deque[MetricsSample]] = {}
        self._lock = threading.Lock()

    def record(self, operation_name: str, duration_ms: float, complexity: int) -> None:
        """Append one sample, evicting the oldest past the window."""
        sample = MetricsSample(operation_name, duration_ms, complexity)
        with self._lock:
            ring = self._samples.get(operation_name)
            if ring is None:
                ring = self._samples[operation_name] = deque(maxlen=self.window_size)
            ring.append(sample)

    def stats(self, operation_name: str) -> Optional[OperationStats]:
        """Aggregate one operation, or None if it has no samples."""
        with self._lock:
            samples = list(self._samples.get(operation_name, ()))
        if not samples:
            return None
        durations = [s.duration_ms for s in samples]
        return OperationStats(
            avg=sum(durations) / len(durations),
            min=min(durations),
            max=max(durations),
            count=len(samples),
            avg_complexity=sum(s.complexity for s in samples) / len(samples),
        )

    def get_stats(self) -> dict[str, dict[str, Any]]:
        """Snapshot of every operation's aggregates."""
        with self._lock:
            names = list(self._samples)
        snapshot: dict[str, dict[str, Any]] = {}
        for name in names:
            stats = self.stats(name)
            if stats is not None:
                snapshot[name] = stats.to_dict()
        return snapshot

    def operations(self) -> list[str]:
        with self._lock:
            return list(self._samples)

    def reset(self) -> None:
        with self._lock:
            self._samples.clear()


__all__ = ["MetricsSample", "OperationStats", "MetricsRecorder"]
