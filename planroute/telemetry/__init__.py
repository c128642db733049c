"""Metrics recording and log formatting."""

from planroute.telemetry.logging import JsonLinesFormatter, RouteLogFormatter, setup_logging
from planroute.telemetry.metrics import MetricsRecorder, MetricsSample, OperationStats

__all__ = [
    "MetricsRecorder",
    "MetricsSample",
    "OperationStats",
    "RouteLogFormatter",
    "JsonLinesFormatter",
    "setup_logging",
]
