"""Telemetry module for logging and metrics."""

from djedops.telemetry.logger import LogPipeline, setup_logging
from djedops.telemetry.metrics import LatencyStats, MetricsCollector


__all__ = [
    "LatencyStats",
    "LogPipeline",
    "MetricsCollector",
    "setup_logging",
]
