"""
Metrics collection for service monitoring.

Tracks upstream latencies, fallback substitutions and workflow
activity with efficient in-memory storage.
"""

import time
from collections import deque
from dataclasses import dataclass
from typing import Final


# Counter names
UPSTREAM_FAILURES: Final[str] = "upstream_failures"
FALLBACKS_USED: Final[str] = "fallbacks_used"
WORKFLOW_RUNS: Final[str] = "workflow_runs"
WORKFLOW_BLOCKED: Final[str] = "workflow_blocked"
NODES_EXECUTED: Final[str] = "nodes_executed"
OPPORTUNITIES_DETECTED: Final[str] = "opportunities_detected"

UPSTREAM_LATENCY_PREFIX: Final[str] = "upstream."


@dataclass
class LatencyStats:
    """Aggregated latency statistics."""

    min_us: int = 0
    max_us: int = 0
    avg_us: float = 0.0
    p50_us: int = 0
    p95_us: int = 0
    p99_us: int = 0
    count: int = 0

    def to_dict(self) -> dict[str, float]:
        return {
            "min": self.min_us,
            "max": self.max_us,
            "avg": round(self.avg_us, 1),
            "p50": self.p50_us,
            "p95": self.p95_us,
            "p99": self.p99_us,
            "count": self.count,
        }


class MetricsCollector:
    """
    Collects and aggregates service metrics.

    Features:
    - Rolling window latency tracking per upstream source
    - Counter-based event tracking (failures, fallbacks, workflow runs)
    """

    def __init__(
        self,
        latency_window_size: int = 1000,
    ) -> None:
        """
        Initialize metrics collector.

        Args:
            latency_window_size: Number of samples to keep per latency metric.
        """
        self._window_size = latency_window_size
        self._latencies: dict[str, deque[int]] = {}
        self._counters: dict[str, int] = {}
        self._start_time = time.time()

    def record_latency(self, name: str, latency_us: int) -> None:
        """
        Record a latency measurement.

        Args:
            name: Metric name (e.g., "upstream.coingecko").
            latency_us: Latency in microseconds.
        """
        if name not in self._latencies:
            self._latencies[name] = deque(maxlen=self._window_size)

        self._latencies[name].append(latency_us)

    def record_upstream(self, source: str, latency_us: int, failed: bool = False) -> None:
        """
        Record the outcome of one outbound call.

        Args:
            source: Upstream source name (e.g., "coingecko").
            latency_us: Round-trip time in microseconds.
            failed: Whether the call raised.
        """
        self.record_latency(f"{UPSTREAM_LATENCY_PREFIX}{source}", latency_us)
        if failed:
            self.increment_counter(UPSTREAM_FAILURES)

    def increment_counter(self, name: str, value: int = 1) -> None:
        """
        Increment a counter.

        Args:
            name: Counter name.
            value: Amount to increment.
        """
        self._counters[name] = self._counters.get(name, 0) + value

    def get_counter(self, name: str) -> int:
        """Get counter value."""
        return self._counters.get(name, 0)

    def get_latency_stats(self, name: str) -> LatencyStats:
        """
        Get latency statistics for a metric.

        Args:
            name: Metric name.

        Returns:
            LatencyStats with aggregated values.
        """
        samples = self._latencies.get(name)
        if not samples:
            return LatencyStats()

        ordered = sorted(samples)
        n = len(ordered)

        return LatencyStats(
            min_us=ordered[0],
            max_us=ordered[-1],
            avg_us=sum(ordered) / n,
            p50_us=ordered[n // 2],
            p95_us=ordered[min(int(n * 0.95), n - 1)],
            p99_us=ordered[min(int(n * 0.99), n - 1)],
            count=n,
        )

    @property
    def uptime_seconds(self) -> float:
        """Get uptime in seconds."""
        return time.time() - self._start_time

    def to_dict(self) -> dict[str, object]:
        """
        Export all metrics as a dict for the status endpoint.

        Returns:
            Dict with uptime, counters and per-metric latency stats.
        """
        return {
            "uptimeSeconds": round(self.uptime_seconds, 3),
            "counters": dict(self._counters),
            "latencies": {
                name: self.get_latency_stats(name).to_dict() for name in self._latencies
            },
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self._latencies.clear()
        self._counters.clear()
        self._start_time = time.time()
