"""Utility functions for DjedOps."""

from djedops.utils.math import clamp, normalize_pct, percent_change, safe_divide
from djedops.utils.time import (
    LatencyTimer,
    format_duration_ms,
    format_timestamp_ms,
    get_timestamp_ms,
    get_timestamp_us,
)


__all__ = [
    "LatencyTimer",
    "clamp",
    "format_duration_ms",
    "format_timestamp_ms",
    "get_timestamp_ms",
    "get_timestamp_us",
    "normalize_pct",
    "percent_change",
    "safe_divide",
]
