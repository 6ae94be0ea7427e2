"""
Unit tests for numeric and time helpers.
"""

import pytest

from djedops.utils.math import clamp, normalize_pct, percent_change, safe_divide
from djedops.utils.time import LatencyTimer, format_duration_ms, format_timestamp_ms


class TestMath:
    """Tests for numeric helpers."""

    def test_safe_divide(self) -> None:
        assert safe_divide(10, 4) == 2.5
        assert safe_divide(10, 0) == 0.0
        assert safe_divide(10, 0, default=-1.0) == -1.0

    def test_percent_change(self) -> None:
        assert percent_change(1.02, 1.0) == pytest.approx(2.0)
        assert percent_change(1.0, 0.0) == 0.0

    def test_normalize_pct_removes_float_noise(self) -> None:
        raw = (0.995 - 1.0) * 100

        assert raw != -0.5
        assert normalize_pct(raw) == -0.5

    @pytest.mark.parametrize(("value", "expected"), [(-1.0, 0.1), (5.0, 5.0), (11.0, 10.0)])
    def test_clamp(self, value: float, expected: float) -> None:
        assert clamp(value, 0.1, 10.0) == expected


class TestTime:
    """Tests for time helpers."""

    def test_format_timestamp_ms(self) -> None:
        assert format_timestamp_ms(1_704_067_200_123) == "2024-01-01T00:00:00.123Z"

    def test_format_duration_ms(self) -> None:
        assert format_duration_ms(450) == "450ms"
        assert format_duration_ms(1500) == "1.50s"

    def test_latency_timer(self) -> None:
        with LatencyTimer() as timer:
            sum(range(1000))

        assert timer.latency_us >= 0
