"""
Unit tests for the derived-metrics calculator.

Tests reserve ratio, status bands and the synthetic state derivation.
"""

import pytest

from djedops.core.types import ProtocolStatus
from djedops.strategy.calculator import (
    average_transactions,
    classify_status,
    compute_reserve_ratio,
    derive_protocol_state,
    fallback_protocol_state,
    synthesize_protocol_state,
)
from djedops.upstream.models import ErgoBlock


class TestReserveRatio:
    """Tests for compute_reserve_ratio."""

    def test_basic_ratio(self) -> None:
        """Reserves worth 5x the supply give 500%."""
        assert compute_reserve_ratio(1000.0, 2.0, 400.0) == pytest.approx(500.0)

    @pytest.mark.parametrize("supply", [0.0, -1.0])
    def test_non_positive_supply_returns_zero(self, supply: float) -> None:
        """A zero or negative supply yields 0 instead of dividing."""
        assert compute_reserve_ratio(1000.0, 2.0, supply) == 0.0


class TestClassifyStatus:
    """Tests for the health bands."""

    @pytest.mark.parametrize(
        ("ratio", "expected"),
        [
            (1000.0, ProtocolStatus.OPTIMAL),
            (400.0, ProtocolStatus.OPTIMAL),
            (399.999, ProtocolStatus.WARNING),
            (200.0, ProtocolStatus.WARNING),
            (199.999, ProtocolStatus.CRITICAL),
            (0.0, ProtocolStatus.CRITICAL),
        ],
    )
    def test_band_boundaries(self, ratio: float, expected: ProtocolStatus) -> None:
        """Lower bounds are inclusive."""
        assert classify_status(ratio) == expected

    def test_bands_cover_every_ratio(self) -> None:
        """Each ratio falls in exactly the band its range defines."""
        for ratio in range(0, 1000, 7):
            status = classify_status(float(ratio))
            if ratio >= 400:
                assert status == ProtocolStatus.OPTIMAL
            elif ratio >= 200:
                assert status == ProtocolStatus.WARNING
            else:
                assert status == ProtocolStatus.CRITICAL


class TestDeriveProtocolState:
    """Tests for state construction."""

    def test_state_is_consistent(self) -> None:
        """Ratio, reserves value and status agree with the inputs."""
        state = derive_protocol_state(erg_price=2.0, base_reserves=1000.0, stablecoin_supply=1000.0)

        assert state.reserves_usd == pytest.approx(2000.0)
        assert state.reserve_ratio == pytest.approx(200.0)
        assert state.status == ProtocolStatus.WARNING
        assert state.stablecoin_price == 1.0

    def test_to_dict_uses_wire_names(self) -> None:
        """Serialized state carries the documented keys."""
        data = derive_protocol_state(1.5, 100.0, 10.0, shen_circulation=30.0).to_dict()

        for key in (
            "ergPrice",
            "baseReserves",
            "reservesUSD",
            "djedSupply",
            "shenCirculation",
            "reserveRatio",
            "status",
            "timestamp",
            "source",
        ):
            assert key in data
        assert data["status"] == "OPTIMAL"


class TestSyntheticState:
    """Tests for the synthetic derivation."""

    def test_ratio_lands_on_target(self) -> None:
        """The derived ratio equals 500 + (avg_tx mod 200)."""
        state = synthesize_protocol_state(1.45, total_supply=97_739_924, avg_tx_count=50)

        assert state.reserve_ratio == pytest.approx(550.0)
        assert state.base_reserves == pytest.approx(97_739_924 * 0.0015)
        assert state.shen_circulation == pytest.approx(state.base_reserves * 0.3)
        assert state.source == "ergo-blockchain-synthetic"

    def test_activity_wraps_at_span(self) -> None:
        """Activity of 250 tx per block gives a 550% target."""
        state = synthesize_protocol_state(1.0, total_supply=1_000_000, avg_tx_count=250)

        assert state.reserve_ratio == pytest.approx(550.0)

    def test_defaults_when_inputs_missing(self) -> None:
        """Missing supply and activity fall back to the defaults."""
        state = synthesize_protocol_state(1.45)

        assert state.base_reserves == pytest.approx(97_739_924 * 0.0015)
        assert state.reserve_ratio == pytest.approx(600.0)
        assert state.status == ProtocolStatus.OPTIMAL

    def test_average_transactions(self) -> None:
        """Mean over blocks, 100 when there are none."""
        blocks = [ErgoBlock(transactionsCount=n) for n in (10, 20, 30)]

        assert average_transactions(blocks) == pytest.approx(20.0)
        assert average_transactions([]) == pytest.approx(100.0)


class TestFallbackState:
    """Tests for the fixed fallback state."""

    def test_fallback_values(self) -> None:
        """Fallback state matches the published constants."""
        state = fallback_protocol_state()

        assert state.erg_price == 1.45
        assert state.base_reserves == 146_610
        assert state.stablecoin_supply == 40_423
        assert state.shen_circulation == 43_983
        assert state.reserves_usd == pytest.approx(212_584.5)
        assert state.reserve_ratio == pytest.approx(525.9, abs=0.05)
        assert state.status == ProtocolStatus.OPTIMAL
        assert state.source == "fallback"
