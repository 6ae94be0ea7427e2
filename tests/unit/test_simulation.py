"""
Unit tests for the price simulation.
"""

import pytest

from djedops.core.types import ProtocolStatus, SimulationScenario
from djedops.strategy.calculator import derive_protocol_state, fallback_protocol_state
from djedops.strategy.simulation import PriceSimulation


@pytest.fixture
def simulation() -> PriceSimulation:
    """Simulation over the fallback state (ratio ~525.9% at $1.45)."""
    return PriceSimulation.from_state(fallback_protocol_state())


class TestPriceSimulation:
    """Tests for PriceSimulation."""

    def test_initial_result_matches_live_state(self, simulation: PriceSimulation) -> None:
        result = simulation.result

        assert result.price == 1.45
        assert result.reserve_ratio == pytest.approx(525.9, abs=0.05)
        assert result.status == ProtocolStatus.OPTIMAL
        assert result.scenario == SimulationScenario.NONE

    def test_exact_recomputation(self, simulation: PriceSimulation) -> None:
        """Ratio scales linearly with price over fixed reserves and supply."""
        ratio = simulation.ratio_for_price(0.725)

        assert ratio == pytest.approx(525.9 / 2, abs=0.05)

    def test_proportional_scaling_without_state(self) -> None:
        simulation = PriceSimulation(current_price=2.0, current_ratio=400.0)

        assert simulation.ratio_for_price(1.0) == pytest.approx(200.0)

    def test_no_data(self) -> None:
        simulation = PriceSimulation(current_price=0.0, current_ratio=0.0)

        assert simulation.ratio_for_price(1.0) == 0.0

    @pytest.mark.parametrize(("requested", "expected"), [(0.01, 0.10), (25.0, 10.0), (2.5, 2.5)])
    def test_set_price_is_clamped(
        self, simulation: PriceSimulation, requested: float, expected: float
    ) -> None:
        assert simulation.set_price(requested).price == expected

    def test_falling_price_reaches_critical(self, simulation: PriceSimulation) -> None:
        result = simulation.set_price(0.5)

        assert result.reserve_ratio < 200
        assert result.status == ProtocolStatus.CRITICAL

    def test_flash_crash_halves_price(self, simulation: PriceSimulation) -> None:
        result = simulation.apply_scenario(SimulationScenario.FLASH_CRASH)

        assert result.price == pytest.approx(0.725)
        assert result.reserve_ratio == pytest.approx(525.9 / 2, abs=0.05)
        assert result.status == ProtocolStatus.WARNING

    def test_oracle_freeze_ignores_price_changes(self, simulation: PriceSimulation) -> None:
        simulation.apply_scenario(SimulationScenario.ORACLE_FREEZE)
        result = simulation.set_price(0.2)

        assert result.price == 1.45
        assert result.frozen
        assert simulation.oracle_frozen

    def test_bank_run_forces_ratio(self, simulation: PriceSimulation) -> None:
        result = simulation.apply_scenario(SimulationScenario.BANK_RUN)

        assert result.reserve_ratio == 150.0
        assert result.status == ProtocolStatus.CRITICAL

    def test_price_change_clears_bank_run(self, simulation: PriceSimulation) -> None:
        simulation.apply_scenario(SimulationScenario.BANK_RUN)

        assert simulation.set_price(1.45).reserve_ratio == pytest.approx(525.9, abs=0.05)

    def test_reset(self, simulation: PriceSimulation) -> None:
        simulation.apply_scenario(SimulationScenario.FLASH_CRASH)
        result = simulation.apply_scenario(SimulationScenario.NONE)

        assert result.price == 1.45
        assert not result.frozen
        assert simulation.scenario == SimulationScenario.NONE

    def test_scenario_requires_live_data(self) -> None:
        simulation = PriceSimulation(current_price=0.0, current_ratio=0.0)

        with pytest.raises(ValueError):
            simulation.apply_scenario(SimulationScenario.FLASH_CRASH)

    def test_result_to_dict(self) -> None:
        state = derive_protocol_state(2.0, 1000.0, 400.0)
        data = PriceSimulation.from_state(state).result.to_dict()

        assert data == {
            "price": 2.0,
            "reserveRatio": pytest.approx(500.0),
            "status": "OPTIMAL",
            "scenario": "none",
            "oracleFrozen": False,
        }
