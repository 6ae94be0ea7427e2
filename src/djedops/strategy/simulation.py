"""
What-if price simulation.

Recomputes the reserve ratio for a hypothetical collateral price and
applies named stress scenarios on top of a live protocol state.
"""

import logging

from djedops.config.constants import (
    BANK_RUN_RATIO,
    FLASH_CRASH_FACTOR,
    SIMULATION_MAX_PRICE,
    SIMULATION_MIN_PRICE,
)
from djedops.core.types import ProtocolState, SimulationResult, SimulationScenario
from djedops.strategy.calculator import classify_status, compute_reserve_ratio
from djedops.utils.math import clamp


logger = logging.getLogger(__name__)


class PriceSimulation:
    """
    Interactive price simulation over one protocol state.

    The simulated price moves within the $0.10 - $10.00 range. While
    the oracle is frozen, price changes are ignored; under a bank run
    the ratio is forced regardless of price.
    """

    def __init__(
        self,
        current_price: float,
        current_ratio: float,
        state: ProtocolState | None = None,
    ) -> None:
        """
        Initialize the simulation.

        Args:
            current_price: Live ERG price in USD.
            current_ratio: Live reserve ratio in percent.
            state: Live protocol state, enables exact recomputation.
        """
        self._base_price = current_price
        self._base_ratio = current_ratio
        self._state = state
        self._price = current_price
        self._scenario = SimulationScenario.NONE
        self._frozen = False
        self._forced_ratio: float | None = None

    @classmethod
    def from_state(cls, state: ProtocolState) -> "PriceSimulation":
        return cls(state.erg_price, state.reserve_ratio, state)

    @property
    def price(self) -> float:
        return self._price

    @property
    def scenario(self) -> SimulationScenario:
        return self._scenario

    @property
    def oracle_frozen(self) -> bool:
        return self._frozen

    def ratio_for_price(self, price: float) -> float:
        """
        Reserve ratio at a hypothetical ERG price.

        Uses the deployed reserves and supply when known, otherwise
        scales the live ratio proportionally; 0.0 without any data.
        """
        if self._state is not None and self._state.stablecoin_supply > 0:
            return compute_reserve_ratio(
                self._state.base_reserves, price, self._state.stablecoin_supply
            )
        if self._base_ratio > 0 and self._base_price > 0:
            return self._base_ratio * (price / self._base_price)
        return 0.0

    @property
    def result(self) -> SimulationResult:
        """Current simulated price, ratio and status."""
        ratio = (
            self._forced_ratio
            if self._forced_ratio is not None
            else self.ratio_for_price(self._price)
        )
        return SimulationResult(
            price=self._price,
            reserve_ratio=ratio,
            status=classify_status(ratio),
            scenario=self._scenario,
            frozen=self._frozen,
        )

    def set_price(self, price: float) -> SimulationResult:
        """
        Move the simulated price, clamped to the slider range.

        Ignored while the oracle is frozen. Clears a forced ratio.
        """
        if self._frozen:
            logger.debug(f"Oracle frozen at ${self._price:.2f}, ignoring price {price}")
            return self.result
        self._price = clamp(price, SIMULATION_MIN_PRICE, SIMULATION_MAX_PRICE)
        self._forced_ratio = None
        return self.result

    def apply_scenario(self, scenario: SimulationScenario) -> SimulationResult:
        """
        Activate a stress scenario.

        Raises:
            ValueError: If the live price or ratio is unknown.
        """
        if not self._base_price or not self._base_ratio:
            raise ValueError("Cannot run simulation without price and ratio data")

        logger.info(f"Scenario activated: {scenario.value}")
        self._scenario = scenario

        if scenario == SimulationScenario.FLASH_CRASH:
            self._frozen = False
            self._forced_ratio = None
            self._price = self._base_price * FLASH_CRASH_FACTOR
        elif scenario == SimulationScenario.ORACLE_FREEZE:
            self._frozen = True
        elif scenario == SimulationScenario.BANK_RUN:
            self._frozen = False
            self._forced_ratio = BANK_RUN_RATIO
        else:
            self._frozen = False
            self._forced_ratio = None
            self._price = self._base_price

        return self.result
