"""
Arbitrage signal classification and profit estimation.

Compares the open-market (DEX) stablecoin price to the protocol mint
price and estimates the net profit of a fixed-notional round trip.
"""

from dataclasses import dataclass

from djedops.config.constants import (
    DEFAULT_DEX_FEE_RATE,
    DEFAULT_GAS_COST_USD,
    DEFAULT_SLIPPAGE_RATE,
    DEFAULT_TRADE_AMOUNT,
    MINT_THRESHOLD_PCT,
    REDEEM_THRESHOLD_PCT,
)
from djedops.config.settings import Settings
from djedops.core.types import ArbitrageQuote, ArbitrageSignal
from djedops.utils.math import normalize_pct, percent_change, safe_divide


@dataclass(slots=True, frozen=True)
class ProfitModel:
    """Cost assumptions for one arbitrage round trip."""

    dex_fee_rate: float = DEFAULT_DEX_FEE_RATE
    slippage_rate: float = DEFAULT_SLIPPAGE_RATE
    gas_cost_usd: float = DEFAULT_GAS_COST_USD
    trade_amount: float = DEFAULT_TRADE_AMOUNT

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProfitModel":
        return cls(
            dex_fee_rate=settings.dex_fee_rate,
            slippage_rate=settings.slippage_rate,
            gas_cost_usd=settings.gas_cost_usd,
            trade_amount=settings.default_trade_amount,
        )

    @property
    def costs(self) -> float:
        """Total cost of one round trip in USD."""
        return (
            self.trade_amount * self.dex_fee_rate
            + self.trade_amount * self.slippage_rate
            + self.gas_cost_usd
        )


@dataclass(slots=True, frozen=True)
class ProfitEstimate:
    """Breakdown of a profit estimate."""

    tokens: float
    gross_profit: float
    costs: float
    net_profit: float

    @property
    def floored_net_profit(self) -> float:
        """Net profit clamped at zero, as shown to users."""
        return max(0.0, self.net_profit)

    @property
    def is_profitable(self) -> bool:
        """Check whether the trade clears its costs."""
        return self.net_profit > 0


def compute_spread(dex_price: float, protocol_price: float) -> tuple[float, float]:
    """
    Compute the absolute and percentage spread.

    Returns:
        (spread, spread_pct); spread_pct is 0 when protocol_price <= 0.
    """
    spread = dex_price - protocol_price
    return spread, percent_change(dex_price, protocol_price)


def classify_signal(spread_pct: float) -> ArbitrageSignal:
    """
    Classify a spread into an arbitrage signal.

    Both thresholds are inclusive: +0.5% or more is MINT, -0.5% or less
    is REDEEM, anything in between is NONE.
    """
    pct = normalize_pct(spread_pct)
    if pct >= MINT_THRESHOLD_PCT:
        return ArbitrageSignal.MINT
    if pct <= REDEEM_THRESHOLD_PCT:
        return ArbitrageSignal.REDEEM
    return ArbitrageSignal.NONE


def estimate_profit(
    dex_price: float,
    protocol_price: float,
    model: ProfitModel,
) -> ProfitEstimate:
    """
    Estimate the profit of trading `model.trade_amount` across the spread.

    Args:
        dex_price: DEX price in USD.
        protocol_price: Protocol mint price in USD.
        model: Cost assumptions.

    Returns:
        ProfitEstimate with the signed net profit.
    """
    tokens = safe_divide(model.trade_amount, dex_price) if dex_price > 0 else 0.0
    gross = tokens * abs(dex_price - protocol_price)
    costs = model.costs
    return ProfitEstimate(
        tokens=tokens,
        gross_profit=gross,
        costs=costs,
        net_profit=gross - costs,
    )


def compute_net_profit(
    dex_price: float,
    protocol_price: float,
    model: ProfitModel,
) -> float:
    """Net profit floored at zero: `max(0, gross - costs)`."""
    return estimate_profit(dex_price, protocol_price, model).floored_net_profit


def evaluate_quote(
    dex_price: float,
    protocol_price: float,
    model: ProfitModel,
    liquidity: float = 0.0,
    source: str = "",
) -> ArbitrageQuote:
    """
    Evaluate one tick of DEX vs. protocol price.

    Args:
        dex_price: DEX price in USD.
        protocol_price: Protocol mint price in USD.
        model: Cost assumptions.
        liquidity: Market liquidity reported by the DEX.
        source: Provenance of the DEX price.

    Returns:
        Immutable quote with signal and profit estimate.
    """
    spread, spread_pct = compute_spread(dex_price, protocol_price)
    estimate = estimate_profit(dex_price, protocol_price, model)
    return ArbitrageQuote(
        signal=classify_signal(spread_pct),
        dex_price=dex_price,
        protocol_price=protocol_price,
        spread=spread,
        spread_pct=spread_pct,
        estimated_net_profit=estimate.floored_net_profit,
        liquidity=liquidity,
        source=source,
        is_profitable=estimate.is_profitable,
    )
