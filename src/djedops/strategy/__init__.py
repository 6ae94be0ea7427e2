"""Strategy module for protocol metrics, arbitrage signals and simulation."""

from djedops.strategy.calculator import (
    classify_status,
    compute_reserve_ratio,
    derive_protocol_state,
    synthesize_protocol_state,
)
from djedops.strategy.opportunity import OpportunityTracker, is_same_opportunity
from djedops.strategy.signals import (
    ProfitModel,
    classify_signal,
    compute_net_profit,
    compute_spread,
    evaluate_quote,
)
from djedops.strategy.simulation import PriceSimulation


__all__ = [
    "OpportunityTracker",
    "PriceSimulation",
    "ProfitModel",
    "classify_signal",
    "classify_status",
    "compute_net_profit",
    "compute_reserve_ratio",
    "compute_spread",
    "derive_protocol_state",
    "evaluate_quote",
    "is_same_opportunity",
    "synthesize_protocol_state",
]
