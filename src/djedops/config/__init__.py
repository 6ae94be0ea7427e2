"""Configuration module for DjedOps."""

from djedops.config.constants import (
    ERGO_API_URL,
    MINT_THRESHOLD_PCT,
    OPTIMAL_RATIO,
    REDEEM_THRESHOLD_PCT,
    WARNING_RATIO,
)
from djedops.config.settings import Settings, get_settings


__all__ = [
    "Settings",
    "get_settings",
    "ERGO_API_URL",
    "MINT_THRESHOLD_PCT",
    "OPTIMAL_RATIO",
    "REDEEM_THRESHOLD_PCT",
    "WARNING_RATIO",
]
