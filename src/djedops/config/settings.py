"""
Application settings with environment variable support.

Uses Pydantic Settings for type-safe configuration with automatic
environment variable loading and validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from djedops.config.constants import (
    COINGECKO_API_URL,
    DEFAULT_DEX_FEE_RATE,
    DEFAULT_GAS_COST_USD,
    DEFAULT_HISTORY_MAX_ENTRIES,
    DEFAULT_NODE_LATENCY_MAX_MS,
    DEFAULT_NODE_LATENCY_MIN_MS,
    DEFAULT_SLIPPAGE_RATE,
    DEFAULT_TRADE_AMOUNT,
    DEFILLAMA_API_URL,
    DEFILLAMA_COINS_URL,
    DEFILLAMA_YIELDS_URL,
    ERGO_API_URL,
    EXPLORER_TIMEOUT_S,
    PARASWAP_API_URL,
    PRICE_TIMEOUT_S,
    SPECTRUM_API_URL,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Sensitive values use SecretStr for safe handling.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Upstream Sources
    # =========================================================================

    ergo_api_url: str = Field(default=ERGO_API_URL, description="Ergo Explorer API base")
    coingecko_api_url: str = Field(default=COINGECKO_API_URL, description="CoinGecko API base")
    defillama_coins_url: str = Field(
        default=DEFILLAMA_COINS_URL,
        description="DefiLlama coin price API base",
    )
    defillama_api_url: str = Field(default=DEFILLAMA_API_URL, description="DefiLlama TVL API base")
    defillama_yields_url: str = Field(
        default=DEFILLAMA_YIELDS_URL,
        description="DefiLlama yields API base",
    )
    paraswap_api_url: str = Field(default=PARASWAP_API_URL, description="Paraswap API base")
    spectrum_api_url: str = Field(default=SPECTRUM_API_URL, description="Spectrum DEX API base")

    coingecko_api_key: SecretStr | None = Field(
        default=None,
        description="Optional CoinGecko demo API key",
    )
    infura_api_key: SecretStr | None = Field(
        default=None,
        description="Optional Infura key for live Ethereum gas prices",
    )

    price_timeout_s: float = Field(
        default=PRICE_TIMEOUT_S,
        gt=0.0,
        le=60.0,
        description="Timeout for price source calls in seconds",
    )
    explorer_timeout_s: float = Field(
        default=EXPLORER_TIMEOUT_S,
        gt=0.0,
        le=60.0,
        description="Timeout for explorer and aggregator calls in seconds",
    )

    # =========================================================================
    # Arbitrage Profit Model
    # =========================================================================

    dex_fee_rate: float = Field(
        default=DEFAULT_DEX_FEE_RATE,
        ge=0.0,
        le=0.1,
        description="DEX swap fee as a fraction of notional (0.003 = 0.3%)",
    )
    slippage_rate: float = Field(
        default=DEFAULT_SLIPPAGE_RATE,
        ge=0.0,
        le=0.1,
        description="Expected slippage as a fraction of notional",
    )
    gas_cost_usd: float = Field(
        default=DEFAULT_GAS_COST_USD,
        ge=0.0,
        description="Fixed gas cost per arbitrage in USD",
    )
    default_trade_amount: float = Field(
        default=DEFAULT_TRADE_AMOUNT,
        gt=0.0,
        description="Trade notional in USD used for profit estimates",
    )

    # =========================================================================
    # Monitoring
    # =========================================================================

    poll_interval_s: float = Field(
        default=15.0,
        ge=1.0,
        le=3600.0,
        description="Interval between background protocol refreshes",
    )
    demo_mode: bool = Field(
        default=False,
        description="Use the fixed demo DEX price instead of live DEX data",
    )

    # =========================================================================
    # Workflow Execution
    # =========================================================================

    history_path: Path = Field(
        default=Path(".djedops/executions.json"),
        description="Location of the workflow execution history document",
    )
    history_max_entries: int = Field(
        default=DEFAULT_HISTORY_MAX_ENTRIES,
        ge=1,
        le=1000,
        description="Maximum number of execution logs kept in history",
    )
    node_latency_min_ms: int = Field(
        default=DEFAULT_NODE_LATENCY_MIN_MS,
        ge=0,
        description="Lower bound of simulated per-node latency",
    )
    node_latency_max_ms: int = Field(
        default=DEFAULT_NODE_LATENCY_MAX_MS,
        ge=0,
        le=60_000,
        description="Upper bound of simulated per-node latency",
    )

    # =========================================================================
    # Server
    # =========================================================================

    host: str = Field(default="0.0.0.0", description="Bind address for the API server")
    port: int = Field(default=8000, ge=1, le=65535, description="Bind port for the API server")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional rotating log file, written at DEBUG",
    )

    use_uvloop: bool = Field(
        default=True,
        description="Use uvloop for improved async performance",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @model_validator(mode="after")
    def validate_latency_bounds(self) -> "Settings":
        """Ensure the simulated latency range is not inverted."""
        if self.node_latency_max_ms < self.node_latency_min_ms:
            raise ValueError("node_latency_max_ms must be >= node_latency_min_ms")
        return self

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def latency_range_ms(self) -> tuple[int, int]:
        """Simulated node latency bounds as a tuple."""
        return (self.node_latency_min_ms, self.node_latency_max_ms)

    @property
    def total_cost_rate(self) -> float:
        """Variable cost rate (fee + slippage) applied to the notional."""
        return self.dex_fee_rate + self.slippage_rate


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.
    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return Settings()
