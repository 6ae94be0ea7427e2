"""
Protocol constants and configuration values.

This module contains all hardcoded values used throughout DjedOps.
Values are organized by category for easy maintenance and auditing.
"""

from typing import Final


# =============================================================================
# Upstream Endpoints
# =============================================================================

ERGO_API_URL: Final[str] = "https://api.ergoplatform.com/api/v1"
COINGECKO_API_URL: Final[str] = "https://api.coingecko.com/api/v3"
DEFILLAMA_COINS_URL: Final[str] = "https://coins.llama.fi"
DEFILLAMA_API_URL: Final[str] = "https://api.llama.fi"
DEFILLAMA_YIELDS_URL: Final[str] = "https://yields.llama.fi"
PARASWAP_API_URL: Final[str] = "https://apiv5.paraswap.io"
SPECTRUM_API_URL: Final[str] = "https://api.spectrum.fi/v1"
INFURA_MAINNET_URL: Final[str] = "https://mainnet.infura.io/v3"

# CoinGecko / DefiLlama coin identifier for the collateral asset
ERGO_COIN_ID: Final[str] = "ergo"
DEFILLAMA_ERGO_KEY: Final[str] = "coingecko:ergo"


# =============================================================================
# Timeouts
# =============================================================================

PRICE_TIMEOUT_S: Final[float] = 5.0
EXPLORER_TIMEOUT_S: Final[float] = 10.0
DEFAULT_TIMEOUT_S: Final[float] = 10.0


# =============================================================================
# Retry Strategy
# =============================================================================

RETRY_ATTEMPTS: Final[int] = 3
RETRY_INITIAL_DELAY: Final[float] = 1.0  # seconds
RETRY_MULTIPLIER: Final[float] = 2.0


# =============================================================================
# Protocol Health Bands (reserve ratio, percent)
# =============================================================================

OPTIMAL_RATIO: Final[float] = 400.0
WARNING_RATIO: Final[float] = 200.0


# =============================================================================
# Synthetic Protocol State
# =============================================================================

# Share of circulating ERG treated as protocol reserves (0.15%)
RESERVE_SHARE_OF_SUPPLY: Final[float] = 0.0015

# Reserve-coin circulation as share of base reserves
SHEN_SHARE_OF_RESERVES: Final[float] = 0.3

# Synthetic target ratio = base + (avg tx count mod span)
TARGET_RATIO_BASE: Final[float] = 500.0
TARGET_RATIO_SPAN: Final[int] = 200

DEFAULT_ERG_SUPPLY: Final[float] = 97_739_924.0
DEFAULT_AVG_TX_COUNT: Final[float] = 100.0
RECENT_BLOCKS_LIMIT: Final[int] = 10

STABLECOIN_PEG: Final[float] = 1.0


# =============================================================================
# Fallback Values
# =============================================================================

FALLBACK_ERG_PRICE: Final[float] = 1.45
FALLBACK_BASE_RESERVES: Final[float] = 146_610.0
FALLBACK_STABLECOIN_SUPPLY: Final[float] = 40_423.0
FALLBACK_SHEN_CIRCULATION: Final[float] = 43_983.0

# Static protocol quote (no live contract query)
PROTOCOL_MINT_PRICE: Final[float] = 1.00
PROTOCOL_REDEEM_PRICE: Final[float] = 0.98

# DEX price used in demo mode
DEMO_DEX_PRICE: Final[float] = 1.02

SOURCE_SYNTHETIC: Final[str] = "ergo-blockchain-synthetic"
SOURCE_FALLBACK: Final[str] = "fallback"
SOURCE_PROTOCOL: Final[str] = "djed-protocol"
SOURCE_DEMO: Final[str] = "demo"


# =============================================================================
# Arbitrage Signal Engine
# =============================================================================

MINT_THRESHOLD_PCT: Final[float] = 0.5
REDEEM_THRESHOLD_PCT: Final[float] = -0.5

DEFAULT_DEX_FEE_RATE: Final[float] = 0.003
DEFAULT_SLIPPAGE_RATE: Final[float] = 0.005
DEFAULT_GAS_COST_USD: Final[float] = 0.50
DEFAULT_TRADE_AMOUNT: Final[float] = 1000.0

# Opportunity history policy
SAME_OPPORTUNITY_SPREAD_DELTA_PCT: Final[float] = 0.1
SAME_OPPORTUNITY_WINDOW_MS: Final[int] = 60_000
OPPORTUNITY_EXPIRY_MS: Final[int] = 300_000
MAX_OPPORTUNITY_HISTORY: Final[int] = 20


# =============================================================================
# Price Simulation
# =============================================================================

SIMULATION_MIN_PRICE: Final[float] = 0.10
SIMULATION_MAX_PRICE: Final[float] = 10.00
FLASH_CRASH_FACTOR: Final[float] = 0.5
BANK_RUN_RATIO: Final[float] = 150.0


# =============================================================================
# Workflow Execution
# =============================================================================

DEFAULT_NODE_LATENCY_MIN_MS: Final[int] = 300
DEFAULT_NODE_LATENCY_MAX_MS: Final[int] = 1000

POLICY_NODE_ID: Final[str] = "POLICY_ENFORCEMENT"
POLICY_NODE_NAME: Final[str] = "[SENTINEL_POLICY]"
POLICY_BLOCK_MESSAGE: Final[str] = (
    "[BLOCKED] Execution halted by Sentinel Policy: CRITICAL STATE. "
    "Workflow cannot execute while protocol security is compromised."
)

HISTORY_STORAGE_KEY: Final[str] = "workflow_executions"
DEFAULT_HISTORY_MAX_ENTRIES: Final[int] = 50


# =============================================================================
# Gas Estimates
# =============================================================================

ERGO_MIN_FEE_PER_BYTE: Final[float] = 0.000001  # ERG per byte
ERGO_TYPICAL_TX_SIZE: Final[int] = 300  # bytes

ETH_FALLBACK_GAS_GWEI: Final[dict[str, int]] = {
    "slow": 20,
    "standard": 30,
    "fast": 50,
    "instant": 80,
}


# =============================================================================
# Token Tables
# =============================================================================

# Symbol -> CoinGecko coin id
TOKEN_IDS: Final[dict[str, str]] = {
    "ERG": "ergo",
    "ETH": "ethereum",
    "BTC": "bitcoin",
    "WBTC": "wrapped-bitcoin",
    "USDC": "usd-coin",
    "USDT": "tether",
    "DAI": "dai",
    "WETH": "weth",
    "MATIC": "matic-network",
    "SOL": "solana",
    "ADA": "cardano",
}

DEFAULT_PRICE_SYMBOLS: Final[tuple[str, ...]] = ("ERG", "ETH", "BTC", "USDC")

# Symbol -> Ethereum mainnet address (Paraswap routing)
TOKEN_ADDRESSES: Final[dict[str, str]] = {
    "ETH": "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE",
    "WETH": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    "USDC": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    "USDT": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
    "DAI": "0x6B175474E89094C44Da98b954EedeAC495271d0F",
    "WBTC": "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599",
}

DEFAULT_ROUTE_AMOUNT: Final[str] = "1000000000000000000"  # 1 token in wei
DEFAULT_ROUTE_SLIPPAGE_PCT: Final[float] = 0.1

# Stablecoin tickers matched on the DEX market list
DEX_STABLECOIN_SYMBOLS: Final[frozenset[str]] = frozenset({"SigUSD", "DJED"})
DEX_QUOTE_SYMBOL: Final[str] = "ERG"


# =============================================================================
# DeFi Aggregator Filters
# =============================================================================

TOP_PROTOCOLS_LIMIT: Final[int] = 20
TOP_YIELDS_LIMIT: Final[int] = 50
MIN_YIELD_POOL_TVL: Final[float] = 100_000.0
MAX_SANE_APY: Final[float] = 1000.0


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

LOG_FILE_MAX_BYTES: Final[int] = 5 * 1024 * 1024
LOG_FILE_BACKUPS: Final[int] = 3

# Maximum log queue size
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000


# =============================================================================
# Workflow Applets
# =============================================================================

APPLET_NAMES: Final[dict[str, str]] = {
    "djed_monitor": "Djed Monitor",
    "djed_sim": "Djed Simulator",
    "djed_sentinel": "Djed Sentinel",
    "djed_ledger": "Djed Ledger",
    "djed_arbitrage": "Djed Arbitrage",
}

# Default thresholds when a condition carries no value
DEFAULT_CONDITION_THRESHOLDS: Final[dict[str, float]] = {
    "dsi_below": 400.0,
    "dsi_above": 500.0,
    "price_below": 0.95,
    "price_above": 1.05,
}
