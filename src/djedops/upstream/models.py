"""
Pydantic models for upstream API responses.

These models provide type-safe parsing of the public explorer, price,
DEX and DeFi aggregator payloads with automatic validation. Unknown
fields are ignored so upstream additions never break parsing.
"""

from typing import Any

from pydantic import BaseModel, Field


class CoinGeckoPrice(BaseModel):
    """One coin entry of CoinGecko's `simple/price` response."""

    usd: float | None = None
    usd_market_cap: float | None = None
    usd_24h_vol: float | None = None
    usd_24h_change: float | None = None
    last_updated_at: int | None = None


class DefiLlamaCoin(BaseModel):
    """One coin entry of DefiLlama's `prices/current` response."""

    price: float | None = None
    symbol: str | None = None
    timestamp: int | None = None
    confidence: float | None = None


class DefiLlamaCoinsResponse(BaseModel):
    """DefiLlama current prices response."""

    coins: dict[str, DefiLlamaCoin] = Field(default_factory=dict)


class ErgoNetworkInfo(BaseModel):
    """Subset of the explorer `/info` response used for derivation."""

    supply: float | None = None
    version: str | None = None

    model_config = {"populate_by_name": True, "extra": "allow"}


class ErgoBlock(BaseModel):
    """Block header entry from the explorer `/blocks` listing."""

    id: str | None = None
    height: int | None = None
    timestamp: int | None = None
    transactions_count: int = Field(default=0, alias="transactionsCount")

    model_config = {"populate_by_name": True}


class ErgoBlocksPage(BaseModel):
    """Paged explorer `/blocks` response."""

    items: list[ErgoBlock] = Field(default_factory=list)
    total: int = 0

    @property
    def transaction_count(self) -> int:
        """Total transactions across the page."""
        return sum(block.transactions_count for block in self.items)


class ParaswapPriceRoute(BaseModel):
    """Price route of a Paraswap `/prices` quote."""

    src_amount: str | None = Field(default=None, alias="srcAmount")
    dest_amount: str | None = Field(default=None, alias="destAmount")
    gas_cost: str = Field(default="0", alias="gasCost")
    src_usd: str | None = Field(default=None, alias="srcUSD")
    dest_usd: str | None = Field(default=None, alias="destUSD")
    best_route: list[dict[str, Any]] = Field(default_factory=list, alias="bestRoute")

    model_config = {"populate_by_name": True}

    @property
    def exchange(self) -> str:
        """Exchange of the first hop of the best route."""
        try:
            return str(self.best_route[0]["swaps"][0]["swapExchanges"][0]["exchange"])
        except (IndexError, KeyError, TypeError):
            return "Paraswap"

    @property
    def gas_cost_int(self) -> int:
        """Gas cost as integer units."""
        try:
            return int(float(self.gas_cost))
        except ValueError:
            return 0


class ParaswapPricesResponse(BaseModel):
    """Paraswap `/prices` response."""

    price_route: ParaswapPriceRoute | None = Field(default=None, alias="priceRoute")

    model_config = {"populate_by_name": True}


class DefiLlamaProtocol(BaseModel):
    """Protocol entry from DefiLlama's `/protocols` listing."""

    name: str
    slug: str | None = None
    chain: str | None = None
    tvl: float | None = None
    change_1d: float | None = None
    category: str | None = None
    logo: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.slug or self.name.lower(),
            "name": self.name,
            "chain": self.chain or "Multi-chain",
            "tvl": self.tvl or 0,
            "change24h": self.change_1d or 0,
            "category": self.category or "DeFi",
            "logo": self.logo,
        }


class YieldPool(BaseModel):
    """Pool entry from DefiLlama's yields `/pools` listing."""

    pool: str
    chain: str | None = None
    project: str | None = None
    symbol: str | None = None
    tvl_usd: float = Field(default=0.0, alias="tvlUsd")
    apy_base: float | None = Field(default=None, alias="apyBase")
    apy_reward: float | None = Field(default=None, alias="apyReward")
    apy: float | None = None
    reward_tokens: list[str] | None = Field(default=None, alias="rewardTokens")
    underlying_tokens: list[str] | None = Field(default=None, alias="underlyingTokens")
    pool_meta: str | None = Field(default=None, alias="poolMeta")
    il_risk: str | None = Field(default=None, alias="ilRisk")

    model_config = {"populate_by_name": True}

    def to_dict(self) -> dict[str, Any]:
        return {
            "pool": self.pool,
            "chain": self.chain,
            "project": self.project,
            "symbol": self.symbol,
            "tvlUsd": self.tvl_usd,
            "apyBase": self.apy_base or 0,
            "apyReward": self.apy_reward or 0,
            "apy": self.apy,
            "rewardTokens": self.reward_tokens or [],
            "underlyingTokens": self.underlying_tokens or [],
            "poolMeta": self.pool_meta,
            "ilRisk": self.il_risk,
        }


class YieldPoolsResponse(BaseModel):
    """DefiLlama yields `/pools` response."""

    data: list[YieldPool] = Field(default_factory=list)


class SpectrumVolume(BaseModel):
    """Volume figure of a Spectrum market."""

    value: float = 0.0


class SpectrumMarket(BaseModel):
    """Market entry from Spectrum's `price-tracking/markets` listing."""

    base_symbol: str | None = Field(default=None, alias="baseSymbol")
    quote_symbol: str | None = Field(default=None, alias="quoteSymbol")
    last_price: float = Field(default=0.0, alias="lastPrice")
    base_volume: SpectrumVolume | None = Field(default=None, alias="baseVolume")
    quote_volume: SpectrumVolume | None = Field(default=None, alias="quoteVolume")

    model_config = {"populate_by_name": True}

    @property
    def pair(self) -> str:
        """Human-readable pair name."""
        return f"{self.base_symbol}/{self.quote_symbol}"
