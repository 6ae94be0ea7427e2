"""Upstream HTTP integration module."""

from djedops.upstream.client import (
    HttpClient,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
    fetch_with_retry,
)
from djedops.upstream.models import (
    CoinGeckoPrice,
    DefiLlamaCoinsResponse,
    ErgoBlocksPage,
    ErgoNetworkInfo,
    ParaswapPricesResponse,
    SpectrumMarket,
    YieldPool,
)


__all__ = [
    "CoinGeckoPrice",
    "DefiLlamaCoinsResponse",
    "ErgoBlocksPage",
    "ErgoNetworkInfo",
    "HttpClient",
    "ParaswapPricesResponse",
    "SpectrumMarket",
    "UpstreamError",
    "UpstreamRateLimitError",
    "UpstreamTimeoutError",
    "YieldPool",
    "fetch_with_retry",
]
