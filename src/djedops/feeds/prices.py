"""
Price feeds from CoinGecko with DefiLlama as secondary source.

The ERG price tries CoinGecko first and falls back to DefiLlama once;
multi-asset quotes come from CoinGecko only and have no fallback.
"""

import logging

from pydantic import ValidationError

from djedops.config.constants import (
    COINGECKO_API_URL,
    DEFILLAMA_COINS_URL,
    DEFILLAMA_ERGO_KEY,
    ERGO_COIN_ID,
    PRICE_TIMEOUT_S,
    TOKEN_IDS,
)
from djedops.core.types import PriceQuote
from djedops.telemetry.metrics import FALLBACKS_USED, MetricsCollector
from djedops.upstream.client import HttpClient, UpstreamError
from djedops.upstream.models import CoinGeckoPrice, DefiLlamaCoinsResponse
from djedops.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


class PriceUnavailableError(Exception):
    """Every price source failed."""

    pass


class PriceFeed:
    """
    USD price lookups.

    Features:
    - Primary/secondary source chain for the collateral price
    - Multi-symbol quotes with market cap, volume and 24h change
    """

    def __init__(
        self,
        http: HttpClient,
        coingecko_url: str = COINGECKO_API_URL,
        defillama_coins_url: str = DEFILLAMA_COINS_URL,
        timeout: float = PRICE_TIMEOUT_S,
        api_key: str | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the feed.

        Args:
            http: Shared HTTP client.
            coingecko_url: CoinGecko API base.
            defillama_coins_url: DefiLlama coins API base.
            timeout: Per-call timeout in seconds.
            api_key: Optional CoinGecko demo API key.
            metrics: Optional collector for fallback accounting.
        """
        self._http = http
        self._coingecko_url = coingecko_url.rstrip("/")
        self._defillama_url = defillama_coins_url.rstrip("/")
        self._timeout = timeout
        self._headers = {"x-cg-demo-api-key": api_key} if api_key else None
        self._metrics = metrics

    async def get_erg_price(self) -> float:
        """
        Current ERG price in USD.

        Raises:
            PriceUnavailableError: If both sources failed.
        """
        price = await self._coingecko_erg_price()
        if price:
            return price

        price = await self._defillama_erg_price()
        if price:
            if self._metrics is not None:
                self._metrics.increment_counter(FALLBACKS_USED)
            return price

        raise PriceUnavailableError("Failed to fetch real ERG price. All sources unavailable.")

    async def _coingecko_erg_price(self) -> float | None:
        try:
            data = await self._http.get_json(
                f"{self._coingecko_url}/simple/price",
                params={"ids": ERGO_COIN_ID, "vs_currencies": "usd"},
                timeout=self._timeout,
                source="coingecko",
                headers=self._headers,
            )
            entry = data.get(ERGO_COIN_ID) if isinstance(data, dict) else None
            return CoinGeckoPrice.model_validate(entry).usd if entry else None
        except (UpstreamError, ValidationError) as e:
            logger.warning(f"CoinGecko failed, trying DefiLlama: {e}")
            return None

    async def _defillama_erg_price(self) -> float | None:
        try:
            data = await self._http.get_json(
                f"{self._defillama_url}/prices/current/{DEFILLAMA_ERGO_KEY}",
                timeout=self._timeout,
                source="defillama",
            )
            coin = DefiLlamaCoinsResponse.model_validate(data).coins.get(DEFILLAMA_ERGO_KEY)
            return coin.price if coin else None
        except (UpstreamError, ValidationError) as e:
            logger.warning(f"DefiLlama also failed: {e}")
            return None

    async def get_quotes(self, symbols: list[str]) -> dict[str, PriceQuote]:
        """
        Quotes for several symbols, keyed by upper-case symbol.

        Symbols without a known coin id, or missing from the response,
        are left out of the result.

        Raises:
            ValueError: If no symbol maps to a coin id.
            UpstreamError: If CoinGecko fails.
        """
        wanted = [s.strip().upper() for s in symbols if s.strip()]
        coin_ids = [TOKEN_IDS[s] for s in wanted if s in TOKEN_IDS]
        if not coin_ids:
            raise ValueError("No valid token symbols provided")

        data = await self._http.get_json(
            f"{self._coingecko_url}/simple/price",
            params={
                "ids": ",".join(dict.fromkeys(coin_ids)),
                "vs_currencies": "usd",
                "include_market_cap": "true",
                "include_24hr_vol": "true",
                "include_24hr_change": "true",
                "include_last_updated_at": "true",
            },
            timeout=self._timeout,
            source="coingecko",
            headers=self._headers,
        )

        now_s = get_timestamp_ms() // 1000
        quotes: dict[str, PriceQuote] = {}
        for symbol in wanted:
            coin_id = TOKEN_IDS.get(symbol)
            entry = data.get(coin_id) if coin_id and isinstance(data, dict) else None
            if not entry:
                continue
            try:
                coin = CoinGeckoPrice.model_validate(entry)
            except ValidationError as e:
                logger.warning(f"Skipping malformed CoinGecko entry for {symbol}: {e}")
                continue
            quotes[symbol] = PriceQuote(
                symbol=symbol,
                price=coin.usd or 0.0,
                change_24h=coin.usd_24h_change or 0.0,
                market_cap=coin.usd_market_cap or 0.0,
                volume_24h=coin.usd_24h_vol or 0.0,
                observed_at=(coin.last_updated_at or now_s) * 1000,
            )

        return quotes
