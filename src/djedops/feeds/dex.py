"""
Open-market stablecoin price from the Spectrum DEX.

Spectrum quotes stablecoins against ERG, so the USD price is derived
from the pool price and the current ERG price.
"""

import asyncio
import logging

from pydantic import ValidationError

from djedops.config.constants import (
    DEMO_DEX_PRICE,
    DEX_QUOTE_SYMBOL,
    DEX_STABLECOIN_SYMBOLS,
    PRICE_TIMEOUT_S,
    SOURCE_DEMO,
    SPECTRUM_API_URL,
)
from djedops.core.types import DexPrice
from djedops.feeds.prices import PriceFeed, PriceUnavailableError
from djedops.upstream.client import HttpClient, UpstreamError
from djedops.upstream.models import SpectrumMarket


logger = logging.getLogger(__name__)

SOURCE = "spectrum"


def select_market(markets: list[SpectrumMarket]) -> SpectrumMarket | None:
    """Most liquid stablecoin/ERG market with a usable price."""
    candidates = [
        m
        for m in markets
        if m.last_price > 0
        and {m.base_symbol, m.quote_symbol} & DEX_STABLECOIN_SYMBOLS
        and DEX_QUOTE_SYMBOL in (m.base_symbol, m.quote_symbol)
    ]
    if not candidates:
        return None
    return max(candidates, key=market_liquidity)


def market_liquidity(market: SpectrumMarket) -> float:
    """Traded volume in stablecoin units."""
    if market.base_symbol == DEX_QUOTE_SYMBOL:
        return market.quote_volume.value if market.quote_volume else 0.0
    return market.base_volume.value if market.base_volume else 0.0


def stablecoin_usd_price(market: SpectrumMarket, erg_price: float) -> float:
    """
    USD price of the stablecoin side of an ERG market.

    `last_price` is quote units per base unit.
    """
    if market.base_symbol == DEX_QUOTE_SYMBOL:
        # stablecoin per ERG
        return erg_price / market.last_price
    # ERG per stablecoin
    return market.last_price * erg_price


class DexPriceFeed:
    """DEX price source with a fixed demo mode."""

    def __init__(
        self,
        http: HttpClient,
        prices: PriceFeed,
        base_url: str = SPECTRUM_API_URL,
        timeout: float = PRICE_TIMEOUT_S,
        demo_mode: bool = False,
    ) -> None:
        self._http = http
        self._prices = prices
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._demo_mode = demo_mode

    @property
    def demo_mode(self) -> bool:
        return self._demo_mode

    async def get_price(self) -> DexPrice:
        """
        Current DEX stablecoin price.

        Returns a price of None when the DEX or the ERG price is
        unreachable; never raises for upstream failures.
        """
        if self._demo_mode:
            return DexPrice(price=DEMO_DEX_PRICE, pair="DJED/USD", liquidity=0.0, source=SOURCE_DEMO)

        raw, erg_price = await asyncio.gather(
            self._http.get_json(
                f"{self._base_url}/price-tracking/markets",
                timeout=self._timeout,
                source=SOURCE,
            ),
            self._prices.get_erg_price(),
            return_exceptions=True,
        )
        for result in (raw, erg_price):
            if isinstance(result, BaseException):
                if not isinstance(result, (UpstreamError, PriceUnavailableError)):
                    raise result
                logger.warning(f"DEX price unavailable: {result}")
                return DexPrice(price=None, pair="", liquidity=0.0, source=SOURCE)

        try:
            markets = [SpectrumMarket.model_validate(m) for m in raw or []]
        except (ValidationError, TypeError) as e:
            logger.warning(f"DEX markets malformed: {e}")
            return DexPrice(price=None, pair="", liquidity=0.0, source=SOURCE)

        market = select_market(markets)
        if market is None:
            logger.warning("No stablecoin/ERG market listed on the DEX")
            return DexPrice(price=None, pair="", liquidity=0.0, source=SOURCE)

        return DexPrice(
            price=stablecoin_usd_price(market, erg_price),
            pair=market.pair,
            liquidity=market_liquidity(market),
            source=SOURCE,
        )
