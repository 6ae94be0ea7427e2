"""
Swap routing quotes from Paraswap.

Falls back to a fixed pair of synthetic routes when the aggregator is
unreachable.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from djedops.config.constants import (
    DEFAULT_ROUTE_AMOUNT,
    DEFAULT_ROUTE_SLIPPAGE_PCT,
    DEFAULT_TIMEOUT_S,
    PARASWAP_API_URL,
    SOURCE_FALLBACK,
    TOKEN_ADDRESSES,
)
from djedops.upstream.client import HttpClient, UpstreamError
from djedops.upstream.models import ParaswapPriceRoute, ParaswapPricesResponse
from djedops.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)

SOURCE = "paraswap"


@dataclass(slots=True, frozen=True)
class SwapRoute:
    """One candidate swap route."""

    protocol: str
    src_amount: str
    dest_amount: str
    gas_cost: int
    slippage: float
    path: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocol": self.protocol,
            "srcAmount": self.src_amount,
            "destAmount": self.dest_amount,
            "gasCost": self.gas_cost,
            "slippage": self.slippage,
            "path": list(self.path),
        }


FALLBACK_ROUTES: tuple[SwapRoute, ...] = (
    SwapRoute("Uniswap V3", DEFAULT_ROUTE_AMOUNT, "3200000000", 150000, 0.1, ["ETH", "USDC"]),
    SwapRoute("1inch", DEFAULT_ROUTE_AMOUNT, "3195000000", 180000, 0.15, ["ETH", "WETH", "USDC"]),
)


def calculate_slippage(route: ParaswapPriceRoute | None) -> float:
    """
    Estimate slippage in percent from the USD legs of a price route.

    Returns 0 for a missing route and 0.1 when USD values are absent.
    """
    if route is None or not route.src_amount or not route.dest_amount:
        return 0.0
    try:
        src_usd = float(route.src_usd or 0)
        dest_usd = float(route.dest_usd or 0)
    except ValueError:
        return DEFAULT_ROUTE_SLIPPAGE_PCT
    if src_usd > 0 and dest_usd > 0:
        return abs((src_usd - dest_usd) / src_usd * 100)
    return DEFAULT_ROUTE_SLIPPAGE_PCT


def resolve_token(token: str) -> str:
    """Mainnet address for a known symbol, else the input unchanged."""
    return TOKEN_ADDRESSES.get(token.upper(), token)


class RoutingFeed:
    """Best-route swap quotes."""

    def __init__(
        self,
        http: HttpClient,
        base_url: str = PARASWAP_API_URL,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def get_route(
        self,
        src_token: str = "ETH",
        dest_token: str = "USDC",
        amount: str = DEFAULT_ROUTE_AMOUNT,
        chain_id: int = 1,
    ) -> dict[str, Any]:
        """
        Quote a swap.

        Args:
            src_token: Source token symbol or address.
            dest_token: Destination token symbol or address.
            amount: Amount in the source token's smallest unit.
            chain_id: EVM network id.

        Returns:
            Routing payload; `success` is False and `source` is
            "fallback" when synthetic routes were served.
        """
        try:
            data = await self._http.get_json(
                f"{self._base_url}/prices",
                params={
                    "srcToken": resolve_token(src_token),
                    "destToken": resolve_token(dest_token),
                    "amount": amount,
                    "srcDecimals": 18,
                    "destDecimals": 18,
                    "side": "SELL",
                    "network": chain_id,
                },
                timeout=self._timeout,
                source=SOURCE,
            )
            price_route = ParaswapPricesResponse.model_validate(data).price_route
        except (UpstreamError, ValidationError) as e:
            logger.warning(f"Routing quote failed, serving fallback routes: {e}")
            return {
                "success": False,
                "routes": [r.to_dict() for r in FALLBACK_ROUTES],
                "bestRoute": FALLBACK_ROUTES[0].to_dict(),
                "priceImpact": DEFAULT_ROUTE_SLIPPAGE_PCT,
                "error": str(e),
                "timestamp": get_timestamp_ms(),
                "source": SOURCE_FALLBACK,
            }

        routes: list[SwapRoute] = []
        if price_route is not None:
            routes.append(
                SwapRoute(
                    protocol=price_route.exchange,
                    src_amount=price_route.src_amount or "0",
                    dest_amount=price_route.dest_amount or "0",
                    gas_cost=price_route.gas_cost_int,
                    slippage=calculate_slippage(price_route),
                    path=[src_token, dest_token],
                )
            )

        return {
            "success": True,
            "routes": [r.to_dict() for r in routes],
            "bestRoute": routes[0].to_dict() if routes else None,
            "priceImpact": calculate_slippage(price_route),
            "timestamp": get_timestamp_ms(),
            "source": SOURCE,
        }
