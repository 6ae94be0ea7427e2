"""
DeFi protocol and yield data from DefiLlama.
"""

import logging
import re
from typing import Any

from djedops.config.constants import (
    DEFAULT_TIMEOUT_S,
    DEFILLAMA_API_URL,
    DEFILLAMA_YIELDS_URL,
    MAX_SANE_APY,
    MIN_YIELD_POOL_TVL,
    TOP_PROTOCOLS_LIMIT,
    TOP_YIELDS_LIMIT,
)
from djedops.upstream.client import HttpClient
from djedops.upstream.models import DefiLlamaProtocol, YieldPool, YieldPoolsResponse


logger = logging.getLogger(__name__)

SOURCE = "defillama"

_SLUG_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def filter_yields(pools: list[YieldPool], chain: str | None = None) -> list[YieldPool]:
    """
    Keep sizeable pools with a sane APY, best APY first.

    Args:
        pools: Raw pool list.
        chain: Optional chain name, compared case-insensitively.

    Returns:
        At most 50 pools.
    """
    if chain:
        pools = [p for p in pools if (p.chain or "").lower() == chain.lower()]
    kept = [
        p
        for p in pools
        if p.tvl_usd > MIN_YIELD_POOL_TVL and p.apy is not None and 0 < p.apy < MAX_SANE_APY
    ]
    kept.sort(key=lambda p: p.apy or 0.0, reverse=True)
    return kept[:TOP_YIELDS_LIMIT]


class DefiFeed:
    """TVL and yield lookups."""

    def __init__(
        self,
        http: HttpClient,
        api_url: str = DEFILLAMA_API_URL,
        yields_url: str = DEFILLAMA_YIELDS_URL,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._http = http
        self._api_url = api_url.rstrip("/")
        self._yields_url = yields_url.rstrip("/")
        self._timeout = timeout

    async def get_protocols(self) -> list[dict[str, Any]]:
        """Top protocols by TVL."""
        data = await self._http.get_json(
            f"{self._api_url}/protocols", timeout=self._timeout, source=SOURCE
        )
        entries = data[:TOP_PROTOCOLS_LIMIT] if isinstance(data, list) else []
        return [DefiLlamaProtocol.model_validate(p).to_dict() for p in entries]

    async def get_yields(self, chain: str | None = None) -> list[dict[str, Any]]:
        """Highest-APY pools, optionally restricted to one chain."""
        data = await self._http.get_json(
            f"{self._yields_url}/pools", timeout=self._timeout, source=SOURCE
        )
        pools = YieldPoolsResponse.model_validate(data).data
        return [p.to_dict() for p in filter_yields(pools, chain)]

    async def get_protocol_tvl(self, slug: str) -> Any:
        """
        TVL history of one protocol, passed through unchanged.

        Raises:
            ValueError: For a malformed protocol slug.
        """
        if not _SLUG_RE.match(slug) or ".." in slug:
            raise ValueError(f"Invalid protocol slug: {slug!r}")
        return await self._http.get_json(
            f"{self._api_url}/protocol/{slug}", timeout=self._timeout, source=SOURCE
        )
