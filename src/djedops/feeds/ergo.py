"""
Ergo Explorer API client.

Raw passthrough of network info and block listings, plus typed
accessors used for the synthetic protocol derivation.
"""

import logging
from typing import Any

from djedops.config.constants import ERGO_API_URL, EXPLORER_TIMEOUT_S, RECENT_BLOCKS_LIMIT
from djedops.upstream.client import HttpClient
from djedops.upstream.models import ErgoBlocksPage, ErgoNetworkInfo


logger = logging.getLogger(__name__)

SOURCE = "ergo-explorer"


class ErgoExplorerClient:
    """Thin client over the public Ergo Explorer v1 API."""

    def __init__(
        self,
        http: HttpClient,
        base_url: str = ERGO_API_URL,
        timeout: float = EXPLORER_TIMEOUT_S,
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def get_network_info(self) -> dict[str, Any]:
        """Network info document, passed through unchanged."""
        return await self._http.get_json(
            f"{self._base_url}/info", timeout=self._timeout, source=SOURCE
        )

    async def get_blocks(self, limit: int | None = None) -> dict[str, Any]:
        """Block listing document, passed through unchanged."""
        params = {"limit": limit} if limit is not None else None
        return await self._http.get_json(
            f"{self._base_url}/blocks", params=params, timeout=self._timeout, source=SOURCE
        )

    async def get_raw(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """
        Fetch an arbitrary explorer path.

        Args:
            endpoint: Path relative to the API base, e.g. "addresses/{addr}/balance/confirmed".
            params: Query parameters.

        Raises:
            ValueError: If the path escapes the API base.
        """
        path = endpoint.strip().lstrip("/")
        if not path or ".." in path or "://" in path:
            raise ValueError(f"Invalid explorer endpoint: {endpoint!r}")
        return await self._http.get_json(
            f"{self._base_url}/{path}", params=params, timeout=self._timeout, source=SOURCE
        )

    async def get_network_supply(self) -> float | None:
        """Circulating ERG supply, None when the explorer omits it."""
        info = ErgoNetworkInfo.model_validate(await self.get_network_info())
        return info.supply

    async def get_recent_blocks(self, limit: int = RECENT_BLOCKS_LIMIT) -> ErgoBlocksPage:
        """Most recent block headers."""
        return ErgoBlocksPage.model_validate(await self.get_blocks(limit))
