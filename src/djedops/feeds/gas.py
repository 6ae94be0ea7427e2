"""
Gas price estimates for Ergo and Ethereum.

Ergo fees follow the fixed minimum-fee-per-byte model; Ethereum uses
Infura's `eth_gasPrice` when a key is configured, static estimates
otherwise.
"""

import logging
from dataclasses import dataclass
from typing import Any, Final

from djedops.config.constants import (
    DEFAULT_TIMEOUT_S,
    ERGO_MIN_FEE_PER_BYTE,
    ERGO_TYPICAL_TX_SIZE,
    ETH_FALLBACK_GAS_GWEI,
    INFURA_MAINNET_URL,
)
from djedops.upstream.client import HttpClient, UpstreamError
from djedops.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)

CHAINS: Final[tuple[str, ...]] = ("ergo", "ethereum")


@dataclass(slots=True, frozen=True)
class GasQuote:
    """Fee tiers for one chain."""

    chain: str
    slow: float
    standard: float
    fast: float
    instant: float
    unit: str
    last_updated: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "chain": self.chain,
            "slow": self.slow,
            "standard": self.standard,
            "fast": self.fast,
            "instant": self.instant,
            "unit": self.unit,
            "lastUpdated": self.last_updated,
        }


class GasFeed:
    """Multi-chain gas price source."""

    def __init__(
        self,
        http: HttpClient,
        infura_url: str = INFURA_MAINNET_URL,
        infura_key: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._http = http
        self._infura_url = infura_url.rstrip("/")
        self._infura_key = infura_key
        self._timeout = timeout

    def ergo_gas(self) -> GasQuote:
        """Ergo fee tiers in ERG for a typical transaction."""
        min_fee = ERGO_MIN_FEE_PER_BYTE * ERGO_TYPICAL_TX_SIZE
        return GasQuote(
            chain="ergo",
            slow=min_fee,
            standard=min_fee * 1.5,
            fast=min_fee * 2,
            instant=min_fee * 3,
            unit="ERG",
            last_updated=get_timestamp_ms(),
        )

    async def ethereum_gas(self) -> GasQuote:
        """Ethereum fee tiers in Gwei."""
        if self._infura_key:
            try:
                data = await self._http.post_json(
                    f"{self._infura_url}/{self._infura_key}",
                    {"jsonrpc": "2.0", "method": "eth_gasPrice", "params": [], "id": 1},
                    timeout=self._timeout,
                    source="infura",
                )
                gwei = int(data["result"], 16) / 1e9
                return GasQuote(
                    chain="ethereum",
                    slow=round(gwei * 0.8),
                    standard=round(gwei),
                    fast=round(gwei * 1.2),
                    instant=round(gwei * 1.5),
                    unit="Gwei",
                    last_updated=get_timestamp_ms(),
                )
            except (UpstreamError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Infura gas price failed, using estimates: {e}")

        return GasQuote(
            chain="ethereum",
            unit="Gwei",
            last_updated=get_timestamp_ms(),
            **ETH_FALLBACK_GAS_GWEI,
        )

    async def get_gas(self, chain: str = "all") -> dict[str, GasQuote]:
        """
        Fee tiers for one chain or all chains.

        Raises:
            ValueError: For an unknown chain.
        """
        if chain != "all" and chain not in CHAINS:
            raise ValueError(f"Unknown chain: {chain}")

        gas: dict[str, GasQuote] = {}
        if chain in ("all", "ergo"):
            gas["ergo"] = self.ergo_gas()
        if chain in ("all", "ethereum"):
            gas["ethereum"] = await self.ethereum_gas()
        return gas
