"""
Synthetic stablecoin protocol state.

Combines the collateral price with explorer network figures to derive
the protocol state, and assembles the live metrics snapshot shared by
one workflow run.
"""

import asyncio
import logging

from djedops.config.constants import (
    FALLBACK_ERG_PRICE,
    PROTOCOL_MINT_PRICE,
    PROTOCOL_REDEEM_PRICE,
    SOURCE_PROTOCOL,
    STABLECOIN_PEG,
)
from djedops.core.types import MetricsSnapshot, ProtocolPrice, ProtocolState
from djedops.feeds.ergo import ErgoExplorerClient
from djedops.feeds.prices import PriceFeed
from djedops.strategy.calculator import (
    average_transactions,
    fallback_protocol_state,
    synthesize_protocol_state,
)
from djedops.telemetry.metrics import FALLBACKS_USED, MetricsCollector
from djedops.upstream.models import ErgoBlocksPage
from djedops.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


class ProtocolFeed:
    """
    Protocol state and quote source.

    All network inputs are fetched concurrently; each may fail on its
    own and is replaced by its default.
    """

    def __init__(
        self,
        prices: PriceFeed,
        explorer: ErgoExplorerClient,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._prices = prices
        self._explorer = explorer
        self._metrics = metrics

    async def _fetch_inputs(
        self,
    ) -> tuple[float | BaseException, float | None | BaseException, ErgoBlocksPage | BaseException]:
        price, supply, blocks = await asyncio.gather(
            self._prices.get_erg_price(),
            self._explorer.get_network_supply(),
            self._explorer.get_recent_blocks(),
            return_exceptions=True,
        )
        return price, supply, blocks

    def _derive(
        self,
        price: float | BaseException,
        supply: float | None | BaseException,
        blocks: ErgoBlocksPage | BaseException,
    ) -> ProtocolState:
        if isinstance(price, BaseException):
            logger.warning(f"Using fallback ERG price ${FALLBACK_ERG_PRICE}: {price}")
            self._count_fallback()
            price = FALLBACK_ERG_PRICE
        if isinstance(supply, BaseException):
            logger.warning(f"Network info unavailable, using default supply: {supply}")
            supply = None
        if isinstance(blocks, BaseException):
            logger.warning(f"Blocks unavailable, using default activity: {blocks}")
            avg_tx = None
        else:
            avg_tx = average_transactions(blocks.items)

        return synthesize_protocol_state(price, supply, avg_tx)

    async def get_state(self) -> ProtocolState:
        """
        Current protocol state.

        Never raises: any unexpected failure yields the fixed fallback
        state tagged `fallback`.
        """
        try:
            return self._derive(*await self._fetch_inputs())
        except Exception as e:
            logger.error(f"Failed to derive protocol state, serving fallback: {e}")
            self._count_fallback()
            return fallback_protocol_state()

    async def get_live_state(self) -> ProtocolState:
        """
        Protocol state from a live collateral price only.

        Raises:
            PriceUnavailableError: If no price source answered.
        """
        price, supply, blocks = await self._fetch_inputs()
        if isinstance(price, BaseException):
            raise price
        return self._derive(price, supply, blocks)

    async def get_protocol_price(self) -> ProtocolPrice:
        """Static approximation of the protocol mint/redeem quote."""
        return ProtocolPrice(
            mint_price=PROTOCOL_MINT_PRICE,
            redeem_price=PROTOCOL_REDEEM_PRICE,
            peg=STABLECOIN_PEG,
            timestamp=get_timestamp_ms(),
            source=SOURCE_PROTOCOL,
        )

    async def snapshot(self) -> MetricsSnapshot:
        """
        One consistent reading of live metrics.

        Fields whose source could not be reached are None.
        """
        price, supply, blocks = await self._fetch_inputs()

        try:
            state: ProtocolState | None = self._derive(price, supply, blocks)
        except Exception as e:
            logger.warning(f"Protocol state unavailable for snapshot: {e}")
            state = None

        return MetricsSnapshot(
            reserve_ratio=state.reserve_ratio if state else None,
            erg_price=None if isinstance(price, BaseException) else price,
            stablecoin_price=state.stablecoin_price if state else None,
            transactions=None if isinstance(blocks, BaseException) else blocks.transaction_count,
            observed_at=get_timestamp_ms(),
        )

    def _count_fallback(self) -> None:
        if self._metrics is not None:
            self._metrics.increment_counter(FALLBACKS_USED)
