"""
Background protocol monitor.

Periodically refreshes the protocol state and the DEX quote, feeds
the arbitrage tracker and keeps the latest readings for the API.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from djedops.config.constants import RETRY_ATTEMPTS, RETRY_INITIAL_DELAY
from djedops.core.types import ArbitrageQuote, DexPrice, ProtocolPrice, ProtocolState
from djedops.feeds.dex import DexPriceFeed
from djedops.feeds.protocol import ProtocolFeed
from djedops.strategy.calculator import fallback_protocol_state
from djedops.strategy.opportunity import OpportunityTracker
from djedops.strategy.signals import ProfitModel, evaluate_quote
from djedops.upstream.client import fetch_with_retry
from djedops.utils.time import LatencyTimer, format_timestamp_ms, get_timestamp_ms


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MonitorState:
    """Latest readings of the monitor."""

    protocol_state: ProtocolState | None = None
    protocol_price: ProtocolPrice | None = None
    dex_price: DexPrice | None = None
    quote: ArbitrageQuote | None = None
    last_refresh: int = 0
    last_error: str = ""
    refresh_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocolState": self.protocol_state.to_dict() if self.protocol_state else None,
            "protocolPrice": self.protocol_price.to_dict() if self.protocol_price else None,
            "dexPrice": self.dex_price.to_dict() if self.dex_price else None,
            "quote": self.quote.to_dict() if self.quote else None,
            "lastRefresh": self.last_refresh,
            "lastError": self.last_error or None,
            "refreshCount": self.refresh_count,
        }


class ProtocolMonitor:
    """
    Polls protocol and market data on a fixed interval.

    Features:
    - Concurrent fetch of protocol state, DEX price and protocol quote
    - Capped exponential-backoff retry for the protocol state
    - Last-known-good state kept when every retry fails
    """

    def __init__(
        self,
        protocol_feed: ProtocolFeed,
        dex_feed: DexPriceFeed,
        tracker: OpportunityTracker,
        model: ProfitModel,
        interval_s: float = 15.0,
        retry_attempts: int = RETRY_ATTEMPTS,
        retry_delay: float = RETRY_INITIAL_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the monitor.

        Args:
            protocol_feed: Protocol state source.
            dex_feed: DEX price source.
            tracker: Opportunity history owner.
            model: Profit model for quote evaluation.
            interval_s: Seconds between refreshes.
            retry_attempts: Attempts for the protocol state.
            retry_delay: Initial retry backoff in seconds.
            sleep: Sleep function used for retry backoff.
        """
        self._protocol = protocol_feed
        self._dex = dex_feed
        self._tracker = tracker
        self._model = model
        self._interval_s = interval_s
        self._retry_attempts = retry_attempts
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._state = MonitorState()
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def tracker(self) -> OpportunityTracker:
        return self._tracker

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> MonitorState:
        """Run one poll and feed the tracker."""
        timer = LatencyTimer()
        with timer:
            state_result, dex, protocol_price = await asyncio.gather(
                fetch_with_retry(
                    self._protocol.get_live_state,
                    attempts=self._retry_attempts,
                    initial_delay=self._retry_delay,
                    sleep=self._sleep,
                ),
                self._dex.get_price(),
                self._protocol.get_protocol_price(),
                return_exceptions=True,
            )

        last_error = ""
        if isinstance(state_result, BaseException):
            last_error = f"Protocol state unavailable: {state_result}"
            logger.warning(last_error)
            protocol_state = self._state.protocol_state or fallback_protocol_state()
        else:
            protocol_state = state_result

        if isinstance(dex, BaseException):
            last_error = f"DEX price unavailable: {dex}"
            logger.warning(last_error)
            dex = None
        if isinstance(protocol_price, BaseException):
            last_error = f"Protocol price unavailable: {protocol_price}"
            logger.warning(last_error)
            protocol_price = self._state.protocol_price

        now = get_timestamp_ms()
        quote: ArbitrageQuote | None = None
        if dex is not None and dex.available and protocol_price is not None:
            quote = evaluate_quote(
                dex.price or 0.0,
                protocol_price.mint_price,
                self._model,
                liquidity=dex.liquidity,
                source=dex.source,
            )
            self._tracker.observe(quote, now)
        else:
            # No live edge without a DEX price
            self._tracker.void(now)

        self._state = MonitorState(
            protocol_state=protocol_state,
            protocol_price=protocol_price,
            dex_price=dex,
            quote=quote,
            last_refresh=now,
            last_error=last_error,
            refresh_count=self._state.refresh_count + 1,
        )

        logger.debug(
            f"Refresh #{self._state.refresh_count} at {format_timestamp_ms(now)}: "
            f"ratio={protocol_state.reserve_ratio:.1f}% "
            f"signal={quote.signal.value if quote else 'NONE'} "
            f"took={timer.latency_us}μs"
        )
        return self._state

    async def start(self) -> None:
        """Start polling in the background."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Protocol monitor started (interval={self._interval_s}s)")

    async def stop(self) -> None:
        """Stop polling and wait for the task to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Protocol monitor stopped")

    async def _run_loop(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception as e:
                logger.error(f"Monitor refresh failed: {e}")
            await asyncio.sleep(self._interval_s)
