"""
Opportunity history management.

Keeps a bounded, time-expiring history of detected arbitrage
opportunities. The history is an immutable tuple replaced wholesale on
every update, owned by the tracker instance that produced it.
"""

import logging
from dataclasses import dataclass, replace
from itertools import count

from djedops.config.constants import (
    MAX_OPPORTUNITY_HISTORY,
    OPPORTUNITY_EXPIRY_MS,
    SAME_OPPORTUNITY_SPREAD_DELTA_PCT,
    SAME_OPPORTUNITY_WINDOW_MS,
)
from djedops.core.types import (
    ArbitrageOpportunity,
    ArbitrageQuote,
    ArbitrageSignal,
    OpportunityStatus,
)
from djedops.telemetry.metrics import OPPORTUNITIES_DETECTED, MetricsCollector
from djedops.utils.math import normalize_pct
from djedops.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)

History = tuple[ArbitrageOpportunity, ...]


@dataclass
class OpportunityStats:
    """Summary of the current history."""

    total: int = 0
    detected: int = 0
    expired: int = 0
    total_detected_profit: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "total": self.total,
            "detected": self.detected,
            "expired": self.expired,
            "totalDetectedProfit": self.total_detected_profit,
        }


def is_same_opportunity(
    previous: ArbitrageOpportunity,
    current: ArbitrageOpportunity,
) -> bool:
    """
    Check whether `current` is a refresh of `previous`.

    Two readings are the same opportunity when the spread moved by at
    most 0.1 percentage points and less than 60 seconds passed since
    `previous` was detected.
    """
    delta = normalize_pct(abs(current.spread_pct - previous.spread_pct))
    age = current.detected_at - previous.detected_at
    return delta <= SAME_OPPORTUNITY_SPREAD_DELTA_PCT and age < SAME_OPPORTUNITY_WINDOW_MS


def expire_stale(
    history: History,
    now_ms: int,
    expiry_ms: int = OPPORTUNITY_EXPIRY_MS,
) -> History:
    """Mark DETECTED entries older than `expiry_ms` as EXPIRED."""
    return tuple(
        replace(opp, status=OpportunityStatus.EXPIRED)
        if opp.status == OpportunityStatus.DETECTED and opp.age_ms(now_ms) > expiry_ms
        else opp
        for opp in history
    )


def expire_all(history: History) -> History:
    """Mark every DETECTED entry as EXPIRED."""
    return tuple(
        replace(opp, status=OpportunityStatus.EXPIRED)
        if opp.status == OpportunityStatus.DETECTED
        else opp
        for opp in history
    )


class OpportunityTracker:
    """
    Tracks detected opportunities across ticks.

    Features:
    - In-place refresh of an opportunity whose spread barely moved
    - Bounded history, newest first
    - Age-based and signal-loss expiry
    """

    def __init__(
        self,
        max_history: int = MAX_OPPORTUNITY_HISTORY,
        expiry_ms: int = OPPORTUNITY_EXPIRY_MS,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the tracker.

        Args:
            max_history: Maximum number of entries kept.
            expiry_ms: Age after which a DETECTED entry expires.
            metrics: Optional collector for detection counts.
        """
        if max_history < 1:
            raise ValueError("max_history must be >= 1")
        self._max_history = max_history
        self._expiry_ms = expiry_ms
        self._metrics = metrics
        self._history: History = ()
        self._ids = count(1)

    @property
    def history(self) -> History:
        """Current history, newest first."""
        return self._history

    @property
    def latest(self) -> ArbitrageOpportunity | None:
        """Most recent entry, if any."""
        return self._history[0] if self._history else None

    def observe(
        self,
        quote: ArbitrageQuote,
        now_ms: int | None = None,
    ) -> ArbitrageOpportunity | None:
        """
        Apply one tick of the signal engine to the history.

        Args:
            quote: Evaluated DEX vs. protocol quote.
            now_ms: Tick time, defaults to now.

        Returns:
            The new or refreshed opportunity, None when the quote carries
            no signal.
        """
        now = now_ms if now_ms is not None else get_timestamp_ms()

        if quote.signal == ArbitrageSignal.NONE:
            self.void(now)
            return None

        candidate = self._from_quote(quote, now)
        previous = self.latest
        history = self._history

        if (
            previous is not None
            and previous.status == OpportunityStatus.DETECTED
            and is_same_opportunity(previous, candidate)
        ):
            refreshed = replace(
                previous,
                dex_price=candidate.dex_price,
                protocol_price=candidate.protocol_price,
                spread=candidate.spread,
                spread_pct=candidate.spread_pct,
                estimated_net_profit=candidate.estimated_net_profit,
                liquidity=candidate.liquidity,
                source=candidate.source,
                updated_at=now,
            )
            history = (refreshed, *history[1:])
        else:
            history = (candidate, *history[: self._max_history - 1])
            logger.info(
                f"Opportunity {candidate.id}: {candidate.signal.value} "
                f"spread={candidate.spread_pct:+.2f}% "
                f"profit=${candidate.estimated_net_profit:.2f}"
            )
            if self._metrics is not None:
                self._metrics.increment_counter(OPPORTUNITIES_DETECTED)

        self._history = expire_stale(history, now, self._expiry_ms)
        return self._history[0]

    def void(self, now_ms: int | None = None) -> History:
        """Expire every open opportunity because the live signal disappeared."""
        now = now_ms if now_ms is not None else get_timestamp_ms()
        if any(o.status == OpportunityStatus.DETECTED for o in self._history):
            logger.info("Signal lost, expiring open opportunities")
        self._history = expire_stale(expire_all(self._history), now, self._expiry_ms)
        return self._history

    def expire(self, now_ms: int | None = None) -> History:
        """Run the age-based expiry scan without a new tick."""
        now = now_ms if now_ms is not None else get_timestamp_ms()
        self._history = expire_stale(self._history, now, self._expiry_ms)
        return self._history

    def filter(self, status: OpportunityStatus | None = None) -> History:
        """Entries with the given status, or all entries."""
        if status is None:
            return self._history
        return tuple(o for o in self._history if o.status == status)

    def stats(self) -> OpportunityStats:
        """Summarize the current history."""
        detected = self.filter(OpportunityStatus.DETECTED)
        return OpportunityStats(
            total=len(self._history),
            detected=len(detected),
            expired=len(self._history) - len(detected),
            total_detected_profit=sum(o.estimated_net_profit for o in detected),
        )

    def clear(self) -> None:
        """Drop the whole history."""
        self._history = ()

    def _from_quote(self, quote: ArbitrageQuote, now_ms: int) -> ArbitrageOpportunity:
        return ArbitrageOpportunity(
            id=f"opp-{now_ms}-{next(self._ids)}",
            detected_at=now_ms,
            signal=quote.signal,
            dex_price=quote.dex_price,
            protocol_price=quote.protocol_price,
            spread=quote.spread,
            spread_pct=quote.spread_pct,
            estimated_net_profit=quote.estimated_net_profit,
            liquidity=quote.liquidity,
            source=quote.source,
            status=OpportunityStatus.DETECTED,
            updated_at=now_ms,
        )
