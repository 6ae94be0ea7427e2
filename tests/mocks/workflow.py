"""
Mock metrics source for workflow execution tests.
"""

from djedops.core.types import MetricsSnapshot


class StaticMetricsSource:
    """
    Metrics source returning a fixed snapshot.

    Counts calls so tests can assert one snapshot per run; raises the
    configured error instead when one is set.
    """

    def __init__(
        self,
        snapshot: MetricsSnapshot | None = None,
        error: Exception | None = None,
    ) -> None:
        self.snapshot = snapshot or MetricsSnapshot(
            reserve_ratio=525.0,
            erg_price=1.45,
            stablecoin_price=1.0,
            transactions=200,
            observed_at=1_704_067_200_000,
        )
        self.error = error
        self.calls = 0

    async def __call__(self) -> MetricsSnapshot:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.snapshot


async def no_sleep(_: float) -> None:
    """Sleep replacement that returns immediately."""
    return None
