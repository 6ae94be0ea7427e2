"""
Typed synthetic outputs per applet.

Each generator derives its output from the run's shared metrics
snapshot; randomness comes from the injected generator so runs are
reproducible under a seeded `random.Random`.
"""

import random
from collections.abc import Callable
from typing import Any

from djedops.config.constants import OPTIMAL_RATIO
from djedops.core.types import AppletType, MetricsSnapshot


OutputGenerator = Callable[[MetricsSnapshot, random.Random, int], dict[str, Any]]


def _monitor(snapshot: MetricsSnapshot, rng: random.Random, now: int) -> dict[str, Any]:
    ratio = snapshot.reserve_ratio or 0.0
    return {
        "reserveRatio": ratio,
        "djedSupply": f"{round(1_000_000 + rng.random() * 500_000):,}",
        "reserveBalance": f"{round(ratio * 10_000 + rng.random() * 100_000):,}",
        "status": "OPTIMAL" if ratio >= OPTIMAL_RATIO else "WARNING",
        "timestamp": now,
    }


def _simulator(snapshot: MetricsSnapshot, rng: random.Random, now: int) -> dict[str, Any]:
    ratio = snapshot.reserve_ratio or 0.0
    if ratio > 500:
        risk = "LOW"
    elif ratio > 400:
        risk = "MEDIUM"
    else:
        risk = "HIGH"
    return {
        "scenario": "Price Shock -10%",
        "projectedRatio": round(ratio * 0.9),
        "risk": risk,
        "recommendation": "Increase reserves by 5%" if ratio < 450 else "Reserve levels adequate",
        "timestamp": now,
    }


def _sentinel(snapshot: MetricsSnapshot, rng: random.Random, now: int) -> dict[str, Any]:
    ratio = snapshot.reserve_ratio or 0.0
    return {
        "threatLevel": "CRITICAL" if ratio < OPTIMAL_RATIO else "NORMAL",
        "stressTestResult": "PASSED" if ratio > 350 else "FAILED",
        "vulnerabilities": 2 if ratio < OPTIMAL_RATIO else 0,
        "timestamp": now,
    }


def _ledger(snapshot: MetricsSnapshot, rng: random.Random, now: int) -> dict[str, Any]:
    erg_price = snapshot.erg_price or 0.0
    tx_count = snapshot.transactions or rng.randint(10, 59)
    return {
        "transactions": tx_count,
        "volume": f"{tx_count * erg_price * (0.5 + rng.random()):.2f} ERG",
        "largestTx": f"{erg_price * (5 + rng.random() * 10):.2f} ERG",
        "timestamp": now,
    }


def _arbitrage(snapshot: MetricsSnapshot, rng: random.Random, now: int) -> dict[str, Any]:
    erg_price = snapshot.erg_price or 0.0
    spread = rng.random() * 0.5
    return {
        "opportunities": rng.randint(1, 3) if spread > 0.3 else 0,
        "bestSpread": f"{spread:.2f}%",
        "potentialProfit": f"{spread * erg_price * 100:.2f} ERG",
        "timestamp": now,
    }


OUTPUT_GENERATORS: dict[AppletType, OutputGenerator] = {
    AppletType.DJED_MONITOR: _monitor,
    AppletType.DJED_SIM: _simulator,
    AppletType.DJED_SENTINEL: _sentinel,
    AppletType.DJED_LEDGER: _ledger,
    AppletType.DJED_ARBITRAGE: _arbitrage,
}


def generate_output(
    applet_type: AppletType,
    snapshot: MetricsSnapshot,
    rng: random.Random,
    now_ms: int,
    generators: dict[AppletType, OutputGenerator] | None = None,
) -> dict[str, Any]:
    """
    Synthetic output of one applet.

    Without a reserve ratio or ERG price in the snapshot, an error
    output is returned instead of invented numbers.
    """
    if snapshot.reserve_ratio is None or snapshot.erg_price is None:
        return {"status": "error", "error": "No real-time data available", "timestamp": now_ms}

    generator = (generators or OUTPUT_GENERATORS).get(applet_type)
    if generator is None:
        return {"status": "executed", "timestamp": now_ms}
    return generator(snapshot, rng, now_ms)
