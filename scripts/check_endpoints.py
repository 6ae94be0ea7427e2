#!/usr/bin/env python3
"""
Upstream Check Script.

Queries every public source the dashboard depends on once and prints
what each one answered, without starting the API server.
"""

import asyncio
import sys

from djedops.config.settings import get_settings
from djedops.dashboard.state import DashboardServices
from djedops.utils.time import LatencyTimer


async def main() -> int:
    """Check each upstream and print a summary."""
    print("=" * 60)
    print("  UPSTREAM CHECK")
    print("=" * 60)
    print()

    try:
        settings = get_settings()
    except Exception as e:
        print(f"Error loading settings: {e}")
        return 1

    services = DashboardServices.from_settings(settings)
    checks = {
        "ERG price": services.prices.get_erg_price,
        "Protocol state": services.protocol.get_live_state,
        "DEX price": services.dex.get_price,
        "Gas": services.gas.get_gas,
        "DeFi protocols": services.defi.get_protocols,
        "Routing": services.routing.get_route,
    }

    failures = 0
    try:
        for name, check in checks.items():
            timer = LatencyTimer()
            try:
                with timer:
                    result = await check()
            except Exception as e:
                failures += 1
                print(f"  FAIL  {name:<16} {e}")
                continue
            print(f"  OK    {name:<16} {timer.latency_us / 1000:>8.1f}ms  {summarize(result)}")
    finally:
        await services.http.close()

    print()
    print("=" * 60)
    print(f"  {len(checks) - failures}/{len(checks)} sources reachable")
    print("=" * 60)
    return 1 if failures else 0


def summarize(result: object) -> str:
    """One-line description of a check result."""
    if isinstance(result, float):
        return f"${result:.4f}"
    if isinstance(result, list):
        return f"{len(result)} entries"
    if isinstance(result, dict):
        if "source" in result:
            return f"source={result['source']}"
        return ", ".join(sorted(result))
    to_dict = getattr(result, "to_dict", None)
    if to_dict is not None:
        data = to_dict()
        keys = ("reserveRatio", "status", "price", "pair", "source")
        return " ".join(f"{k}={data[k]}" for k in keys if k in data)
    return str(result)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
