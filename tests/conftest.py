"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

import random
from pathlib import Path
from typing import Any

import pytest

from djedops.config.settings import Settings
from djedops.core.types import ArbitrageQuote, ArbitrageSignal, MetricsSnapshot
from djedops.feeds.dex import DexPriceFeed
from djedops.feeds.ergo import ErgoExplorerClient
from djedops.feeds.prices import PriceFeed
from djedops.feeds.protocol import ProtocolFeed
from djedops.strategy.opportunity import OpportunityTracker
from djedops.strategy.signals import ProfitModel
from djedops.telemetry.metrics import MetricsCollector
from djedops.workflow.engine import WorkflowExecutor
from tests.mocks import MockHttpClient, StaticMetricsSource, healthy_routes, no_sleep


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with local history and no simulated latency."""
    return Settings(
        history_path=tmp_path / "history" / "executions.json",
        node_latency_min_ms=0,
        node_latency_max_ms=0,
        demo_mode=False,
        coingecko_api_key=None,
        infura_api_key=None,
    )


@pytest.fixture
def profit_model() -> ProfitModel:
    """Profit model with the default cost parameters."""
    return ProfitModel(
        dex_fee_rate=0.003,
        slippage_rate=0.005,
        gas_cost_usd=0.50,
        trade_amount=1000.0,
    )


# =============================================================================
# Upstream Fixtures
# =============================================================================


@pytest.fixture
def metrics() -> MetricsCollector:
    """Fresh metrics collector."""
    return MetricsCollector()


@pytest.fixture
def mock_http() -> MockHttpClient:
    """HTTP client with every upstream reachable."""
    return MockHttpClient(healthy_routes())


@pytest.fixture
def price_feed(mock_http: MockHttpClient, metrics: MetricsCollector) -> PriceFeed:
    """Price feed over the mock client."""
    return PriceFeed(mock_http, metrics=metrics)


@pytest.fixture
def explorer(mock_http: MockHttpClient) -> ErgoExplorerClient:
    """Explorer client over the mock client."""
    return ErgoExplorerClient(mock_http)


@pytest.fixture
def protocol_feed(
    price_feed: PriceFeed,
    explorer: ErgoExplorerClient,
    metrics: MetricsCollector,
) -> ProtocolFeed:
    """Protocol feed over the mock client."""
    return ProtocolFeed(price_feed, explorer, metrics=metrics)


@pytest.fixture
def dex_feed(mock_http: MockHttpClient, price_feed: PriceFeed) -> DexPriceFeed:
    """Live DEX feed over the mock client."""
    return DexPriceFeed(mock_http, price_feed)


# =============================================================================
# Strategy Fixtures
# =============================================================================


@pytest.fixture
def tracker(metrics: MetricsCollector) -> OpportunityTracker:
    """Empty opportunity tracker."""
    return OpportunityTracker(metrics=metrics)


def make_quote(
    spread_pct: float,
    signal: ArbitrageSignal | None = None,
    protocol_price: float = 1.0,
    net_profit: float = 5.0,
) -> ArbitrageQuote:
    """Quote with the given spread over a $1.00 protocol price."""
    if signal is None:
        if spread_pct >= 0.5:
            signal = ArbitrageSignal.MINT
        elif spread_pct <= -0.5:
            signal = ArbitrageSignal.REDEEM
        else:
            signal = ArbitrageSignal.NONE
    dex_price = protocol_price * (1 + spread_pct / 100)
    return ArbitrageQuote(
        signal=signal,
        dex_price=dex_price,
        protocol_price=protocol_price,
        spread=dex_price - protocol_price,
        spread_pct=spread_pct,
        estimated_net_profit=net_profit,
        liquidity=10_000.0,
        source="spectrum",
        is_profitable=net_profit > 0,
    )


@pytest.fixture
def quote_factory():
    """Factory for arbitrage quotes."""
    return make_quote


# =============================================================================
# Workflow Fixtures
# =============================================================================


@pytest.fixture
def live_snapshot() -> MetricsSnapshot:
    """Snapshot of a healthy protocol."""
    return MetricsSnapshot(
        reserve_ratio=525.0,
        erg_price=1.45,
        stablecoin_price=1.0,
        transactions=200,
        observed_at=1_704_067_200_000,
    )


@pytest.fixture
def metrics_source(live_snapshot: MetricsSnapshot) -> StaticMetricsSource:
    """Metrics source returning the healthy snapshot."""
    return StaticMetricsSource(live_snapshot)


@pytest.fixture
def executor(metrics_source: StaticMetricsSource, metrics: MetricsCollector) -> WorkflowExecutor:
    """Executor with seeded randomness and no real sleeping."""
    return WorkflowExecutor(
        metrics_source,
        latency_range_ms=(300, 1000),
        rng=random.Random(42),
        metrics=metrics,
        sleep=no_sleep,
    )


@pytest.fixture
def diamond_workflow() -> dict[str, Any]:
    """A -> B, A -> C, B -> D, C -> D."""
    return {
        "id": "wf-diamond",
        "name": "Diamond",
        "nodes": [
            {"id": "A", "type": "djed_monitor"},
            {"id": "B", "type": "djed_sim"},
            {"id": "C", "type": "djed_sentinel"},
            {"id": "D", "type": "djed_ledger"},
        ],
        "connections": [
            {"from": "A", "to": "B"},
            {"from": "A", "to": "C"},
            {"from": "B", "to": "D"},
            {"from": "C", "to": "D"},
        ],
    }
