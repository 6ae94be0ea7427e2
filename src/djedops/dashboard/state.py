"""
Service container for the dashboard API.

Everything a request handler needs is built once per application and
stored on `app.state`; handlers never reach for module globals.
"""

from dataclasses import dataclass

from djedops.config.settings import Settings
from djedops.core.monitor import ProtocolMonitor
from djedops.feeds.defi import DefiFeed
from djedops.feeds.dex import DexPriceFeed
from djedops.feeds.ergo import ErgoExplorerClient
from djedops.feeds.gas import GasFeed
from djedops.feeds.prices import PriceFeed
from djedops.feeds.protocol import ProtocolFeed
from djedops.feeds.routing import RoutingFeed
from djedops.strategy.opportunity import OpportunityTracker
from djedops.strategy.signals import ProfitModel
from djedops.telemetry.metrics import MetricsCollector
from djedops.upstream.client import HttpClient
from djedops.workflow.engine import WorkflowExecutor
from djedops.workflow.history import ExecutionHistoryStore


@dataclass
class DashboardServices:
    """Feeds, trackers and stores shared by the API handlers."""

    settings: Settings
    http: HttpClient
    metrics: MetricsCollector
    explorer: ErgoExplorerClient
    prices: PriceFeed
    protocol: ProtocolFeed
    dex: DexPriceFeed
    gas: GasFeed
    defi: DefiFeed
    routing: RoutingFeed
    monitor: ProtocolMonitor
    executor: WorkflowExecutor
    history: ExecutionHistoryStore

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http: HttpClient | None = None,
        metrics: MetricsCollector | None = None,
    ) -> "DashboardServices":
        """
        Wire every service from settings.

        Args:
            settings: Application settings.
            http: HTTP client to share; a new one is created when omitted.
            metrics: Metrics collector to share.
        """
        metrics = metrics or MetricsCollector()
        http = http or HttpClient(timeout=settings.explorer_timeout_s, metrics=metrics)

        coingecko_key = (
            settings.coingecko_api_key.get_secret_value() if settings.coingecko_api_key else None
        )
        infura_key = settings.infura_api_key.get_secret_value() if settings.infura_api_key else None

        explorer = ErgoExplorerClient(
            http, base_url=settings.ergo_api_url, timeout=settings.explorer_timeout_s
        )
        prices = PriceFeed(
            http,
            coingecko_url=settings.coingecko_api_url,
            defillama_coins_url=settings.defillama_coins_url,
            timeout=settings.price_timeout_s,
            api_key=coingecko_key,
            metrics=metrics,
        )
        protocol = ProtocolFeed(prices, explorer, metrics=metrics)
        dex = DexPriceFeed(
            http,
            prices,
            base_url=settings.spectrum_api_url,
            timeout=settings.price_timeout_s,
            demo_mode=settings.demo_mode,
        )
        tracker = OpportunityTracker(metrics=metrics)
        monitor = ProtocolMonitor(
            protocol,
            dex,
            tracker,
            ProfitModel.from_settings(settings),
            interval_s=settings.poll_interval_s,
        )

        return cls(
            settings=settings,
            http=http,
            metrics=metrics,
            explorer=explorer,
            prices=prices,
            protocol=protocol,
            dex=dex,
            gas=GasFeed(http, infura_key=infura_key, timeout=settings.explorer_timeout_s),
            defi=DefiFeed(
                http,
                api_url=settings.defillama_api_url,
                yields_url=settings.defillama_yields_url,
                timeout=settings.explorer_timeout_s,
            ),
            routing=RoutingFeed(
                http, base_url=settings.paraswap_api_url, timeout=settings.explorer_timeout_s
            ),
            monitor=monitor,
            executor=WorkflowExecutor(
                protocol.snapshot,
                latency_range_ms=settings.latency_range_ms,
                metrics=metrics,
            ),
            history=ExecutionHistoryStore(
                settings.history_path, max_entries=settings.history_max_entries
            ),
        )

    @property
    def tracker(self) -> OpportunityTracker:
        return self.monitor.tracker
