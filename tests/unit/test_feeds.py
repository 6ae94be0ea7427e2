"""
Unit tests for the data feeds.

Feeds run against the mock HTTP client; no network access.
"""

from typing import Any

import pytest

from djedops.core.types import ProtocolStatus
from djedops.feeds.defi import DefiFeed, filter_yields
from djedops.feeds.dex import DexPriceFeed
from djedops.feeds.ergo import ErgoExplorerClient
from djedops.feeds.gas import GasFeed
from djedops.feeds.prices import PriceFeed, PriceUnavailableError
from djedops.feeds.protocol import ProtocolFeed
from djedops.feeds.routing import RoutingFeed
from djedops.telemetry.metrics import FALLBACKS_USED, MetricsCollector
from djedops.upstream.client import UpstreamError
from djedops.upstream.models import YieldPool
from tests.mocks import MockHttpClient, blocks_page, spectrum_market


COINGECKO = "coingecko.com/api/v3/simple/price"
DEFILLAMA = "coins.llama.fi/prices/current"
INFO = "ergoplatform.com/api/v1/info"
BLOCKS = "ergoplatform.com/api/v1/blocks"
SPECTRUM = "spectrum.fi/v1/price-tracking/markets"


def coingecko_quotes(url: str, params: dict[str, Any] | None) -> dict[str, Any]:
    ids = (params or {}).get("ids", "").split(",")
    table = {
        "ergo": {"usd": 1.45, "usd_market_cap": 110e6, "usd_24h_vol": 1.2e6, "usd_24h_change": -2.5},
        "ethereum": {"usd": 3200.0, "usd_market_cap": 385e9, "last_updated_at": 1_704_067_200},
    }
    return {i: table[i] for i in ids if i in table}


class TestPriceFeed:
    """Tests for PriceFeed."""

    @pytest.mark.asyncio
    async def test_primary_source(self, price_feed: PriceFeed, mock_http: MockHttpClient) -> None:
        assert await price_feed.get_erg_price() == 1.45
        assert mock_http.calls_to(DEFILLAMA) == []

    @pytest.mark.asyncio
    async def test_secondary_source(
        self, price_feed: PriceFeed, mock_http: MockHttpClient, metrics: MetricsCollector
    ) -> None:
        mock_http.fail(COINGECKO, 429)

        assert await price_feed.get_erg_price() == 1.40
        assert metrics.get_counter(FALLBACKS_USED) == 1

    @pytest.mark.asyncio
    async def test_primary_without_price_uses_secondary(
        self, price_feed: PriceFeed, mock_http: MockHttpClient
    ) -> None:
        mock_http.route(COINGECKO, {})

        assert await price_feed.get_erg_price() == 1.40

    @pytest.mark.asyncio
    async def test_all_sources_failed(self, price_feed: PriceFeed, mock_http: MockHttpClient) -> None:
        mock_http.fail(COINGECKO)
        mock_http.fail(DEFILLAMA)

        with pytest.raises(PriceUnavailableError):
            await price_feed.get_erg_price()

    @pytest.mark.asyncio
    async def test_api_key_header(self) -> None:
        http = MockHttpClient({COINGECKO: {"ergo": {"usd": 1.5}}})
        feed = PriceFeed(http, api_key="demo-key")

        assert await feed.get_erg_price() == 1.5

    @pytest.mark.asyncio
    async def test_quotes(self, price_feed: PriceFeed, mock_http: MockHttpClient) -> None:
        mock_http.route(COINGECKO, coingecko_quotes)

        quotes = await price_feed.get_quotes(["erg", " ETH ", "BTC", "NOPE"])

        assert set(quotes) == {"ERG", "ETH"}
        erg = quotes["ERG"]
        assert erg.price == 1.45
        assert erg.change_24h == -2.5
        assert erg.market_cap == 110e6
        assert quotes["ETH"].observed_at == 1_704_067_200_000

    @pytest.mark.asyncio
    async def test_quotes_without_known_symbol(self, price_feed: PriceFeed) -> None:
        with pytest.raises(ValueError):
            await price_feed.get_quotes(["NOPE", ""])

    @pytest.mark.asyncio
    async def test_quotes_upstream_failure_propagates(
        self, price_feed: PriceFeed, mock_http: MockHttpClient
    ) -> None:
        mock_http.fail(COINGECKO)

        with pytest.raises(UpstreamError):
            await price_feed.get_quotes(["ERG"])


class TestProtocolFeed:
    """Tests for ProtocolFeed."""

    @pytest.mark.asyncio
    async def test_live_state(self, protocol_feed: ProtocolFeed) -> None:
        state = await protocol_feed.get_state()

        assert state.erg_price == 1.45
        assert state.reserve_ratio == pytest.approx(550.0)
        assert state.status == ProtocolStatus.OPTIMAL
        assert state.source == "ergo-blockchain-synthetic"

    @pytest.mark.asyncio
    async def test_fallback_price(
        self, protocol_feed: ProtocolFeed, mock_http: MockHttpClient
    ) -> None:
        mock_http.fail(COINGECKO)
        mock_http.fail(DEFILLAMA)

        state = await protocol_feed.get_state()

        assert state.erg_price == 1.45
        assert state.source == "ergo-blockchain-synthetic"

    @pytest.mark.asyncio
    async def test_explorer_failures_use_defaults(
        self, protocol_feed: ProtocolFeed, mock_http: MockHttpClient
    ) -> None:
        mock_http.fail(INFO)
        mock_http.fail(BLOCKS)

        state = await protocol_feed.get_state()

        assert state.base_reserves == pytest.approx(97_739_924 * 0.0015)
        assert state.reserve_ratio == pytest.approx(600.0)

    @pytest.mark.asyncio
    async def test_unexpected_failure_serves_fallback(
        self, protocol_feed: ProtocolFeed, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken(*_: Any) -> None:
            raise ZeroDivisionError("bad derivation")

        monkeypatch.setattr("djedops.feeds.protocol.synthesize_protocol_state", broken)

        state = await protocol_feed.get_state()

        assert state.source == "fallback"
        assert state.reserve_ratio == pytest.approx(525.9, abs=0.05)

    @pytest.mark.asyncio
    async def test_live_state_requires_price(
        self, protocol_feed: ProtocolFeed, mock_http: MockHttpClient
    ) -> None:
        mock_http.fail(COINGECKO)
        mock_http.fail(DEFILLAMA)

        with pytest.raises(PriceUnavailableError):
            await protocol_feed.get_live_state()

    @pytest.mark.asyncio
    async def test_protocol_price(self, protocol_feed: ProtocolFeed) -> None:
        price = await protocol_feed.get_protocol_price()

        assert (price.mint_price, price.redeem_price, price.peg) == (1.00, 0.98, 1.00)
        assert price.to_dict()["source"] == "djed-protocol"

    @pytest.mark.asyncio
    async def test_snapshot(self, protocol_feed: ProtocolFeed) -> None:
        snapshot = await protocol_feed.snapshot()

        assert snapshot.reserve_ratio == pytest.approx(550.0)
        assert snapshot.erg_price == 1.45
        assert snapshot.stablecoin_price == 1.0
        assert snapshot.transactions == 200

    @pytest.mark.asyncio
    async def test_snapshot_with_failed_sources(
        self, protocol_feed: ProtocolFeed, mock_http: MockHttpClient
    ) -> None:
        mock_http.fail(COINGECKO)
        mock_http.fail(DEFILLAMA)
        mock_http.fail(BLOCKS)

        snapshot = await protocol_feed.snapshot()

        assert snapshot.erg_price is None
        assert snapshot.transactions is None
        assert snapshot.reserve_ratio is not None


class TestDexPriceFeed:
    """Tests for DexPriceFeed."""

    @pytest.mark.asyncio
    async def test_most_liquid_market(self, dex_feed: DexPriceFeed) -> None:
        dex = await dex_feed.get_price()

        assert dex.available
        assert dex.price == pytest.approx(1.45 / 1.42)
        assert dex.pair == "ERG/SigUSD"
        assert dex.liquidity == 14_200

    @pytest.mark.asyncio
    async def test_stablecoin_base_market(
        self, dex_feed: DexPriceFeed, mock_http: MockHttpClient
    ) -> None:
        mock_http.route(SPECTRUM, [spectrum_market("DJED", "ERG", 0.7, base_volume=500)])

        dex = await dex_feed.get_price()

        assert dex.price == pytest.approx(0.7 * 1.45)
        assert dex.liquidity == 500

    @pytest.mark.asyncio
    async def test_demo_mode(self, mock_http: MockHttpClient, price_feed: PriceFeed) -> None:
        dex = await DexPriceFeed(mock_http, price_feed, demo_mode=True).get_price()

        assert dex.price == 1.02
        assert dex.source == "demo"
        assert mock_http.calls == []

    @pytest.mark.asyncio
    async def test_unreachable_dex(self, dex_feed: DexPriceFeed, mock_http: MockHttpClient) -> None:
        mock_http.fail(SPECTRUM)

        dex = await dex_feed.get_price()

        assert dex.price is None
        assert not dex.available

    @pytest.mark.asyncio
    async def test_no_matching_market(
        self, dex_feed: DexPriceFeed, mock_http: MockHttpClient
    ) -> None:
        mock_http.route(SPECTRUM, [spectrum_market("ERG", "SPF", 300.0)])

        assert (await dex_feed.get_price()).price is None

    @pytest.mark.asyncio
    async def test_erg_price_unavailable(
        self, dex_feed: DexPriceFeed, mock_http: MockHttpClient
    ) -> None:
        mock_http.fail(COINGECKO)
        mock_http.fail(DEFILLAMA)

        dex = await dex_feed.get_price()

        assert dex.price is None
        assert len(mock_http.calls_to(SPECTRUM)) == 1

    @pytest.mark.asyncio
    async def test_unexpected_price_error_propagates(
        self, mock_http: MockHttpClient, price_feed: PriceFeed, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def broken() -> float:
            raise RuntimeError("price cache poisoned")

        monkeypatch.setattr(price_feed, "get_erg_price", broken)

        with pytest.raises(RuntimeError, match="poisoned"):
            await DexPriceFeed(mock_http, price_feed).get_price()
        assert len(mock_http.calls_to(SPECTRUM)) == 1


class TestExplorer:
    """Tests for ErgoExplorerClient."""

    @pytest.mark.asyncio
    async def test_recent_blocks(self, explorer: ErgoExplorerClient, mock_http: MockHttpClient) -> None:
        page = await explorer.get_recent_blocks()

        assert page.transaction_count == 200
        assert mock_http.calls_to(BLOCKS)[0][2] == {"limit": 10}

    @pytest.mark.asyncio
    async def test_raw_passthrough(self, mock_http: MockHttpClient) -> None:
        mock_http.route("addresses/9abc/balance/confirmed", {"nanoErgs": 42})
        explorer = ErgoExplorerClient(mock_http)

        assert await explorer.get_raw("/addresses/9abc/balance/confirmed") == {"nanoErgs": 42}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("endpoint", ["", "../admin", "https://evil.example/x"])
    async def test_raw_rejects_escaping_paths(
        self, explorer: ErgoExplorerClient, endpoint: str
    ) -> None:
        with pytest.raises(ValueError):
            await explorer.get_raw(endpoint)


class TestGasFeed:
    """Tests for GasFeed."""

    @pytest.mark.asyncio
    async def test_ergo_tiers(self, mock_http: MockHttpClient) -> None:
        gas = await GasFeed(mock_http).get_gas("ergo")

        quote = gas["ergo"]
        assert quote.slow == pytest.approx(0.0003)
        assert quote.standard == pytest.approx(0.00045)
        assert quote.fast == pytest.approx(0.0006)
        assert quote.instant == pytest.approx(0.0009)
        assert quote.unit == "ERG"

    @pytest.mark.asyncio
    async def test_ethereum_estimates_without_key(self, mock_http: MockHttpClient) -> None:
        gas = await GasFeed(mock_http).get_gas("ethereum")

        quote = gas["ethereum"]
        assert (quote.slow, quote.standard, quote.fast, quote.instant) == (20, 30, 50, 80)
        assert quote.unit == "Gwei"

    @pytest.mark.asyncio
    async def test_ethereum_live_price(self) -> None:
        http = MockHttpClient({"infura.io": {"jsonrpc": "2.0", "id": 1, "result": hex(25 * 10**9)}})

        quote = (await GasFeed(http, infura_key="key").get_gas("ethereum"))["ethereum"]

        assert (quote.slow, quote.standard, quote.fast, quote.instant) == (20, 25, 30, 38)
        assert http.calls[0][0] == "POST"

    @pytest.mark.asyncio
    async def test_ethereum_live_failure_uses_estimates(self) -> None:
        http = MockHttpClient({"infura.io": UpstreamError("down", source="infura", status=500)})

        quote = (await GasFeed(http, infura_key="key").get_gas("ethereum"))["ethereum"]

        assert quote.standard == 30

    @pytest.mark.asyncio
    async def test_all_chains(self, mock_http: MockHttpClient) -> None:
        assert set(await GasFeed(mock_http).get_gas("all")) == {"ergo", "ethereum"}

    @pytest.mark.asyncio
    async def test_unknown_chain(self, mock_http: MockHttpClient) -> None:
        with pytest.raises(ValueError):
            await GasFeed(mock_http).get_gas("solana")


class TestDefiFeed:
    """Tests for DefiFeed."""

    def test_filter_yields(self) -> None:
        pools = [
            YieldPool(pool="a", chain="Ergo", tvlUsd=200_000, apy=12.0),
            YieldPool(pool="b", chain="Ergo", tvlUsd=50_000, apy=30.0),
            YieldPool(pool="c", chain="Ergo", tvlUsd=500_000, apy=5000.0),
            YieldPool(pool="d", chain="Ethereum", tvlUsd=900_000, apy=20.0),
            YieldPool(pool="e", chain="Ergo", tvlUsd=300_000, apy=15.0),
            YieldPool(pool="f", chain="Ergo", tvlUsd=300_000, apy=0.0),
        ]

        assert [p.pool for p in filter_yields(pools)] == ["d", "e", "a"]
        assert [p.pool for p in filter_yields(pools, "ergo")] == ["e", "a"]

    @pytest.mark.asyncio
    async def test_protocols_top_twenty(self) -> None:
        protocols = [{"name": f"P{i}", "slug": f"p{i}", "tvl": 1000 - i} for i in range(30)]
        feed = DefiFeed(MockHttpClient({"api.llama.fi/protocols": protocols}))

        result = await feed.get_protocols()

        assert len(result) == 20
        assert result[0] == {
            "id": "p0",
            "name": "P0",
            "chain": "Multi-chain",
            "tvl": 1000,
            "change24h": 0,
            "category": "DeFi",
            "logo": None,
        }

    @pytest.mark.asyncio
    async def test_yields(self) -> None:
        http = MockHttpClient(
            {"yields.llama.fi/pools": {"data": [{"pool": "x", "chain": "Ergo", "tvlUsd": 2e5, "apy": 9}]}}
        )

        result = await DefiFeed(http).get_yields("Ergo")

        assert [p["pool"] for p in result] == ["x"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("slug", ["../etc", "a/b", ""])
    async def test_protocol_tvl_rejects_bad_slug(self, slug: str) -> None:
        with pytest.raises(ValueError):
            await DefiFeed(MockHttpClient()).get_protocol_tvl(slug)


class TestRoutingFeed:
    """Tests for RoutingFeed."""

    @pytest.mark.asyncio
    async def test_live_route(self) -> None:
        http = MockHttpClient(
            {
                "paraswap.io/prices": {
                    "priceRoute": {
                        "srcAmount": "1000000000000000000",
                        "destAmount": "3190000000",
                        "gasCost": "120000",
                        "srcUSD": "3200",
                        "destUSD": "3190",
                        "bestRoute": [{"swaps": [{"swapExchanges": [{"exchange": "UniswapV3"}]}]}],
                    }
                }
            }
        )

        route = await RoutingFeed(http).get_route("ETH", "USDC")

        assert route["success"] is True
        assert route["source"] == "paraswap"
        assert route["bestRoute"]["protocol"] == "UniswapV3"
        assert route["bestRoute"]["gasCost"] == 120000
        assert route["priceImpact"] == pytest.approx(0.3125)
        params = http.calls[0][2]
        assert params["srcToken"] == "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"

    @pytest.mark.asyncio
    async def test_fallback_routes(self) -> None:
        route = await RoutingFeed(MockHttpClient()).get_route()

        assert route["success"] is False
        assert route["source"] == "fallback"
        assert [r["protocol"] for r in route["routes"]] == ["Uniswap V3", "1inch"]
        assert route["bestRoute"]["protocol"] == "Uniswap V3"
        assert "error" in route
