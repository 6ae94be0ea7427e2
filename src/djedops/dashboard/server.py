"""
FastAPI server for the DjedOps dashboard API.

Proxies the public blockchain and DeFi sources, serves the arbitrage
tracker and price simulation, and runs workflow graphs.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import parse_qs

import orjson
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from djedops import __version__
from djedops.config.constants import DEFAULT_PRICE_SYMBOLS, DEFAULT_ROUTE_AMOUNT
from djedops.config.settings import Settings, get_settings
from djedops.core.types import OpportunityStatus, ProtocolStatus, SimulationScenario
from djedops.dashboard.state import DashboardServices
from djedops.feeds.prices import PriceUnavailableError
from djedops.strategy.simulation import PriceSimulation
from djedops.upstream.client import UpstreamError
from djedops.utils.time import get_timestamp_ms
from djedops.workflow.graph import WorkflowGraph, WorkflowValidationError


logger = logging.getLogger(__name__)

DEFI_TYPES = ("protocols", "yields", "protocol-tvl")


class OrjsonResponse(Response):
    """JSON response rendered with orjson."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, option=orjson.OPT_NON_STR_KEYS)


def _error(message: str, status_code: int, **extra: Any) -> OrjsonResponse:
    return OrjsonResponse({"error": message, **extra}, status_code=status_code)


async def _invalid_request(request: Request, exc: RequestValidationError) -> OrjsonResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    logger.debug(f"Rejected {request.method} {request.url.path}: {problems}")
    return _error(f"Invalid request: {problems}", 400, success=False)


def _services(request: Request) -> DashboardServices:
    return request.app.state.services


def create_app(
    settings: Settings | None = None,
    services: DashboardServices | None = None,
    start_monitor: bool = True,
) -> FastAPI:
    """
    Build the API application.

    Args:
        settings: Application settings; loaded from the environment when omitted.
        services: Pre-built services, e.g. with fake feeds in tests.
        start_monitor: Run the background protocol monitor during the lifespan.
    """
    settings = settings or get_settings()
    services = services or DashboardServices.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if start_monitor:
            await services.monitor.start()
        yield
        await services.monitor.stop()
        await services.http.close()

    app = FastAPI(
        title="DjedOps",
        version=__version__,
        lifespan=lifespan,
        default_response_class=OrjsonResponse,
    )
    app.state.services = services
    app.add_exception_handler(RequestValidationError, _invalid_request)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.get("/api/djed")(djed_proxy)
    app.get("/api/gas")(get_gas)
    app.get("/api/defi")(get_defi)
    app.get("/api/prices")(get_prices)
    app.get("/api/routing")(get_routing)
    app.get("/api/arbitrage")(get_arbitrage)
    app.get("/api/simulation")(get_simulation)
    app.post("/api/workflows/execute")(execute_workflow)
    app.get("/api/workflows/history")(get_history)
    app.delete("/api/workflows/history")(clear_history)
    app.get("/api/status")(get_status)
    return app


# =============================================================================
# Explorer Proxy
# =============================================================================


async def djed_proxy(request: Request, endpoint: str | None = None) -> OrjsonResponse:
    services = _services(request)
    if not endpoint:
        return _error("Missing endpoint parameter", 400)

    if endpoint == "oracle/price":
        try:
            price = await services.prices.get_erg_price()
        except PriceUnavailableError as e:
            logger.error(f"Failed to fetch ERG price from any source: {e}")
            return _error("Failed to fetch real ERG price. All sources unavailable.", 502)
        return OrjsonResponse({"price": price, "timestamp": get_timestamp_ms()})

    if endpoint == "djed/price":
        quote = await services.protocol.get_protocol_price()
        return OrjsonResponse(quote.to_dict())

    if endpoint == "djed/state":
        state = await services.protocol.get_state()
        return OrjsonResponse({"success": True, "data": state.to_dict()})

    if endpoint == "info":
        try:
            return OrjsonResponse(await services.explorer.get_network_info())
        except UpstreamError as e:
            logger.error(f"Failed to fetch network info: {e}")
            return _error("Failed to fetch network info", 502)

    if endpoint == "blocks" or endpoint.startswith("blocks?"):
        limit = _blocks_limit(endpoint, request.query_params.get("limit"))
        if limit is False:
            return _error("Invalid limit parameter", 400)
        try:
            return OrjsonResponse(await services.explorer.get_blocks(limit))
        except UpstreamError as e:
            logger.error(f"Failed to fetch blocks: {e}")
            return _error("Failed to fetch blocks", 502)

    params = {k: v for k, v in request.query_params.items() if k != "endpoint"}
    try:
        data = await services.explorer.get_raw(endpoint, params or None)
    except ValueError as e:
        return _error(str(e), 400)
    except UpstreamError as e:
        logger.warning(f"Explorer passthrough {endpoint!r} failed: {e}")
        status = e.status if e.status and e.status >= 400 else 502
        return _error(str(e), status)
    return OrjsonResponse(data)


def _blocks_limit(endpoint: str, query_limit: str | None) -> int | None | bool:
    """Limit from `blocks?limit=N` or the request query; False when malformed."""
    raw = query_limit
    if "?" in endpoint:
        raw = parse_qs(endpoint.split("?", 1)[1]).get("limit", [raw])[0]
    if raw is None:
        return None
    try:
        limit = int(raw)
    except ValueError:
        return False
    return limit if limit > 0 else False


# =============================================================================
# Market Data
# =============================================================================


async def get_gas(request: Request, chain: str = "all") -> OrjsonResponse:
    try:
        gas = await _services(request).gas.get_gas(chain)
    except ValueError as e:
        return _error(str(e), 400, success=False)
    return OrjsonResponse(
        {
            "success": True,
            "gas": {name: quote.to_dict() for name, quote in gas.items()},
            "timestamp": get_timestamp_ms(),
            "source": "multi-chain",
        }
    )


async def get_defi(
    request: Request,
    type: str = "protocols",
    chain: str | None = None,
    protocol: str | None = None,
) -> OrjsonResponse:
    defi = _services(request).defi
    if type not in DEFI_TYPES:
        return _error(f"Unknown type: {type}", 400, success=False)
    if type == "protocol-tvl" and not protocol:
        return _error("Protocol parameter required for protocol-tvl type", 400, success=False)

    try:
        if type == "protocols":
            data: Any = await defi.get_protocols()
        elif type == "yields":
            data = await defi.get_yields(chain or None)
        else:
            data = await defi.get_protocol_tvl(protocol or "")
    except ValueError as e:
        return _error(str(e), 400, success=False)
    except UpstreamError as e:
        logger.warning(f"DeFi {type} lookup failed: {e}")
        return OrjsonResponse(
            {
                "success": False,
                "data": [],
                "error": str(e),
                "timestamp": get_timestamp_ms(),
                "source": "error",
            }
        )

    return OrjsonResponse(
        {"success": True, "data": data, "timestamp": get_timestamp_ms(), "source": "defillama"}
    )


async def get_prices(request: Request, symbols: str | None = None) -> OrjsonResponse:
    wanted = symbols.split(",") if symbols else list(DEFAULT_PRICE_SYMBOLS)
    try:
        quotes = await _services(request).prices.get_quotes(wanted)
    except ValueError as e:
        return _error(str(e), 400, success=False, prices={})
    except UpstreamError as e:
        logger.error(f"Prices lookup failed: {e}")
        return OrjsonResponse(
            {
                "success": False,
                "prices": {},
                "error": f"Failed to fetch real prices. No fallback data available. ({e})",
                "timestamp": get_timestamp_ms(),
            },
            status_code=502,
        )

    return OrjsonResponse(
        {
            "success": True,
            "prices": {symbol: quote.to_dict() for symbol, quote in quotes.items()},
            "timestamp": get_timestamp_ms(),
            "source": "coingecko",
        }
    )


async def get_routing(
    request: Request,
    srcToken: str = "ETH",
    destToken: str = "USDC",
    amount: str = DEFAULT_ROUTE_AMOUNT,
    chainId: int = 1,
) -> OrjsonResponse:
    route = await _services(request).routing.get_route(srcToken, destToken, amount, chainId)
    return OrjsonResponse(route)


# =============================================================================
# Arbitrage & Simulation
# =============================================================================


async def get_arbitrage(request: Request, status: str | None = None) -> OrjsonResponse:
    services = _services(request)
    try:
        wanted = OpportunityStatus(status.lower()) if status else None
    except ValueError:
        return _error(f"Unknown status: {status}", 400, success=False)

    tracker = services.tracker
    tracker.expire(get_timestamp_ms())
    state = services.monitor.state
    return OrjsonResponse(
        {
            "success": True,
            "quote": state.quote.to_dict() if state.quote else None,
            "dexPrice": state.dex_price.to_dict() if state.dex_price else None,
            "protocolPrice": state.protocol_price.to_dict() if state.protocol_price else None,
            "opportunities": [o.to_dict() for o in tracker.filter(wanted)],
            "stats": tracker.stats().to_dict(),
            "lastRefresh": state.last_refresh,
        }
    )


async def get_simulation(
    request: Request,
    price: float | None = None,
    scenario: str | None = None,
) -> OrjsonResponse:
    services = _services(request)
    try:
        chosen = SimulationScenario(scenario.lower()) if scenario else None
    except ValueError:
        return _error(f"Unknown scenario: {scenario}", 400, success=False)

    live = services.monitor.state.protocol_state or await services.protocol.get_state()
    simulation = PriceSimulation.from_state(live)
    if price is not None:
        simulation.set_price(price)
    if chosen is not None:
        try:
            simulation.apply_scenario(chosen)
        except ValueError as e:
            return _error(str(e), 400, success=False)

    return OrjsonResponse(
        {
            "success": True,
            "live": {"price": live.erg_price, "reserveRatio": live.reserve_ratio},
            "simulation": simulation.result.to_dict(),
            "source": live.source,
        }
    )


# =============================================================================
# Workflows
# =============================================================================


async def execute_workflow(request: Request) -> OrjsonResponse:
    services = _services(request)
    try:
        payload = orjson.loads(await request.body())
    except orjson.JSONDecodeError:
        return _error("Request body must be JSON", 400, success=False)
    if not isinstance(payload, dict):
        return _error("Request body must be an object", 400, success=False)

    try:
        graph = WorkflowGraph.from_dict(payload.get("workflow", payload))
    except WorkflowValidationError as e:
        return _error(str(e), 400, success=False)

    raw_status = payload.get("protocolStatus")
    if raw_status:
        try:
            protocol_status = ProtocolStatus(str(raw_status).upper())
        except ValueError:
            return _error(f"Unknown protocol status: {raw_status}", 400, success=False)
    else:
        live = services.monitor.state.protocol_state or await services.protocol.get_state()
        protocol_status = live.status

    log = await services.executor.execute(graph, protocol_status)
    await asyncio.to_thread(services.history.append, log)
    return OrjsonResponse({"success": True, "execution": log.to_dict()})


async def get_history(request: Request) -> OrjsonResponse:
    logs = await asyncio.to_thread(_services(request).history.load)
    return OrjsonResponse(
        {"success": True, "executions": [log.to_dict() for log in logs], "count": len(logs)}
    )


async def clear_history(request: Request) -> OrjsonResponse:
    await asyncio.to_thread(_services(request).history.clear)
    return OrjsonResponse({"success": True})


async def get_status(request: Request) -> OrjsonResponse:
    services = _services(request)
    return OrjsonResponse(
        {
            "version": __version__,
            "monitor": {
                "running": services.monitor.is_running,
                **services.monitor.state.to_dict(),
            },
            "opportunities": services.tracker.stats().to_dict(),
            "metrics": services.metrics.to_dict(),
        }
    )
