"""Mock implementations for testing."""

from tests.mocks.upstream import MockHttpClient, blocks_page, healthy_routes, spectrum_market
from tests.mocks.workflow import StaticMetricsSource, no_sleep


__all__ = [
    "MockHttpClient",
    "StaticMetricsSource",
    "blocks_page",
    "healthy_routes",
    "no_sleep",
    "spectrum_market",
]
