"""Data feeds wrapping the public blockchain and DeFi APIs."""

from djedops.feeds.defi import DefiFeed
from djedops.feeds.dex import DexPriceFeed
from djedops.feeds.ergo import ErgoExplorerClient
from djedops.feeds.gas import GasFeed, GasQuote
from djedops.feeds.prices import PriceFeed, PriceUnavailableError
from djedops.feeds.protocol import ProtocolFeed
from djedops.feeds.routing import RoutingFeed


__all__ = [
    "DefiFeed",
    "DexPriceFeed",
    "ErgoExplorerClient",
    "GasFeed",
    "GasQuote",
    "PriceFeed",
    "PriceUnavailableError",
    "ProtocolFeed",
    "RoutingFeed",
]
