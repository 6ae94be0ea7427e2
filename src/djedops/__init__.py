"""
DjedOps: Djed stablecoin operations service.

Proxies public Ergo and DeFi data sources, derives the protocol's
reserve ratio and health, tracks DEX vs. protocol arbitrage and runs
small monitoring workflows over live metrics.
"""

__version__ = "1.0.0"
