"""
Type definitions for DjedOps.

This module contains the dataclasses and enums shared across the
fetchers, the signal engine and the workflow executor. Records that
are replaced wholesale on every refresh are frozen; `to_dict()`
produces the camelCase wire form served by the API.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# =============================================================================
# Enums
# =============================================================================


class ProtocolStatus(str, Enum):
    """Protocol health band derived from the reserve ratio."""

    OPTIMAL = "OPTIMAL"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class ArbitrageSignal(str, Enum):
    """Direction of a DEX vs. protocol arbitrage."""

    MINT = "MINT"
    REDEEM = "REDEEM"
    NONE = "NONE"


class OpportunityStatus(str, Enum):
    """Lifecycle state of a detected opportunity."""

    DETECTED = "detected"
    EXPIRED = "expired"


class AppletType(str, Enum):
    """Workflow node applet kinds."""

    DJED_MONITOR = "djed_monitor"
    DJED_SIM = "djed_sim"
    DJED_SENTINEL = "djed_sentinel"
    DJED_LEDGER = "djed_ledger"
    DJED_ARBITRAGE = "djed_arbitrage"


class ConditionType(str, Enum):
    """Trigger condition kinds for workflow nodes."""

    DSI_BELOW = "dsi_below"
    DSI_ABOVE = "dsi_above"
    PRICE_BELOW = "price_below"
    PRICE_ABOVE = "price_above"
    ALWAYS = "always"


class NodeStatus(str, Enum):
    """Outcome of a single node execution."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Terminal status of a workflow run."""

    COMPLETED = "completed"
    FAILED = "failed"
    BLOCKED = "blocked"


class SimulationScenario(str, Enum):
    """Named stress scenarios for the price simulation."""

    NONE = "none"
    FLASH_CRASH = "flash_crash"
    ORACLE_FREEZE = "oracle_freeze"
    BANK_RUN = "bank_run"


# =============================================================================
# Market Data Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class PriceQuote:
    """USD price snapshot for a single asset."""

    symbol: str
    price: float
    change_24h: float
    market_cap: float
    volume_24h: float
    observed_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change24h": self.change_24h,
            "marketCap": self.market_cap,
            "volume24h": self.volume_24h,
            "lastUpdated": self.observed_at,
        }


@dataclass(slots=True, frozen=True)
class ProtocolPrice:
    """Protocol mint/redeem quote for the stablecoin."""

    mint_price: float
    redeem_price: float
    peg: float
    timestamp: int
    source: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "mintPrice": self.mint_price,
            "redeemPrice": self.redeem_price,
            "peg": self.peg,
            "timestamp": self.timestamp,
            "source": self.source,
        }


@dataclass(slots=True, frozen=True)
class DexPrice:
    """Open-market stablecoin price observed on a DEX."""

    price: float | None
    pair: str
    liquidity: float
    source: str

    @property
    def available(self) -> bool:
        """Check whether a usable price was observed."""
        return self.price is not None and self.price > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.available,
            "price": self.price,
            "pair": self.pair,
            "liquidity": self.liquidity,
            "source": self.source,
        }


@dataclass(slots=True, frozen=True)
class ProtocolState:
    """
    Derived stablecoin protocol state.

    Never persisted; recomputed on every poll or simulated price change.
    Built through `strategy.calculator.derive_protocol_state` so that
    `reserve_ratio` and `status` always agree with the reserve figures.
    """

    erg_price: float
    base_reserves: float
    reserves_usd: float
    stablecoin_supply: float
    reserve_ratio: float
    status: ProtocolStatus
    observed_at: int
    shen_circulation: float = 0.0
    stablecoin_price: float = 1.0
    source: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "ergPrice": self.erg_price,
            "baseReserves": self.base_reserves,
            "reservesUSD": self.reserves_usd,
            "djedSupply": self.stablecoin_supply,
            "circulatingDjed": self.stablecoin_supply,
            "shenCirculation": self.shen_circulation,
            "reserveRatio": self.reserve_ratio,
            "djedPrice": self.stablecoin_price,
            "status": self.status.value,
            "totalReserves": self.reserves_usd,
            "timestamp": self.observed_at,
            "source": self.source,
        }


@dataclass(slots=True, frozen=True)
class MetricsSnapshot:
    """
    Live metrics shared by every node of one workflow run.

    Each field is None when its source could not be reached.
    """

    reserve_ratio: float | None = None
    erg_price: float | None = None
    stablecoin_price: float | None = None
    transactions: int | None = None
    observed_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "reserveRatio": self.reserve_ratio,
            "ergPrice": self.erg_price,
            "djedPrice": self.stablecoin_price,
            "transactions": self.transactions,
            "timestamp": self.observed_at,
        }


# =============================================================================
# Arbitrage Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class ArbitrageQuote:
    """One evaluation of DEX price against the protocol price."""

    signal: ArbitrageSignal
    dex_price: float
    protocol_price: float
    spread: float
    spread_pct: float
    estimated_net_profit: float
    liquidity: float
    source: str
    is_profitable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "signal": self.signal.value,
            "dexPrice": self.dex_price,
            "protocolPrice": self.protocol_price,
            "spread": self.spread,
            "spreadPercent": self.spread_pct,
            "estimatedNetProfit": self.estimated_net_profit,
            "isProfitable": self.is_profitable,
            "liquidity": self.liquidity,
            "source": self.source,
        }


@dataclass(slots=True, frozen=True)
class ArbitrageOpportunity:
    """
    Detected arbitrage opportunity.

    Refreshed in place (same id and detected_at) while the spread stays
    within the similarity window, otherwise superseded by a new entry.
    """

    id: str
    detected_at: int
    signal: ArbitrageSignal
    dex_price: float
    protocol_price: float
    spread: float
    spread_pct: float
    estimated_net_profit: float
    liquidity: float
    source: str
    status: OpportunityStatus = OpportunityStatus.DETECTED
    updated_at: int = 0

    def age_ms(self, now_ms: int) -> int:
        """Milliseconds elapsed since detection."""
        return now_ms - self.detected_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "detectedAt": self.detected_at,
            "updatedAt": self.updated_at or self.detected_at,
            "signal": self.signal.value,
            "dexPrice": self.dex_price,
            "protocolPrice": self.protocol_price,
            "spread": self.spread,
            "spreadPercent": self.spread_pct,
            "estimatedNetProfit": self.estimated_net_profit,
            "liquidity": self.liquidity,
            "status": self.status.value,
            "source": self.source,
        }


# =============================================================================
# Workflow Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class NodeCondition:
    """Trigger condition attached to a workflow node."""

    type: ConditionType
    value: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "value": self.value}


@dataclass(slots=True, frozen=True)
class WorkflowNode:
    """Single applet node in a workflow graph."""

    id: str
    applet_type: AppletType
    name: str = ""
    condition: NodeCondition | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.applet_type.value,
            "name": self.name,
            "condition": self.condition.to_dict() if self.condition else None,
        }


@dataclass(slots=True)
class NodeExecutionRecord:
    """Result of executing (or skipping) one node."""

    node_id: str
    node_name: str
    status: NodeStatus
    started_at: int
    ended_at: int
    output: dict[str, Any] | None = None
    error: str = ""

    @property
    def duration_ms(self) -> int:
        """Elapsed time for the node."""
        return self.ended_at - self.started_at

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "nodeId": self.node_id,
            "nodeName": self.node_name,
            "status": self.status.value,
            "startTime": self.started_at,
            "endTime": self.ended_at,
            "output": self.output,
        }
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NodeExecutionRecord":
        return cls(
            node_id=str(data["nodeId"]),
            node_name=str(data.get("nodeName", "")),
            status=NodeStatus(data["status"]),
            started_at=int(data.get("startTime", 0)),
            ended_at=int(data.get("endTime", 0)),
            output=data.get("output"),
            error=str(data.get("error", "")),
        )


@dataclass(slots=True)
class ExecutionLog:
    """Complete log of one workflow run."""

    id: str
    workflow_id: str
    workflow_name: str
    started_at: int
    status: RunStatus
    records: list[NodeExecutionRecord] = field(default_factory=list)
    total_duration_ms: int = 0
    dropped_edges: list[tuple[str, str]] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        """Check if the run completed without failures."""
        return self.status == RunStatus.COMPLETED

    def record_for(self, node_id: str) -> NodeExecutionRecord | None:
        """Get the execution record of a node, if it ran."""
        for record in self.records:
            if record.node_id == node_id:
                return record
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "workflowId": self.workflow_id,
            "workflowName": self.workflow_name,
            "timestamp": self.started_at,
            "nodeExecutions": [r.to_dict() for r in self.records],
            "totalDuration": self.total_duration_ms,
            "status": self.status.value,
            "droppedEdges": [{"from": src, "to": dst} for src, dst in self.dropped_edges],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecutionLog":
        return cls(
            id=str(data["id"]),
            workflow_id=str(data.get("workflowId", "")),
            workflow_name=str(data.get("workflowName", "")),
            started_at=int(data.get("timestamp", 0)),
            status=RunStatus(data["status"]),
            records=[NodeExecutionRecord.from_dict(r) for r in data.get("nodeExecutions", [])],
            total_duration_ms=int(data.get("totalDuration", 0)),
            dropped_edges=[(e["from"], e["to"]) for e in data.get("droppedEdges", [])],
        )


# =============================================================================
# Simulation Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class SimulationResult:
    """Reserve ratio and status for a simulated collateral price."""

    price: float
    reserve_ratio: float
    status: ProtocolStatus
    scenario: SimulationScenario = SimulationScenario.NONE
    frozen: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "price": self.price,
            "reserveRatio": self.reserve_ratio,
            "status": self.status.value,
            "scenario": self.scenario.value,
            "oracleFrozen": self.frozen,
        }
