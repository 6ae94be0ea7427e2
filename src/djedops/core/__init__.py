"""Core module containing the shared type definitions."""

from djedops.core.types import (
    AppletType,
    ArbitrageOpportunity,
    ArbitrageQuote,
    ArbitrageSignal,
    ConditionType,
    DexPrice,
    ExecutionLog,
    MetricsSnapshot,
    NodeCondition,
    NodeExecutionRecord,
    NodeStatus,
    OpportunityStatus,
    PriceQuote,
    ProtocolPrice,
    ProtocolState,
    ProtocolStatus,
    RunStatus,
    SimulationResult,
    SimulationScenario,
    WorkflowNode,
)


__all__ = [
    "AppletType",
    "ArbitrageOpportunity",
    "ArbitrageQuote",
    "ArbitrageSignal",
    "ConditionType",
    "DexPrice",
    "ExecutionLog",
    "MetricsSnapshot",
    "NodeCondition",
    "NodeExecutionRecord",
    "NodeStatus",
    "OpportunityStatus",
    "PriceQuote",
    "ProtocolPrice",
    "ProtocolState",
    "ProtocolStatus",
    "RunStatus",
    "SimulationResult",
    "SimulationScenario",
    "WorkflowNode",
]
