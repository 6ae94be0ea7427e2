"""Workflow graphs, execution and history."""

from djedops.workflow.engine import MetricsSource, WorkflowExecutor, evaluate_condition
from djedops.workflow.graph import WorkflowGraph, WorkflowValidationError, parse_edge, parse_node
from djedops.workflow.history import ExecutionHistoryStore
from djedops.workflow.outputs import OUTPUT_GENERATORS, OutputGenerator, generate_output


__all__ = [
    "OUTPUT_GENERATORS",
    "ExecutionHistoryStore",
    "MetricsSource",
    "OutputGenerator",
    "WorkflowExecutor",
    "WorkflowGraph",
    "WorkflowValidationError",
    "evaluate_condition",
    "generate_output",
    "parse_edge",
    "parse_node",
]
