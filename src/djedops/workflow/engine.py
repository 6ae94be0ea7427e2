"""
Workflow graph executor.

Runs a workflow graph depth-first from its entry nodes against a
single live metrics snapshot, behind a policy gate that refuses to
execute while the protocol is CRITICAL.
"""

import asyncio
import logging
import random
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from djedops.config.constants import (
    DEFAULT_CONDITION_THRESHOLDS,
    DEFAULT_NODE_LATENCY_MAX_MS,
    DEFAULT_NODE_LATENCY_MIN_MS,
    POLICY_BLOCK_MESSAGE,
    POLICY_NODE_ID,
    POLICY_NODE_NAME,
)
from djedops.core.types import (
    AppletType,
    ConditionType,
    ExecutionLog,
    MetricsSnapshot,
    NodeCondition,
    NodeExecutionRecord,
    NodeStatus,
    ProtocolStatus,
    RunStatus,
    WorkflowNode,
)
from djedops.telemetry.metrics import (
    NODES_EXECUTED,
    WORKFLOW_BLOCKED,
    WORKFLOW_RUNS,
    MetricsCollector,
)
from djedops.utils.time import format_duration_ms, get_timestamp_ms
from djedops.workflow.graph import WorkflowGraph
from djedops.workflow.outputs import OutputGenerator, generate_output


logger = logging.getLogger(__name__)

# Zero-argument coroutine returning the live snapshot
MetricsSource = Callable[[], Awaitable[MetricsSnapshot]]


def evaluate_condition(condition: NodeCondition | None, snapshot: MetricsSnapshot) -> bool:
    """
    Evaluate a node's trigger condition.

    No condition or `always` is true. Reserve-ratio conditions need
    `reserve_ratio` and price conditions need `stablecoin_price`; when
    the needed metric is absent the condition is false.
    """
    if condition is None or condition.type == ConditionType.ALWAYS:
        return True

    threshold = (
        condition.value
        if condition.value is not None
        else DEFAULT_CONDITION_THRESHOLDS[condition.type.value]
    )

    if condition.type in (ConditionType.DSI_BELOW, ConditionType.DSI_ABOVE):
        metric = snapshot.reserve_ratio
    else:
        metric = snapshot.stablecoin_price

    if metric is None:
        return False

    if condition.type in (ConditionType.DSI_BELOW, ConditionType.PRICE_BELOW):
        return metric < threshold
    return metric > threshold


@dataclass
class _Run:
    """Mutable traversal state of one execution."""

    graph: WorkflowGraph
    snapshot: MetricsSnapshot
    records: list[NodeExecutionRecord] = field(default_factory=list)
    visited: set[str] = field(default_factory=set)
    on_path: set[str] = field(default_factory=set)
    dropped_edges: list[tuple[str, str]] = field(default_factory=list)


class WorkflowExecutor:
    """
    Executes workflow graphs.

    Nodes run sequentially in traversal order so every node of a run
    sees the same snapshot. Each node runs at most once per run.
    """

    def __init__(
        self,
        metrics_source: MetricsSource,
        latency_range_ms: tuple[int, int] = (DEFAULT_NODE_LATENCY_MIN_MS, DEFAULT_NODE_LATENCY_MAX_MS),
        rng: random.Random | None = None,
        metrics: MetricsCollector | None = None,
        generators: dict[AppletType, OutputGenerator] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the executor.

        Args:
            metrics_source: Coroutine factory returning the live snapshot.
            latency_range_ms: Bounds of the simulated per-node latency.
            rng: Random generator for latency and synthetic outputs.
            metrics: Optional collector for run and node counters.
            generators: Override of the per-applet output generators.
            sleep: Sleep function used for simulated latency.
        """
        low, high = latency_range_ms
        if low < 0 or high < low:
            raise ValueError(f"Invalid latency range: {latency_range_ms}")
        self._metrics_source = metrics_source
        self._latency_range_ms = (low, high)
        self._rng = rng or random.Random()
        self._metrics = metrics
        self._generators = generators
        self._sleep = sleep

    async def execute(
        self,
        graph: WorkflowGraph,
        protocol_status: ProtocolStatus | None = None,
    ) -> ExecutionLog:
        """
        Execute a workflow.

        Args:
            graph: Validated workflow graph.
            protocol_status: Current protocol health; CRITICAL blocks the run.

        Returns:
            Execution log with one record per executed or skipped node,
            or a single policy record when blocked.
        """
        started = get_timestamp_ms()
        run_id = f"exec_{started}_{uuid.uuid4().hex[:8]}"
        self._count(WORKFLOW_RUNS)

        logger.info(
            f"Starting workflow {graph.name or graph.id!r} "
            f"({len(graph)} nodes, protocol={protocol_status.value if protocol_status else 'UNKNOWN'})"
        )

        if protocol_status == ProtocolStatus.CRITICAL:
            return self._blocked(graph, run_id, started)

        cycle = graph.find_cycle()
        if cycle:
            logger.warning(f"Workflow {graph.id!r} contains a cycle: {cycle}")

        snapshot = await self._collect_snapshot()
        run = _Run(graph=graph, snapshot=snapshot)

        for entry in graph.entry_nodes():
            await self._execute_node(entry, run)

        ended = get_timestamp_ms()
        failed = any(r.status == NodeStatus.FAILED for r in run.records)
        log = ExecutionLog(
            id=run_id,
            workflow_id=graph.id,
            workflow_name=graph.name,
            started_at=started,
            status=RunStatus.FAILED if failed else RunStatus.COMPLETED,
            records=run.records,
            total_duration_ms=ended - started,
            dropped_edges=run.dropped_edges,
        )

        logger.info(
            f"Workflow {graph.name or graph.id!r} {log.status.value}: "
            f"{len(log.records)} nodes in {format_duration_ms(log.total_duration_ms)}"
        )
        return log

    def _blocked(self, graph: WorkflowGraph, run_id: str, started: int) -> ExecutionLog:
        logger.error(f"Execution blocked: protocol in CRITICAL state (workflow {graph.id!r})")
        self._count(WORKFLOW_BLOCKED)
        ended = get_timestamp_ms()
        record = NodeExecutionRecord(
            node_id=POLICY_NODE_ID,
            node_name=POLICY_NODE_NAME,
            status=NodeStatus.FAILED,
            started_at=started,
            ended_at=ended,
            output=None,
            error=POLICY_BLOCK_MESSAGE,
        )
        return ExecutionLog(
            id=run_id,
            workflow_id=graph.id,
            workflow_name=graph.name,
            started_at=started,
            status=RunStatus.BLOCKED,
            records=[record],
            total_duration_ms=ended - started,
        )

    async def _collect_snapshot(self) -> MetricsSnapshot:
        try:
            snapshot = await self._metrics_source()
        except Exception as e:
            logger.warning(f"Live metrics unavailable, conditions will not hold: {e}")
            return MetricsSnapshot(observed_at=get_timestamp_ms())
        logger.debug(f"Snapshot: {snapshot.to_dict()}")
        return snapshot

    async def _execute_node(self, node: WorkflowNode, run: _Run) -> None:
        if node.id in run.visited:
            return
        run.visited.add(node.id)

        started = get_timestamp_ms()
        await self._simulate_latency()

        output = None
        error = ""
        if evaluate_condition(node.condition, run.snapshot):
            try:
                output = generate_output(
                    node.applet_type,
                    run.snapshot,
                    self._rng,
                    get_timestamp_ms(),
                    self._generators,
                )
                status = NodeStatus.SUCCESS
            except Exception as e:
                logger.error(f"Node {node.id} ({node.applet_type.value}) failed: {e}")
                status = NodeStatus.FAILED
                error = str(e)
        else:
            status = NodeStatus.SKIPPED

        run.records.append(
            NodeExecutionRecord(
                node_id=node.id,
                node_name=node.name,
                status=status,
                started_at=started,
                ended_at=get_timestamp_ms(),
                output=output,
                error=error,
            )
        )
        self._count(NODES_EXECUTED)
        logger.debug(f"Node {node.id} ({node.applet_type.value}): {status.value}")

        if status != NodeStatus.SUCCESS:
            return

        run.on_path.add(node.id)
        for successor in run.graph.successors(node.id):
            if successor.id in run.on_path:
                logger.warning(f"Dropping edge {node.id}->{successor.id}: closes a cycle")
                run.dropped_edges.append((node.id, successor.id))
                continue
            await self._execute_node(successor, run)
        run.on_path.discard(node.id)

    async def _simulate_latency(self) -> None:
        low, high = self._latency_range_ms
        if high <= 0:
            return
        await self._sleep(self._rng.uniform(low, high) / 1000.0)

    def _count(self, name: str) -> None:
        if self._metrics is not None:
            self._metrics.increment_counter(name)
