"""
Workflow graph model.

Validates node/edge payloads at construction and answers traversal
queries (entry nodes, ordered successors, cycle diagnostics) from a
NetworkX directed graph.
"""

import logging
from collections.abc import Iterable
from typing import Any

import networkx as nx

from djedops.config.constants import APPLET_NAMES
from djedops.core.types import AppletType, ConditionType, NodeCondition, WorkflowNode


logger = logging.getLogger(__name__)


class WorkflowValidationError(ValueError):
    """Malformed workflow graph."""

    pass


def parse_node(data: dict[str, Any]) -> WorkflowNode:
    """
    Build a WorkflowNode from its JSON form.

    Expected keys: `id`, `type`, optional `name` and
    `condition: {type, value?}`.

    Raises:
        WorkflowValidationError: On missing id or unknown types.
    """
    if not isinstance(data, dict):
        raise WorkflowValidationError(f"Node must be an object, got {type(data).__name__}")

    node_id = data.get("id")
    if not node_id:
        raise WorkflowValidationError("Node is missing an id")

    try:
        applet_type = AppletType(data.get("type"))
    except ValueError as e:
        raise WorkflowValidationError(
            f"Node {node_id}: unknown applet type {data.get('type')!r}"
        ) from e

    condition = None
    raw_condition = data.get("condition")
    if raw_condition:
        try:
            condition_type = ConditionType(raw_condition.get("type"))
            value = raw_condition.get("value")
            condition = NodeCondition(
                type=condition_type,
                value=float(value) if value is not None else None,
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise WorkflowValidationError(f"Node {node_id}: invalid condition {raw_condition!r}") from e

    return WorkflowNode(
        id=str(node_id),
        applet_type=applet_type,
        name=data.get("name") or APPLET_NAMES.get(applet_type.value, applet_type.value),
        condition=condition,
    )


def parse_edge(data: Any) -> tuple[str, str]:
    """Edge from `{from, to}` or a two-item sequence."""
    if isinstance(data, dict):
        src, dst = data.get("from"), data.get("to")
    elif isinstance(data, (list, tuple)) and len(data) == 2:
        src, dst = data
    else:
        raise WorkflowValidationError(f"Invalid edge {data!r}")
    if not src or not dst:
        raise WorkflowValidationError(f"Edge is missing an endpoint: {data!r}")
    return str(src), str(dst)


class WorkflowGraph:
    """
    Directed graph of applet nodes.

    Nodes keep their declaration order; duplicate edges collapse into
    one. Cycles are allowed: the executor never runs a node twice and
    reports edges that close a cycle.
    """

    def __init__(
        self,
        nodes: Iterable[WorkflowNode],
        edges: Iterable[tuple[str, str]] = (),
        id: str = "",
        name: str = "",
    ) -> None:
        """
        Initialize and validate the graph.

        Args:
            nodes: Nodes in declaration order.
            edges: (from_id, to_id) pairs in declaration order.
            id: Workflow id.
            name: Workflow display name.

        Raises:
            WorkflowValidationError: On duplicate node ids or dangling edges.
        """
        self.id = id
        self.name = name
        self._nodes: dict[str, WorkflowNode] = {}
        self._graph: nx.DiGraph = nx.DiGraph()

        for node in nodes:
            if node.id in self._nodes:
                raise WorkflowValidationError(f"Duplicate node id: {node.id}")
            self._nodes[node.id] = node
            self._graph.add_node(node.id)

        for src, dst in edges:
            for endpoint in (src, dst):
                if endpoint not in self._nodes:
                    raise WorkflowValidationError(
                        f"Edge {src}->{dst} references unknown node {endpoint}"
                    )
            self._graph.add_edge(src, dst)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "WorkflowGraph":
        """
        Build a graph from its JSON form.

        Edges are read from `connections`, or `edges` when absent.
        """
        if not isinstance(payload, dict):
            raise WorkflowValidationError("Workflow must be an object")

        raw_nodes = payload.get("nodes") or []
        raw_edges = payload.get("connections", payload.get("edges")) or []
        if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
            raise WorkflowValidationError("nodes and connections must be lists")

        return cls(
            nodes=[parse_node(n) for n in raw_nodes],
            edges=[parse_edge(e) for e in raw_edges],
            id=str(payload.get("id", "")),
            name=str(payload.get("name", "")),
        )

    @property
    def nodes(self) -> list[WorkflowNode]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[tuple[str, str]]:
        return list(self._graph.edges())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def node(self, node_id: str) -> WorkflowNode:
        """Node by id; raises KeyError when unknown."""
        return self._nodes[node_id]

    def entry_nodes(self) -> list[WorkflowNode]:
        """
        Traversal start points.

        Nodes without incoming edges, in declaration order. When every
        node has an incoming edge, the first declared node.
        """
        entries = [n for n in self._nodes.values() if self._graph.in_degree(n.id) == 0]
        if not entries and self._nodes:
            entries = [next(iter(self._nodes.values()))]
        return entries

    def successors(self, node_id: str) -> list[WorkflowNode]:
        """Targets of a node's outgoing edges in declaration order."""
        return [self._nodes[dst] for dst in self._graph.successors(node_id)]

    def find_cycle(self) -> list[tuple[str, str]] | None:
        """Edges of one cycle, or None for an acyclic graph."""
        try:
            return [(u, v) for u, v in nx.find_cycle(self._graph)]
        except nx.NetworkXNoCycle:
            return None

    @property
    def is_acyclic(self) -> bool:
        return bool(nx.is_directed_acyclic_graph(self._graph))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "nodes": [n.to_dict() for n in self._nodes.values()],
            "connections": [{"from": u, "to": v} for u, v in self._graph.edges()],
        }
