"""
Unit tests for workflow graph parsing and traversal queries.
"""

from typing import Any

import pytest

from djedops.core.types import AppletType, ConditionType
from djedops.workflow.graph import WorkflowGraph, WorkflowValidationError, parse_edge, parse_node


class TestParseNode:
    """Tests for parse_node."""

    def test_minimal_node(self) -> None:
        node = parse_node({"id": "n1", "type": "djed_sentinel"})

        assert node.id == "n1"
        assert node.applet_type == AppletType.DJED_SENTINEL
        assert node.name == "Djed Sentinel"
        assert node.condition is None

    def test_condition_with_threshold(self) -> None:
        node = parse_node(
            {"id": "n1", "type": "djed_monitor", "condition": {"type": "dsi_below", "value": 350}}
        )

        assert node.condition is not None
        assert node.condition.type == ConditionType.DSI_BELOW
        assert node.condition.value == 350.0

    def test_condition_without_threshold(self) -> None:
        node = parse_node({"id": "n1", "type": "djed_monitor", "condition": {"type": "price_above"}})

        assert node.condition is not None
        assert node.condition.value is None

    @pytest.mark.parametrize(
        "data",
        [
            {"type": "djed_monitor"},
            {"id": "n1", "type": "unknown_applet"},
            {"id": "n1"},
            {"id": "n1", "type": "djed_monitor", "condition": {"type": "moon_phase"}},
            {"id": "n1", "type": "djed_monitor", "condition": {"type": "dsi_below", "value": "x"}},
            "not-a-node",
        ],
    )
    def test_invalid_nodes(self, data: Any) -> None:
        with pytest.raises(WorkflowValidationError):
            parse_node(data)


class TestParseEdge:
    """Tests for parse_edge."""

    def test_object_and_pair_forms(self) -> None:
        assert parse_edge({"from": "a", "to": "b"}) == ("a", "b")
        assert parse_edge(["a", "b"]) == ("a", "b")

    @pytest.mark.parametrize("data", [{"from": "a"}, ["a"], "a->b", {"from": "", "to": "b"}])
    def test_invalid_edges(self, data: Any) -> None:
        with pytest.raises(WorkflowValidationError):
            parse_edge(data)


class TestWorkflowGraph:
    """Tests for WorkflowGraph."""

    def test_from_dict(self, diamond_workflow: dict[str, Any]) -> None:
        graph = WorkflowGraph.from_dict(diamond_workflow)

        assert graph.id == "wf-diamond"
        assert graph.name == "Diamond"
        assert len(graph) == 4
        assert "D" in graph
        assert [n.id for n in graph.entry_nodes()] == ["A"]
        assert [n.id for n in graph.successors("A")] == ["B", "C"]
        assert graph.is_acyclic
        assert graph.find_cycle() is None

    def test_edges_key_accepted(self) -> None:
        graph = WorkflowGraph.from_dict(
            {
                "nodes": [{"id": "a", "type": "djed_monitor"}, {"id": "b", "type": "djed_ledger"}],
                "edges": [["a", "b"]],
            }
        )

        assert graph.edges == [("a", "b")]

    def test_duplicate_edges_collapse(self) -> None:
        graph = WorkflowGraph.from_dict(
            {
                "nodes": [{"id": "a", "type": "djed_monitor"}, {"id": "b", "type": "djed_ledger"}],
                "connections": [{"from": "a", "to": "b"}, {"from": "a", "to": "b"}],
            }
        )

        assert graph.edges == [("a", "b")]

    def test_duplicate_node_ids_rejected(self) -> None:
        with pytest.raises(WorkflowValidationError, match="Duplicate"):
            WorkflowGraph.from_dict(
                {"nodes": [{"id": "a", "type": "djed_monitor"}, {"id": "a", "type": "djed_sim"}]}
            )

    def test_dangling_edge_rejected(self) -> None:
        with pytest.raises(WorkflowValidationError, match="unknown node"):
            WorkflowGraph.from_dict(
                {
                    "nodes": [{"id": "a", "type": "djed_monitor"}],
                    "connections": [{"from": "a", "to": "ghost"}],
                }
            )

    def test_cycle_reported(self) -> None:
        graph = WorkflowGraph.from_dict(
            {
                "nodes": [
                    {"id": "a", "type": "djed_monitor"},
                    {"id": "b", "type": "djed_sim"},
                ],
                "connections": [{"from": "a", "to": "b"}, {"from": "b", "to": "a"}],
            }
        )

        assert not graph.is_acyclic
        assert graph.find_cycle() is not None
        # Every node has an incoming edge, so traversal starts at the first one
        assert [n.id for n in graph.entry_nodes()] == ["a"]

    def test_empty_graph(self) -> None:
        graph = WorkflowGraph.from_dict({"nodes": []})

        assert len(graph) == 0
        assert graph.entry_nodes() == []

    def test_round_trip_shape(self, diamond_workflow: dict[str, Any]) -> None:
        data = WorkflowGraph.from_dict(diamond_workflow).to_dict()

        assert [n["id"] for n in data["nodes"]] == ["A", "B", "C", "D"]
        assert data["connections"][0] == {"from": "A", "to": "B"}
