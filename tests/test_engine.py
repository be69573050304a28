"""
Engine Integration Tests
========================

Exercises the command surface end to end: edit, import, layout,
algorithms, export and the display-only simulation.
"""

import json
import random

import pytest

from netgraph import NetworkGraphBackend, NetworkGraphConfig
from netgraph.contracts.base import ErrorCode
from netgraph.contracts.events import AuditEventType
from netgraph.contracts.graph import NodeStatus, Position
from netgraph.layout import LayoutConfig, LayoutStrategy
from netgraph.simulation import SimulationConfig
from netgraph.store import StoreConfig


@pytest.fixture
def backend():
    config = NetworkGraphConfig(layout=LayoutConfig(seed=3))
    engine = NetworkGraphBackend(config)
    for node_id in ("A", "B", "C"):
        engine.add_node(f"Host {node_id}", node_id=node_id)
    engine.add_edge("A", "B", weight=1.0)
    engine.add_edge("B", "C", weight=1.0)
    engine.add_edge("A", "C", weight=5.0)
    return engine


class TestEditCommands:

    def test_toggle_cell_matches_toggle_edge(self, backend):
        backend.toggle_cell(2, 0)
        assert backend.snapshot().has_edge("C", "A")
        assert backend.adjacency_matrix().cell(2, 0) == 1.0

        backend.toggle_edge("C", "A")
        assert backend.adjacency_matrix().cell(2, 0) == 0.0

    def test_remove_node_cascade(self, backend):
        backend.remove_node("B")

        snapshot = backend.snapshot()
        assert [e.key for e in snapshot.edges] == [("A", "C")]

    def test_pin_survives_relayout(self, backend):
        backend.pin_node("A", 42.0, 24.0)
        backend.relayout(LayoutStrategy.CIRCULAR)

        assert backend.snapshot().get_node("A").position == Position(42.0, 24.0)
        assert backend.snapshot().get_node("B").position is not None


class TestRelayout:

    def test_unknown_strategy_is_a_result(self, backend):
        result = backend.relayout("spiral")
        assert result.error.code == ErrorCode.INVALID_STRATEGY

    def test_relayout_records_audit(self, backend):
        backend.relayout("hierarchical")

        entries = backend.get_audit_log(AuditEventType.LAYOUT)
        assert entries[-1].get_metadata("strategy") == "hierarchical"
        assert entries[-1].get_metadata("moved") == "3"


class TestImport:

    def test_matrix_import_replaces_graph(self, backend):
        payload = b",Cost,Demand,Price\nCost,0,3,1\nDemand,3,0,0\nPrice,1,0,0\n"
        result = backend.import_payload(payload)

        assert result.is_success
        snapshot = backend.snapshot()
        assert snapshot.node_ids == ("var_0", "var_1", "var_2")
        assert [e.key for e in snapshot.edges] == [("var_0", "var_1")]
        assert all(node.position is not None for node in snapshot.nodes)

    def test_failed_import_leaves_graph(self, backend):
        before = backend.snapshot()
        result = backend.import_payload(b'{"nodes": "oops"}')

        assert result.error.code == ErrorCode.MALFORMED_IMPORT
        assert backend.snapshot() == before

    def test_json_export_reimports(self, backend):
        backend.relayout()
        exported = backend.export_json()

        other = NetworkGraphBackend()
        result = other.import_payload(exported, "json")

        assert result.is_success
        assert other.snapshot().node_ids == backend.snapshot().node_ids
        assert other.snapshot().edges == backend.snapshot().edges

    def test_matrix_csv_export(self, backend):
        text = backend.export_matrix_csv().decode("utf-8")
        assert text.splitlines()[0] == ",Host A,Host B,Host C"

    def test_import_rows(self, backend):
        result = backend.import_rows([["", "X", "Y"], ["X", 0, 4], ["Y", 0, 0]])

        assert result.value.edge_count == 1
        assert backend.snapshot().get_node("var_0").label == "X"

    def test_huge_json_weight_imports_as_zero(self, backend):
        payload = (
            '{"nodes": [{"id": "a"}, {"id": "b"}], '
            '"edges": [{"source": "a", "target": "b", "weight": 1' + "0" * 400 + "}]}"
        )
        result = backend.import_payload(payload.encode("utf-8"), "json")

        assert result.is_success
        assert backend.snapshot().edges[0].weight == 0.0

    def test_huge_row_cell_does_not_crash(self, backend):
        result = backend.import_rows([["", "x", "y"], ["x", 0, 10 ** 400], ["y", 0, 0]])

        assert result.value.node_count == 2
        assert result.value.edge_count == 0

    def test_regenerate_is_seeded(self):
        first = NetworkGraphBackend(NetworkGraphConfig(layout=LayoutConfig(seed=1)))
        second = NetworkGraphBackend(NetworkGraphConfig(layout=LayoutConfig(seed=1)))

        first.regenerate(seed=9)
        second.regenerate(seed=9)

        assert first.snapshot() == second.snapshot()
        assert first.snapshot().nodes


class TestReadModels:

    def test_shortest_path(self, backend):
        result = backend.shortest_path("A", "C")
        assert result.value.path == ("A", "B", "C")
        assert result.value.total_weight == 2.0

    def test_metrics_and_centrality(self, backend):
        assert backend.metrics().density == pytest.approx(1.0)
        assert backend.centrality()["C"].in_degree == 2
        assert backend.communities() == {"A": 0, "B": 0, "C": 0}

    def test_annotated_nodes(self, backend):
        annotated = {n.node_id: n for n in backend.annotated_nodes()}
        assert annotated["A"].influence == 2.0
        assert backend.snapshot().get_node("A").influence is None

    def test_symmetric_matrix_request(self, backend):
        matrix = backend.adjacency_matrix(symmetric=True)
        assert matrix.cell(1, 0) == 1.0


class TestSimulationOverlay:

    @pytest.fixture
    def failing(self):
        config = NetworkGraphConfig(simulation=SimulationConfig(failure_probability=1.0))
        engine = NetworkGraphBackend(config)
        engine.add_node("Solo", node_id="S")
        return engine

    def test_tick_does_not_touch_store(self, failing):
        ticked = failing.tick(random.Random(0))

        assert ticked[0].status == NodeStatus.FAILED
        assert failing.snapshot().get_node("S").status == NodeStatus.ONLINE
        assert failing.view().nodes[0].status == NodeStatus.FAILED

    def test_reset_simulation(self, failing):
        engine = failing
        engine.tick(random.Random(0))

        engine.reset_simulation()

        assert engine.view().nodes[0].status == NodeStatus.ONLINE

    def test_update_replaces_simulated_state(self, failing):
        failing.tick(random.Random(0))

        failing.update_node("S", health=55.0)

        assert failing.view().nodes[0].status == NodeStatus.ONLINE
        # Next tick starts from the edited health
        ticked = failing.tick(random.Random(0))
        assert ticked[0].health == 15.0

    def test_rejected_update_keeps_overlay(self, failing):
        failing.tick(random.Random(0))

        result = failing.update_node("S", health="high")

        assert result.error.code == ErrorCode.INVALID_ATTRIBUTE
        assert failing.view().nodes[0].status == NodeStatus.FAILED


class TestConfig:

    def test_from_env(self):
        config = NetworkGraphConfig.from_env({
            "NETGRAPH_DIRECTED": "false",
            "NETGRAPH_LAYOUT_STRATEGY": "circular",
            "NETGRAPH_LAYOUT_SEED": "12",
            "NETGRAPH_IMPORT_THRESHOLD": "0.7",
        })

        assert config.store.directed is False
        assert config.layout.strategy == LayoutStrategy.CIRCULAR
        assert config.layout.seed == 12
        assert config.importing.threshold == 0.7

    def test_defaults(self):
        config = NetworkGraphConfig()
        assert config.store == StoreConfig()
        assert config.layout.strategy == LayoutStrategy.FORCE

    def test_audit_log_merges_layers(self, backend):
        backend.import_payload(b"source,target\nA,B\n")

        layers = {entry.layer for entry in backend.get_audit_log()}
        assert {"store", "ingestion", "engine"} <= layers

    def test_export_is_json(self, backend):
        document = json.loads(backend.export_json())
        assert len(document["nodes"]) == 3
