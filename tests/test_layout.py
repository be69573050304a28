"""
Layout Engine Tests
===================

Covers the three strategies, pinned-node stability and seeded
determinism of the force layout.
"""

import math

import pytest

from netgraph.contracts.graph import Bounds, Edge, Node, Position
from netgraph.layout import LayoutConfig, LayoutEngine, LayoutStrategy, ensure_positions


def make_nodes(count):
    return [Node(f"n{i}", f"Node {i}") for i in range(count)]


def ring(nodes):
    return [
        Edge(nodes[i].node_id, nodes[(i + 1) % len(nodes)].node_id)
        for i in range(len(nodes))
    ]


class TestCircularLayout:

    def test_positions_on_circle(self):
        engine = LayoutEngine(LayoutConfig(width=800, height=600, margin=20))
        positions = engine.layout(make_nodes(4), [], LayoutStrategy.CIRCULAR)

        assert positions["n0"].x == pytest.approx(680.0)
        assert positions["n0"].y == pytest.approx(300.0)
        assert positions["n1"].x == pytest.approx(400.0)
        assert positions["n1"].y == pytest.approx(580.0)
        for position in positions.values():
            assert math.hypot(position.x - 400.0, position.y - 300.0) == pytest.approx(280.0)

    def test_single_node_sits_on_rim(self):
        engine = LayoutEngine(LayoutConfig(width=800, height=600, margin=20))
        positions = engine.layout(make_nodes(1), [], LayoutStrategy.CIRCULAR)

        assert positions["n0"] == Position(680.0, 300.0)

    def test_strategy_accepts_string(self):
        positions = LayoutEngine().layout(make_nodes(3), [], "Circular")
        assert len(positions) == 3

    def test_empty_graph(self):
        assert LayoutEngine().layout([], [], LayoutStrategy.CIRCULAR) == {}


class TestHierarchicalLayout:

    def test_nodes_split_into_bands(self):
        config = LayoutConfig(width=800, height=600, margin=20, levels=3)
        positions = LayoutEngine(config).layout(make_nodes(6), [], LayoutStrategy.HIERARCHICAL)

        band_height = 560.0 / 3
        ys = [positions[f"n{i}"].y for i in range(6)]
        assert ys[0] == ys[1] == pytest.approx(20 + band_height * 0.5)
        assert ys[2] == ys[3] == pytest.approx(20 + band_height * 1.5)
        assert ys[4] == ys[5] == pytest.approx(20 + band_height * 2.5)

        assert positions["n0"].x == pytest.approx(20 + 760.0 / 3)
        assert positions["n1"].x == pytest.approx(20 + 2 * 760.0 / 3)

    def test_fewer_nodes_than_levels(self):
        config = LayoutConfig(levels=5)
        positions = LayoutEngine(config).layout(make_nodes(2), [], LayoutStrategy.HIERARCHICAL)
        assert positions["n0"].y < positions["n1"].y


class TestForceLayout:

    def test_same_seed_same_positions(self):
        nodes = make_nodes(6)
        edges = ring(nodes)
        engine = LayoutEngine()

        first = engine.layout(nodes, edges, LayoutStrategy.FORCE, seed=7)
        second = engine.layout(nodes, edges, LayoutStrategy.FORCE, seed=7)

        assert first == second

    def test_positions_stay_inside_bounds(self):
        nodes = make_nodes(8)
        config = LayoutConfig(width=400, height=300, margin=10)
        positions = LayoutEngine(config).layout(nodes, ring(nodes), seed=3)

        for position in positions.values():
            assert 10.0 <= position.x <= 390.0
            assert 10.0 <= position.y <= 290.0

    def test_pinned_node_does_not_move(self):
        nodes = make_nodes(5)
        nodes[0] = Node("n0", "Node 0", position=Position(100.0, 120.0), pinned=True)

        positions = LayoutEngine().layout(nodes, ring(nodes), LayoutStrategy.FORCE, seed=1)

        assert positions["n0"] == Position(100.0, 120.0)
        assert len(positions) == 5

    def test_degenerate_bounds_collapse_to_center(self):
        bounds = Bounds(width=40.0, height=40.0, margin=20.0)
        positions = LayoutEngine().layout(make_nodes(3), [], LayoutStrategy.FORCE, bounds=bounds)
        assert set(positions.values()) == {Position(20.0, 20.0)}


class TestPinnedAcrossStrategies:

    @pytest.mark.parametrize("strategy", list(LayoutStrategy))
    def test_pinned_position_wins(self, strategy):
        nodes = make_nodes(4)
        nodes[2] = Node("n2", "Node 2", position=Position(5.0, 6.0), pinned=True)

        positions = LayoutEngine().layout(nodes, [], strategy, seed=11)

        assert positions["n2"] == Position(5.0, 6.0)


class TestLayoutConfig:

    def test_unknown_strategy_raises(self):
        with pytest.raises(ValueError):
            LayoutEngine().layout(make_nodes(2), [], "spiral")

    def test_invalid_levels_rejected(self):
        with pytest.raises(ValueError):
            LayoutConfig(levels=0)


class TestEnsurePositions:

    def test_fallback_row(self):
        nodes = make_nodes(3)
        nodes[1] = Node("n1", "Node 1", position=Position(1.0, 2.0))

        placed = ensure_positions(nodes, Bounds(width=800.0, height=600.0))

        assert placed[0].position == Position(200.0, 300.0)
        assert placed[1].position == Position(1.0, 2.0)
        assert placed[2].position == Position(600.0, 300.0)
