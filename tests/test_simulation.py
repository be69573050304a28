"""
Simulation Tests

tick() is a pure function of (nodes, config, rng): seeded runs repeat.
"""

import random

import pytest

from netgraph.contracts.graph import Edge, EdgeStatus, Node, NodeStatus
from netgraph.simulation import SimulationConfig, edge_status, edge_statuses, tick


class FixedRandom(random.Random):
    """Random source that replays a fixed list of rolls."""

    def __init__(self, rolls):
        super().__init__()
        self._rolls = list(rolls)

    def random(self):
        return self._rolls.pop(0)


class TestTick:

    def test_online_node_fails(self):
        config = SimulationConfig(failure_probability=0.5, failure_damage=40.0)
        (node,) = tick([Node("a", "A")], config, FixedRandom([0.1]))

        assert node.status == NodeStatus.FAILED
        assert node.health == 60.0

    def test_online_node_compromised(self):
        config = SimulationConfig(failure_probability=0.1, compromise_probability=0.2)
        (node,) = tick([Node("a", "A")], config, FixedRandom([0.25]))

        assert node.status == NodeStatus.COMPROMISED
        assert node.health == 100.0

    def test_online_node_unchanged(self):
        (node,) = tick([Node("a", "A")], SimulationConfig(), FixedRandom([0.99]))
        assert node == Node("a", "A")

    def test_recovery_caps_health(self):
        config = SimulationConfig(recovery_rate=0.5, recovery_boost=25.0)
        failed = Node("a", "A", status=NodeStatus.FAILED, health=90.0)

        (node,) = tick([failed], config, FixedRandom([0.2]))

        assert node.status == NodeStatus.ONLINE
        assert node.health == 100.0

    def test_failed_node_stays_failed(self):
        failed = Node("a", "A", status=NodeStatus.FAILED, health=10.0)
        (node,) = tick([failed], SimulationConfig(recovery_rate=0.1), FixedRandom([0.5]))
        assert node == failed

    def test_seeded_runs_repeat(self):
        nodes = [Node(f"n{i}", f"N{i}") for i in range(20)]
        config = SimulationConfig(failure_probability=0.3, compromise_probability=0.3)

        first = tick(nodes, config, random.Random(5))
        second = tick(nodes, config, random.Random(5))

        assert first == second

    def test_input_nodes_untouched(self):
        nodes = (Node("a", "A"),)
        tick(nodes, SimulationConfig(failure_probability=1.0), random.Random(0))
        assert nodes[0].status == NodeStatus.ONLINE


class TestEdgeStatus:

    def test_healthy_edge(self):
        nodes = {"a": Node("a", "A"), "b": Node("b", "B")}
        assert edge_status(Edge("a", "b"), nodes, SimulationConfig()) == EdgeStatus.HEALTHY

    @pytest.mark.parametrize("target", [
        Node("b", "B", health=49.0),
        Node("b", "B", status=NodeStatus.COMPROMISED),
    ])
    def test_degraded_edge(self, target):
        nodes = {"a": Node("a", "A"), "b": target}
        assert edge_status(Edge("a", "b"), nodes, SimulationConfig()) == EdgeStatus.DEGRADED

    def test_statuses_keyed_by_pair(self):
        nodes = [Node("a", "A"), Node("b", "B", status=NodeStatus.FAILED)]
        statuses = edge_statuses(nodes, [Edge("a", "b")], SimulationConfig())
        assert statuses == {("a", "b"): EdgeStatus.DEGRADED}


class TestSimulationConfig:

    def test_probability_bounds(self):
        with pytest.raises(ValueError):
            SimulationConfig(recovery_rate=1.2)
