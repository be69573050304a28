"""
Cosmetic Simulation

Randomized failure / compromise / recovery for demo displays.

This is NOT a modelled system. It exists so a timer in the UI can make
the picture move. There is no module-level state: every call receives
its configuration and its random source explicitly, so a seeded
random.Random reproduces a run exactly.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Dict, Mapping, Sequence, Tuple
import random

from ..contracts.graph import Edge, EdgeStatus, Node, NodeStatus


@dataclass
class SimulationConfig:
    """Probabilities are per node per tick."""
    failure_probability: float = 0.05
    compromise_probability: float = 0.02
    recovery_rate: float = 0.3
    failure_damage: float = 40.0
    recovery_boost: float = 25.0
    degraded_health_threshold: float = 50.0

    def __post_init__(self):
        for name in ("failure_probability", "compromise_probability", "recovery_rate"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0.0 and 1.0")


def tick(
    nodes: Sequence[Node],
    config: SimulationConfig,
    rng: random.Random
) -> Tuple[Node, ...]:
    """
    Advance every node by one simulation step.

    ONLINE nodes fail (losing `failure_damage` health) or, failing that
    draw, get compromised. FAILED and COMPROMISED nodes recover with
    `recovery_rate`, regaining `recovery_boost` health up to 100.
    Exactly one random draw is made per node, in node order.
    """
    result = []
    for node in nodes:
        roll = rng.random()
        if node.status == NodeStatus.ONLINE:
            if roll < config.failure_probability:
                node = replace(
                    node,
                    status=NodeStatus.FAILED,
                    health=max(0.0, node.health - config.failure_damage)
                )
            elif roll < config.failure_probability + config.compromise_probability:
                node = replace(node, status=NodeStatus.COMPROMISED)
        elif roll < config.recovery_rate:
            node = replace(
                node,
                status=NodeStatus.ONLINE,
                health=min(100.0, node.health + config.recovery_boost)
            )
        result.append(node)
    return tuple(result)


def edge_status(
    edge: Edge,
    nodes_by_id: Mapping[str, Node],
    config: SimulationConfig
) -> EdgeStatus:
    """DEGRADED when an endpoint is unhealthy, offline or missing."""
    for node_id in (edge.source, edge.target):
        node = nodes_by_id.get(node_id)
        if node is None:
            return EdgeStatus.DEGRADED
        if node.status != NodeStatus.ONLINE:
            return EdgeStatus.DEGRADED
        if node.health < config.degraded_health_threshold:
            return EdgeStatus.DEGRADED
    return EdgeStatus.HEALTHY


def edge_statuses(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    config: SimulationConfig
) -> Dict[Tuple[str, str], EdgeStatus]:
    nodes_by_id = {node.node_id: node for node in nodes}
    return {edge.key: edge_status(edge, nodes_by_id, config) for edge in edges}
