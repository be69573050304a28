"""
Sample network generator.

Produces a random demo network for the "regenerate" action. All
randomness comes from the caller's Random instance, so a seeded
generator always yields the same graph.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import random

import networkx as nx

from ..contracts.graph import Edge, Node, NodeType
from . import GraphImport, PayloadFormat


SAMPLE_TYPES = (
    NodeType.SERVER,
    NodeType.WORKSTATION,
    NodeType.ROUTER,
    NodeType.FIREWALL,
)


@dataclass
class SampleConfig:
    """Shape of the generated sample network."""
    node_count: int = 12
    edge_probability: float = 0.2
    id_prefix: str = "node_"

    def __post_init__(self):
        if self.node_count < 0:
            raise ValueError("node_count must be non-negative")
        if not 0.0 <= self.edge_probability <= 1.0:
            raise ValueError("edge_probability must be between 0.0 and 1.0")


def generate_sample(
    config: Optional[SampleConfig] = None,
    rng: Optional[random.Random] = None
) -> GraphImport:
    """
    Generate a random network.

    Edges come from an Erdos-Renyi G(n, p) graph; each pair i < j is
    stored as i -> j. Labels read "<Type> <n>".
    """
    config = config or SampleConfig()
    rng = rng or random.Random()

    nodes = []
    type_counts = {}
    for index in range(config.node_count):
        node_type = rng.choice(SAMPLE_TYPES)
        type_counts[node_type] = type_counts.get(node_type, 0) + 1
        nodes.append(Node(
            node_id=f"{config.id_prefix}{index + 1}",
            label=f"{node_type.value.title()} {type_counts[node_type]}",
            node_type=node_type,
            health=round(rng.uniform(60.0, 100.0), 1),
            vulnerability=round(rng.uniform(0.0, 10.0), 1),
            security_level=float(rng.randint(1, 5)),
            importance=round(rng.uniform(0.5, 2.0), 2)
        ))

    graph = nx.gnp_random_graph(len(nodes), config.edge_probability, seed=rng)
    pairs = sorted((min(u, v), max(u, v)) for u, v in graph.edges())
    edges = [Edge(source=nodes[u].node_id, target=nodes[v].node_id) for u, v in pairs]

    return GraphImport(
        payload_format=PayloadFormat.SAMPLE,
        nodes=tuple(nodes),
        edges=tuple(edges)
    )
