"""
Graph Algorithms

RESPONSIBILITY: Path finding, degree statistics, structural metrics
ALLOWED INPUTS: Node and edge sequences (usually a store snapshot)
OUTPUTS: Result / immutable metric types

WHAT THIS LAYER MUST NOT DO:
============================
- Mutate the store or the nodes it is given
- Raise for missing endpoints or disconnected graphs
"""

from .topology import (
    PathResult, DegreeStats, GraphMetrics, TopologyEngine,
    shortest_path, centrality, density, average_degree,
    annotate_metrics, detect_communities, group_communities, compute_metrics
)

__all__ = [
    'PathResult', 'DegreeStats', 'GraphMetrics', 'TopologyEngine',
    'shortest_path', 'centrality', 'density', 'average_degree',
    'annotate_metrics', 'detect_communities', 'group_communities',
    'compute_metrics',
]
