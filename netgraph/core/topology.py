"""
Topology Engine
===============

Graph algorithms over a store snapshot.

ALLOWED:
- Shortest path (Dijkstra, undirected, non-negative weights)
- Degree statistics (influence = out-degree, dependence = in-degree)
- Structural metrics (density, average degree)
- Greedy community labelling

COMMUNITY DETECTION IS A HEURISTIC:
===================================
`detect_communities` is a single greedy label-propagation pass, NOT a
modularity optimizer (it is not Louvain). Its output depends on node
order and is only guaranteed to follow the rule documented on the
function. Tests must assert that rule, not an "optimal" partition.

Every function here is pure over (nodes, edges) and never raises for
missing or disconnected endpoints; those surface as Result failures.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx

from ..contracts.base import ErrorCode, Result
from ..contracts.graph import Edge, GraphSnapshot, Node


@dataclass(frozen=True)
class PathResult:
    """Immutable shortest-path result."""
    path: Tuple[str, ...]
    total_weight: float

    @property
    def hops(self) -> int:
        return max(len(self.path) - 1, 0)


@dataclass(frozen=True)
class DegreeStats:
    """Directed degree counts for one node."""
    in_degree: int
    out_degree: int

    @property
    def influence(self) -> int:
        return self.out_degree

    @property
    def dependence(self) -> int:
        return self.in_degree


@dataclass(frozen=True)
class GraphMetrics:
    """Immutable structural metrics for a graph."""
    node_count: int
    edge_count: int
    density: float
    average_degree: float


# =============================================================================
# PATH FINDING
# =============================================================================

def _undirected_graph(nodes: Sequence[Node], edges: Sequence[Edge]) -> nx.Graph:
    """
    Build the undirected weighted view used for path finding.

    Parallel edges between a pair (a->b and b->a) keep the lower weight.
    Insertion follows node order, then edge order.
    """
    graph = nx.Graph()
    graph.add_nodes_from(node.node_id for node in nodes)
    for edge in edges:
        if edge.source not in graph or edge.target not in graph:
            continue
        if edge.source == edge.target:
            continue
        weight = 1.0 if edge.weight is None else float(edge.weight)
        if graph.has_edge(edge.source, edge.target):
            current = graph.edges[edge.source, edge.target]["weight"]
            weight = min(weight, current)
        graph.add_edge(edge.source, edge.target, weight=weight)
    return graph


def shortest_path(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    start_id: str,
    end_id: str
) -> Result:
    """
    Dijkstra shortest path between two node ids.

    Edges are treated as undirected. Ties between equal tentative
    distances go to the node reached first (networkx keeps a push
    counter in its heap).

    Returns:
        Result with PathResult, or NOT_FOUND when an endpoint is absent
        or no path exists, or NEGATIVE_WEIGHT when any edge is negative.
    """
    graph = _undirected_graph(nodes, edges)

    for node_id in (start_id, end_id):
        if node_id not in graph:
            return Result.fail(ErrorCode.NOT_FOUND,
                               f"Node not in graph: {node_id}", node_id=node_id)

    for u, v, weight in graph.edges(data="weight"):
        if weight < 0:
            return Result.fail(ErrorCode.NEGATIVE_WEIGHT,
                               f"Negative weight on {u}-{v}: {weight}")

    if start_id == end_id:
        return Result.success(PathResult(path=(start_id,), total_weight=0.0))

    try:
        length, path = nx.single_source_dijkstra(
            graph, start_id, target=end_id, weight="weight"
        )
    except nx.NetworkXNoPath:
        return Result.fail(ErrorCode.NOT_FOUND,
                           f"No path between {start_id} and {end_id}",
                           start=start_id, end=end_id)

    return Result.success(PathResult(path=tuple(path), total_weight=float(length)))


# =============================================================================
# DEGREE STATISTICS
# =============================================================================

def centrality(nodes: Sequence[Node], edges: Sequence[Edge]) -> Dict[str, DegreeStats]:
    """Directed in/out degree per node in one pass over the edges."""
    in_degree = {node.node_id: 0 for node in nodes}
    out_degree = {node.node_id: 0 for node in nodes}
    for edge in edges:
        if edge.source in out_degree and edge.target in in_degree:
            out_degree[edge.source] += 1
            in_degree[edge.target] += 1
    return {
        node_id: DegreeStats(in_degree=in_degree[node_id], out_degree=out_degree[node_id])
        for node_id in in_degree
    }


def density(nodes: Sequence[Node], edges: Sequence[Edge]) -> float:
    """|E| / (|V| * (|V| - 1) / 2); zero below two nodes."""
    count = len(nodes)
    if count < 2:
        return 0.0
    return len(edges) / (count * (count - 1) / 2)


def average_degree(nodes: Sequence[Node], edges: Sequence[Edge]) -> float:
    if not nodes:
        return 0.0
    return 2.0 * len(edges) / len(nodes)


def annotate_metrics(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    weighted: bool = False
) -> Tuple[Node, ...]:
    """
    Return nodes with influence/dependence filled in.

    Unweighted: influence = out-degree, dependence = in-degree.
    Weighted: sums of outgoing / incoming edge weights (row and column
    sums of the weighted adjacency matrix).
    """
    influence = {node.node_id: 0.0 for node in nodes}
    dependence = {node.node_id: 0.0 for node in nodes}
    for edge in edges:
        if edge.source not in influence or edge.target not in dependence:
            continue
        amount = edge.weight if weighted else 1.0
        influence[edge.source] += amount
        dependence[edge.target] += amount
    return tuple(
        replace(node, influence=influence[node.node_id],
                dependence=dependence[node.node_id])
        for node in nodes
    )


# =============================================================================
# COMMUNITIES
# =============================================================================

def detect_communities(nodes: Sequence[Node], edges: Sequence[Edge]) -> Dict[str, int]:
    """
    Greedy single-pass label propagation.

    Nodes are processed in the given order. Each node joins the label
    with the largest total incident edge weight among its already
    labelled neighbours (either edge direction counts), ties going to
    the lowest label. A node with no labelled neighbour starts a new
    label. Labels are consecutive integers from 0.
    """
    neighbours: Dict[str, Dict[str, float]] = {node.node_id: {} for node in nodes}
    for edge in edges:
        if edge.source not in neighbours or edge.target not in neighbours:
            continue
        if edge.source == edge.target:
            continue
        weight = 1.0 if edge.weight is None else float(edge.weight)
        for a, b in ((edge.source, edge.target), (edge.target, edge.source)):
            neighbours[a][b] = neighbours[a].get(b, 0.0) + weight

    labels: Dict[str, int] = {}
    next_label = 0
    for node in nodes:
        scores: Dict[int, float] = {}
        for neighbour, weight in neighbours[node.node_id].items():
            if neighbour in labels:
                label = labels[neighbour]
                scores[label] = scores.get(label, 0.0) + weight

        if scores:
            best = max(scores.values())
            labels[node.node_id] = min(
                label for label, score in scores.items() if score == best
            )
        else:
            labels[node.node_id] = next_label
            next_label += 1
    return labels


def group_communities(labels: Dict[str, int]) -> List[List[str]]:
    """Invert a label map into member lists ordered by label."""
    groups: Dict[int, List[str]] = {}
    for node_id, label in labels.items():
        groups.setdefault(label, []).append(node_id)
    return [groups[label] for label in sorted(groups)]


def compute_metrics(nodes: Sequence[Node], edges: Sequence[Edge]) -> GraphMetrics:
    return GraphMetrics(
        node_count=len(nodes),
        edge_count=len(edges),
        density=density(nodes, edges),
        average_degree=average_degree(nodes, edges)
    )


class TopologyEngine:
    """
    Algorithms bound to one snapshot.

    Convenience wrapper for callers that run several analyses on the
    same graph state.
    """

    def __init__(self, snapshot: Optional[GraphSnapshot] = None):
        self._snapshot = snapshot or GraphSnapshot()

    def load(self, snapshot: GraphSnapshot) -> None:
        """Replace the analysed snapshot."""
        self._snapshot = snapshot

    def shortest_path(self, start_id: str, end_id: str) -> Result:
        return shortest_path(self._snapshot.nodes, self._snapshot.edges, start_id, end_id)

    def centrality(self) -> Dict[str, DegreeStats]:
        return centrality(self._snapshot.nodes, self._snapshot.edges)

    def detect_communities(self) -> Dict[str, int]:
        return detect_communities(self._snapshot.nodes, self._snapshot.edges)

    def annotate_metrics(self, weighted: bool = False) -> Tuple[Node, ...]:
        return annotate_metrics(self._snapshot.nodes, self._snapshot.edges, weighted)

    def compute_metrics(self) -> GraphMetrics:
        return compute_metrics(self._snapshot.nodes, self._snapshot.edges)
