"""
Graph Visualization Contracts

Responsibility:
Deterministic transformation of a graph snapshot into a renderable view.

PRINCIPLES:
1. Immutable (Frozen)
2. No drawing; the rendering layer owns the surface
3. All styling decisions happen here, nowhere else
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from ..contracts.graph import (
    Bounds, EdgeStatus, GraphSnapshot, NodeStatus, NodeType, Position
)
from ..layout import ensure_positions
from ..simulation import SimulationConfig, edge_status


@dataclass(frozen=True)
class GraphNodeView:
    """Renderable graph node."""
    node_id: str
    x: float
    y: float
    radius: float
    color: str
    label: str
    node_type: NodeType
    status: NodeStatus
    pinned: bool


@dataclass(frozen=True)
class GraphEdgeView:
    """Renderable graph edge."""
    edge_id: str
    source_id: str
    target_id: str
    thickness: float
    style: str  # solid, dashed
    status: EdgeStatus


@dataclass(frozen=True)
class NetworkGraphView:
    """
    Pre-layouted network graph.
    Layout must be stable.
    """
    nodes: Tuple[GraphNodeView, ...]
    edges: Tuple[GraphEdgeView, ...]
    directed: bool = True


def _default_type_colors() -> Dict[NodeType, str]:
    return {
        NodeType.SERVER: "#3b82f6",
        NodeType.WORKSTATION: "#22c55e",
        NodeType.ROUTER: "#ef4444",
        NodeType.FIREWALL: "#f97316",
        NodeType.UNKNOWN: "#6b7280",
    }


def _default_status_colors() -> Dict[NodeStatus, str]:
    return {
        NodeStatus.FAILED: "#9ca3af",
        NodeStatus.COMPROMISED: "#a855f7",
    }


@dataclass
class PresentationConfig:
    """Styling knobs for the view mapper."""
    node_radius: float = 20.0
    max_edge_thickness: float = 4.0
    min_edge_fraction: float = 0.1
    type_colors: Dict[NodeType, str] = field(default_factory=_default_type_colors)
    status_colors: Dict[NodeStatus, str] = field(default_factory=_default_status_colors)


class GraphViewMapper:
    """
    Maps snapshots to renderable views.

    SINGLE POINT OF CONVERSION:
    ===========================
    All snapshot -> view conversion goes through this class.
    """

    def __init__(
        self,
        config: Optional[PresentationConfig] = None,
        simulation: Optional[SimulationConfig] = None
    ):
        self._config = config or PresentationConfig()
        self._simulation = simulation or SimulationConfig()

    def node_color(self, node_type: NodeType, status: NodeStatus) -> str:
        """Status colour wins over type colour; unknown types fall back."""
        if status in self._config.status_colors:
            return self._config.status_colors[status]
        return self._config.type_colors.get(
            node_type, self._config.type_colors[NodeType.UNKNOWN]
        )

    def map_graph(
        self,
        snapshot: GraphSnapshot,
        positions: Optional[Mapping[str, Position]] = None,
        bounds: Optional[Bounds] = None
    ) -> NetworkGraphView:
        """
        Build the view for a snapshot.

        Position precedence: pinned node position, explicit `positions`,
        stored node position, then the single-row fallback.
        """
        positions = positions or {}
        bounds = bounds or Bounds(width=800.0, height=600.0)
        placed = ensure_positions(snapshot.nodes, bounds)

        node_views = []
        for node in placed:
            position = node.position
            if not node.pinned and node.node_id in positions:
                position = positions[node.node_id]
            importance = min(max(node.importance, 0.5), 2.0)
            node_views.append(GraphNodeView(
                node_id=node.node_id,
                x=position.x,
                y=position.y,
                radius=self._config.node_radius * importance,
                color=self.node_color(node.node_type, node.status),
                label=node.label,
                node_type=node.node_type,
                status=node.status,
                pinned=node.pinned
            ))

        nodes_by_id = {node.node_id: node for node in snapshot.nodes}
        max_weight = max((abs(e.weight) for e in snapshot.edges), default=1.0) or 1.0
        edge_views = []
        for edge in snapshot.edges:
            status = edge_status(edge, nodes_by_id, self._simulation)
            fraction = max(abs(edge.weight) / max_weight, self._config.min_edge_fraction)
            edge_views.append(GraphEdgeView(
                edge_id=f"{edge.source}->{edge.target}",
                source_id=edge.source,
                target_id=edge.target,
                thickness=self._config.max_edge_thickness * fraction,
                style="dashed" if status == EdgeStatus.DEGRADED else "solid",
                status=status
            ))

        return NetworkGraphView(
            nodes=tuple(node_views),
            edges=tuple(edge_views),
            directed=snapshot.directed
        )
