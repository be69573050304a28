"""
Graph Contracts

Immutable node, edge and snapshot types shared by every layer.

DESIGN PRINCIPLES:
==================
1. Nodes and edges are frozen dataclasses; changes produce new instances
2. Node type is a CLOSED enum with an explicit UNKNOWN fallback
3. Derived values (edge status, influence) are never authoritative state
4. Snapshots are tuples, so readers cannot mutate the store through them
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# =============================================================================
# CLASSIFICATION ENUMS
# =============================================================================

class NodeType(Enum):
    """
    Descriptive node category used only for display.

    CLOSED SET:
    ===========
    Any unrecognized string maps to UNKNOWN, never to a guess.
    """
    SERVER = "server"
    WORKSTATION = "workstation"
    ROUTER = "router"
    FIREWALL = "firewall"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> NodeType:
        if isinstance(value, NodeType):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class NodeStatus(Enum):
    """Cosmetic simulation status of a node."""
    ONLINE = "online"
    FAILED = "failed"
    COMPROMISED = "compromised"

    @classmethod
    def parse(cls, value: Any) -> NodeStatus:
        if isinstance(value, NodeStatus):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.ONLINE


class EdgeStatus(Enum):
    """Display-only edge status derived from endpoint health."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"


# =============================================================================
# GEOMETRY
# =============================================================================

@dataclass(frozen=True)
class Position:
    """2D coordinate in drawing-surface units (origin top-left)."""
    x: float
    y: float


@dataclass(frozen=True)
class Bounds:
    """
    Drawing area available to a layout.

    The margin is kept clear on every side.
    """
    width: float
    height: float
    margin: float = 0.0

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError("Bounds width and height must be positive")
        if self.margin < 0:
            raise ValueError("Bounds margin must be non-negative")
        if 2 * self.margin > min(self.width, self.height):
            raise ValueError("Bounds margin leaves no drawable area")

    @property
    def center(self) -> Position:
        return Position(self.width / 2.0, self.height / 2.0)

    @property
    def radius(self) -> float:
        """Largest circle radius that respects the margin."""
        return min(self.width, self.height) / 2.0 - self.margin

    def clamp(self, position: Position) -> Position:
        return Position(
            x=min(max(position.x, self.margin), self.width - self.margin),
            y=min(max(position.y, self.margin), self.height - self.margin)
        )


# =============================================================================
# NODES AND EDGES
# =============================================================================

@dataclass(frozen=True)
class Node:
    """
    Graph vertex with identity, label and optional display attributes.

    Numeric attributes only drive colour and size in the rendering layer.
    A pinned node has an explicit position that layouts must not move.
    """
    node_id: str
    label: str
    node_type: NodeType = NodeType.UNKNOWN
    group: Optional[str] = None
    health: float = 100.0
    vulnerability: float = 0.0
    security_level: float = 0.0
    importance: float = 1.0
    status: NodeStatus = NodeStatus.ONLINE
    position: Optional[Position] = None
    pinned: bool = False
    influence: Optional[float] = None
    dependence: Optional[float] = None

    def __post_init__(self):
        if self.pinned and self.position is None:
            raise ValueError(f"Pinned node {self.node_id} requires a position")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.node_id,
            "label": self.label,
            "type": self.node_type.value,
            "group": self.group,
            "health": self.health,
            "vulnerability": self.vulnerability,
            "securityLevel": self.security_level,
            "importance": self.importance,
            "status": self.status.value,
            "x": self.position.x if self.position else None,
            "y": self.position.y if self.position else None,
            "pinned": self.pinned,
            "influence": self.influence,
            "dependence": self.dependence,
        }


@dataclass(frozen=True)
class Edge:
    """Ordered (source, target) relationship, optionally weighted."""
    source: str
    target: str
    weight: float = 1.0
    edge_type: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.source, self.target)

    def connects(self, a: str, b: str) -> bool:
        """True if this edge joins a and b in either direction."""
        return self.key == (a, b) or self.key == (b, a)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "weight": self.weight,
            "type": self.edge_type,
        }


# =============================================================================
# SNAPSHOTS AND MUTATION OUTCOMES
# =============================================================================

@dataclass(frozen=True)
class GraphSnapshot:
    """
    Immutable copy of the store contents.

    Node order is insertion order and defines matrix row/column order.
    """
    nodes: Tuple[Node, ...] = field(default_factory=tuple)
    edges: Tuple[Edge, ...] = field(default_factory=tuple)
    directed: bool = True

    @property
    def node_ids(self) -> Tuple[str, ...]:
        return tuple(node.node_id for node in self.nodes)

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.node_id == node_id:
                return node
        return None

    def has_edge(self, source: str, target: str) -> bool:
        return any(edge.key == (source, target) for edge in self.edges)


@dataclass(frozen=True)
class EdgeToggle:
    """Outcome of a toggle: which edge was added or removed."""
    edge: Edge
    added: bool


@dataclass(frozen=True)
class ReplaceReport:
    """
    Outcome of a bulk replacement.

    Edges that failed validation are discarded, never silently repaired.
    """
    node_count: int
    edge_count: int
    discarded: Tuple[Tuple[Edge, str], ...] = field(default_factory=tuple)
