"""
Graph Storage Layer

RESPONSIBILITY: Canonical node set and edge set, validated mutations
ALLOWED INPUTS: Explicit add/remove/toggle calls, bulk replacement
OUTPUTS: GraphSnapshot (immutable), Result for every mutation

WHAT THIS LAYER MUST NOT DO:
============================
- Compute layouts, matrices or graph algorithms
- Partially apply a mutation (all-or-nothing)
- Hand out references to its internal graph

BOUNDARY ENFORCEMENT:
=====================
- Every mutating call validates first and changes nothing on failure
- Readers receive GraphSnapshot tuples, never the networkx graph
- Every mutation and every rejection is recorded in the audit log

EDGE DIRECTION POLICY:
======================
A store is either directed (default) or undirected, fixed at construction.
- Directed: (a, b) and (b, a) are distinct edges; toggles act on the
  ordered pair only.
- Undirected: a pair is unordered; the reverse of an existing edge is a
  duplicate, and a toggle removes the edge whichever way it was stored.
"""

from __future__ import annotations
from dataclasses import dataclass, fields, replace
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
import math

import networkx as nx

from ..contracts.base import Error, ErrorCode, Result
from ..contracts.graph import (
    Edge, EdgeToggle, GraphSnapshot, Node, NodeStatus, NodeType, Position,
    ReplaceReport
)
from ..contracts.events import AuditEventType, AuditLogEntry
from ..observability import LogCollector


NUMERIC_NODE_FIELDS = frozenset({"health", "vulnerability", "security_level", "importance"})
OPTIONAL_NUMERIC_NODE_FIELDS = frozenset({"influence", "dependence"})
EDITABLE_NODE_FIELDS = frozenset(f.name for f in fields(Node)) - {"node_id", "label"}


def _finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # ints too large for a float
        return False


@dataclass
class StoreConfig:
    """Configuration for the graph store."""
    directed: bool = True
    id_prefix: str = "node_"


class GraphStore:
    """
    In-memory graph store backed by a networkx DiGraph.

    Node insertion order is preserved and defines snapshot order.
    Edge objects are kept on the graph edges with an insertion sequence
    so snapshots list edges in the order they were added.
    """

    def __init__(self, config: Optional[StoreConfig] = None):
        self._config = config or StoreConfig()
        self._graph = nx.DiGraph()
        self._id_counter = 0
        self._edge_sequence = 0
        self._audit = LogCollector("store")

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    @property
    def directed(self) -> bool:
        return self._config.directed

    @property
    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def has_node(self, node_id: str) -> bool:
        return node_id in self._graph

    def has_edge(self, source: str, target: str) -> bool:
        """Exact ordered-pair check, independent of the direction policy."""
        return self._graph.has_edge(source, target)

    def get_node(self, node_id: str) -> Optional[Node]:
        if node_id not in self._graph:
            return None
        return self._graph.nodes[node_id]["node"]

    def count_edges(self, a: str, b: str) -> int:
        """
        Number of edges between a and b.

        Directed stores count only a -> b; undirected stores count both ways.
        """
        count = 1 if self._graph.has_edge(a, b) else 0
        if not self.directed and a != b and self._graph.has_edge(b, a):
            count += 1
        return count

    def snapshot(self) -> GraphSnapshot:
        """Immutable copy of the current nodes and edges."""
        nodes = tuple(data["node"] for _, data in self._graph.nodes(data=True))
        ordered = sorted(
            self._graph.edges(data=True),
            key=lambda item: item[2]["sequence"]
        )
        edges = tuple(data["edge"] for _, _, data in ordered)
        return GraphSnapshot(nodes=nodes, edges=edges, directed=self.directed)

    def get_audit_log(
        self,
        event_type: Optional[AuditEventType] = None
    ) -> List[AuditLogEntry]:
        return self._audit.get_entries(event_type=event_type)

    # =========================================================================
    # NODE MUTATIONS
    # =========================================================================

    def add_node(
        self,
        label: str,
        node_id: Optional[str] = None,
        **attributes
    ) -> Result:
        """
        Add a node, generating a fresh id when none is given.

        Fails with EMPTY_LABEL, INVALID_ID, DUPLICATE_ID, INVALID_ATTRIBUTE
        or INVALID_POSITION.
        """
        if node_id is None:
            node_id = self._next_id()
        elif not isinstance(node_id, str) or not node_id.strip():
            return self._reject("add_node", ErrorCode.INVALID_ID,
                                "Node id must be a non-empty string")
        elif node_id in self._graph:
            return self._reject("add_node", ErrorCode.DUPLICATE_ID,
                                f"Node id already exists: {node_id}", node_id)

        label_error = self._check_label(label, node_id)
        if label_error:
            return self._reject_error("add_node", label_error, node_id)

        attribute_error = self._check_attributes(attributes, node_id)
        if attribute_error:
            return self._reject_error("add_node", attribute_error, node_id)

        attributes = self._normalize_attributes(attributes)
        if attributes.get("pinned") and attributes.get("position") is None:
            return self._reject("add_node", ErrorCode.INVALID_POSITION,
                                "Pinned node requires a position", node_id)

        node = Node(node_id=node_id, label=label.strip(), **attributes)
        self._graph.add_node(node_id, node=node)
        self._audit.record(AuditEventType.MUTATION, "add_node",
                           entity_id=node_id, entity_type="node")
        return Result.success(node)

    def remove_node(self, node_id: str) -> Result:
        """Remove a node and every edge that references it."""
        if node_id not in self._graph:
            return self._reject("remove_node", ErrorCode.NOT_FOUND,
                                f"Node not found: {node_id}", node_id)

        node = self._graph.nodes[node_id]["node"]
        incident = self._graph.in_degree(node_id) + self._graph.out_degree(node_id)
        self._graph.remove_node(node_id)
        self._audit.record(AuditEventType.MUTATION, "remove_node",
                           entity_id=node_id, entity_type="node",
                           metadata={"edges_removed": incident})
        return Result.success(node)

    def update_node(self, node_id: str, **changes) -> Result:
        """Replace display attributes of a node. The id is immutable."""
        if node_id not in self._graph:
            return self._reject("update_node", ErrorCode.NOT_FOUND,
                                f"Node not found: {node_id}", node_id)
        if "node_id" in changes:
            return self._reject("update_node", ErrorCode.INVALID_ID,
                                "Node id cannot be changed", node_id)
        if "label" in changes:
            label_error = self._check_label(changes["label"], node_id)
            if label_error:
                return self._reject_error("update_node", label_error, node_id)
            changes["label"] = changes["label"].strip()

        attribute_error = self._check_attributes(
            {key: value for key, value in changes.items() if key != "label"}, node_id
        )
        if attribute_error:
            return self._reject_error("update_node", attribute_error, node_id)

        current = self._graph.nodes[node_id]["node"]
        changes = self._normalize_attributes(changes)
        pinned = changes.get("pinned", current.pinned)
        position = changes.get("position", current.position)
        if pinned and position is None:
            return self._reject("update_node", ErrorCode.INVALID_POSITION,
                                "Pinned node requires a position", node_id)

        updated = replace(current, **changes)
        self._graph.nodes[node_id]["node"] = updated
        self._audit.record(AuditEventType.MUTATION, "update_node",
                           entity_id=node_id, entity_type="node",
                           metadata={"fields": ",".join(sorted(changes))})
        return Result.success(updated)

    def pin_node(self, node_id: str, position: Position) -> Result:
        """Fix a node at an explicit position (drag-fix)."""
        return self.update_node(node_id, position=position, pinned=True)

    def unpin_node(self, node_id: str) -> Result:
        """Release a pinned node; it keeps its last position."""
        return self.update_node(node_id, pinned=False)

    def apply_positions(self, positions: Mapping[str, Position]) -> int:
        """
        Write layout output onto unpinned nodes.

        Unknown ids are ignored. Returns the number of nodes moved.
        """
        moved = 0
        for node_id, position in positions.items():
            if node_id not in self._graph:
                continue
            node = self._graph.nodes[node_id]["node"]
            if node.pinned:
                continue
            self._graph.nodes[node_id]["node"] = replace(node, position=position)
            moved += 1
        return moved

    # =========================================================================
    # EDGE MUTATIONS
    # =========================================================================

    def add_edge(
        self,
        source: str,
        target: str,
        weight: float = 1.0,
        edge_type: Optional[str] = None
    ) -> Result:
        """Add a single edge, rejecting loops, dangling ends and duplicates."""
        error = self._check_edge(self._graph, source, target, weight)
        if error:
            return self._reject_error("add_edge", error, f"{source}->{target}")

        edge = Edge(source=source, target=target, weight=float(weight),
                    edge_type=edge_type)
        self._insert_edge(self._graph, edge)
        self._audit.record(AuditEventType.MUTATION, "add_edge",
                           entity_id=f"{source}->{target}", entity_type="edge")
        return Result.success(edge)

    def remove_edge(self, source: str, target: str) -> Result:
        """Remove one edge. Undirected stores also match the reverse pair."""
        stored = self._find_edge(source, target)
        if stored is None:
            return self._reject("remove_edge", ErrorCode.NOT_FOUND,
                                f"Edge not found: {source}->{target}",
                                f"{source}->{target}")

        self._graph.remove_edge(stored.source, stored.target)
        self._audit.record(AuditEventType.MUTATION, "remove_edge",
                           entity_id=f"{stored.source}->{stored.target}",
                           entity_type="edge")
        return Result.success(stored)

    def toggle_edge(self, a: str, b: str) -> Result:
        """
        Remove the edge between a and b if present, otherwise add a -> b.

        Toggling twice restores the original edge count for the pair.
        """
        if a == b:
            return self._reject("toggle_edge", ErrorCode.SELF_LOOP,
                                f"Self-loop not allowed: {a}", a)
        for node_id in (a, b):
            if node_id not in self._graph:
                return self._reject("toggle_edge", ErrorCode.UNKNOWN_NODE,
                                    f"Unknown node: {node_id}", node_id)

        stored = self._find_edge(a, b)
        if stored is not None:
            self._graph.remove_edge(stored.source, stored.target)
            self._audit.record(AuditEventType.MUTATION, "toggle_edge",
                               entity_id=f"{stored.source}->{stored.target}",
                               entity_type="edge", metadata={"added": False})
            return Result.success(EdgeToggle(edge=stored, added=False))

        edge = Edge(source=a, target=b)
        self._insert_edge(self._graph, edge)
        self._audit.record(AuditEventType.MUTATION, "toggle_edge",
                           entity_id=f"{a}->{b}", entity_type="edge",
                           metadata={"added": True})
        return Result.success(EdgeToggle(edge=edge, added=True))

    # =========================================================================
    # BULK OPERATIONS
    # =========================================================================

    def replace_all(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> Result:
        """
        Replace the whole graph (import / regenerate).

        Node problems reject the call and leave the store untouched.
        Invalid edges are discarded and reported in the ReplaceReport.
        """
        graph = nx.DiGraph()
        for node in nodes:
            if not isinstance(node.node_id, str) or not node.node_id.strip():
                return self._reject("replace_all", ErrorCode.INVALID_ID,
                                    "Node id must be a non-empty string")
            if node.node_id in graph:
                return self._reject("replace_all", ErrorCode.DUPLICATE_ID,
                                    f"Duplicate node id: {node.node_id}",
                                    node.node_id)
            label_error = self._check_label(node.label, node.node_id)
            if label_error:
                return self._reject_error("replace_all", label_error, node.node_id)
            graph.add_node(node.node_id, node=replace(node, label=node.label.strip()))

        discarded: List[Tuple[Edge, str]] = []
        for edge in edges:
            error = self._check_edge(graph, edge.source, edge.target, edge.weight)
            if error:
                discarded.append((edge, error.code.name))
                continue
            self._insert_edge(graph, edge)

        self._graph = graph
        report = ReplaceReport(
            node_count=graph.number_of_nodes(),
            edge_count=graph.number_of_edges(),
            discarded=tuple(discarded)
        )
        self._audit.record(AuditEventType.MUTATION, "replace_all",
                           metadata={
                               "nodes": report.node_count,
                               "edges": report.edge_count,
                               "discarded": len(report.discarded),
                           })
        return Result.success(report)

    def clear(self):
        """Drop every node and edge."""
        self._graph = nx.DiGraph()
        self._audit.record(AuditEventType.MUTATION, "clear")

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _next_id(self) -> str:
        while True:
            self._id_counter += 1
            candidate = f"{self._config.id_prefix}{self._id_counter}"
            if candidate not in self._graph:
                return candidate

    def _find_edge(self, a: str, b: str) -> Optional[Edge]:
        if self._graph.has_edge(a, b):
            return self._graph.edges[a, b]["edge"]
        if not self.directed and self._graph.has_edge(b, a):
            return self._graph.edges[b, a]["edge"]
        return None

    def _insert_edge(self, graph: nx.DiGraph, edge: Edge):
        self._edge_sequence += 1
        graph.add_edge(edge.source, edge.target, edge=edge,
                       sequence=self._edge_sequence)

    def _check_edge(
        self,
        graph: nx.DiGraph,
        source: str,
        target: str,
        weight: float
    ) -> Optional[Error]:
        if source == target:
            return Error.create(ErrorCode.SELF_LOOP,
                                f"Self-loop not allowed: {source}")
        for node_id in (source, target):
            if node_id not in graph:
                return Error.create(ErrorCode.UNKNOWN_NODE,
                                    f"Unknown node: {node_id}")
        if graph.has_edge(source, target) or (
            not self.directed and graph.has_edge(target, source)
        ):
            return Error.create(ErrorCode.DUPLICATE_EDGE,
                                f"Edge already exists: {source}->{target}")
        if not _finite_number(weight):
            return Error.create(ErrorCode.INVALID_WEIGHT,
                                f"Edge weight must be a finite number: {weight!r}")
        return None

    @staticmethod
    def _check_label(label: object, node_id: str) -> Optional[Error]:
        if not isinstance(label, str) or not label.strip():
            return Error.create(ErrorCode.EMPTY_LABEL,
                                f"Label is blank for node {node_id}")
        return None

    @staticmethod
    def _check_attributes(attributes: Mapping[str, object], node_id: str) -> Optional[Error]:
        """Reject unknown attribute names and values of the wrong type."""
        unknown = sorted(set(attributes) - EDITABLE_NODE_FIELDS)
        if unknown:
            return Error.create(ErrorCode.INVALID_ATTRIBUTE,
                                f"Unknown node attribute: {', '.join(unknown)}",
                                node_id=node_id, attribute=unknown[0])

        def bad(name: str, expected: str) -> Error:
            return Error.create(ErrorCode.INVALID_ATTRIBUTE,
                                f"Attribute {name} of node {node_id} must be {expected}",
                                node_id=node_id, attribute=name)

        for name, value in attributes.items():
            if name in NUMERIC_NODE_FIELDS or name in OPTIONAL_NUMERIC_NODE_FIELDS:
                if value is None and name in OPTIONAL_NUMERIC_NODE_FIELDS:
                    continue
                if not _finite_number(value):
                    return bad(name, "a finite number")
            elif name == "position":
                if value is not None and not isinstance(value, Position):
                    return bad(name, "a Position")
            elif name == "pinned":
                if not isinstance(value, bool):
                    return bad(name, "a bool")
            elif name == "group":
                if value is not None and not isinstance(value, str):
                    return bad(name, "a string")
        return None

    @staticmethod
    def _normalize_attributes(attributes: Dict[str, object]) -> Dict[str, object]:
        normalized = dict(attributes)
        if "node_type" in normalized:
            normalized["node_type"] = NodeType.parse(normalized["node_type"])
        if "status" in normalized:
            normalized["status"] = NodeStatus.parse(normalized["status"])
        return normalized

    def _reject(
        self,
        action: str,
        code: ErrorCode,
        message: str,
        entity_id: Optional[str] = None
    ) -> Result:
        return self._reject_error(action, Error.create(code, message), entity_id)

    def _reject_error(
        self,
        action: str,
        error: Error,
        entity_id: Optional[str] = None
    ) -> Result:
        self._audit.record(AuditEventType.ERROR, action, entity_id=entity_id,
                           metadata={"code": error.code.name,
                                     "message": error.message})
        return Result.failure(error)
