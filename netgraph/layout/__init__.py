"""
Layout Engine
=============

Assigns 2D coordinates to nodes under a selected strategy.

STRATEGIES:
===========
- circular: node i of n at angle 2*pi*i/n on the largest circle that
  fits inside the bounds margin. Deterministic given node order.
- force: Fruchterman-Reingold relaxation via networkx.spring_layout
  (repulsion between all pairs, springs along edges, weight-aware),
  bounded by an iteration budget and an energy threshold. Only the
  initial placement is random, and it is seeded.
- hierarchical: nodes split by index order into `levels` horizontal
  bands, spread evenly within each band.

PINNED NODES:
=============
A pinned node keeps its position under every strategy. In circular and
hierarchical layouts it still occupies its slot; in force layouts it is
passed to networkx as a fixed node and acts as an anchor.

Layouts are pure: they return positions and never touch the store.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple, Union

import networkx as nx
import numpy as np

from ..contracts.graph import Bounds, Edge, Node, Position


class LayoutStrategy(Enum):
    """Supported layout strategies."""
    CIRCULAR = "circular"
    FORCE = "force"
    HIERARCHICAL = "hierarchical"

    @classmethod
    def parse(cls, value: Union[str, LayoutStrategy]) -> LayoutStrategy:
        """Accept an enum member or its case-insensitive string value."""
        if isinstance(value, LayoutStrategy):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown layout strategy: {value!r}")


@dataclass
class LayoutConfig:
    """Configuration for layout computation."""
    strategy: LayoutStrategy = LayoutStrategy.FORCE
    width: float = 800.0
    height: float = 600.0
    margin: float = 20.0
    levels: int = 3
    iterations: int = 50
    threshold: float = 1e-4  # Energy threshold for early stop
    seed: Optional[int] = None

    def __post_init__(self):
        self.strategy = LayoutStrategy.parse(self.strategy)
        if self.levels < 1:
            raise ValueError("levels must be at least 1")
        if self.iterations < 1:
            raise ValueError("iterations must be at least 1")

    @property
    def bounds(self) -> Bounds:
        return Bounds(width=self.width, height=self.height, margin=self.margin)


class LayoutEngine:
    """
    Stateless layout computation.

    The engine only holds configuration; every call is a pure function
    of (nodes, edges, strategy, bounds).
    """

    def __init__(self, config: Optional[LayoutConfig] = None):
        self._config = config or LayoutConfig()

    @property
    def config(self) -> LayoutConfig:
        return self._config

    def layout(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        strategy: Union[str, LayoutStrategy, None] = None,
        bounds: Optional[Bounds] = None,
        seed: Optional[int] = None
    ) -> Dict[str, Position]:
        """
        Compute a position for every node.

        Raises ValueError for an unknown strategy name.
        """
        strategy = LayoutStrategy.parse(strategy or self._config.strategy)
        bounds = bounds or self._config.bounds

        if strategy == LayoutStrategy.CIRCULAR:
            positions = self._circular(nodes, bounds)
        elif strategy == LayoutStrategy.HIERARCHICAL:
            positions = self._hierarchical(nodes, bounds)
        else:
            positions = self._force(
                nodes, edges, bounds,
                seed if seed is not None else self._config.seed
            )

        # Pinned nodes always win
        for node in nodes:
            if node.pinned and node.position is not None:
                positions[node.node_id] = node.position
        return positions

    # =========================================================================
    # STRATEGIES
    # =========================================================================

    def _circular(self, nodes: Sequence[Node], bounds: Bounds) -> Dict[str, Position]:
        count = len(nodes)
        if count == 0:
            return {}
        center = bounds.center
        if count == 1:
            # networkx centres a lone node; keep it on the rim at angle 0
            return {nodes[0].node_id: Position(center.x + bounds.radius, center.y)}
        ring = nx.Graph()
        ring.add_nodes_from(node.node_id for node in nodes)
        raw = nx.circular_layout(ring, scale=bounds.radius, center=(center.x, center.y))
        return {
            node_id: Position(float(x), float(y))
            for node_id, (x, y) in raw.items()
        }

    def _hierarchical(self, nodes: Sequence[Node], bounds: Bounds) -> Dict[str, Position]:
        count = len(nodes)
        if count == 0:
            return {}
        levels = self._config.levels
        inner_width = bounds.width - 2 * bounds.margin
        band_height = (bounds.height - 2 * bounds.margin) / levels

        bands: Dict[int, list] = {}
        for index, node in enumerate(nodes):
            bands.setdefault(index * levels // count, []).append(node)

        positions: Dict[str, Position] = {}
        for level, members in bands.items():
            y = bounds.margin + band_height * (level + 0.5)
            step = inner_width / (len(members) + 1)
            for slot, node in enumerate(members):
                positions[node.node_id] = Position(
                    bounds.margin + step * (slot + 1), y
                )
        return positions

    def _force(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        bounds: Bounds,
        seed: Optional[int]
    ) -> Dict[str, Position]:
        if not nodes:
            return {}
        center = bounds.center
        radius = bounds.radius
        if radius <= 0:
            return {node.node_id: center for node in nodes}

        graph = nx.Graph()
        graph.add_nodes_from(node.node_id for node in nodes)
        for edge in edges:
            if edge.source in graph and edge.target in graph and edge.source != edge.target:
                graph.add_edge(edge.source, edge.target, weight=edge.weight)

        # Work in unit space centred on the origin, then map into bounds
        fixed = [n.node_id for n in nodes if n.pinned and n.position is not None]
        initial = {
            n.node_id: ((n.position.x - center.x) / radius,
                        (n.position.y - center.y) / radius)
            for n in nodes if n.node_id in fixed
        }
        if initial:
            # Anchors present: seed the free nodes ourselves across the unit square
            rng = np.random.default_rng(seed)
            for node in nodes:
                if node.node_id not in initial:
                    initial[node.node_id] = tuple(rng.uniform(-1.0, 1.0, 2))

        raw = nx.spring_layout(
            graph,
            pos=initial or None,
            fixed=fixed or None,
            iterations=self._config.iterations,
            threshold=self._config.threshold,
            weight="weight",
            seed=seed
        )

        positions = {}
        for node_id, (u, v) in raw.items():
            mapped = Position(center.x + float(u) * radius, center.y + float(v) * radius)
            positions[node_id] = bounds.clamp(mapped)
        return positions


def ensure_positions(nodes: Sequence[Node], bounds: Bounds) -> Tuple[Node, ...]:
    """
    Give every unpositioned node a fallback position.

    Fallback is a single row across the middle:
    x = width / (n + 1) * (i + 1), y = height / 2.
    """
    count = len(nodes)
    result = []
    for index, node in enumerate(nodes):
        if node.position is None:
            node = replace(node, position=Position(
                bounds.width / (count + 1) * (index + 1),
                bounds.height / 2
            ))
        result.append(node)
    return tuple(result)
