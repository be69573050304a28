"""
Engine Orchestration Module

This module provides the unified command surface a UI layer calls into,
while the layers underneath stay independent.

DESIGN PRINCIPLES:
==================
1. Layers communicate ONLY through contracts
2. The UI invokes explicit commands; the engine exposes no event hooks
3. Every command runs synchronously to completion and returns a Result
4. Simulation ticks change what is displayed, never the stored graph
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import os
import random

from .contracts.base import ErrorCode, Result
from .contracts.graph import GraphSnapshot, Node, Position
from .contracts.events import AuditEventType, AuditLogEntry
from .core.topology import (
    DegreeStats, GraphMetrics, annotate_metrics, centrality, compute_metrics,
    detect_communities, shortest_path
)
from .domain.serialization import export_json, export_matrix_csv
from .ingestion import ImportConfig, ImportEngine, PayloadFormat
from .ingestion.sample import SampleConfig, generate_sample
from .layout import LayoutConfig, LayoutEngine, LayoutStrategy
from .matrix import AdjacencyMatrix, AdjacencyMatrixView
from .observability import LogCollector
from .presentation import GraphViewMapper, NetworkGraphView, PresentationConfig
from .simulation import SimulationConfig, tick
from .store import GraphStore, StoreConfig


@dataclass
class NetworkGraphConfig:
    """Unified configuration for the whole engine."""
    store: StoreConfig = None
    layout: LayoutConfig = None
    importing: ImportConfig = None
    simulation: SimulationConfig = None
    presentation: PresentationConfig = None
    sample: SampleConfig = None

    def __post_init__(self):
        self.store = self.store or StoreConfig()
        self.layout = self.layout or LayoutConfig()
        self.importing = self.importing or ImportConfig()
        self.simulation = self.simulation or SimulationConfig()
        self.presentation = self.presentation or PresentationConfig()
        self.sample = self.sample or SampleConfig()

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> NetworkGraphConfig:
        """
        Build a config with NETGRAPH_* environment overrides.

        Recognised: NETGRAPH_DIRECTED, NETGRAPH_LAYOUT_STRATEGY,
        NETGRAPH_LAYOUT_WIDTH, NETGRAPH_LAYOUT_HEIGHT, NETGRAPH_LAYOUT_SEED,
        NETGRAPH_IMPORT_THRESHOLD, NETGRAPH_FAILURE_PROBABILITY,
        NETGRAPH_RECOVERY_RATE.
        """
        env = os.environ if environ is None else environ

        store = StoreConfig()
        if "NETGRAPH_DIRECTED" in env:
            store.directed = env["NETGRAPH_DIRECTED"].strip().lower() not in ("0", "false", "no")

        layout_kwargs: Dict[str, Any] = {}
        if "NETGRAPH_LAYOUT_STRATEGY" in env:
            layout_kwargs["strategy"] = env["NETGRAPH_LAYOUT_STRATEGY"]
        if "NETGRAPH_LAYOUT_WIDTH" in env:
            layout_kwargs["width"] = float(env["NETGRAPH_LAYOUT_WIDTH"])
        if "NETGRAPH_LAYOUT_HEIGHT" in env:
            layout_kwargs["height"] = float(env["NETGRAPH_LAYOUT_HEIGHT"])
        if "NETGRAPH_LAYOUT_SEED" in env:
            layout_kwargs["seed"] = int(env["NETGRAPH_LAYOUT_SEED"])

        importing = ImportConfig()
        if "NETGRAPH_IMPORT_THRESHOLD" in env:
            importing.threshold = float(env["NETGRAPH_IMPORT_THRESHOLD"])

        simulation_kwargs: Dict[str, Any] = {}
        if "NETGRAPH_FAILURE_PROBABILITY" in env:
            simulation_kwargs["failure_probability"] = float(env["NETGRAPH_FAILURE_PROBABILITY"])
        if "NETGRAPH_RECOVERY_RATE" in env:
            simulation_kwargs["recovery_rate"] = float(env["NETGRAPH_RECOVERY_RATE"])

        return cls(
            store=store,
            layout=LayoutConfig(**layout_kwargs),
            importing=importing,
            simulation=SimulationConfig(**simulation_kwargs)
        )


class NetworkGraphBackend:
    """
    Unified backend for the network graph visualization.

    COMMAND FLOW:
    =============
    1. Input: manual edit, import payload, or generated sample
    2. Store: validated mutation of nodes and edges
    3. Layout: positions written back onto unpinned nodes
    4. Readers: matrix, algorithms and view read store snapshots

    NO COMMAND BYPASSES THE STORE'S VALIDATION.
    """

    def __init__(self, config: Optional[NetworkGraphConfig] = None):
        self._config = config or NetworkGraphConfig()

        self._store = GraphStore(self._config.store)
        self._matrix = AdjacencyMatrixView(self._store)
        self._layout = LayoutEngine(self._config.layout)
        self._importer = ImportEngine(self._config.importing)
        self._mapper = GraphViewMapper(self._config.presentation, self._config.simulation)
        self._audit = LogCollector("engine")

        # Simulation overlay: node_id -> simulated node
        self._simulated: Dict[str, Node] = {}

    @property
    def config(self) -> NetworkGraphConfig:
        return self._config

    def snapshot(self) -> GraphSnapshot:
        return self._store.snapshot()

    # =========================================================================
    # EDIT COMMANDS
    # =========================================================================

    def add_node(self, label: str, node_id: Optional[str] = None, **attributes) -> Result:
        return self._store.add_node(label, node_id=node_id, **attributes)

    def update_node(self, node_id: str, **changes) -> Result:
        result = self._store.update_node(node_id, **changes)
        if result.is_success:
            # Edited attributes replace any simulated state for the node
            self._simulated.pop(node_id, None)
        return result

    def remove_node(self, node_id: str) -> Result:
        result = self._store.remove_node(node_id)
        if result.is_success:
            self._simulated.pop(node_id, None)
        return result

    def add_edge(self, source: str, target: str, weight: float = 1.0,
                 edge_type: Optional[str] = None) -> Result:
        return self._store.add_edge(source, target, weight=weight, edge_type=edge_type)

    def toggle_edge(self, a: str, b: str) -> Result:
        return self._store.toggle_edge(a, b)

    def toggle_cell(self, row: int, col: int) -> Result:
        return self._matrix.toggle_cell(row, col)

    def pin_node(self, node_id: str, x: float, y: float) -> Result:
        return self._store.pin_node(node_id, Position(float(x), float(y)))

    def unpin_node(self, node_id: str) -> Result:
        return self._store.unpin_node(node_id)

    # =========================================================================
    # LAYOUT
    # =========================================================================

    def relayout(
        self,
        strategy: Union[str, LayoutStrategy, None] = None,
        seed: Optional[int] = None
    ) -> Result:
        """Recompute positions and write them onto unpinned nodes."""
        try:
            strategy = LayoutStrategy.parse(strategy or self._config.layout.strategy)
        except ValueError as exc:
            return Result.fail(ErrorCode.INVALID_STRATEGY, str(exc))

        snapshot = self._store.snapshot()
        positions = self._layout.layout(snapshot.nodes, snapshot.edges, strategy, seed=seed)
        moved = self._store.apply_positions(positions)
        self._audit.record(AuditEventType.LAYOUT, "relayout",
                           metadata={"strategy": strategy.value, "moved": moved})
        return Result.success(positions)

    # =========================================================================
    # IMPORT / REGENERATE / EXPORT
    # =========================================================================

    def import_payload(
        self,
        payload: Union[bytes, str],
        payload_format: Union[PayloadFormat, str, None] = None
    ) -> Result:
        """
        Replace the graph with an imported payload.

        Parsing and validation finish before the store is touched, so a
        failed import leaves the current graph as it was.
        """
        parsed = self._importer.import_payload(payload, payload_format)
        if parsed.is_failure:
            return parsed
        return self._replace(parsed.value.nodes, parsed.value.edges, "import_payload")

    def import_rows(self, rows: Sequence[Sequence[Any]]) -> Result:
        """Replace the graph with a labelled matrix table."""
        parsed = self._importer.import_rows(rows)
        if parsed.is_failure:
            return parsed
        return self._replace(parsed.value.nodes, parsed.value.edges, "import_rows")

    def regenerate(self, seed: Optional[int] = None) -> Result:
        """Replace the graph with a freshly generated sample network."""
        sample = generate_sample(self._config.sample, random.Random(seed))
        return self._replace(sample.nodes, sample.edges, "regenerate")

    def export_json(self) -> bytes:
        payload = export_json(self._store.snapshot())
        self._audit.record(AuditEventType.EXPORT, "export_json",
                           metadata={"bytes": len(payload)})
        return payload

    def export_matrix_csv(self, weighted: bool = False) -> bytes:
        payload = export_matrix_csv(self._matrix.compute(weighted=weighted))
        self._audit.record(AuditEventType.EXPORT, "export_matrix_csv",
                           metadata={"bytes": len(payload)})
        return payload

    def _replace(self, nodes, edges, action: str) -> Result:
        result = self._store.replace_all(nodes, edges)
        if result.is_failure:
            return result
        self._simulated = {}
        self._audit.record(AuditEventType.IMPORT, action,
                           metadata={"nodes": result.value.node_count,
                                     "edges": result.value.edge_count,
                                     "discarded": len(result.value.discarded)})
        self.relayout()
        return result

    # =========================================================================
    # READ MODELS
    # =========================================================================

    def adjacency_matrix(self, symmetric: bool = False, weighted: bool = False) -> AdjacencyMatrix:
        return self._matrix.compute(symmetric=symmetric, weighted=weighted)

    def shortest_path(self, start_id: str, end_id: str) -> Result:
        snapshot = self._store.snapshot()
        return shortest_path(snapshot.nodes, snapshot.edges, start_id, end_id)

    def communities(self) -> Dict[str, int]:
        snapshot = self._store.snapshot()
        return detect_communities(snapshot.nodes, snapshot.edges)

    def centrality(self) -> Dict[str, DegreeStats]:
        snapshot = self._store.snapshot()
        return centrality(snapshot.nodes, snapshot.edges)

    def annotated_nodes(self, weighted: bool = False) -> Tuple[Node, ...]:
        snapshot = self._store.snapshot()
        return annotate_metrics(snapshot.nodes, snapshot.edges, weighted=weighted)

    def metrics(self) -> GraphMetrics:
        snapshot = self._store.snapshot()
        return compute_metrics(snapshot.nodes, snapshot.edges)

    def view(self) -> NetworkGraphView:
        """Renderable view including the simulation overlay."""
        snapshot = self._store.snapshot()
        displayed = GraphSnapshot(
            nodes=self._display_nodes(snapshot),
            edges=snapshot.edges,
            directed=snapshot.directed
        )
        return self._mapper.map_graph(displayed, bounds=self._config.layout.bounds)

    # =========================================================================
    # SIMULATION
    # =========================================================================

    def tick(self, rng: Optional[random.Random] = None) -> Tuple[Node, ...]:
        """
        Advance the cosmetic simulation by one step.

        Only the display overlay changes; the store is untouched.
        """
        snapshot = self._store.snapshot()
        ticked = tick(self._display_nodes(snapshot), self._config.simulation,
                      rng or random.Random())
        self._simulated = {node.node_id: node for node in ticked}
        self._audit.record(AuditEventType.SIMULATION, "tick",
                           metadata={"nodes": len(ticked)})
        return ticked

    def reset_simulation(self):
        self._simulated = {}

    def _display_nodes(self, snapshot: GraphSnapshot) -> Tuple[Node, ...]:
        displayed = []
        for node in snapshot.nodes:
            simulated = self._simulated.get(node.node_id)
            if simulated is not None:
                node = replace(node, status=simulated.status, health=simulated.health)
            displayed.append(node)
        return tuple(displayed)

    # =========================================================================
    # OBSERVABILITY
    # =========================================================================

    def get_audit_log(
        self,
        event_type: Optional[AuditEventType] = None
    ) -> List[AuditLogEntry]:
        """All layers' audit entries, oldest first."""
        entries = (
            self._store.get_audit_log()
            + self._importer.get_audit_log()
            + self._audit.get_entries()
        )
        if event_type:
            entries = [e for e in entries if e.event_type == event_type]
        return sorted(entries, key=lambda e: e.timestamp.value)
