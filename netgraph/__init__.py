"""
Network Graph Engine

This package implements the engine behind an interactive network graph
visualization: a graph store, its adjacency-matrix view, layouts, graph
algorithms, import/export, and a cosmetic simulation. Each layer
communicates only through explicit contracts, never through shared
mutable state.

LAYER STRUCTURE:
================

1. STORE LAYER (store/)
   - Responsibility: Canonical node and edge sets, validated mutations
   - Allowed inputs: Explicit edit commands, bulk replacement
   - Outputs: GraphSnapshot (immutable), Result for every mutation
   - MUST NOT: Compute layouts, matrices or algorithms

2. MATRIX VIEW (matrix/)
   - Responsibility: N x N adjacency matrix derived from the store
   - Allowed inputs: Store snapshots, cell toggle requests
   - Outputs: AdjacencyMatrix (immutable)
   - MUST NOT: Hold edge state of its own

3. LAYOUT ENGINE (layout/)
   - Responsibility: 2D coordinates under circular, force or hierarchical
   - Allowed inputs: Nodes, edges, bounds
   - Outputs: Position per node id
   - MUST NOT: Move pinned nodes, mutate the store

4. TOPOLOGY (core/)
   - Responsibility: Shortest path, degree statistics, communities
   - Allowed inputs: Nodes and edges
   - Outputs: Result / immutable metric types
   - MUST NOT: Mutate anything

5. INGESTION & EXPORT (ingestion/, domain/)
   - Responsibility: Matrix CSV, edge-list CSV, JSON, generated samples
   - Allowed inputs: Raw payload bytes
   - Outputs: GraphImport, export bytes
   - MUST NOT: Touch the store before a payload fully validates

6. SIMULATION & PRESENTATION (simulation/, presentation/)
   - Responsibility: Cosmetic status changes, renderable views
   - Allowed inputs: Snapshots, an explicit random source
   - Outputs: Display nodes, NetworkGraphView
   - MUST NOT: Write to the store

7. OBSERVABILITY & AUDIT LAYER (observability/)
   - Responsibility: Append-only audit log of mutations and rejections
   - Allowed inputs: Any layer's events
   - Outputs: AuditLogEntry lists

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: contract types are frozen dataclasses
- All-or-nothing: a failed mutation or import changes nothing
- Deterministic: seeded randomness reproduces layouts and samples
- Explicit errors: user-input problems return Result, never raise
"""

from .engine import NetworkGraphBackend, NetworkGraphConfig

__all__ = ['NetworkGraphBackend', 'NetworkGraphConfig']
