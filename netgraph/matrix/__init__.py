"""
Adjacency Matrix View
=====================

Derives an N x N matrix from a graph snapshot.

The matrix is NEVER independently mutated. A cell toggle is translated
into a store edge toggle and the matrix is recomputed from the result.

ORDERING:
=========
Row i and column i both correspond to snapshot node i (insertion order).
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np

from ..contracts.base import ErrorCode, Result
from ..contracts.graph import Edge, Node


@dataclass(frozen=True)
class AdjacencyMatrix:
    """
    Immutable adjacency matrix with row/column labels.

    Values are 0/1, or edge weights when computed in weighted mode.
    """
    matrix: Tuple[Tuple[float, ...], ...]
    names: Tuple[str, ...]
    node_ids: Tuple[str, ...]

    @property
    def size(self) -> int:
        return len(self.node_ids)

    def cell(self, row: int, col: int) -> float:
        return self.matrix[row][col]

    def to_numpy(self) -> np.ndarray:
        return np.array(self.matrix, dtype=float).reshape(self.size, self.size)


def compute_matrix(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    symmetric: bool = False,
    weighted: bool = False
) -> AdjacencyMatrix:
    """
    Build the adjacency matrix for (nodes, edges).

    Args:
        symmetric: Mirror every edge, for undirected display.
        weighted: Store edge weights instead of 1.

    Edges referencing nodes outside `nodes` and self-loops are ignored,
    so the diagonal is always zero.
    """
    index: Dict[str, int] = {node.node_id: i for i, node in enumerate(nodes)}
    size = len(nodes)
    grid = np.zeros((size, size), dtype=float)

    for edge in edges:
        row = index.get(edge.source)
        col = index.get(edge.target)
        if row is None or col is None or row == col:
            continue
        value = edge.weight if weighted else 1.0
        grid[row, col] = value
        if symmetric:
            grid[col, row] = value

    return AdjacencyMatrix(
        matrix=tuple(tuple(float(v) for v in row) for row in grid),
        names=tuple(node.label for node in nodes),
        node_ids=tuple(node.node_id for node in nodes)
    )


class AdjacencyMatrixView:
    """
    Matrix view bound to a GraphStore.

    Undirected stores always produce a symmetric matrix.
    """

    def __init__(self, store):
        self._store = store

    def compute(self, symmetric: bool = False, weighted: bool = False) -> AdjacencyMatrix:
        snapshot = self._store.snapshot()
        return compute_matrix(
            snapshot.nodes,
            snapshot.edges,
            symmetric=symmetric or not snapshot.directed,
            weighted=weighted
        )

    def toggle_cell(self, row: int, col: int) -> Result:
        """
        Toggle the edge behind matrix cell (row, col).

        The diagonal is a no-op success with a None value.
        """
        snapshot = self._store.snapshot()
        size = len(snapshot.nodes)
        if not (0 <= row < size and 0 <= col < size):
            return Result.fail(
                ErrorCode.INDEX_OUT_OF_RANGE,
                f"Cell ({row}, {col}) outside {size}x{size} matrix",
                row=str(row), col=str(col)
            )
        if row == col:
            return Result.success(None)

        return self._store.toggle_edge(
            snapshot.nodes[row].node_id,
            snapshot.nodes[col].node_id
        )
