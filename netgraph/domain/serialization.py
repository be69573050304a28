"""
Export payloads.

Everything here produces plain UTF-8 bytes suitable for a file or the
clipboard. JSON output re-imports through JsonGraphAdapter; matrix CSV
output re-imports through MatrixCsvAdapter.
"""

import csv
import io
import json
from enum import Enum
from typing import Any

import numpy as np

from ..contracts.graph import GraphSnapshot
from ..matrix import AdjacencyMatrix


class GraphJSONEncoder(json.JSONEncoder):
    """
    Encoder for graph contract types.

    Contract types go through their to_dict(). Enums and numpy scalars
    become plain values.
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, np.generic):
            return obj.item()
        if hasattr(obj, "to_dict"):
            return obj.to_dict()

        return super().default(obj)


def export_json(snapshot: GraphSnapshot, indent: int = 2) -> bytes:
    """Serialize a snapshot as `{"directed", "nodes", "edges"}` JSON bytes."""
    document = {
        "directed": snapshot.directed,
        "nodes": list(snapshot.nodes),
        "edges": list(snapshot.edges),
    }
    return json.dumps(
        document, cls=GraphJSONEncoder, indent=indent, ensure_ascii=False
    ).encode("utf-8")


def _format_cell(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else repr(float(value))


def export_matrix_csv(matrix: AdjacencyMatrix) -> bytes:
    """
    Serialize a matrix in the labelled layout the importer reads:
    header row of names, then one row per node led by its name.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([""] + list(matrix.names))
    for name, row in zip(matrix.names, matrix.matrix):
        writer.writerow([name] + [_format_cell(value) for value in row])
    return buffer.getvalue().encode("utf-8")
