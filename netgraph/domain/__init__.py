"""Export serialization for graph snapshots and matrices."""

from .serialization import GraphJSONEncoder, export_json, export_matrix_csv

__all__ = ['GraphJSONEncoder', 'export_json', 'export_matrix_csv']
