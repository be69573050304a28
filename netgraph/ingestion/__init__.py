"""
Ingestion Layer

RESPONSIBILITY: Turn import payloads into validated (nodes, edges)
ALLOWED INPUTS: Byte payloads (CSV matrix, CSV edge list, JSON), tabular rows
OUTPUTS: GraphImport (immutable) inside a Result

WHAT THIS LAYER MUST NOT DO:
============================
- Touch the graph store (the caller applies the import)
- Parse spreadsheet binaries (the caller hands over rows)
- Raise on malformed input; every problem is a MALFORMED_IMPORT result

BOUNDARY ENFORCEMENT:
=====================
Validation happens completely, up front, before anything is returned.
A failed import therefore never corrupts the current graph.

MATRIX SEMANTICS:
=================
Cell (i, j) is the strength of the relationship from variable i to
variable j. Cells at or above the threshold become edges weighted by the
cell value. Symmetric matrices (correlations) yield one edge per pair,
read from the upper triangle; asymmetric matrices (influence matrices)
yield one directed edge per qualifying cell. Non-numeric cells count
as 0.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
import csv
import io
import json
import math

import numpy as np

from ..contracts.base import ErrorCode, Result
from ..contracts.graph import Edge, Node, NodeStatus, NodeType, Position
from ..contracts.events import AuditEventType, AuditLogEntry
from ..observability import LogCollector


class PayloadFormat(Enum):
    """Supported import payload formats."""
    MATRIX_CSV = "matrix_csv"
    EDGE_LIST_CSV = "edge_list_csv"
    JSON = "json"
    SAMPLE = "sample"


@dataclass(frozen=True)
class GraphImport:
    """
    Immutable result of a successful import.

    `variables` and `matrix` are only populated for matrix imports.
    """
    payload_format: PayloadFormat
    nodes: Tuple[Node, ...]
    edges: Tuple[Edge, ...]
    variables: Tuple[str, ...] = field(default_factory=tuple)
    matrix: Tuple[Tuple[float, ...], ...] = field(default_factory=tuple)


def _default_type_keywords() -> Dict[NodeType, Tuple[str, ...]]:
    return {
        NodeType.SERVER: (
            "planificación", "estratégica", "políticas",
            "planning", "strategic", "policy", "policies",
        ),
        NodeType.ROUTER: (
            "información", "digital", "herramientas",
            "information", "tools",
        ),
    }


@dataclass
class ImportConfig:
    """Configuration for import parsing."""
    threshold: float = 2.0
    id_prefix: str = "var_"
    encoding: str = "utf-8-sig"
    type_keywords: Dict[NodeType, Tuple[str, ...]] = field(
        default_factory=_default_type_keywords
    )
    default_type: NodeType = NodeType.WORKSTATION


# =============================================================================
# CELL HELPERS
# =============================================================================

def coerce_number(value: Any, default: float = 0.0) -> float:
    """Coerce a cell to float; blanks give `default`, garbage gives 0."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return 0.0
        return number if math.isfinite(number) else 0.0
    if value is None:
        return default
    text = str(value).strip()
    if not text:
        return default
    try:
        number = float(text.replace(",", "."))
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _malformed(message: str, **context: str) -> Result:
    return Result.fail(ErrorCode.MALFORMED_IMPORT, message, **context)


def classify_variable(name: str, config: Optional[ImportConfig] = None) -> NodeType:
    """Pick a node type from keywords found in a variable name."""
    config = config or ImportConfig()
    lowered = name.lower()
    for node_type, keywords in config.type_keywords.items():
        if any(keyword in lowered for keyword in keywords):
            return node_type
    return config.default_type


# =============================================================================
# MATRIX IMPORT
# =============================================================================

def import_matrix(
    matrix: Sequence[Sequence[Any]],
    variables: Optional[Sequence[str]] = None,
    config: Optional[ImportConfig] = None
) -> Result:
    """
    Build nodes and edges from a square relationship matrix.

    Variable names default to "Variable 1".."Variable n".
    """
    config = config or ImportConfig()
    size = len(matrix)
    if size == 0:
        return _malformed("Matrix is empty")
    for index, row in enumerate(matrix):
        if len(row) != size:
            return _malformed(
                f"Matrix is not square: row {index} has {len(row)} cells, expected {size}",
                row=str(index)
            )

    if variables is None:
        variables = [f"Variable {i + 1}" for i in range(size)]
    variables = [str(name).strip() for name in variables]
    if len(variables) != size:
        return _malformed(f"{len(variables)} variable names for a {size}x{size} matrix")
    if any(not name for name in variables):
        return _malformed("Variable names must not be blank")
    if len(set(variables)) != len(variables):
        return _malformed("Variable names must be unique")

    grid = np.array([[coerce_number(cell) for cell in row] for row in matrix], dtype=float)
    symmetric = bool(np.array_equal(grid, grid.T))
    ids = [f"{config.id_prefix}{i}" for i in range(size)]
    row_sums = grid.sum(axis=1)
    col_sums = grid.sum(axis=0)

    nodes = tuple(
        Node(
            node_id=ids[i],
            label=variables[i],
            node_type=classify_variable(variables[i], config),
            influence=float(row_sums[i]),
            dependence=float(col_sums[i])
        )
        for i in range(size)
    )

    edges = []
    for i in range(size):
        for j in range(size):
            if i == j or (symmetric and j < i):
                continue
            value = float(grid[i, j])
            if value >= config.threshold:
                edges.append(Edge(source=ids[i], target=ids[j], weight=value))

    return Result.success(GraphImport(
        payload_format=PayloadFormat.MATRIX_CSV,
        nodes=nodes,
        edges=tuple(edges),
        variables=tuple(variables),
        matrix=tuple(tuple(float(v) for v in row) for row in grid)
    ))


def parse_matrix_rows(
    rows: Sequence[Sequence[Any]],
    config: Optional[ImportConfig] = None
) -> Result:
    """
    Import a labelled matrix table.

    Row 0 is the header (first cell ignored, then variable names);
    column 0 of every other row is a row label and is ignored.
    """
    rows = [list(row) for row in rows]
    while rows and all(_is_blank(cell) for cell in rows[-1]):
        rows.pop()
    if not rows:
        return _malformed("Payload has no rows")

    header = rows[0][1:]
    while header and _is_blank(header[-1]):
        header.pop()
    if not header:
        return _malformed("Header row has no variable names")
    size = len(header)

    body = rows[1:]
    if len(body) != size:
        return _malformed(
            f"Matrix is not square: {len(body)} data rows for {size} variables"
        )

    matrix = []
    for index, row in enumerate(body, start=1):
        cells = row[1:]
        if len(cells) < size:
            return _malformed(f"Row {index} has {len(cells)} cells, expected {size}",
                              row=str(index))
        if any(not _is_blank(cell) for cell in cells[size:]):
            return _malformed(f"Row {index} has cells beyond the header",
                              row=str(index))
        matrix.append(cells[:size])

    return import_matrix(matrix, [str(name) for name in header], config)


# =============================================================================
# IMPORT ADAPTERS (Strategy pattern for different payloads)
# =============================================================================

class ImportAdapter(ABC):
    """
    Abstract base for payload-specific import adapters.

    Each adapter knows how to decode and validate ONE payload format.
    """

    def __init__(self, config: Optional[ImportConfig] = None):
        self._config = config or ImportConfig()

    @property
    @abstractmethod
    def payload_format(self) -> PayloadFormat:
        """Return the payload format this adapter handles."""
        pass

    @abstractmethod
    def parse(self, payload: bytes) -> Result:
        """Decode and validate a payload into a GraphImport."""
        pass

    def validate(self, payload: bytes) -> Result:
        """Check the payload without keeping the parsed graph."""
        result = self.parse(payload)
        if result.is_failure:
            return result
        return Result.success(True)

    def _decode(self, payload: Union[bytes, str]) -> Result:
        if isinstance(payload, str):
            text = payload
        else:
            try:
                text = payload.decode(self._config.encoding)
            except UnicodeDecodeError as exc:
                return _malformed(f"Payload is not valid {self._config.encoding}: {exc}")
        if not text.strip():
            return _malformed("Payload is empty")
        return Result.success(text)


class MatrixCsvAdapter(ImportAdapter):
    """Adapter for labelled relationship matrices exported as CSV."""

    @property
    def payload_format(self) -> PayloadFormat:
        return PayloadFormat.MATRIX_CSV

    def parse(self, payload: bytes) -> Result:
        decoded = self._decode(payload)
        if decoded.is_failure:
            return decoded
        try:
            rows = list(csv.reader(io.StringIO(decoded.value)))
        except csv.Error as exc:
            return _malformed(f"Invalid CSV: {exc}")
        return parse_matrix_rows(rows, self._config)


class EdgeListCsvAdapter(ImportAdapter):
    """
    Adapter for edge-list CSV with a `source,target[,weight][,type]` header.

    Nodes are created from edge endpoints in first-seen order.
    """

    @property
    def payload_format(self) -> PayloadFormat:
        return PayloadFormat.EDGE_LIST_CSV

    def parse(self, payload: bytes) -> Result:
        decoded = self._decode(payload)
        if decoded.is_failure:
            return decoded
        try:
            reader = csv.DictReader(io.StringIO(decoded.value))
            fieldnames = [name.strip().lower() for name in (reader.fieldnames or [])]
            reader.fieldnames = fieldnames
            rows = list(reader)
        except csv.Error as exc:
            return _malformed(f"Invalid CSV: {exc}")

        if "source" not in fieldnames or "target" not in fieldnames:
            return _malformed("Edge list needs 'source' and 'target' columns")

        seen: Dict[str, Node] = {}
        edges: List[Edge] = []
        for line, row in enumerate(rows, start=2):
            source = (row.get("source") or "").strip()
            target = (row.get("target") or "").strip()
            if not source and not target:
                continue
            if not source or not target:
                return _malformed(f"Line {line} is missing an endpoint", line=str(line))
            for node_id in (source, target):
                if node_id not in seen:
                    seen[node_id] = Node(node_id=node_id, label=node_id)
            edges.append(Edge(
                source=source,
                target=target,
                weight=coerce_number(row.get("weight"), default=1.0),
                edge_type=(row.get("type") or "").strip() or None
            ))

        if not seen:
            return _malformed("Edge list has no edges")

        return Result.success(GraphImport(
            payload_format=PayloadFormat.EDGE_LIST_CSV,
            nodes=tuple(seen.values()),
            edges=tuple(edges)
        ))


class JsonGraphAdapter(ImportAdapter):
    """
    Adapter for `{"nodes": [...], "edges": [...]}` documents.

    Accepts the export format and the common D3 shape
    (`links`, `name`, `fx`/`fy`, endpoint objects with an `id`).
    """

    @property
    def payload_format(self) -> PayloadFormat:
        return PayloadFormat.JSON

    def parse(self, payload: bytes) -> Result:
        decoded = self._decode(payload)
        if decoded.is_failure:
            return decoded
        try:
            document = json.loads(decoded.value)
        except json.JSONDecodeError as exc:
            return _malformed(f"Invalid JSON: {exc.msg}", line=str(exc.lineno))
        except ValueError as exc:
            # Integer literals past the int/str digit limit
            return _malformed(f"Invalid JSON: {exc}")

        if not isinstance(document, dict):
            return _malformed("JSON root must be an object")
        raw_nodes = document.get("nodes")
        raw_edges = document.get("edges", document.get("links"))
        if not isinstance(raw_nodes, list):
            return _malformed("JSON document has no 'nodes' array")
        if not isinstance(raw_edges, list):
            return _malformed("JSON document has no 'edges' or 'links' array")

        nodes = []
        for index, item in enumerate(raw_nodes):
            node = self._parse_node(item)
            if node is None:
                return _malformed(f"Node {index} has no usable id", index=str(index))
            nodes.append(node)

        edges = []
        for index, item in enumerate(raw_edges):
            edge = self._parse_edge(item)
            if edge is None:
                return _malformed(f"Edge {index} has no usable endpoints", index=str(index))
            edges.append(edge)

        return Result.success(GraphImport(
            payload_format=PayloadFormat.JSON,
            nodes=tuple(nodes),
            edges=tuple(edges)
        ))

    @staticmethod
    def _identifier(value: Any) -> Optional[str]:
        if isinstance(value, dict):
            value = value.get("id")
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, (int, float, str)):
            text = str(value).strip()
            return text or None
        return None

    def _parse_node(self, item: Any) -> Optional[Node]:
        if not isinstance(item, dict):
            return None
        node_id = self._identifier(item.get("id", item.get("node_id")))
        if node_id is None:
            return None
        label = item.get("label", item.get("name"))
        label = str(label).strip() if label is not None else ""

        pinned = bool(item.get("pinned", False))
        position = None
        if item.get("fx") is not None and item.get("fy") is not None:
            position = Position(coerce_number(item["fx"]), coerce_number(item["fy"]))
            pinned = True
        elif item.get("x") is not None and item.get("y") is not None:
            position = Position(coerce_number(item["x"]), coerce_number(item["y"]))
        if position is None:
            pinned = False

        def optional_number(key: str) -> Optional[float]:
            value = item.get(key)
            return None if value is None else coerce_number(value)

        return Node(
            node_id=node_id,
            label=label or node_id,
            node_type=NodeType.parse(item.get("type", item.get("node_type"))),
            group=str(item["group"]) if item.get("group") is not None else None,
            health=coerce_number(item.get("health"), default=100.0),
            vulnerability=coerce_number(item.get("vulnerability")),
            security_level=coerce_number(
                item.get("securityLevel", item.get("security_level"))
            ),
            importance=coerce_number(item.get("importance"), default=1.0),
            status=NodeStatus.parse(item.get("status", NodeStatus.ONLINE)),
            position=position,
            pinned=pinned,
            influence=optional_number("influence"),
            dependence=optional_number("dependence")
        )

    def _parse_edge(self, item: Any) -> Optional[Edge]:
        if not isinstance(item, dict):
            return None
        source = self._identifier(item.get("source"))
        target = self._identifier(item.get("target"))
        if source is None or target is None:
            return None
        edge_type = item.get("type", item.get("edge_type"))
        return Edge(
            source=source,
            target=target,
            weight=coerce_number(item.get("weight", item.get("value")), default=1.0),
            edge_type=str(edge_type) if edge_type is not None else None
        )


# =============================================================================
# IMPORT ENGINE
# =============================================================================

def detect_format(payload: Union[bytes, str]) -> PayloadFormat:
    """Guess the payload format from its first meaningful characters."""
    if isinstance(payload, bytes):
        payload = payload[:512].decode("utf-8", errors="ignore")
    text = payload.lstrip("\ufeff \t\r\n")
    if text.startswith("{"):
        return PayloadFormat.JSON
    first_cell = text.split("\n", 1)[0].split(",", 1)[0].strip().strip('"').lower()
    if first_cell == "source":
        return PayloadFormat.EDGE_LIST_CSV
    return PayloadFormat.MATRIX_CSV


class ImportEngine:
    """
    Import orchestration over registered adapters.

    BOUNDARY ENFORCEMENT:
    - Produces GraphImport values only
    - Never mutates the graph store
    """

    def __init__(self, config: Optional[ImportConfig] = None):
        self._config = config or ImportConfig()
        self._adapters: Dict[PayloadFormat, ImportAdapter] = {}
        self._audit = LogCollector("ingestion")

        self._register_default_adapters()

    def _register_default_adapters(self):
        """Register built-in adapter implementations."""
        self.register_adapter(MatrixCsvAdapter(self._config))
        self.register_adapter(EdgeListCsvAdapter(self._config))
        self.register_adapter(JsonGraphAdapter(self._config))

    def register_adapter(self, adapter: ImportAdapter):
        """Register an import adapter for a payload format."""
        self._adapters[adapter.payload_format] = adapter

    def get_adapter(self, payload_format: PayloadFormat) -> Optional[ImportAdapter]:
        return self._adapters.get(payload_format)

    def import_payload(
        self,
        payload: Union[bytes, str],
        payload_format: Union[PayloadFormat, str, None] = None
    ) -> Result:
        """
        Parse a payload with the adapter for its format.

        The format is detected from the content when not given.
        """
        if payload_format is None:
            payload_format = detect_format(payload)
        try:
            payload_format = PayloadFormat(payload_format)
        except ValueError:
            return self._fail(_malformed(f"Unknown payload format: {payload_format!r}"))

        adapter = self.get_adapter(payload_format)
        if adapter is None:
            return self._fail(_malformed(f"No adapter for format: {payload_format.value}"))

        result = adapter.parse(payload)
        if result.is_failure:
            return self._fail(result, payload_format)

        graph_import = result.value
        self._audit.record(
            AuditEventType.IMPORT,
            "import_completed",
            metadata={
                "format": payload_format.value,
                "nodes": len(graph_import.nodes),
                "edges": len(graph_import.edges),
            }
        )
        return result

    def import_rows(self, rows: Sequence[Sequence[Any]]) -> Result:
        """Import a labelled matrix table handed over by a spreadsheet layer."""
        result = parse_matrix_rows(rows, self._config)
        if result.is_failure:
            return self._fail(result, PayloadFormat.MATRIX_CSV)
        self._audit.record(AuditEventType.IMPORT, "rows_imported",
                           metadata={"nodes": len(result.value.nodes),
                                     "edges": len(result.value.edges)})
        return result

    def _fail(self, result: Result, payload_format: Optional[PayloadFormat] = None) -> Result:
        format_name = payload_format.value if payload_format else "unknown"
        error = result.error.with_context("format", format_name)
        self._audit.record(
            AuditEventType.ERROR,
            "import_failed",
            metadata={
                "format": format_name,
                "message": error.message,
            }
        )
        return Result.failure(error)

    def get_audit_log(self) -> List[AuditLogEntry]:
        """Return copy of audit log entries."""
        return self._audit.get_entries()
