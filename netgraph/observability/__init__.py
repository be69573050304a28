"""
Observability & Audit Layer

RESPONSIBILITY: Append-only audit log of graph mutations and rejections
ALLOWED INPUTS: AuditLogEntry records from any layer
OUTPUTS: Filtered copies of the collected entries

WHAT THIS LAYER MUST NOT DO:
============================
- Modify system behavior
- Filter or interpret events at collection time (only record them)
- Make decisions based on logged data
"""

from __future__ import annotations
from typing import Dict, List, Optional

from ..contracts.events import AuditLogEntry, AuditEventType


class LogCollector:
    """
    Append-only audit collector for one layer.

    Collectors never modify collected data; readers get list copies.
    """

    def __init__(self, layer_name: str):
        self._layer_name = layer_name
        self._entries: List[AuditLogEntry] = []
        self._sequence: int = 0

    def record(
        self,
        event_type: AuditEventType,
        action: str,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        metadata: Optional[Dict[str, object]] = None
    ) -> AuditLogEntry:
        """Build and collect an entry for this layer."""
        entry = AuditLogEntry.create(
            layer=self._layer_name,
            event_type=event_type,
            action=action,
            sequence=self._sequence,
            entity_id=entity_id,
            entity_type=entity_type,
            metadata=metadata
        )
        self.collect(entry)
        return entry

    def collect(self, entry: AuditLogEntry):
        """Collect an audit entry (append-only)."""
        self._entries.append(entry)
        self._sequence += 1

    def get_entries(
        self,
        event_type: Optional[AuditEventType] = None,
        action: Optional[str] = None
    ) -> List[AuditLogEntry]:
        """Get entries, optionally filtered."""
        entries = self._entries

        if event_type:
            entries = [e for e in entries if e.event_type == event_type]

        if action:
            entries = [e for e in entries if e.action == action]

        return list(entries)
