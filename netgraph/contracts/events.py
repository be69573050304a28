"""
Audit Event Contracts

Immutable records emitted by layers for the observability collector.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple
import hashlib

from .base import Timestamp


class AuditEventType(Enum):
    """Explicit audit event types."""
    MUTATION = "mutation"
    IMPORT = "import"
    EXPORT = "export"
    LAYOUT = "layout"
    SIMULATION = "simulation"
    ERROR = "error"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: Timestamp
    layer: str  # Which layer generated this
    action: str
    entity_id: Optional[str] = None
    entity_type: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(
        layer: str,
        event_type: AuditEventType,
        action: str,
        sequence: int,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        metadata: Optional[Dict[str, object]] = None
    ) -> AuditLogEntry:
        """Create an entry with an id derived from layer, sequence and action."""
        timestamp = Timestamp.now()
        seed = f"{layer}|{sequence}|{action}|{entity_id or ''}|{timestamp.to_iso()}"
        entry_id = "audit_" + hashlib.sha256(seed.encode('utf-8')).hexdigest()[:16]
        return AuditLogEntry(
            entry_id=entry_id,
            event_type=event_type,
            timestamp=timestamp,
            layer=layer,
            action=action,
            entity_id=entity_id,
            entity_type=entity_type,
            metadata=tuple(
                (key, str(value)) for key, value in sorted((metadata or {}).items())
            )
        )

    def get_metadata(self, key: str) -> Optional[str]:
        for entry_key, value in self.metadata:
            if entry_key == key:
                return value
        return None
