"""
Contracts Module

This module defines the explicit data types that form the contracts
between layers. All inter-layer communication MUST use these contracts.
No layer may import implementation details from another layer.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. All fallible operations return Result with an explicit ErrorCode
3. Node type is a closed enum, never free-form string matching
4. All timestamps use UTC and are never mutated
"""

from .base import ErrorCode, Error, Result, Timestamp
from .graph import (
    NodeType, NodeStatus, EdgeStatus, Position, Bounds,
    Node, Edge, GraphSnapshot, EdgeToggle, ReplaceReport
)
from .events import AuditEventType, AuditLogEntry

__all__ = [
    'ErrorCode', 'Error', 'Result', 'Timestamp',
    'NodeType', 'NodeStatus', 'EdgeStatus', 'Position', 'Bounds',
    'Node', 'Edge', 'GraphSnapshot', 'EdgeToggle', 'ReplaceReport',
    'AuditEventType', 'AuditLogEntry',
]
