"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.
No behavior, no side effects, no dependencies.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses for immutability guarantee
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    No silent fallbacks - every error state is enumerated.
    """
    # Store errors
    DUPLICATE_ID = auto()
    INVALID_ID = auto()
    EMPTY_LABEL = auto()
    UNKNOWN_NODE = auto()
    SELF_LOOP = auto()
    DUPLICATE_EDGE = auto()
    INVALID_WEIGHT = auto()
    INVALID_POSITION = auto()
    INVALID_ATTRIBUTE = auto()
    NOT_FOUND = auto()

    # Matrix errors
    INDEX_OUT_OF_RANGE = auto()

    # Algorithm errors
    NEGATIVE_WEIGHT = auto()

    # Layout errors
    INVALID_STRATEGY = auto()

    # Import errors
    MALFORMED_IMPORT = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, **context: str) -> Error:
        """Build an error stamped with the current UTC time."""
        return Error(
            code=code,
            message=message,
            timestamp=Timestamp.now().value,
            context=tuple((key, str(value)) for key, value in context.items())
        )

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )


@dataclass(frozen=True)
class Result:
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """
    value: Optional[object] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @staticmethod
    def success(value: object = None) -> Result:
        return Result(value=value, error=None)

    @staticmethod
    def failure(error: Error) -> Result:
        return Result(value=None, error=error)

    @staticmethod
    def fail(code: ErrorCode, message: str, **context: str) -> Result:
        """Shorthand for Result.failure(Error.create(...))."""
        return Result.failure(Error.create(code, message, **context))


# =============================================================================
# TEMPORAL TYPES (Immutable, explicit semantics)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        # Ensure UTC timezone
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    def to_iso(self) -> str:
        return self.value.isoformat()
