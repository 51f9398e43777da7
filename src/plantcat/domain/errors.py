"""Exceptions raised by the reconciliation domain and its ports."""

from __future__ import annotations


class ReconciliationError(RuntimeError):
    """Base class for reconciliation failures."""


class MalformedRecordError(ReconciliationError):
    """Raised when a stored document cannot be parsed into a plant record."""

    def __init__(self, *, member: str, reason: str) -> None:
        super().__init__(f"Malformed record {member}: {reason}")
        self.member = member
        self.reason = reason


class MalformedNameError(ReconciliationError, TypeError):
    """Raised when a scientific name is neither a string nor absent."""

    def __init__(self, *, value: object) -> None:
        super().__init__(f"Scientific name must be a string, got {type(value).__name__}")
        self.value = value


class RecordIOError(ReconciliationError):
    """Raised when a single member cannot be read, written or deleted."""

    def __init__(self, *, member: str, operation: str, reason: str) -> None:
        super().__init__(f"Cannot {operation} {member}: {reason}")
        self.member = member
        self.operation = operation
        self.reason = reason


class StoreUnavailableError(ReconciliationError):
    """Raised when the record store as a whole cannot be accessed."""


class JournalError(ReconciliationError):
    """Raised for unknown journal runs or invalid journal transitions."""
