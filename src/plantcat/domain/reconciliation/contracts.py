"""Shared reconciliation contract components.

This module holds the enums and value objects exchanged between the planning
stages, persistence and the merge journal.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

    from plantcat.domain.model import PlantRecord


class MatchRule(StrEnum):
    """Why a record joined a cluster."""

    SEED = "seed"
    EXACT_SPECIES = "exact_species"
    SYNONYM = "synonym"
    NORMALIZED_NAME = "normalized_name"
    SAME_VARIANT = "same_variant"


class StepOperation(StrEnum):
    WRITE = "write"
    DELETE = "delete"


class StepStatus(StrEnum):
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"
    REVERTED = "reverted"


class RunStatus(StrEnum):
    OPEN = "open"
    COMPLETED = "completed"
    PARTIAL = "partial"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True, slots=True, kw_only=True)
class RecordRef:
    """Stable reference to a record inside a merge plan."""

    member: str
    id: int | None = None
    name: str = ""

    @classmethod
    def from_record(cls, record: PlantRecord) -> RecordRef:
        return cls(member=record.member, id=record.id, name=record.name)

    def __str__(self) -> str:
        return f'"{self.name}" ({self.member})' if self.name else self.member


@dataclass(frozen=True, slots=True, kw_only=True)
class PlanStep:
    """One store mutation, with the member's document as it was before the run."""

    group: int
    operation: StepOperation
    member: str
    before: dict[str, Any]
    document: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class JournalStep:
    run_id: str
    index: int
    group: int
    operation: StepOperation
    member: str
    before: dict[str, Any]
    document: dict[str, Any] | None = None
    status: StepStatus = StepStatus.PENDING
    error: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class JournalRun:
    run_id: str
    status: RunStatus
    started_at: datetime
    finished_at: datetime | None = None
    step_count: int = 0
