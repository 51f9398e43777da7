"""Port for the write-ahead merge journal."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from plantcat.domain.reconciliation.contracts import (
        JournalRun,
        JournalStep,
        PlanStep,
        RunStatus,
        StepStatus,
    )


@runtime_checkable
class MergeJournal(Protocol):
    """Durable record of planned store mutations and their progress."""

    def open_run(self, steps: Sequence[PlanStep]) -> JournalRun: ...

    def mark_step(
        self,
        run_id: str,
        index: int,
        status: StepStatus,
        *,
        error: str | None = None,
    ) -> None: ...

    def close_run(self, run_id: str, status: RunStatus) -> None: ...

    def get_run(self, run_id: str) -> JournalRun | None: ...

    def runs(self, *, status: RunStatus | None = None) -> tuple[JournalRun, ...]: ...

    def steps(self, run_id: str) -> tuple[JournalStep, ...]: ...
