"""Run stages and the summary reported after every reconciliation run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class RunStage(StrEnum):
    LOADING = "loading"
    ANNOTATING = "annotating"
    GROUPING = "grouping"
    MERGING = "merging"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class RunSummary:
    """Counters and audit trail of one run; filled in as stages progress."""

    dry_run: bool = False
    stage: RunStage = RunStage.LOADING
    failed_stage: RunStage | None = None
    scanned: int = 0
    malformed: int = 0
    groups_merged: int = 0
    updated: int = 0
    deleted: int = 0
    errored: int = 0
    skipped: int = 0
    resumed_runs: int = 0
    run_id: str | None = None
    error: str | None = None
    malformed_members: list[str] = field(default_factory=list[str])
    audit: list[str] = field(default_factory=list[str])

    @property
    def failed(self) -> bool:
        return self.stage is RunStage.FAILED

    def advance(self, stage: RunStage) -> None:
        self.stage = stage

    def fail(self, error: BaseException) -> None:
        self.failed_stage = self.stage
        self.stage = RunStage.FAILED
        self.error = str(error)

    def note_malformed(self, member: str) -> None:
        self.malformed += 1
        self.malformed_members.append(member)

    def lines(self) -> list[str]:
        prefix = "Dry run: " if self.dry_run else ""
        lines = [
            f"{prefix}scanned={self.scanned} malformed={self.malformed} "
            f"groups_merged={self.groups_merged} updated={self.updated} "
            f"deleted={self.deleted} errored={self.errored}"
        ]
        if self.skipped:
            lines.append(f"Skipped {self.skipped} deletes after failed winner writes")
        if self.resumed_runs:
            lines.append(f"Resumed {self.resumed_runs} interrupted run(s)")
        if self.audit:
            lines.extend(self.audit)
        elif not self.failed:
            lines.append("No duplicate groups found")
        if self.run_id is not None:
            lines.append(f"Journal run {self.run_id}")
        if self.failed:
            lines.append(f"Run failed during {self.failed_stage}: {self.error}")
        return lines
