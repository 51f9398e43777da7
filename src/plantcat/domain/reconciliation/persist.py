"""Journaled persistence of merge plans.

Responsibilities of this stage:
- record every planned mutation (with pre-images) before touching the store
- execute writes and deletes in plan order, marking each step in the journal
- finish runs interrupted by a crash, and roll finished runs back

A loser is only deleted once its group's winner has been written, so a failed
write never loses data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from plantcat.domain.errors import JournalError, RecordIOError

from .contracts import RunStatus, StepOperation, StepStatus

if TYPE_CHECKING:
    from collections.abc import Iterable

    from plantcat.domain.ports import MergeJournal, RecordStore

    from .contracts import JournalStep
    from .plan import MergePlan

log = logging.getLogger(__name__)

_RETRYABLE = frozenset({StepStatus.PENDING, StepStatus.FAILED, StepStatus.SKIPPED})


@dataclass(slots=True)
class PersistenceResult:
    """Summary of store mutations for one journal run."""

    run_id: str | None = None
    status: RunStatus | None = None
    updated: int = 0
    deleted: int = 0
    restored: int = 0
    errored: int = 0
    skipped: int = 0
    manifest_count: int | None = None

    @property
    def clean(self) -> bool:
        return self.errored == 0 and self.skipped == 0


def persist_plan(
    plan: MergePlan,
    *,
    store: RecordStore,
    journal: MergeJournal,
) -> PersistenceResult:
    """Journal ``plan``, apply it to ``store`` and rebuild the manifest."""

    if plan.is_empty:
        result = PersistenceResult()
        _rebuild_manifest(store, result)
        return result

    run = journal.open_run(plan.steps())
    log.info("Opened journal run %s with %d steps", run.run_id, run.step_count)
    result = PersistenceResult(run_id=run.run_id)
    _execute_steps(
        run.run_id,
        journal.steps(run.run_id),
        store=store,
        journal=journal,
        result=result,
        completed_groups=set(),
    )
    _rebuild_manifest(store, result)
    _close(run.run_id, journal=journal, result=result)
    return result


def resume_open_runs(*, store: RecordStore, journal: MergeJournal) -> list[PersistenceResult]:
    """Finish runs that were left open, re-executing every step not yet done."""

    results: list[PersistenceResult] = []
    for run in journal.runs(status=RunStatus.OPEN):
        log.warning("Resuming interrupted journal run %s", run.run_id)
        steps = journal.steps(run.run_id)
        completed_groups = {
            step.group
            for step in steps
            if step.operation is StepOperation.WRITE and step.status is StepStatus.DONE
        }
        result = PersistenceResult(run_id=run.run_id)
        _execute_steps(
            run.run_id,
            [step for step in steps if step.status in _RETRYABLE],
            store=store,
            journal=journal,
            result=result,
            completed_groups=completed_groups,
        )
        _rebuild_manifest(store, result)
        _close(run.run_id, journal=journal, result=result)
        results.append(result)
    return results


def rollback_run(run_id: str, *, store: RecordStore, journal: MergeJournal) -> PersistenceResult:
    """Restore the pre-image of every member a run changed, newest change first."""

    run = journal.get_run(run_id)
    if run is None:
        raise JournalError(f"Unknown reconciliation run {run_id}")
    if run.status is RunStatus.ROLLED_BACK:
        raise JournalError(f"Reconciliation run {run_id} is already rolled back")

    result = PersistenceResult(run_id=run_id)
    for step in reversed(journal.steps(run_id)):
        if step.status is not StepStatus.DONE:
            continue
        try:
            store.write(step.member, step.before)
        except RecordIOError as exc:
            log.error("Cannot restore %s from run %s: %s", step.member, run_id, exc)
            result.errored += 1
            continue
        journal.mark_step(run_id, step.index, StepStatus.REVERTED)
        result.restored += 1

    _rebuild_manifest(store, result)
    result.status = RunStatus.ROLLED_BACK if result.errored == 0 else RunStatus.PARTIAL
    journal.close_run(run_id, result.status)
    log.info("Rolled back run %s: restored=%d errored=%d", run_id, result.restored, result.errored)
    return result


def _execute_steps(
    run_id: str,
    steps: Iterable[JournalStep],
    *,
    store: RecordStore,
    journal: MergeJournal,
    result: PersistenceResult,
    completed_groups: set[int],
) -> None:
    for step in steps:
        if step.operation is StepOperation.DELETE and step.group not in completed_groups:
            log.warning(
                "Skipping delete of %s: winner of group %d was not written",
                step.member,
                step.group,
            )
            journal.mark_step(run_id, step.index, StepStatus.SKIPPED)
            result.skipped += 1
            continue

        try:
            _execute_step(step, store=store)
        except RecordIOError as exc:
            log.error("Step %d of run %s failed: %s", step.index, run_id, exc)
            journal.mark_step(run_id, step.index, StepStatus.FAILED, error=str(exc))
            result.errored += 1
            continue

        journal.mark_step(run_id, step.index, StepStatus.DONE)
        if step.operation is StepOperation.WRITE:
            completed_groups.add(step.group)
            result.updated += 1
        else:
            result.deleted += 1


def _execute_step(step: JournalStep, *, store: RecordStore) -> None:
    if step.operation is StepOperation.DELETE:
        store.delete(step.member)
        return
    if step.document is None:
        raise JournalError(f"Write step {step.index} of run {step.run_id} has no document")
    store.write(step.member, step.document)


def _rebuild_manifest(store: RecordStore, result: PersistenceResult) -> None:
    try:
        result.manifest_count = store.rebuild_manifest()
    except RecordIOError as exc:
        log.error("Cannot rebuild manifest: %s", exc)
        result.errored += 1


def _close(run_id: str, *, journal: MergeJournal, result: PersistenceResult) -> None:
    result.status = RunStatus.COMPLETED if result.clean else RunStatus.PARTIAL
    journal.close_run(run_id, result.status)
    log.info(
        "Closed journal run %s as %s: updated=%d deleted=%d errored=%d skipped=%d",
        run_id,
        result.status,
        result.updated,
        result.deleted,
        result.errored,
        result.skipped,
    )
