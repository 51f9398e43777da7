from __future__ import annotations

from typing import Any

import pytest

from plantcat.domain.errors import JournalError
from plantcat.domain.reconciliation.contracts import (
    MatchRule,
    RecordRef,
    RunStatus,
    StepStatus,
)
from plantcat.domain.reconciliation.persist import persist_plan, resume_open_runs, rollback_run
from plantcat.domain.reconciliation.plan import GroupMerge, MergePlan

from tests.helpers.catalog import FakeMergeJournal, FakeRecordStore, plant

WINNER_BEFORE = plant("Nerve Plant", "Fittonia albivenis", id=2, images=["b.jpg"])
LOSER_BEFORE = plant("Fittonia", id=1, images=["a.jpg"])
MERGED = {**WINNER_BEFORE, "images": ["b.jpg", "a.jpg"], "commonNames": ["Fittonia"]}


def _store() -> FakeRecordStore:
    return FakeRecordStore(
        {
            "nerve-plant.json": WINNER_BEFORE,
            "fittonia.json": LOSER_BEFORE,
            "pothos.json": plant("Pothos"),
        }
    )


def _plan(document: dict[str, Any] | None = None) -> MergePlan:
    plan = MergePlan()
    plan.merges.append(
        GroupMerge(
            winner=RecordRef(member="nerve-plant.json", id=2, name="Nerve Plant"),
            losers=(RecordRef(member="fittonia.json", id=1, name="Fittonia"),),
            rules=(MatchRule.SYNONYM,),
            document=document if document is not None else MERGED,
        )
    )
    plan.pre_images["nerve-plant.json"] = WINNER_BEFORE
    plan.pre_images["fittonia.json"] = LOSER_BEFORE
    return plan


def test_persist_plan_writes_deletes_and_rebuilds_manifest(
    fake_journal: FakeMergeJournal,
) -> None:
    store = _store()

    result = persist_plan(_plan(), store=store, journal=fake_journal)

    assert result.status is RunStatus.COMPLETED
    assert (result.updated, result.deleted, result.errored, result.skipped) == (1, 1, 0, 0)
    assert store.writes == ["nerve-plant.json"]
    assert store.deletes == ["fittonia.json"]
    assert store.documents["nerve-plant.json"] == MERGED
    assert store.manifest == {"count": 2, "files": ["nerve-plant.json", "pothos.json"]}
    assert result.manifest_count == 2
    run = fake_journal.get_run("run-1")
    assert run is not None
    assert run.status is RunStatus.COMPLETED
    assert [step.status for step in fake_journal.steps("run-1")] == [
        StepStatus.DONE,
        StepStatus.DONE,
    ]


def test_failed_winner_write_skips_loser_deletes(fake_journal: FakeMergeJournal) -> None:
    store = _store()
    store.failing_writes.add("nerve-plant.json")

    result = persist_plan(_plan(), store=store, journal=fake_journal)

    assert result.status is RunStatus.PARTIAL
    assert (result.updated, result.deleted, result.errored, result.skipped) == (0, 0, 1, 1)
    assert "fittonia.json" in store.documents
    steps = fake_journal.steps("run-1")
    assert [step.status for step in steps] == [StepStatus.FAILED, StepStatus.SKIPPED]
    assert steps[0].error is not None
    assert "disk full" in steps[0].error


def test_failed_delete_is_counted_and_run_is_partial(fake_journal: FakeMergeJournal) -> None:
    store = _store()
    store.failing_deletes.add("fittonia.json")

    result = persist_plan(_plan(), store=store, journal=fake_journal)

    assert result.status is RunStatus.PARTIAL
    assert (result.updated, result.deleted, result.errored) == (1, 0, 1)
    assert store.documents["nerve-plant.json"] == MERGED


def test_empty_plan_opens_no_run(fake_journal: FakeMergeJournal) -> None:
    store = _store()

    result = persist_plan(MergePlan(), store=store, journal=fake_journal)

    assert result.run_id is None
    assert fake_journal.runs() == ()
    assert result.manifest_count == 3


def test_resume_finishes_steps_left_open(fake_journal: FakeMergeJournal) -> None:
    store = _store()
    plan = _plan()
    run = fake_journal.open_run(plan.steps())
    store.write("nerve-plant.json", MERGED)
    fake_journal.mark_step(run.run_id, 0, StepStatus.DONE)

    results = resume_open_runs(store=store, journal=fake_journal)

    assert len(results) == 1
    assert results[0].status is RunStatus.COMPLETED
    assert results[0].deleted == 1
    assert results[0].updated == 0
    assert "fittonia.json" not in store.documents
    assert fake_journal.runs(status=RunStatus.OPEN) == ()


def test_resume_retries_failed_and_skipped_steps(fake_journal: FakeMergeJournal) -> None:
    store = _store()
    store.failing_writes.add("nerve-plant.json")
    persist_plan(_plan(), store=store, journal=fake_journal)
    # a crash before closing leaves the run open
    fake_journal.close_run("run-1", RunStatus.OPEN)
    store.failing_writes.clear()

    results = resume_open_runs(store=store, journal=fake_journal)

    assert (results[0].updated, results[0].deleted) == (1, 1)
    assert store.documents["nerve-plant.json"] == MERGED
    assert "fittonia.json" not in store.documents


def test_rollback_restores_pre_images_in_reverse(fake_journal: FakeMergeJournal) -> None:
    store = _store()
    persist_plan(_plan(), store=store, journal=fake_journal)
    store.writes.clear()

    result = rollback_run("run-1", store=store, journal=fake_journal)

    assert result.status is RunStatus.ROLLED_BACK
    assert result.restored == 2
    assert store.writes == ["fittonia.json", "nerve-plant.json"]
    assert store.documents["nerve-plant.json"] == WINNER_BEFORE
    assert store.documents["fittonia.json"] == LOSER_BEFORE
    assert store.manifest is not None
    assert store.manifest["count"] == 3
    assert {step.status for step in fake_journal.steps("run-1")} == {StepStatus.REVERTED}


def test_rollback_only_reverts_done_steps(fake_journal: FakeMergeJournal) -> None:
    store = _store()
    store.failing_deletes.add("fittonia.json")
    persist_plan(_plan(), store=store, journal=fake_journal)
    store.writes.clear()

    result = rollback_run("run-1", store=store, journal=fake_journal)

    assert result.restored == 1
    assert store.writes == ["nerve-plant.json"]
    assert [step.status for step in fake_journal.steps("run-1")] == [
        StepStatus.REVERTED,
        StepStatus.FAILED,
    ]


def test_rollback_with_restore_errors_is_partial(fake_journal: FakeMergeJournal) -> None:
    store = _store()
    persist_plan(_plan(), store=store, journal=fake_journal)
    store.failing_writes.add("fittonia.json")

    result = rollback_run("run-1", store=store, journal=fake_journal)

    assert result.status is RunStatus.PARTIAL
    assert (result.restored, result.errored) == (1, 1)


def test_rollback_twice_or_unknown_run_raises(fake_journal: FakeMergeJournal) -> None:
    store = _store()
    persist_plan(_plan(), store=store, journal=fake_journal)
    rollback_run("run-1", store=store, journal=fake_journal)

    with pytest.raises(JournalError, match="already rolled back"):
        rollback_run("run-1", store=store, journal=fake_journal)
    with pytest.raises(JournalError, match="Unknown"):
        rollback_run("run-404", store=store, journal=fake_journal)
