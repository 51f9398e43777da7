from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import inspect, select

from plantcat.adapters.sqlalchemy import journal as journal_module
from plantcat.adapters.sqlalchemy.journal import SqlAlchemyMergeJournal, StartupError
from plantcat.adapters.sqlalchemy.mappings import reconcile_step_table
from plantcat.domain.errors import JournalError
from plantcat.domain.reconciliation.contracts import (
    PlanStep,
    RunStatus,
    StepOperation,
    StepStatus,
)

from tests.helpers.catalog import plant

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

BEFORE = plant("Nerve Plant", "Fittonia albivenis", id=2, zebra="z", alpha="a")
MERGED = {**BEFORE, "commonNames": ["Fittonia"]}
STEPS = (
    PlanStep(
        group=0,
        operation=StepOperation.WRITE,
        member="nerve-plant.json",
        before=BEFORE,
        document=MERGED,
    ),
    PlanStep(
        group=0,
        operation=StepOperation.DELETE,
        member="fittonia.json",
        before=plant("Fittonia", id=1),
    ),
)


def test_open_run_persists_steps_with_pre_images(
    sqlite_journal: SqlAlchemyMergeJournal,
) -> None:
    run = sqlite_journal.open_run(STEPS)

    assert run.status is RunStatus.OPEN
    assert run.step_count == 2
    assert len(run.run_id) == 32
    steps = sqlite_journal.steps(run.run_id)
    assert [(step.index, step.operation, step.member) for step in steps] == [
        (0, StepOperation.WRITE, "nerve-plant.json"),
        (1, StepOperation.DELETE, "fittonia.json"),
    ]
    assert all(step.status is StepStatus.PENDING for step in steps)
    assert steps[0].before == BEFORE
    assert list(steps[0].before) == list(BEFORE)
    assert steps[0].document == MERGED
    assert steps[1].document is None


def test_mark_step_and_close_run(sqlite_journal: SqlAlchemyMergeJournal) -> None:
    run = sqlite_journal.open_run(STEPS)

    sqlite_journal.mark_step(run.run_id, 0, StepStatus.DONE)
    sqlite_journal.mark_step(run.run_id, 1, StepStatus.FAILED, error="permission denied")
    sqlite_journal.close_run(run.run_id, RunStatus.PARTIAL)

    steps = sqlite_journal.steps(run.run_id)
    assert [step.status for step in steps] == [StepStatus.DONE, StepStatus.FAILED]
    assert steps[1].error == "permission denied"
    stored = sqlite_journal.get_run(run.run_id)
    assert stored is not None
    assert stored.status is RunStatus.PARTIAL
    assert stored.finished_at is not None
    assert stored.finished_at.tzinfo is not None


def test_runs_filter_by_status(sqlite_journal: SqlAlchemyMergeJournal) -> None:
    first = sqlite_journal.open_run(STEPS)
    second = sqlite_journal.open_run(STEPS)
    sqlite_journal.close_run(first.run_id, RunStatus.COMPLETED)

    assert {run.run_id for run in sqlite_journal.runs()} == {first.run_id, second.run_id}
    assert [run.run_id for run in sqlite_journal.runs(status=RunStatus.OPEN)] == [second.run_id]


def test_unknown_runs_and_steps(sqlite_journal: SqlAlchemyMergeJournal) -> None:
    run = sqlite_journal.open_run(STEPS)

    assert sqlite_journal.get_run("missing") is None
    assert sqlite_journal.steps("missing") == ()
    with pytest.raises(JournalError):
        sqlite_journal.close_run("missing", RunStatus.COMPLETED)
    with pytest.raises(JournalError):
        sqlite_journal.mark_step(run.run_id, 7, StepStatus.DONE)


def test_empty_run_has_no_steps(sqlite_journal: SqlAlchemyMergeJournal) -> None:
    run = sqlite_journal.open_run(())

    assert run.step_count == 0
    assert sqlite_journal.steps(run.run_id) == ()


def test_steps_are_stored_in_plan_order(
    sqlite_engine: Engine, sqlite_journal: SqlAlchemyMergeJournal
) -> None:
    run = sqlite_journal.open_run(STEPS)

    with sqlite_engine.connect() as connection:
        operations = connection.execute(
            select(reconcile_step_table.c.operation).where(
                reconcile_step_table.c.run_id == run.run_id
            ).order_by(reconcile_step_table.c.position)
        ).scalars()
        assert list(operations) == [StepOperation.WRITE, StepOperation.DELETE]
    assert {"reconcile_run", "reconcile_step"} <= set(inspect(sqlite_engine).get_table_names())


def test_journal_requires_startup() -> None:
    journal_module.shutdown()

    assert not journal_module.is_started()
    with pytest.raises(StartupError):
        SqlAlchemyMergeJournal()


def test_startup_twice_needs_force(sqlite_engine: Engine) -> None:
    journal_module.startup(engine=sqlite_engine, force=True)
    try:
        assert journal_module.configured_engine() is sqlite_engine
        with pytest.raises(StartupError):
            journal_module.startup(engine=sqlite_engine)
    finally:
        journal_module.shutdown()
