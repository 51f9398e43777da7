"""SQLAlchemy-backed merge journal."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from plantcat.config.storage import get_journal_config
from plantcat.domain.errors import JournalError
from plantcat.domain.reconciliation.contracts import (
    JournalRun,
    JournalStep,
    RunStatus,
    StepStatus,
)

from .mappings import create_all_tables, reconcile_run_table, reconcile_step_table

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from sqlalchemy.engine import Engine, RowMapping

    from plantcat.domain.reconciliation.contracts import PlanStep

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the SQLAlchemy journal is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy journal not initialised. Call plantcat.adapters.sqlalchemy."
                "journal.startup() before opening the journal."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, journal tables, and session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy journal already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(
        database_uri or get_journal_config().uri,
        future=True,
    )
    create_all_tables(resolved_engine)
    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


def _new_run_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyMergeJournal:
    """Merge journal persisted in two tables: runs and their steps."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self.session_factory: sessionmaker[Session] = session_factory or _STATE.session_factory

    def open_run(self, steps: Sequence[PlanStep]) -> JournalRun:
        run = JournalRun(
            run_id=_new_run_id(),
            status=RunStatus.OPEN,
            started_at=_now(),
            step_count=len(steps),
        )
        step_rows: list[dict[str, Any]] = [
            {
                "run_id": run.run_id,
                "position": position,
                "group_index": step.group,
                "operation": step.operation,
                "member": step.member,
                "before": step.before,
                "document": step.document,
                "status": StepStatus.PENDING,
                "error": None,
            }
            for position, step in enumerate(steps)
        ]
        with self._transaction() as session:
            session.execute(
                insert(reconcile_run_table).values(
                    run_id=run.run_id,
                    status=run.status,
                    started_at=run.started_at,
                    step_count=run.step_count,
                )
            )
            if step_rows:
                session.execute(insert(reconcile_step_table), step_rows)
        return run

    def mark_step(
        self,
        run_id: str,
        index: int,
        status: StepStatus,
        *,
        error: str | None = None,
    ) -> None:
        with self._transaction() as session:
            result = session.execute(
                update(reconcile_step_table)
                .where(reconcile_step_table.c.run_id == run_id)
                .where(reconcile_step_table.c.position == index)
                .values(status=status, error=error)
            )
            if result.rowcount == 0:
                raise JournalError(f"Unknown step {index} of run {run_id}")

    def close_run(self, run_id: str, status: RunStatus) -> None:
        with self._transaction() as session:
            result = session.execute(
                update(reconcile_run_table)
                .where(reconcile_run_table.c.run_id == run_id)
                .values(status=status, finished_at=_now())
            )
            if result.rowcount == 0:
                raise JournalError(f"Unknown reconciliation run {run_id}")

    def get_run(self, run_id: str) -> JournalRun | None:
        with self._transaction() as session:
            row = (
                session.execute(
                    select(reconcile_run_table).where(reconcile_run_table.c.run_id == run_id)
                )
                .mappings()
                .one_or_none()
            )
        return None if row is None else _run_from_row(row)

    def runs(self, *, status: RunStatus | None = None) -> tuple[JournalRun, ...]:
        stmt = select(reconcile_run_table).order_by(
            reconcile_run_table.c.started_at, reconcile_run_table.c.run_id
        )
        if status is not None:
            stmt = stmt.where(reconcile_run_table.c.status == status)
        with self._transaction() as session:
            rows = session.execute(stmt).mappings().all()
        return tuple(_run_from_row(row) for row in rows)

    def steps(self, run_id: str) -> tuple[JournalStep, ...]:
        stmt = (
            select(reconcile_step_table)
            .where(reconcile_step_table.c.run_id == run_id)
            .order_by(reconcile_step_table.c.position)
        )
        with self._transaction() as session:
            rows = session.execute(stmt).mappings().all()
        return tuple(_step_from_row(row) for row in rows)

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        with _session_scope(self.session_factory) as session:
            yield session


def _run_from_row(row: RowMapping) -> JournalRun:
    return JournalRun(
        run_id=row["run_id"],
        status=row["status"],
        started_at=row["started_at"],
        finished_at=row["finished_at"],
        step_count=row["step_count"],
    )


def _step_from_row(row: RowMapping) -> JournalStep:
    return JournalStep(
        run_id=row["run_id"],
        index=row["position"],
        group=row["group_index"],
        operation=row["operation"],
        member=row["member"],
        before=row["before"] or {},
        document=row["document"],
        status=row["status"],
        error=row["error"],
    )


@contextmanager
def _session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise JournalError(f"Journal operation failed: {exc}") from exc
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()
