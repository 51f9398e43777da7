"""SQLAlchemy table metadata for the merge journal."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
)

from plantcat.domain.reconciliation.contracts import RunStatus, StepOperation, StepStatus

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class JSONDocumentType(TypeDecorator[dict[str, Any]]):
    """A JSON object stored as text with its key order intact."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, Any] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, Any] | None:
        _ = dialect
        if value is None:
            return None
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return None
        return cast(dict[str, Any], loaded)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

reconcile_run_table = Table(
    "reconcile_run",
    metadata,
    Column("run_id", String(32), primary_key=True),
    Column("status", Enum(RunStatus, native_enum=False), nullable=False),
    Column("started_at", UTCDateTime, nullable=False),
    Column("finished_at", UTCDateTime, nullable=True),
    Column("step_count", Integer, nullable=False, default=0),
)

reconcile_step_table = Table(
    "reconcile_step",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "run_id",
        String(32),
        ForeignKey("reconcile_run.run_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("position", Integer, nullable=False),
    Column("group_index", Integer, nullable=False),
    Column("operation", Enum(StepOperation, native_enum=False), nullable=False),
    Column("member", String, nullable=False),
    Column("before", JSONDocumentType, nullable=False),
    Column("document", JSONDocumentType, nullable=True),
    Column("status", Enum(StepStatus, native_enum=False), nullable=False),
    Column("error", Text, nullable=True),
    UniqueConstraint("run_id", "position"),
)


def create_all_tables(engine: Engine) -> None:
    """Create the journal tables if they do not exist yet."""

    log.info("Creating journal tables")
    metadata.create_all(engine)
