"""SQLAlchemy adapter package for the merge journal."""

from __future__ import annotations

from .journal import (
    SqlAlchemyMergeJournal,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from .mappings import create_all_tables, metadata, reconcile_run_table, reconcile_step_table

__all__ = [
    "SqlAlchemyMergeJournal",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "metadata",
    "reconcile_run_table",
    "reconcile_step_table",
    "shutdown",
    "startup",
]
