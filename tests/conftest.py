from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from plantcat.adapters.sqlalchemy.journal import SqlAlchemyMergeJournal, shutdown, startup
from plantcat.adapters.sqlalchemy.mappings import create_all_tables

from tests.helpers.catalog import FakeMergeJournal

os.environ.setdefault("PLANTCAT_JOURNAL_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("PLANTCAT_RECONCILE_CONFIG", raising=False)
    monkeypatch.delenv("PLANTCAT_CATALOG_DIR", raising=False)
    monkeypatch.setenv("PLANTCAT_DATA_DIR", str(tmp_path / "data"))


@pytest.fixture
def catalog_dir(tmp_path: Path) -> Path:
    root = tmp_path / "plants"
    root.mkdir()
    return root


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_journal(sqlite_engine: Engine) -> Iterator[SqlAlchemyMergeJournal]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyMergeJournal()
    finally:
        shutdown()


@pytest.fixture
def fake_journal() -> FakeMergeJournal:
    return FakeMergeJournal()
