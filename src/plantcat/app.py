"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from plantcat.adapters.json_store import JsonRecordStore
from plantcat.adapters.sqlalchemy.journal import SqlAlchemyMergeJournal, is_started, startup
from plantcat.config import get_catalog_config, load_reconciliation_config
from plantcat.domain.reconciliation import ReconciliationEngine, rollback_run

if TYPE_CHECKING:
    from pathlib import Path

    from plantcat.config import ReconciliationConfig
    from plantcat.domain.ports import MergeJournal, RecordStore
    from plantcat.domain.reconciliation import PersistenceResult, RunSummary
    from plantcat.domain.reconciliation.contracts import JournalRun


log = getLogger(__name__)


def _open_journal(journal_uri: str | None) -> MergeJournal:
    if journal_uri is not None:
        startup(database_uri=journal_uri, force=True)
    elif not is_started():
        startup()
    return SqlAlchemyMergeJournal()


def _open_store(catalog_dir: Path | None) -> RecordStore:
    catalog = get_catalog_config(catalog_dir)
    return JsonRecordStore(catalog.resolve_root(), manifest_filename=catalog.manifest_filename)


def reconcile_catalog(
    *,
    catalog_dir: Path | None = None,
    config_path: Path | None = None,
    config: ReconciliationConfig | None = None,
    journal_uri: str | None = None,
    dry_run: bool = False,
) -> RunSummary:
    """Deduplicate the plant catalog using the configured adapters."""

    store = _open_store(catalog_dir)
    effective_config = config or load_reconciliation_config(config_path)
    journal = _open_journal(journal_uri)
    log.info("Starting reconciliation: catalog=%s, dry_run=%s", catalog_dir, dry_run)

    engine = ReconciliationEngine(store=store, journal=journal, config=effective_config)
    summary = engine.run(dry_run=dry_run)

    log.info(
        "Finished reconciliation: stage=%s, merged=%d, deleted=%d, errored=%d",
        summary.stage,
        summary.groups_merged,
        summary.deleted,
        summary.errored,
    )
    return summary


def rollback_reconciliation(
    run_id: str,
    *,
    catalog_dir: Path | None = None,
    journal_uri: str | None = None,
) -> PersistenceResult:
    """Restore every file a journaled reconciliation run changed."""

    store = _open_store(catalog_dir)
    journal = _open_journal(journal_uri)
    return rollback_run(run_id, store=store, journal=journal)


def list_reconciliation_runs(*, journal_uri: str | None = None) -> tuple[JournalRun, ...]:
    """Return every journaled run, oldest first."""

    return _open_journal(journal_uri).runs()
