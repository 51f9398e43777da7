#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from plantcat.app import list_reconciliation_runs, reconcile_catalog, rollback_reconciliation
from plantcat.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile duplicate plant catalog records")
    parser.add_argument(
        "--journal-uri",
        type=str,
        help="SQLAlchemy URI of the merge journal (defaults to config)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser("reconcile", help="Merge duplicate plant records")
    reconcile.add_argument(
        "--catalog",
        type=Path,
        help="Directory holding the plant JSON files (defaults to PLANTCAT_CATALOG_DIR)",
    )
    reconcile.add_argument(
        "--config",
        type=Path,
        help="TOML file overriding synonyms, qualifiers and score weights",
    )
    reconcile.add_argument(
        "--dry-run",
        action="store_true",
        help="Plan and report merges without touching the catalog",
    )

    rollback = subparsers.add_parser("rollback", help="Undo a journaled reconciliation run")
    rollback.add_argument("run_id", type=str, help="Run id as listed by 'runs'")
    rollback.add_argument(
        "--catalog",
        type=Path,
        help="Directory holding the plant JSON files (defaults to PLANTCAT_CATALOG_DIR)",
    )

    subparsers.add_parser("runs", help="List journaled reconciliation runs")

    return parser.parse_args(list(argv))


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "reconcile":
            summary = reconcile_catalog(
                catalog_dir=parsed_args.catalog,
                config_path=parsed_args.config,
                journal_uri=parsed_args.journal_uri,
                dry_run=parsed_args.dry_run,
            )
            for line in summary.lines():
                print(line)
            if summary.failed:
                sys.exit(1)
        elif parsed_args.command == "rollback":
            result = rollback_reconciliation(
                parsed_args.run_id,
                catalog_dir=parsed_args.catalog,
                journal_uri=parsed_args.journal_uri,
            )
            print(
                f"Run {result.run_id} {result.status}: "
                f"restored={result.restored} errored={result.errored}"
            )
        elif parsed_args.command == "runs":
            for run in list_reconciliation_runs(journal_uri=parsed_args.journal_uri):
                finished = run.finished_at.isoformat() if run.finished_at else "-"
                print(
                    f"{run.run_id}  {run.status:<11}  {run.started_at.isoformat()}  "
                    f"{finished}  steps={run.step_count}"
                )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
