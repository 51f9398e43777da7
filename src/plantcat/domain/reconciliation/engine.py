"""Orchestrator for catalog reconciliation.

The engine composes the stages (normalize, classify, group, score and merge,
persist) around a record store and a merge journal. It never raises for
per-record problems: malformed records are counted and left alone, per-file I/O
errors are counted and the run continues. Only store-level failures end a run,
and even then a summary is returned with the stage set to ``FAILED``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from plantcat.config.reconciliation import ReconciliationConfig
from plantcat.domain.errors import (
    JournalError,
    MalformedNameError,
    MalformedRecordError,
    RecordIOError,
    StoreUnavailableError,
)

from .classify import VariantClassifier
from .group import CandidateGrouper
from .normalize import NameNormalizer
from .persist import persist_plan, resume_open_runs
from .plan import build_merge_plan
from .policy import FieldMergePolicy
from .score import CompletenessScorer
from .summary import RunStage, RunSummary

if TYPE_CHECKING:
    from plantcat.domain.model import PlantRecord
    from plantcat.domain.ports import MergeJournal, RecordStore

    from .group import RecordGroup
    from .plan import MergePlan

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconciliationEngine:
    """Run full reconciliation from loading the catalog to persisting merges."""

    store: RecordStore
    journal: MergeJournal
    config: ReconciliationConfig = field(default_factory=ReconciliationConfig)
    normalizer: NameNormalizer = field(init=False)
    classifier: VariantClassifier = field(init=False)
    grouper: CandidateGrouper = field(init=False)
    scorer: CompletenessScorer = field(init=False)
    policy: FieldMergePolicy = field(init=False)

    def __post_init__(self) -> None:
        self.normalizer = NameNormalizer(self.config)
        self.classifier = VariantClassifier(self.normalizer)
        self.grouper = CandidateGrouper(self.config, normalizer=self.normalizer)
        self.scorer = CompletenessScorer(self.config.weights)
        self.policy = FieldMergePolicy(self.config)

    def run(self, *, dry_run: bool = False) -> RunSummary:
        """Reconcile the whole store once; ``dry_run`` stops after planning."""

        summary = RunSummary(dry_run=dry_run)
        try:
            if not dry_run:
                summary.resumed_runs = len(resume_open_runs(store=self.store, journal=self.journal))
            records = self._load(summary)
            annotated = self._annotate(records, summary)
            groups = self._group(annotated, summary)
            plan = self._plan(groups, summary)
            if not dry_run:
                self._persist(plan, summary)
        except (StoreUnavailableError, JournalError) as exc:
            log.error("Reconciliation failed during %s: %s", summary.stage, exc)  # noqa: TRY400
            summary.fail(exc)
            return summary

        summary.advance(RunStage.DONE)
        log.info(
            "Reconciliation finished: scanned=%d malformed=%d groups_merged=%d "
            "updated=%d deleted=%d errored=%d",
            summary.scanned,
            summary.malformed,
            summary.groups_merged,
            summary.updated,
            summary.deleted,
            summary.errored,
        )
        return summary

    def _load(self, summary: RunSummary) -> list[PlantRecord]:
        summary.advance(RunStage.LOADING)
        records: list[PlantRecord] = []
        for member in self.store.members():
            summary.scanned += 1
            try:
                records.append(self.store.load(member))
            except MalformedRecordError as exc:
                log.warning("Skipping malformed record: %s", exc)
                summary.note_malformed(member)
            except RecordIOError as exc:
                log.error("Cannot read %s: %s", member, exc)  # noqa: TRY400
                summary.errored += 1
        log.info("Loaded %d of %d records", len(records), summary.scanned)
        return records

    def _annotate(self, records: list[PlantRecord], summary: RunSummary) -> list[PlantRecord]:
        summary.advance(RunStage.ANNOTATING)
        annotated: list[PlantRecord] = []
        for record in records:
            try:
                record.canonical_key = self.normalizer.key_for(record.scientific_name)
            except MalformedNameError as exc:
                log.warning("Skipping %s: %s", record.label, exc)
                summary.note_malformed(record.member)
                continue
            record.variant = self.classifier.classify_lexical(record)
            annotated.append(record)
        return annotated

    def _group(self, records: list[PlantRecord], summary: RunSummary) -> tuple[RecordGroup, ...]:
        summary.advance(RunStage.GROUPING)
        groups = self.grouper.group(records)
        marked = self.classifier.classify_relational(records)
        log.info(
            "Grouped %d records into %d clusters (%d size variants)",
            len(records),
            len(groups),
            len(marked),
        )
        return groups

    def _plan(self, groups: tuple[RecordGroup, ...], summary: RunSummary) -> MergePlan:
        summary.advance(RunStage.MERGING)
        plan = build_merge_plan(
            groups,
            scorer=self.scorer,
            policy=self.policy,
            write_variant_info=self.config.write_variant_info,
        )
        summary.groups_merged = len(plan.merges)
        summary.audit.extend(plan.audit_lines())
        if plan.is_empty:
            log.info("No duplicate groups found")
        return plan

    def _persist(self, plan: MergePlan, summary: RunSummary) -> None:
        summary.advance(RunStage.PERSISTING)
        result = persist_plan(plan, store=self.store, journal=self.journal)
        summary.run_id = result.run_id
        summary.updated = result.updated
        summary.deleted = result.deleted
        summary.errored += result.errored
        summary.skipped = result.skipped
