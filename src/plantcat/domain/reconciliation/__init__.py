"""Catalog reconciliation: find duplicate plant records and merge them."""

from __future__ import annotations

from .classify import VariantClassifier
from .contracts import MatchRule, RunStatus, StepOperation, StepStatus
from .engine import ReconciliationEngine
from .group import CandidateGrouper, RecordGroup
from .normalize import NameNormalizer, NameRule, is_species_key, is_valid_scientific_name
from .persist import PersistenceResult, persist_plan, resume_open_runs, rollback_run
from .plan import GroupMerge, MergePlan, build_merge_plan
from .policy import FieldMergePolicy, MergeOutcome
from .score import CompletenessScorer
from .summary import RunStage, RunSummary

__all__ = [
    "CandidateGrouper",
    "CompletenessScorer",
    "FieldMergePolicy",
    "GroupMerge",
    "MatchRule",
    "MergeOutcome",
    "MergePlan",
    "NameNormalizer",
    "NameRule",
    "PersistenceResult",
    "ReconciliationEngine",
    "RecordGroup",
    "RunStage",
    "RunStatus",
    "RunSummary",
    "StepOperation",
    "StepStatus",
    "VariantClassifier",
    "build_merge_plan",
    "is_species_key",
    "is_valid_scientific_name",
    "persist_plan",
    "resume_open_runs",
    "rollback_run",
]
