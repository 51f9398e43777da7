"""Merge plan types and the planning step.

The merge plan is the contract between:
- scoring and field merging (pure, in memory)
- persistence (journaled store mutations)

Nothing in here touches the store; a dry run stops after building the plan.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from plantcat.domain.model import RecordField

from .contracts import MatchRule, PlanStep, RecordRef, StepOperation

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .group import RecordGroup
    from .policy import FieldMergePolicy
    from .score import CompletenessScorer

log = logging.getLogger(__name__)


@dataclass(slots=True, kw_only=True)
class GroupMerge:
    """One cluster collapsed into its winner."""

    winner: RecordRef
    losers: tuple[RecordRef, ...]
    rules: tuple[MatchRule, ...]
    document: dict[str, Any]
    changed_fields: tuple[str, ...] = ()
    score_before: float = 0.0
    score_after: float = 0.0

    def audit_line(self) -> str:
        losers = ", ".join(str(loser) for loser in self.losers)
        rules = ", ".join(rule.value for rule in self.rules)
        return f"{losers} -> {self.winner} [{rules}]"


@dataclass(slots=True)
class MergePlan:
    merges: list[GroupMerge] = field(default_factory=list[GroupMerge])
    pre_images: dict[str, dict[str, Any]] = field(default_factory=dict[str, dict[str, Any]])

    @property
    def is_empty(self) -> bool:
        return not self.merges

    @property
    def deleted_members(self) -> tuple[str, ...]:
        return tuple(loser.member for merge in self.merges for loser in merge.losers)

    def steps(self) -> tuple[PlanStep, ...]:
        """Store mutations in execution order: each winner write before its deletes."""

        steps: list[PlanStep] = []
        for group_index, merge in enumerate(self.merges):
            steps.append(
                PlanStep(
                    group=group_index,
                    operation=StepOperation.WRITE,
                    member=merge.winner.member,
                    before=self.pre_images[merge.winner.member],
                    document=merge.document,
                )
            )
            steps.extend(
                PlanStep(
                    group=group_index,
                    operation=StepOperation.DELETE,
                    member=loser.member,
                    before=self.pre_images[loser.member],
                )
                for loser in merge.losers
            )
        return tuple(steps)

    def audit_lines(self) -> list[str]:
        return [merge.audit_line() for merge in self.merges]


def build_merge_plan(
    groups: Iterable[RecordGroup],
    *,
    scorer: CompletenessScorer,
    policy: FieldMergePolicy,
    write_variant_info: bool = True,
) -> MergePlan:
    """Rank every multi-member group and merge it into its winner."""

    plan = MergePlan()
    for group in groups:
        if group.is_singleton:
            continue
        ranked = scorer.rank(group.members)
        winner, losers = ranked[0], ranked[1:]

        merged = winner.clone()
        outcome = policy.merge(merged, losers)
        changed_fields = list(outcome.changed_fields)
        if write_variant_info and winner.is_lexical_variant and winner.variant is not None:
            annotation = winner.variant.to_annotation()
            if merged.get(RecordField.VARIANT_INFO) != annotation:
                merged.set(RecordField.VARIANT_INFO, annotation)
                changed_fields.append(RecordField.VARIANT_INFO)

        merge = GroupMerge(
            winner=RecordRef.from_record(winner),
            losers=tuple(RecordRef.from_record(loser) for loser in losers),
            rules=group.join_rules(),
            document=merged.document,
            changed_fields=tuple(changed_fields),
            score_before=winner.completeness,
            score_after=scorer.score(merged),
        )
        plan.merges.append(merge)
        for record in ranked:
            plan.pre_images[record.member] = copy.deepcopy(record.document)
        log.info("Planned merge %s", merge.audit_line())
    return plan
