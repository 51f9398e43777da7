"""Candidate grouping.

Responsibilities of this stage:
- partition annotated records into clusters that denote the same plant
- keep distinct species and lexical variants apart even when names collide
- avoid persistence side effects

Clustering is deterministic and runs in two passes. Non-variant records sharing
a species key always form one cluster, so no two of them survive a run. The
remaining records are then visited in member order and each one joins the first
cluster that has a matching member and no conflicting member. A conflict with
any member is a hard veto.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from plantcat.config.reconciliation import ReconciliationConfig

from .contracts import MatchRule
from .normalize import NameNormalizer, genus_of, is_species_key, normalize_text

if TYPE_CHECKING:
    from collections.abc import Iterable

    from plantcat.domain.model import PlantRecord

log = logging.getLogger(__name__)


def same_variant(left: PlantRecord, right: PlantRecord) -> bool:
    """Return whether both records carry the same decoration of the same base.

    A genus-only base (no ``scientificName``, key taken from the display name)
    matches any species base of that genus. Two different species never match.
    """

    left_info, right_info = left.variant, right.variant
    if left_info is None or right_info is None:
        return False
    if left_info.kind is not right_info.kind or left_info.label_key != right_info.label_key:
        return False
    if left_info.identity == right_info.identity:
        return True
    left_key, right_key = left_info.base_key, right_info.base_key
    if left_key is None or right_key is None:
        return left_info.base_name.casefold() == right_info.base_name.casefold()
    if is_species_key(left_key) and is_species_key(right_key):
        return False
    return genus_of(left_key) == genus_of(right_key)


@dataclass(slots=True)
class RecordGroup:
    """Records believed to denote one plant, with the rule each member joined by."""

    members: list[PlantRecord] = field(default_factory=list["PlantRecord"])
    rules: dict[str, MatchRule] = field(default_factory=dict[str, MatchRule])

    @classmethod
    def seed(cls, record: PlantRecord) -> RecordGroup:
        return cls(members=[record], rules={record.member: MatchRule.SEED})

    def add(self, record: PlantRecord, rule: MatchRule) -> None:
        self.members.append(record)
        self.rules[record.member] = rule

    @property
    def is_singleton(self) -> bool:
        return len(self.members) == 1

    def join_rules(self) -> tuple[MatchRule, ...]:
        """Distinct rules by which non-seed members joined, in join order."""

        seen: list[MatchRule] = []
        for rule in self.rules.values():
            if rule is not MatchRule.SEED and rule not in seen:
                seen.append(rule)
        return tuple(seen)


class CandidateGrouper:
    """Cluster records by species key, synonym table and normalized name."""

    def __init__(
        self,
        config: ReconciliationConfig | None = None,
        *,
        normalizer: NameNormalizer | None = None,
    ) -> None:
        self.config = config or ReconciliationConfig()
        self.normalizer = normalizer or NameNormalizer(self.config)
        self._synonym_index = self._build_synonym_index()

    def group(self, records: Iterable[PlantRecord]) -> tuple[RecordGroup, ...]:
        groups: list[RecordGroup] = []
        by_key: dict[str, RecordGroup] = {}
        rest: list[PlantRecord] = []
        for record in sorted(records, key=lambda item: item.member):
            key = record.canonical_key
            if key is None or record.is_lexical_variant or not is_species_key(key):
                rest.append(record)
                continue
            keyed = by_key.get(key)
            if keyed is None:
                by_key[key] = keyed = RecordGroup.seed(record)
                groups.append(keyed)
            else:
                keyed.add(record, MatchRule.EXACT_SPECIES)
                log.debug("%s joins %s by %s", record.label, keyed.members[0].label, key)

        for record in rest:
            for group in groups:
                rule = self._admit(group, record)
                if rule is not None:
                    group.add(record, rule)
                    log.debug("%s joins %s by %s", record.label, group.members[0].label, rule)
                    break
            else:
                groups.append(RecordGroup.seed(record))

        for group in groups:
            group.members.sort(key=lambda item: item.member)
        return tuple(sorted(groups, key=lambda item: item.members[0].member))

    def match(self, left: PlantRecord, right: PlantRecord) -> MatchRule | None:
        """Return the first rule that says ``left`` and ``right`` are the same plant."""

        if left.is_lexical_variant or right.is_lexical_variant:
            if left.is_lexical_variant and right.is_lexical_variant and same_variant(left, right):
                return MatchRule.SAME_VARIANT
            return None

        if is_species_key(left.canonical_key) and left.canonical_key == right.canonical_key:
            return MatchRule.EXACT_SPECIES

        left_name = self.normalizer.display_key(left.name)
        right_name = self.normalizer.display_key(right.name)
        if left_name is None or right_name is None:
            return None
        if left_name != right_name:
            left_group = self._synonym_index.get(left_name)
            if left_group is not None and left_group == self._synonym_index.get(right_name):
                return MatchRule.SYNONYM
            return None
        if len(left_name) > self.config.min_name_length:
            return MatchRule.NORMALIZED_NAME
        return None

    def conflicts(self, left: PlantRecord, right: PlantRecord) -> bool:
        """Return whether the two records must never share a cluster."""

        if (
            is_species_key(left.canonical_key)
            and is_species_key(right.canonical_key)
            and left.canonical_key != right.canonical_key
        ):
            return True
        if left.is_lexical_variant != right.is_lexical_variant:
            return True
        return left.is_lexical_variant and not same_variant(left, right)

    def _admit(self, group: RecordGroup, record: PlantRecord) -> MatchRule | None:
        if any(self.conflicts(member, record) for member in group.members):
            return None
        for member in group.members:
            rule = self.match(member, record)
            if rule is not None:
                return rule
        return None

    def _build_synonym_index(self) -> dict[str, int]:
        index: dict[str, int] = {}
        for position, names in enumerate(self.config.synonym_groups):
            for name in names:
                normalized = normalize_text(name)
                if normalized is None:
                    continue
                if normalized in index and index[normalized] != position:
                    log.warning("Synonym %r listed in more than one group", name)
                    continue
                index[normalized] = position
        return index
