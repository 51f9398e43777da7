"""Field merge policy.

Responsibilities of this stage:
- fold every loser of a group into the winning record, field by field
- never lose list content and never make a scalar field less complete
- stay total: missing or oddly typed fields act as identity elements

The winner is mutated in place; callers hand in a clone when the original must
stay untouched.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from plantcat.config.reconciliation import ReconciliationConfig
from plantcat.domain.model import KNOWN_FIELDS, LIST_FIELDS, RecordField

from .normalize import is_valid_scientific_name, normalize_text

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from plantcat.domain.model import PlantRecord

log = logging.getLogger(__name__)


@dataclass(slots=True, kw_only=True)
class MergeOutcome:
    """Winner after absorbing its losers, plus the fields that changed."""

    winner: PlantRecord
    absorbed: tuple[PlantRecord, ...]
    changed_fields: tuple[str, ...]


def _same_text(left: str, right: str) -> bool:
    return " ".join(left.casefold().split()) == " ".join(right.casefold().split())


def _is_blank(value: object) -> bool:
    return value is None or value in ("", [], {})


class FieldMergePolicy:
    """Merge duplicate plant records into one."""

    def __init__(self, config: ReconciliationConfig | None = None) -> None:
        self.config = config or ReconciliationConfig()

    def merge(self, winner: PlantRecord, losers: Sequence[PlantRecord]) -> MergeOutcome:
        """Absorb ``losers`` (best first) into ``winner``."""

        changed: list[str] = []
        for loser in losers:
            for field_name in self.merge_one(winner, loser):
                if field_name not in changed:
                    changed.append(field_name)
        return MergeOutcome(winner=winner, absorbed=tuple(losers), changed_fields=tuple(changed))

    def merge_one(self, winner: PlantRecord, loser: PlantRecord) -> list[str]:
        changed: list[str] = []
        if self._adopt_longer_text(
            winner, loser, RecordField.SCIENTIFIC_NAME, accept=is_valid_scientific_name
        ):
            changed.append(RecordField.SCIENTIFIC_NAME)
        if self._adopt_longer_text(winner, loser, RecordField.DESCRIPTION):
            changed.append(RecordField.DESCRIPTION)
        changed.extend(self._merge_name(winner, loser))
        changed.extend(field for field in LIST_FIELDS if self._merge_list(winner, loser, field))
        if self._merge_image_url(winner, loser):
            changed.append(RecordField.IMAGE_URL)
        if self._merge_taxonomy(winner, loser):
            changed.append(RecordField.TAXONOMY)
        changed.extend(self._merge_unrecognized(winner, loser))
        return list(dict.fromkeys(changed))

    def is_more_specific(self, candidate: str, current: str) -> bool:
        """Whether ``candidate`` extends ``current`` by tokens other than size qualifiers."""

        candidate_tokens = (normalize_text(candidate) or "").split()
        current_tokens = (normalize_text(current) or "").split()
        if not current_tokens or len(candidate_tokens) <= len(current_tokens):
            return False
        if candidate_tokens[: len(current_tokens)] != current_tokens:
            return False
        extra = candidate_tokens[len(current_tokens) :]
        return not any(token in self.config.size_qualifiers for token in extra)

    def _adopt_longer_text(
        self,
        winner: PlantRecord,
        loser: PlantRecord,
        field: RecordField,
        *,
        accept: Callable[[str], bool] | None = None,
    ) -> bool:
        incoming = loser.text(field)
        if not incoming or len(incoming) <= len(winner.text(field)):
            return False
        if accept is not None and not accept(incoming):
            return False
        winner.set(field, loser.get(field))
        return True

    def _merge_name(self, winner: PlantRecord, loser: PlantRecord) -> list[str]:
        winner_name = winner.name
        loser_name = loser.name
        if not loser_name or _same_text(loser_name, winner_name):
            return []
        if not winner_name:
            winner.set(RecordField.NAME, loser_name)
            return [RecordField.NAME]
        if self.is_more_specific(loser_name, winner_name):
            winner.set(RecordField.NAME, loser_name)
            changed: list[str] = [RecordField.NAME]
            if self._remember_name(winner, winner_name):
                changed.append(RecordField.COMMON_NAMES)
            return changed
        return [RecordField.COMMON_NAMES] if self._remember_name(winner, loser_name) else []

    def _remember_name(self, winner: PlantRecord, name: str) -> bool:
        """Keep a displaced display name as a common name."""

        if _same_text(name, winner.name):
            return False
        scientific_name = winner.scientific_name
        if isinstance(scientific_name, str) and _same_text(name, scientific_name):
            return False
        common_names = winner.items(RecordField.COMMON_NAMES)
        if any(isinstance(known, str) and _same_text(known, name) for known in common_names):
            return False
        winner.set(RecordField.COMMON_NAMES, [*common_names, name])
        return True

    def _merge_list(self, winner: PlantRecord, loser: PlantRecord, field: RecordField) -> bool:
        current = winner.items(field)
        merged: list[Any] = []
        for item in current:
            if item not in merged:
                merged.append(item)
        for item in loser.items(field):
            if item not in merged:
                merged.append(copy.deepcopy(item))
        if merged == current:
            return False
        winner.set(field, merged)
        return True

    def _merge_image_url(self, winner: PlantRecord, loser: PlantRecord) -> bool:
        if winner.text(RecordField.IMAGE_URL) or not loser.text(RecordField.IMAGE_URL):
            return False
        winner.set(RecordField.IMAGE_URL, loser.get(RecordField.IMAGE_URL))
        return True

    def _merge_taxonomy(self, winner: PlantRecord, loser: PlantRecord) -> bool:
        incoming = loser.get(RecordField.TAXONOMY)
        if not isinstance(incoming, Mapping) or not incoming:
            return False
        existing = winner.get(RecordField.TAXONOMY)
        if isinstance(existing, Mapping):
            merged: dict[str, Any] = dict(existing)
        elif _is_blank(existing):
            merged = {}
        else:
            log.debug("Keeping non-mapping taxonomy on %s", winner.label)
            return False

        filled = False
        for rank, value in incoming.items():
            if _is_blank(value) or not _is_blank(merged.get(rank)):
                continue
            merged[rank] = copy.deepcopy(value)
            filled = True
        if filled:
            winner.set(RecordField.TAXONOMY, merged)
        return filled

    def _merge_unrecognized(self, winner: PlantRecord, loser: PlantRecord) -> list[str]:
        adopted: list[str] = []
        for key, value in loser.document.items():
            if key in KNOWN_FIELDS or key in winner.document:
                continue
            winner.set(key, copy.deepcopy(value))
            adopted.append(key)
        return adopted
