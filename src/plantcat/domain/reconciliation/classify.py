"""Variant classification.

Two passes decide whether a record is a variant of some base species:

- the lexical pass looks only at the record's own text (quoted cultivar names,
  ``var.``/``cv.`` markers, variegation epithets) and runs before grouping;
- the relational pass needs the whole record set: a size-qualified name
  ("Haworthia Mini") is a size variant only if a plain sibling with the same
  species key exists.

Lexical variants keep their own identity. Size variants are folded into their
plain sibling by the merge stage.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Final, TypeAlias

from plantcat.domain.model import VariantInfo, VariantKind

from .normalize import is_species_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from plantcat.domain.model import PlantRecord

    from .normalize import NameNormalizer

log = logging.getLogger(__name__)

VariantMatch: TypeAlias = tuple[VariantKind, str]
VariantMatcher: TypeAlias = Callable[[str], VariantMatch | None]

# possessive apostrophes ("Baby's Tears") are not preceded by whitespace
_QUOTED_CULTIVAR = re.compile(r"(?:^|(?<=\s))['‘\"“]([^'’\"”]+)['’\"”](?=$|[\s),.;:])")
_RANK_MARKER = re.compile(r"\b(var|cv)\.\s*([^\s,;()]+)", re.IGNORECASE)
_VARIEGATION = re.compile(r"\bvariegat(?:a|e|ed|um|us)\b", re.IGNORECASE)


def _match_quoted_cultivar(text: str) -> VariantMatch | None:
    match = _QUOTED_CULTIVAR.search(text)
    if match is None:
        return None
    label = " ".join(match.group(1).split())
    return (VariantKind.CULTIVAR, label) if label else None


def _match_rank_marker(text: str) -> VariantMatch | None:
    match = _RANK_MARKER.search(text)
    if match is None:
        return None
    marker = match.group(1).casefold()
    kind = VariantKind.CULTIVAR if marker == "cv" else VariantKind.VARIETY
    return kind, f"{marker}. {match.group(2)}"


def _match_variegation(text: str) -> VariantMatch | None:
    match = _VARIEGATION.search(text)
    if match is None:
        return None
    return VariantKind.VARIEGATION, match.group(0).casefold()


LEXICAL_VARIANT_RULES: Final[tuple[VariantMatcher, ...]] = (
    _match_quoted_cultivar,
    _match_rank_marker,
    _match_variegation,
)


class VariantClassifier:
    """Attach ``VariantInfo`` annotations to plant records."""

    def __init__(
        self,
        normalizer: NameNormalizer,
        *,
        rules: tuple[VariantMatcher, ...] = LEXICAL_VARIANT_RULES,
    ) -> None:
        self.normalizer = normalizer
        self._rules = rules

    def classify_lexical(self, record: PlantRecord) -> VariantInfo | None:
        """Detect cultivar/variety/variegation decorations in the record's text."""

        texts = [record.name]
        scientific_name = record.scientific_name
        if isinstance(scientific_name, str):
            texts.append(scientific_name)

        for rule in self._rules:
            for text in texts:
                if not text:
                    continue
                hit = rule(text)
                if hit is None:
                    continue
                kind, label = hit
                return VariantInfo(
                    kind=kind,
                    label=label,
                    base_key=record.canonical_key or self.normalizer.key_for(record.name),
                    base_name=self.normalizer.clean(record.name),
                )
        return None

    def classify_relational(self, records: Iterable[PlantRecord]) -> list[PlantRecord]:
        """Mark size-qualified records that have a plain sibling as ``SIZE`` variants.

        Returns the records that were marked.
        """

        candidates = [
            record
            for record in records
            if record.variant is None and is_species_key(record.canonical_key)
        ]
        plain_keys = {
            record.canonical_key
            for record in candidates
            if self.normalizer.size_qualifier(record.name) is None
        }

        marked: list[PlantRecord] = []
        for record in candidates:
            qualifier = self.normalizer.size_qualifier(record.name)
            if qualifier is None or record.canonical_key not in plain_keys:
                continue
            record.variant = VariantInfo(
                kind=VariantKind.SIZE,
                label=qualifier,
                base_key=record.canonical_key,
                base_name=self.normalizer.display_key(record.name) or "",
            )
            log.debug("Size variant %s of %s", record.label, record.canonical_key)
            marked.append(record)
        return marked
