"""Completeness scoring for choosing the record that survives a merge."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from plantcat.config.reconciliation import ScoreWeights
from plantcat.domain.model import RecordField

if TYPE_CHECKING:
    from collections.abc import Iterable

    from plantcat.domain.model import PlantRecord


def image_references(record: PlantRecord) -> list[Any]:
    """Distinct image references from ``images`` and ``imageUrl``, in order."""

    references: list[Any] = []
    for item in [*record.items(RecordField.IMAGES), record.text(RecordField.IMAGE_URL)]:
        if item in (None, "") or item in references:
            continue
        references.append(item)
    return references


def populated_ranks(taxonomy: object) -> int:
    if not isinstance(taxonomy, Mapping):
        return 0
    return sum(1 for value in taxonomy.values() if value not in (None, "", [], {}))


class CompletenessScorer:
    """Score records by how much usable data they carry."""

    def __init__(self, weights: ScoreWeights | None = None) -> None:
        self.weights = weights or ScoreWeights()

    def score(self, record: PlantRecord) -> float:
        weights = self.weights
        scientific_name = record.scientific_name
        total = len(record.text(RecordField.DESCRIPTION)) * weights.description
        if isinstance(scientific_name, str):
            total += len(scientific_name.strip()) * weights.scientific_name
        total += len(image_references(record)) * weights.image
        if populated_ranks(record.get(RecordField.TAXONOMY)) >= weights.taxonomy_min_ranks:
            total += weights.taxonomy_bonus
        return total

    def rank(self, records: Iterable[PlantRecord]) -> list[PlantRecord]:
        """Score ``records`` in place and return them best first.

        Ties break towards plain records over size variants, then the lower ``id``
        (records without one last), then the member name.
        """

        ranked = list(records)
        for record in ranked:
            record.completeness = self.score(record)
        ranked.sort(
            key=lambda record: (
                -record.completeness,
                record.is_size_variant,
                record.id if record.id is not None else math.inf,
                record.member,
            )
        )
        return ranked
