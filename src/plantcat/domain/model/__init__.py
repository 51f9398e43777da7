"""Public domain model surface."""

from __future__ import annotations

from plantcat.domain.model.record import KNOWN_FIELDS, LIST_FIELDS, PlantRecord, RecordField
from plantcat.domain.model.variant import VariantInfo, VariantKind

__all__ = [
    "KNOWN_FIELDS",
    "LIST_FIELDS",
    "PlantRecord",
    "RecordField",
    "VariantInfo",
    "VariantKind",
]
