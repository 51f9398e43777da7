"""Plant records as loaded from the catalog.

A record keeps the stored JSON object untouched (key order included) and carries
the attributes the reconciliation stages derive from it.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from plantcat.domain.model.variant import VariantInfo


class RecordField(StrEnum):
    ID = "id"
    NAME = "name"
    SCIENTIFIC_NAME = "scientificName"
    COMMON_NAMES = "commonNames"
    TAXONOMY = "taxonomy"
    DESCRIPTION = "description"
    IMAGES = "images"
    IMAGE_URL = "imageUrl"
    CARE_TIPS = "careTips"
    CATEGORY = "category"
    VIVARIUM_TYPE = "vivariumType"
    VARIANT_INFO = "variantInfo"


KNOWN_FIELDS: Final[frozenset[str]] = frozenset(field.value for field in RecordField)

LIST_FIELDS: Final[tuple[RecordField, ...]] = (
    RecordField.COMMON_NAMES,
    RecordField.IMAGES,
    RecordField.CARE_TIPS,
    RecordField.CATEGORY,
    RecordField.VIVARIUM_TYPE,
)


@dataclass(eq=False, kw_only=True, slots=True)
class PlantRecord:
    """One catalog member and the attributes derived from it during a run."""

    member: str
    document: dict[str, Any]
    canonical_key: str | None = None
    variant: VariantInfo | None = None
    completeness: float = 0.0

    @property
    def id(self) -> int | None:
        value = self.document.get(RecordField.ID)
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    @property
    def name(self) -> str:
        return self.text(RecordField.NAME)

    @property
    def scientific_name(self) -> object:
        return self.document.get(RecordField.SCIENTIFIC_NAME)

    @property
    def is_lexical_variant(self) -> bool:
        return self.variant is not None and self.variant.kind.is_lexical

    @property
    def is_size_variant(self) -> bool:
        return self.variant is not None and not self.variant.kind.is_lexical

    @property
    def label(self) -> str:
        return f'"{self.name}" ({self.member})' if self.name else self.member

    def get(self, field: RecordField) -> Any:
        return self.document.get(field)

    def set(self, field: RecordField | str, value: Any) -> None:
        self.document[field] = value

    def text(self, field: RecordField) -> str:
        """Return the field as stripped text, or ``""`` when absent or not a string."""

        value = self.document.get(field)
        return value.strip() if isinstance(value, str) else ""

    def items(self, field: RecordField) -> list[Any]:
        """Return a list field as a new list; a scalar counts as a one-element list."""

        value = self.document.get(field)
        if value is None or value == "":
            return []
        if isinstance(value, list):
            return list(value)
        return [value]

    def clone(self) -> PlantRecord:
        return PlantRecord(
            member=self.member,
            document=copy.deepcopy(self.document),
            canonical_key=self.canonical_key,
            variant=self.variant,
            completeness=self.completeness,
        )
