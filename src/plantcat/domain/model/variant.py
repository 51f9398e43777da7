"""Variant annotations attached to plant records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class VariantKind(StrEnum):
    CULTIVAR = "cultivar"
    VARIETY = "variety"
    VARIEGATION = "variegation"
    SIZE = "size"

    @property
    def is_lexical(self) -> bool:
        """Whether the kind is detected from the record's own text."""

        return self is not VariantKind.SIZE


@dataclass(frozen=True, slots=True, kw_only=True)
class VariantInfo:
    """What makes a record a variant and which base it decorates.

    ``base_key`` is the canonical key of the undecorated species (if known),
    ``base_name`` the cleaned display name without the decoration.
    """

    kind: VariantKind
    label: str
    base_key: str | None = None
    base_name: str = ""

    @property
    def label_key(self) -> str:
        return " ".join(self.label.casefold().split())

    @property
    def identity(self) -> tuple[VariantKind, str, str]:
        base = self.base_key or self.base_name
        return (self.kind, base, self.label_key)

    def to_annotation(self) -> dict[str, object]:
        return {
            "isVariant": True,
            "baseKey": self.base_key,
            "variantLabel": self.label,
            "variantType": self.kind.value,
        }
