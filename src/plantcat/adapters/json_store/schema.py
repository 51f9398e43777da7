"""Pydantic models describing catalog documents on disk."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CatalogBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class PlantDocument(CatalogBaseModel):
    """Shape check for one plant file.

    Unknown keys are allowed and ``scientificName`` may hold anything; the
    reconciliation stages decide what to make of it.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, strict=True)

    id: int | None = None
    name: str | None = None
    scientific_name: Any = Field(default=None, alias="scientificName")
    common_names: list[Any] | str | None = Field(default=None, alias="commonNames")
    taxonomy: dict[str, Any] | None = None
    description: str | None = None
    images: list[Any] | str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    care_tips: list[Any] | str | None = Field(default=None, alias="careTips")
    category: list[Any] | str | None = None
    vivarium_type: list[Any] | str | None = Field(default=None, alias="vivariumType")
    variant_info: dict[str, Any] | None = Field(default=None, alias="variantInfo")


class CatalogManifest(CatalogBaseModel):
    """The ``index.json`` manifest listing every plant file."""

    count: int = 0
    files: list[str] = Field(default_factory=list)
    plants: list[str] | None = None

    @field_validator("files", "plants", mode="before")
    @classmethod
    def _drop_non_strings(cls, value: object) -> object:
        if isinstance(value, list):
            return [item for item in value if isinstance(item, str)]
        return value
