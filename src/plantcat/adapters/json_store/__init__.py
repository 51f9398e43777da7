"""Public interface for the JSON catalog adapter."""

from __future__ import annotations

from .schema import CatalogManifest, PlantDocument
from .store import JsonRecordStore, dump_document

__all__ = [
    "CatalogManifest",
    "JsonRecordStore",
    "PlantDocument",
    "dump_document",
]
