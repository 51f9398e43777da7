"""Domain port definitions for adapters."""

from __future__ import annotations

from .journal import MergeJournal
from .store import RecordStore

__all__ = [
    "MergeJournal",
    "RecordStore",
]
