"""Port for the catalog record store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from plantcat.domain.model import PlantRecord


@runtime_checkable
class RecordStore(Protocol):
    """Directory-like collection of plant documents plus a manifest.

    ``members`` raises ``StoreUnavailableError`` when the store cannot be listed;
    the per-member operations raise ``RecordIOError`` (and ``load`` additionally
    ``MalformedRecordError``).
    """

    def members(self) -> tuple[str, ...]: ...

    def load(self, member: str) -> PlantRecord: ...

    def write(self, member: str, document: Mapping[str, Any]) -> None: ...

    def delete(self, member: str) -> None:
        """Remove a member; removing an absent member is not an error."""
        ...

    def rebuild_manifest(self) -> int:
        """Regenerate the manifest and return the number of members listed."""
        ...
