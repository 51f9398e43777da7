"""Record store backed by a directory of JSON files."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from plantcat.config.storage import MANIFEST_FILENAME
from plantcat.domain.errors import MalformedRecordError, RecordIOError, StoreUnavailableError
from plantcat.domain.model import PlantRecord

from .schema import CatalogManifest, PlantDocument

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)


def dump_document(document: Mapping[str, Any]) -> str:
    """Serialize like the catalog tooling: 2-space indent, UTF-8, trailing newline."""

    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


class JsonRecordStore:
    """One ``<slug>.json`` file per plant plus an ``index.json`` manifest."""

    def __init__(self, root: Path, *, manifest_filename: str = MANIFEST_FILENAME) -> None:
        self.root = root
        self.manifest_filename = manifest_filename

    @property
    def manifest_path(self) -> Path:
        return self.root / self.manifest_filename

    def members(self) -> tuple[str, ...]:
        try:
            entries = [
                entry.name
                for entry in self.root.iterdir()
                if entry.is_file()
                and entry.suffix == ".json"
                and entry.name != self.manifest_filename
            ]
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot list catalog {self.root}: {exc}") from exc
        return tuple(sorted(entries))

    def load(self, member: str) -> PlantRecord:
        path = self._path(member)
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedRecordError(member=member, reason=f"not UTF-8: {exc}") from exc
        except OSError as exc:
            raise RecordIOError(member=member, operation="read", reason=str(exc)) from exc

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedRecordError(member=member, reason=f"invalid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise MalformedRecordError(member=member, reason="document is not a JSON object")

        try:
            PlantDocument.model_validate(payload)
        except ValidationError as exc:
            reason = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            )
            raise MalformedRecordError(member=member, reason=reason) from exc
        return PlantRecord(member=member, document=payload)

    def write(self, member: str, document: Mapping[str, Any]) -> None:
        try:
            self._write_text(self._path(member), dump_document(document))
        except OSError as exc:
            raise RecordIOError(member=member, operation="write", reason=str(exc)) from exc
        log.debug("Wrote %s", member)

    def delete(self, member: str) -> None:
        try:
            self._path(member).unlink(missing_ok=True)
        except OSError as exc:
            raise RecordIOError(member=member, operation="delete", reason=str(exc)) from exc
        log.debug("Deleted %s", member)

    def rebuild_manifest(self) -> int:
        members = list(self.members())
        manifest = self._read_manifest()
        manifest.count = len(members)
        manifest.files = members
        if manifest.plants is not None:
            manifest.plants = list(members)

        payload = manifest.model_dump(mode="json", exclude_none=True)
        try:
            self._write_text(self.manifest_path, dump_document(payload))
        except OSError as exc:
            raise RecordIOError(
                member=self.manifest_filename, operation="write", reason=str(exc)
            ) from exc
        log.info("Rebuilt %s with %d entries", self.manifest_filename, len(members))
        return len(members)

    def _read_manifest(self) -> CatalogManifest:
        try:
            text = self.manifest_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return CatalogManifest()
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("Cannot read %s, rebuilding from scratch: %s", self.manifest_filename, exc)
            return CatalogManifest()
        try:
            return CatalogManifest.model_validate_json(text)
        except ValidationError as exc:
            log.warning("Invalid %s, rebuilding from scratch: %s", self.manifest_filename, exc)
            return CatalogManifest()

    def _path(self, member: str) -> Path:
        if Path(member).name != member or member == self.manifest_filename:
            raise ValueError(f"Not a catalog member name: {member!r}")
        return self.root / member

    def _write_text(self, path: Path, text: str) -> None:
        handle, temp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(handle, "w", encoding="utf-8") as temp_file:
                temp_file.write(text)
            Path(temp_name).replace(path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise
