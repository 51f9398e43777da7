"""Data storage configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import require_env_var

APP_DIR_NAME: Final[str] = "plantcat"
DEFAULT_JOURNAL_FILENAME: Final[str] = "journal.db"
MANIFEST_FILENAME: Final[str] = "index.json"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    journal_filename: str = DEFAULT_JOURNAL_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def journal_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / self.journal_filename

    def journal_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.journal_path()}"


@dataclass(frozen=True, slots=True)
class JournalConfig:
    uri: str


@dataclass(frozen=True, slots=True)
class CatalogConfig:
    """Location of the record directory and the name of its manifest."""

    root: Path
    manifest_filename: str = MANIFEST_FILENAME

    def resolve_root(self) -> Path:
        return self.root.expanduser().resolve()


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("PLANTCAT_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    return StorageConfig(data_dir=data_dir)


def get_journal_config(*, storage: StorageConfig | None = None) -> JournalConfig:
    env_uri = os.getenv("PLANTCAT_JOURNAL_URI")
    if env_uri:
        return JournalConfig(uri=env_uri)
    storage_config = storage or get_storage_config()
    return JournalConfig(uri=storage_config.journal_uri())


def get_catalog_config(root: Path | None = None) -> CatalogConfig:
    """Return the catalog location, falling back to ``PLANTCAT_CATALOG_DIR``."""

    if root is None:
        root = Path(require_env_var("PLANTCAT_CATALOG_DIR"))
    return CatalogConfig(root=root)
