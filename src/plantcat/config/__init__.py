"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .reconciliation import (
    ReconciliationConfig,
    ScoreWeights,
    load_reconciliation_config,
)
from .storage import (
    CatalogConfig,
    JournalConfig,
    StorageConfig,
    get_catalog_config,
    get_journal_config,
    get_storage_config,
)

__all__ = [
    "CatalogConfig",
    "ConfigurationError",
    "JournalConfig",
    "MissingConfigurationError",
    "ReconciliationConfig",
    "ScoreWeights",
    "StorageConfig",
    "configure_logging",
    "get_catalog_config",
    "get_journal_config",
    "get_storage_config",
    "load_reconciliation_config",
    "require_env_var",
    "require_env_vars",
]
