"""Heuristic tables and weights for catalog reconciliation.

Everything here is immutable and handed to the reconciliation components at
construction. A TOML file may override the defaults::

    [reconciliation]
    extra_synonyms = [["string of pearls", "senecio rowleyanus"]]
    min_name_length = 3

    [reconciliation.weights]
    image = 12
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

log = logging.getLogger(__name__)

CONFIG_ENV_VAR: Final[str] = "PLANTCAT_RECONCILE_CONFIG"

DEFAULT_SYNONYM_GROUPS: Final[tuple[tuple[str, ...], ...]] = (
    ("fittonia", "nerve plant"),
    ("baby's tears", "baby tears"),
    ("peperomia", "peperomia caperata"),
    ("syngonium", "arrowhead"),
    ("oxalis", "purple shamrock"),
    ("selaginella", "resurrection plant"),
)
DEFAULT_SIZE_QUALIFIERS: Final[frozenset[str]] = frozenset(
    {"mini", "dwarf", "small", "tiny", "micro", "petite"}
)
DEFAULT_RANK_TOKENS: Final[frozenset[str]] = frozenset(
    {"var", "ssp", "subsp", "f", "form", "cv", "cultivar"}
)
DEFAULT_PLACEHOLDER_EPITHETS: Final[frozenset[str]] = frozenset({"sp", "spp"})
DEFAULT_PLACEHOLDER_NAMES: Final[frozenset[str]] = frozenset(
    {"unknown", "n/a", "na", "none", "null", "tbd", "-", "?"}
)


@dataclass(frozen=True, slots=True)
class ScoreWeights:
    description: float = 1.0
    scientific_name: float = 3.0
    image: float = 10.0
    taxonomy_bonus: float = 50.0
    taxonomy_min_ranks: int = 7


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    synonym_groups: tuple[tuple[str, ...], ...] = DEFAULT_SYNONYM_GROUPS
    size_qualifiers: frozenset[str] = DEFAULT_SIZE_QUALIFIERS
    rank_tokens: frozenset[str] = DEFAULT_RANK_TOKENS
    placeholder_epithets: frozenset[str] = DEFAULT_PLACEHOLDER_EPITHETS
    placeholder_names: frozenset[str] = DEFAULT_PLACEHOLDER_NAMES
    # display names must be longer than this to match on equality alone
    min_name_length: int = 3
    # a lone genus token must be longer than this to yield a genus-only key
    genus_min_length: int = 4
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    write_variant_info: bool = True


class _WeightsSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: float | None = None
    scientific_name: float | None = None
    image: float | None = None
    taxonomy_bonus: float | None = None
    taxonomy_min_ranks: int | None = Field(default=None, ge=0)


class _ReconciliationSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    synonyms: list[list[str]] | None = None
    extra_synonyms: list[list[str]] = Field(default_factory=list)
    size_qualifiers: list[str] | None = None
    rank_tokens: list[str] | None = None
    placeholder_names: list[str] | None = None
    min_name_length: int | None = Field(default=None, ge=0)
    write_variant_info: bool | None = None
    weights: _WeightsSettings = Field(default_factory=_WeightsSettings)

    @field_validator("synonyms", "extra_synonyms")
    @classmethod
    def _groups_have_two_names(cls, value: list[list[str]] | None) -> list[list[str]] | None:
        if value is None:
            return None
        for group in value:
            if len(group) < 2:  # noqa: PLR2004
                raise ValueError("synonym groups need at least two names")
        return value


def _lowered(values: list[str]) -> frozenset[str]:
    return frozenset(value.strip().casefold() for value in values if value.strip())


def _groups(values: list[list[str]]) -> tuple[tuple[str, ...], ...]:
    return tuple(tuple(name.strip().casefold() for name in group) for group in values)


def _apply_settings(settings: _ReconciliationSettings) -> ReconciliationConfig:
    defaults = ReconciliationConfig()
    synonym_groups = (
        _groups(settings.synonyms) if settings.synonyms is not None else defaults.synonym_groups
    )
    weights = replace(defaults.weights, **settings.weights.model_dump(exclude_none=True))
    return ReconciliationConfig(
        synonym_groups=synonym_groups + _groups(settings.extra_synonyms),
        size_qualifiers=(
            _lowered(settings.size_qualifiers)
            if settings.size_qualifiers is not None
            else defaults.size_qualifiers
        ),
        rank_tokens=(
            _lowered(settings.rank_tokens)
            if settings.rank_tokens is not None
            else defaults.rank_tokens
        ),
        placeholder_names=(
            _lowered(settings.placeholder_names)
            if settings.placeholder_names is not None
            else defaults.placeholder_names
        ),
        min_name_length=(
            settings.min_name_length
            if settings.min_name_length is not None
            else defaults.min_name_length
        ),
        weights=weights,
        write_variant_info=(
            settings.write_variant_info
            if settings.write_variant_info is not None
            else defaults.write_variant_info
        ),
    )


def load_reconciliation_config(path: Path | None = None) -> ReconciliationConfig:
    """Return the reconciliation config, applying overrides from a TOML file.

    Without an explicit ``path`` the file named by ``PLANTCAT_RECONCILE_CONFIG`` is
    used; when that is unset too, the built-in defaults apply.
    """

    if path is None:
        env_path = os.getenv(CONFIG_ENV_VAR)
        if not env_path:
            return ReconciliationConfig()
        path = Path(env_path)

    try:
        with path.open("rb") as config_file:
            document: dict[str, Any] = tomllib.load(config_file)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read reconciliation config {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc

    section = document.get("reconciliation", {})
    try:
        settings = _ReconciliationSettings.model_validate(section)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid reconciliation config in {path}: {exc}") from exc

    log.info("Loaded reconciliation overrides from %s", path)
    return _apply_settings(settings)
