"""Name normalization for canonical species keys.

Responsibilities of this stage:
- turn an untrusted ``scientificName`` into a ``"<genus> <species>"`` key
- turn display names into comparable lookup strings
- stay pure: no record mutation, no I/O

Keys look like ``"fittonia albivenis"``, ``"aloe × nobilis"`` (interspecific
hybrid), ``"× fatshedera lizei"`` (intergeneric hybrid) or ``"haworthia"``
(genus-only, too weak to merge on).
"""

from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, TypeAlias

from plantcat.config.reconciliation import ReconciliationConfig
from plantcat.domain.errors import MalformedNameError

if TYPE_CHECKING:
    from collections.abc import Sequence

log = logging.getLogger(__name__)

HYBRID_MARK: Final[str] = "×"
_HYBRID_TOKENS: Final[frozenset[str]] = frozenset({"x", HYBRID_MARK})
_QUOTES: Final[str] = "\"'‘’“”`"
_TOKEN_TRIM: Final[str] = ".,;:!?"

Replacement: TypeAlias = str | Callable[[re.Match[str]], str]


@dataclass(frozen=True, slots=True)
class NameRule:
    """One rewrite step of the name cleaning cascade."""

    name: str
    pattern: re.Pattern[str]
    replacement: Replacement = " "

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


DEFAULT_NAME_RULES: Final[tuple[NameRule, ...]] = (
    NameRule(
        "descriptive-noise",
        re.compile(r"\s+(?:is|are|was|originates|forms|requires|grows|has)\b.*$"),
        "",
    ),
    NameRule("parenthetical", re.compile(r"\([^)]*\)|\[[^\]]*\]")),
    NameRule("quoted-cultivar", re.compile(rf"[{_QUOTES}][^{_QUOTES}]*[{_QUOTES}]")),
    NameRule("variety-marker", re.compile(r"\b(?:var|cv)\.\s*\S+")),
    NameRule("variegation", re.compile(r"\bvariegat(?:a|e|ed|um|us)\b")),
    NameRule("stray-quote", re.compile(rf"[{_QUOTES}]"), ""),
    NameRule("glued-hybrid", re.compile(HYBRID_MARK), f" {HYBRID_MARK} "),
)

_INVALID_NAME_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(
        r"^(?:the|this|that|these|a|an|excellent|attractive|beautiful|popular|hardy)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(?:plant|plants|growing|with|for|from|and|or|but)\b", re.IGNORECASE),
    re.compile(r"^(?![×x]\s)[a-z]"),
    re.compile(r"\d{2,}"),
    re.compile(r"[!@#$%^&*()+=\[\]{};:<>?/\\|~]"),
)
_VALID_NAME_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"^[A-Z][a-z]+\s+[a-z-]+(?:\s+[a-z-]+)?$"),
    re.compile(r"^[A-Z][a-z]+\s+spp?\.?$"),
    re.compile(r"^(?:[×x]\s*)?[A-Z][a-z]+\s+[×x]?\s*[a-z-]+$"),
    re.compile(r"^[A-Z][a-z]+(?:\s+[a-z-]+)?\s+['‘\"“][^'’\"”]+['’\"”]$"),
    re.compile(r"^[A-Z][a-z]+\s+[a-z-]+\s+(?:var|subsp|ssp|f)\.\s+[a-z-]+$"),
)


def split_key(key: str) -> tuple[str, str | None]:
    """Split a canonical key into its genus part and epithet part."""

    parts = key.split()
    if parts and parts[0] == HYBRID_MARK:
        genus = " ".join(parts[:2])
        rest = parts[2:]
    else:
        genus = parts[0] if parts else ""
        rest = parts[1:]
    return genus, (" ".join(rest) or None)


def genus_of(key: str | None) -> str | None:
    if not key:
        return None
    return split_key(key)[0] or None


def epithet_of(key: str | None) -> str | None:
    if not key:
        return None
    return split_key(key)[1]


def is_species_key(key: str | None) -> bool:
    """Return whether the key is specific enough to merge on."""

    return epithet_of(key) is not None


def is_valid_scientific_name(text: object) -> bool:
    """Return whether ``text`` looks like a binomial rather than prose or junk."""

    if not isinstance(text, str):
        return False
    candidate = " ".join(text.split())
    if not candidate:
        return False
    if any(pattern.search(candidate) for pattern in _INVALID_NAME_PATTERNS):
        return False
    return any(pattern.match(candidate) for pattern in _VALID_NAME_PATTERNS)


def normalize_text(value: str | None) -> str | None:
    """Casefold and strip punctuation so free-form names compare equal."""

    if value is None:
        return None
    text = unicodedata.normalize("NFKC", value)
    text = text.casefold()
    text = "".join(ch for ch in text if not unicodedata.category(ch).startswith("P"))
    text = " ".join(text.split())
    return text or None


class NameNormalizer:
    """Derive canonical keys and comparable display names."""

    def __init__(
        self,
        config: ReconciliationConfig | None = None,
        *,
        rules: Sequence[NameRule] = DEFAULT_NAME_RULES,
    ) -> None:
        self.config = config or ReconciliationConfig()
        self._rules = tuple(rules)

    def key_for(self, raw: object) -> str | None:
        """Return the canonical key for a raw scientific name.

        ``None`` input, placeholders and text without a usable genus give ``None``.
        Anything other than a string or ``None`` raises ``MalformedNameError``.
        """

        if raw is None:
            return None
        if not isinstance(raw, str):
            raise MalformedNameError(value=raw)

        text = unicodedata.normalize("NFKC", raw).casefold().strip()
        if not text or text in self.config.placeholder_names:
            return None
        tokens = self._meaningful_tokens(self.clean(text))
        return self._key_from_tokens(tokens)

    def clean(self, text: str) -> str:
        """Apply the rule cascade and collapse whitespace."""

        cleaned = unicodedata.normalize("NFKC", text).casefold()
        for rule in self._rules:
            cleaned = rule.apply(cleaned)
        return " ".join(cleaned.split())

    def display_key(self, name: str) -> str | None:
        """Comparable form of a display name: no asides, no size qualifiers."""

        text = unicodedata.normalize("NFKC", name).casefold()
        text = re.sub(r"\([^)]*\)|\[[^\]]*\]", " ", text)
        normalized = normalize_text(text)
        if normalized is None:
            return None
        kept = [token for token in normalized.split() if token not in self.config.size_qualifiers]
        return " ".join(kept) or None

    def size_qualifier(self, name: str) -> str | None:
        """Return the first standalone size qualifier token in ``name``."""

        normalized = normalize_text(name)
        if normalized is None:
            return None
        for token in normalized.split():
            if token in self.config.size_qualifiers:
                return token
        return None

    def _meaningful_tokens(self, text: str) -> list[str]:
        tokens: list[str] = []
        for raw_token in text.split():
            token = raw_token.strip(_TOKEN_TRIM)
            if not token:
                continue
            if token in _HYBRID_TOKENS:
                tokens.append(HYBRID_MARK)
                continue
            if token in self.config.rank_tokens or token in self.config.placeholder_epithets:
                continue
            if not any(ch.isalpha() for ch in token):
                continue
            tokens.append(token)
        return tokens

    def _key_from_tokens(self, tokens: list[str]) -> str | None:
        prefix = ""
        if tokens and tokens[0] == HYBRID_MARK:
            prefix = f"{HYBRID_MARK} "
            tokens = tokens[1:]
        # a marker only counts between genus and epithet
        core = [
            token for index, token in enumerate(tokens) if token != HYBRID_MARK or index == 1
        ]

        if len(core) >= 3 and core[1] == HYBRID_MARK:  # noqa: PLR2004
            return f"{prefix}{core[0]} {HYBRID_MARK} {core[2]}"
        if len(core) >= 2 and core[1] != HYBRID_MARK:  # noqa: PLR2004
            return f"{prefix}{core[0]} {core[1]}"
        if core and core[0] != HYBRID_MARK and len(core[0]) > self.config.genus_min_length:
            return f"{prefix}{core[0]}"
        return None
