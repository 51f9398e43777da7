from __future__ import annotations

import pytest

from plantcat.domain.errors import MalformedNameError
from plantcat.domain.reconciliation.normalize import (
    NameNormalizer,
    epithet_of,
    genus_of,
    is_species_key,
    is_valid_scientific_name,
)

KEY_CASES: list[tuple[str | None, str | None]] = [
    ("Fittonia albivenis", "fittonia albivenis"),
    ("  Fittonia   Albivenis ", "fittonia albivenis"),
    ("Fittonia albivenis is a creeping plant from Peru", "fittonia albivenis"),
    ("Haworthia fasciata (zebra plant)", "haworthia fasciata"),
    ("Echeveria elegans 'Variegata'", "echeveria elegans"),
    ("Ficus pumila var. quercifolia", "ficus pumila"),
    ("Philodendron hederaceum cv. Brasil", "philodendron hederaceum"),
    ("Hoya carnosa variegata", "hoya carnosa"),
    ("Aloe x nobilis", "aloe × nobilis"),
    ("Aloe ×nobilis", "aloe × nobilis"),
    ("x Fatshedera lizei", "× fatshedera lizei"),
    ("Fittonia sp.", "fittonia"),
    ("Selaginella spp", "selaginella"),
    ("Aloe", None),
    ("unknown", None),
    ("N/A", None),
    ("", None),
    (None, None),
]


@pytest.mark.parametrize(("raw", "expected"), KEY_CASES)
def test_key_for_derives_canonical_species_key(raw: str | None, expected: str | None) -> None:
    assert NameNormalizer().key_for(raw) == expected


@pytest.mark.parametrize("raw", [raw for raw, expected in KEY_CASES if expected is not None])
def test_key_for_is_idempotent(raw: str) -> None:
    normalizer = NameNormalizer()
    key = normalizer.key_for(raw)

    assert normalizer.key_for(key) == key


@pytest.mark.parametrize("raw", [{"genus": "Fittonia"}, ["Fittonia", "albivenis"], 42])
def test_key_for_rejects_non_string_names(raw: object) -> None:
    with pytest.raises(MalformedNameError):
        NameNormalizer().key_for(raw)


def test_name_rules_are_data() -> None:
    assert NameNormalizer().key_for("Monstera 'Thai Constellation'") == "monstera"
    assert NameNormalizer(rules=()).key_for("Monstera 'Thai Constellation'") == "monstera 'thai"


def test_key_helpers_split_hybrids_and_genus_only_keys() -> None:
    assert genus_of("aloe × nobilis") == "aloe"
    assert epithet_of("aloe × nobilis") == "× nobilis"
    assert genus_of("× fatshedera lizei") == "× fatshedera"
    assert epithet_of("× fatshedera lizei") == "lizei"
    assert epithet_of("haworthia") is None
    assert is_species_key("fittonia albivenis")
    assert not is_species_key("haworthia")
    assert not is_species_key(None)


@pytest.mark.parametrize(
    "text",
    [
        "Fittonia albivenis",
        "Fittonia sp.",
        "Aloe x nobilis",
        "x Fatshedera lizei",
        "Echeveria elegans 'Lola'",
        "Ficus pumila var. quercifolia",
    ],
)
def test_valid_scientific_names(text: str) -> None:
    assert is_valid_scientific_name(text)


@pytest.mark.parametrize(
    "text",
    [
        "This plant is lovely",
        "fittonia albivenis",
        "Calathea 123",
        "Fittonia albivenis (nerve plant)",
        "",
        42,
    ],
)
def test_invalid_scientific_names(text: object) -> None:
    assert not is_valid_scientific_name(text)


def test_display_key_drops_asides_and_size_qualifiers() -> None:
    normalizer = NameNormalizer()

    assert normalizer.display_key("Haworthia Mini") == "haworthia"
    assert normalizer.display_key("Nerve Plant (Fittonia)") == "nerve plant"
    assert normalizer.display_key("Baby's Tears") == "babys tears"
    assert normalizer.size_qualifier("Dwarf Mondo Grass") == "dwarf"
    assert normalizer.size_qualifier("Haworthia") is None
