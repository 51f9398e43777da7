from __future__ import annotations

from typing import Any

import pytest

from plantcat.domain.reconciliation.policy import FieldMergePolicy
from plantcat.domain.reconciliation.score import CompletenessScorer

from tests.helpers.catalog import make_record, plant


def _merge(
    winner: dict[str, Any], *losers: dict[str, Any]
) -> tuple[dict[str, Any], tuple[str, ...]]:
    record = make_record("winner.json", winner)
    outcome = FieldMergePolicy().merge(
        record,
        [make_record(f"loser-{index}.json", loser) for index, loser in enumerate(losers)],
    )
    return record.document, outcome.changed_fields


def test_longer_valid_scientific_name_is_adopted() -> None:
    document, changed = _merge(plant("Fittonia", "Fittonia"), plant("Nerve", "Fittonia albivenis"))

    assert document["scientificName"] == "Fittonia albivenis"
    assert "scientificName" in changed


@pytest.mark.parametrize(
    "incoming",
    [
        "This plant comes from the rainforests of Peru",
        "Fittonia",
        "",
    ],
)
def test_scientific_name_is_kept_against_prose_or_shorter_names(incoming: str) -> None:
    document, _ = _merge(plant("Fittonia", "Fittonia albivenis"), plant("Fittonia", incoming))

    assert document["scientificName"] == "Fittonia albivenis"


def test_longer_description_wins() -> None:
    document, _ = _merge(
        plant("Pothos", description="Vine"),
        plant("Pothos", description="Trailing vine with golden leaves"),
        plant("Pothos", description="Short"),
    )

    assert document["description"] == "Trailing vine with golden leaves"


def test_more_specific_name_replaces_the_winner_name() -> None:
    document, changed = _merge(plant("Pothos"), plant("Pothos Golden"))

    assert document["name"] == "Pothos Golden"
    assert document["commonNames"] == ["Pothos"]
    assert changed[:2] == ("name", "commonNames")


def test_size_qualified_name_becomes_a_common_name() -> None:
    document, changed = _merge(
        plant("Haworthia", "Haworthia fasciata"), plant("Haworthia Mini", "Haworthia fasciata")
    )

    assert document["name"] == "Haworthia"
    assert document["commonNames"] == ["Haworthia Mini"]
    assert changed == ("commonNames",)


def test_common_names_are_deduplicated_case_insensitively() -> None:
    document, _ = _merge(
        plant("Nerve Plant", "Fittonia albivenis", commonNames=["Mosaic Plant"]),
        plant("mosaic plant"),
        plant("NERVE PLANT"),
        plant("Fittonia Albivenis"),
        plant("Fittonia"),
    )

    assert document["name"] == "Nerve Plant"
    assert document["commonNames"] == ["Mosaic Plant", "Fittonia"]


def test_list_fields_are_unioned_in_order_and_scalars_count() -> None:
    document, changed = _merge(
        plant("Pothos", images=["a.jpg", "b.jpg"], careTips="Bright light", category=None),
        plant("Pothos", images=["b.jpg", "c.jpg"], careTips=["Bright light", "Water weekly"]),
        plant("Pothos", category="Vines", vivariumType=["Tropical"]),
    )

    assert document["images"] == ["a.jpg", "b.jpg", "c.jpg"]
    assert document["careTips"] == ["Bright light", "Water weekly"]
    assert document["category"] == ["Vines"]
    assert document["vivariumType"] == ["Tropical"]
    assert {"images", "careTips", "category", "vivariumType"} <= set(changed)


def test_image_url_fills_only_an_empty_slot() -> None:
    empty, _ = _merge(plant("Ivy", imageUrl=""), plant("Ivy", imageUrl="ivy.jpg"))
    kept, _ = _merge(plant("Ivy", imageUrl="mine.jpg"), plant("Ivy", imageUrl="ivy.jpg"))

    assert empty["imageUrl"] == "ivy.jpg"
    assert kept["imageUrl"] == "mine.jpg"


def test_taxonomy_fills_blank_ranks_only() -> None:
    document, changed = _merge(
        plant("Fittonia", taxonomy={"family": "Acanthaceae", "genus": ""}),
        plant("Fittonia", taxonomy={"family": "Other", "genus": "Fittonia", "order": "Lamiales"}),
    )

    assert document["taxonomy"] == {
        "family": "Acanthaceae",
        "genus": "Fittonia",
        "order": "Lamiales",
    }
    assert "taxonomy" in changed


def test_id_is_never_taken_from_a_loser() -> None:
    document, _ = _merge(plant("Fern"), plant("Fern", id=7))
    numbered, _ = _merge(plant("Fern", id=3), plant("Fern", id=7))

    assert "id" not in document
    assert numbered["id"] == 3


def test_unrecognized_fields_keep_the_winner_value() -> None:
    document, changed = _merge(
        plant("Fern", humidity="high"),
        plant("Fern", humidity="low", origin="Florida"),
    )

    assert document["humidity"] == "high"
    assert document["origin"] == "Florida"
    assert "origin" in changed
    assert "humidity" not in changed


def test_empty_documents_merge_without_errors() -> None:
    document, changed = _merge({}, {})

    assert document == {}
    assert changed == ()


def test_odd_types_act_as_identity() -> None:
    document, _ = _merge(
        plant("Fern", taxonomy="Polypodiales", description=12),
        plant("Fern", taxonomy={"order": "Polypodiales"}, description=["long"]),
    )

    assert document["taxonomy"] == "Polypodiales"
    assert document["description"] == 12


def test_merge_never_lowers_completeness() -> None:
    scorer = CompletenessScorer()
    winner = make_record(
        "fittonia.json",
        plant("Fittonia", "Fittonia albivenis", description="Nerve plant", images=["a.jpg"]),
    )
    loser = make_record(
        "nerve.json",
        plant("Nerve Plant", "Fittonia", images=["b.jpg"], imageUrl="c.jpg"),
    )
    before = scorer.score(winner)

    FieldMergePolicy().merge(winner, [loser])

    assert scorer.score(winner) >= before
    assert scorer.score(winner) >= scorer.score(loser)


@pytest.mark.parametrize(
    ("candidate", "current", "expected"),
    [
        ("Pothos Golden", "Pothos", True),
        ("Pothos Mini", "Pothos", False),
        ("Golden Pothos", "Pothos", False),
        ("Pothos", "Pothos", False),
        ("Pothos", "", False),
    ],
)
def test_is_more_specific(candidate: str, current: str, expected: bool) -> None:
    assert FieldMergePolicy().is_more_specific(candidate, current) is expected
