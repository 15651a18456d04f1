"""Tests for portion resolution."""

import pytest

from nutrition_assistant.domain.nutrition import NormalizedItem
from nutrition_assistant.services.portions import canonical_unit, resolve_portions


def _resolve(item: NormalizedItem):
    (portioned,) = resolve_portions([item])
    return portioned


def test_known_food_with_matching_unit_gets_grams() -> None:
    item = _resolve(NormalizedItem(name="eggs", amount=2.0, unit="pieces"))

    assert item.quantity == 2.0
    assert item.unit == "piece"
    assert item.grams == 100.0


def test_missing_unit_is_inferred_from_food() -> None:
    item = _resolve(NormalizedItem(name="sourdough toast"))

    assert item.quantity == 1.0
    assert item.unit == "slice"
    assert item.grams == 28.0


def test_mass_units_convert_to_grams() -> None:
    assert _resolve(NormalizedItem(name="chicken", amount=200, unit="grams")).grams == (
        200.0
    )
    assert _resolve(NormalizedItem(name="steak", amount=8, unit="oz")).grams == (
        pytest.approx(226.8)
    )


def test_unknown_food_defaults_to_serving() -> None:
    item = _resolve(NormalizedItem(name="mystery stew"))

    assert item.unit == "serving"
    assert item.grams is None


def test_invalid_amount_defaults_to_one() -> None:
    assert _resolve(NormalizedItem(name="apple", amount="lots")).quantity == 1.0


def test_portion_keeps_brand_and_labels() -> None:
    item = _resolve(
        NormalizedItem(
            name="latte",
            brand="starbucks",
            size_label="grande",
            is_branded=True,
        )
    )

    assert item.brand == "starbucks"
    assert item.size_label == "grande"
    assert item.is_branded


def test_canonical_unit() -> None:
    assert canonical_unit("Tbsp.") == "tbsp"
    assert canonical_unit("handful") == "handful"
    assert canonical_unit(None) is None
