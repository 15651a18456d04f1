"""Tests for TEF and remaining energy calculations."""

from datetime import datetime
from uuid import uuid4

import pytest

from nutrition_assistant.domain.nutrition import MacroProfile
from nutrition_assistant.services.energy import TdeeService, compute_tef
from tests.conftest import InMemoryEnergyRepository

TOTALS = MacroProfile(215, 14, 14, 11, 1)
EATEN_AT = datetime(2026, 3, 2, 12, 30)


def test_compute_tef_uses_macro_specific_rates() -> None:
    tef = compute_tef(TOTALS)

    assert tef.protein_kcal == pytest.approx(14.0)
    assert tef.carbs_kcal == pytest.approx(4.48)
    assert tef.fat_kcal == pytest.approx(2.97)
    assert tef.kcal == pytest.approx(21.45)


def test_tdee_defaults_without_stored_target() -> None:
    service = TdeeService(InMemoryEnergyRepository())

    result = service.compute(uuid4(), TOTALS, compute_tef(TOTALS), EATEN_AT)

    assert result.target_kcal == 2000
    assert result.consumed_kcal == 0
    assert result.remaining_kcal == pytest.approx(1806.45)
    assert result.remaining_percentage == pytest.approx(90.3225)


def test_tdee_uses_stored_target_and_consumption() -> None:
    repository = InMemoryEnergyRepository(target_kcal=2500, consumed_kcal=1000)

    result = TdeeService(repository).compute(
        uuid4(), TOTALS, compute_tef(TOTALS), EATEN_AT
    )

    assert result.target_kcal == 2500
    assert result.consumed_kcal == 1000
    assert result.remaining_kcal == pytest.approx(1306.45)


def test_tdee_ignores_non_positive_target() -> None:
    repository = InMemoryEnergyRepository(target_kcal=0)

    result = TdeeService(repository).compute(
        uuid4(), TOTALS, compute_tef(TOTALS), EATEN_AT
    )

    assert result.target_kcal == 2000


def test_tdee_survives_repository_failure() -> None:
    repository = InMemoryEnergyRepository(error=RuntimeError("db down"))

    result = TdeeService(repository, default_target_kcal=1800).compute(
        uuid4(), TOTALS, compute_tef(TOTALS), EATEN_AT
    )

    assert result.target_kcal == 1800
    assert result.consumed_kcal == 0
