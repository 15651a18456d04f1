"""Thermic effect of food and remaining daily energy budget."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol
from uuid import UUID

from nutrition_assistant.domain.meals import TdeeResult, TefBreakdown
from nutrition_assistant.domain.nutrition import MacroProfile

KCAL_PER_G_PROTEIN = 4.0
KCAL_PER_G_CARBS = 4.0
KCAL_PER_G_FAT = 9.0

TEF_PROTEIN = 0.25
TEF_CARBS = 0.08
TEF_FAT = 0.03

_logger = logging.getLogger(__name__)


class EnergyRepository(Protocol):
    """Read access to energy targets and daily aggregates."""

    def get_target_kcal(self, user_id: UUID) -> float | None:
        """Return the user's daily calorie target, if set."""

    def get_consumed_kcal(self, user_id: UUID, day: date) -> float:
        """Return calories already logged on a day."""


def compute_tef(totals: MacroProfile) -> TefBreakdown:
    """Compute the thermic effect of food from meal totals."""
    protein_kcal = totals.protein_g * KCAL_PER_G_PROTEIN * TEF_PROTEIN
    carbs_kcal = totals.carbs_g * KCAL_PER_G_CARBS * TEF_CARBS
    fat_kcal = totals.fat_g * KCAL_PER_G_FAT * TEF_FAT
    return TefBreakdown(
        kcal=protein_kcal + carbs_kcal + fat_kcal,
        protein_kcal=protein_kcal,
        carbs_kcal=carbs_kcal,
        fat_kcal=fat_kcal,
    )


@dataclass
class TdeeService:
    """Computes how much of the daily budget remains after a meal."""

    repository: EnergyRepository
    default_target_kcal: float = 2000.0

    def compute(
        self,
        user_id: UUID,
        totals: MacroProfile,
        tef: TefBreakdown,
        eaten_at: datetime,
    ) -> TdeeResult:
        """Return target, consumed, and remaining energy for the day."""
        target = self.default_target_kcal
        consumed = 0.0
        try:
            stored_target = self.repository.get_target_kcal(user_id)
            if stored_target and stored_target > 0:
                target = stored_target
            consumed = self.repository.get_consumed_kcal(user_id, eaten_at.date())
        except Exception as exc:
            _logger.warning("Energy lookup failed for user %s: %s", user_id, exc)

        remaining = target - consumed - (totals.calories - tef.kcal)
        return TdeeResult(
            target_kcal=target,
            consumed_kcal=consumed,
            remaining_kcal=remaining,
            remaining_percentage=remaining / target * 100.0,
        )
