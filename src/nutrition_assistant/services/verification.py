"""Builds the verification view shown before a meal is logged."""

from datetime import datetime

from nutrition_assistant.domain.meals import (
    MEAL_ACTIONS,
    TdeeResult,
    TefBreakdown,
    VerificationRow,
    VerificationView,
)
from nutrition_assistant.domain.nutrition import ItemWarning, MacroProfile, MacroResult


def infer_meal_slot(hour: int) -> str:
    """Map a wall-clock hour to a meal slot."""
    if 6 <= hour < 11:  # noqa: PLR2004
        return "breakfast"
    if 11 <= hour < 16:  # noqa: PLR2004
        return "lunch"
    if 16 <= hour < 22:  # noqa: PLR2004
        return "dinner"
    return "snack"


def build_view(  # noqa: PLR0913
    items: list[MacroResult],
    totals: MacroProfile,
    tef: TefBreakdown,
    tdee: TdeeResult,
    now: datetime,
    warnings: list[ItemWarning] | tuple[ItemWarning, ...] = (),
    log_prominent: bool = True,
) -> VerificationView:
    """Assemble rows, rounded totals, and actions for the user to confirm."""
    rows = [
        VerificationRow(
            name=item.name,
            quantity=item.quantity,
            unit=item.unit,
            calories=round(item.calories),
            protein_g=round(item.protein_g),
            carbs_g=round(item.carbs_g),
            fat_g=round(item.fat_g),
            fiber_g=round(item.fiber_g),
            source=item.source.value,
            confidence=item.confidence,
        )
        for item in items
    ]
    return VerificationView(
        rows=rows,
        totals=_rounded(totals),
        tef_kcal=round(tef.kcal),
        tdee=TdeeResult(
            target_kcal=round(tdee.target_kcal),
            consumed_kcal=round(tdee.consumed_kcal),
            remaining_kcal=round(tdee.remaining_kcal),
            remaining_percentage=round(tdee.remaining_percentage, 1),
        ),
        meal_slot=infer_meal_slot(now.hour),
        eaten_at=now,
        actions=list(MEAL_ACTIONS),
        warnings=list(warnings),
        log_prominent=log_prominent,
    )


def _rounded(totals: MacroProfile) -> MacroProfile:
    return MacroProfile(
        calories=round(totals.calories),
        protein_g=round(totals.protein_g),
        carbs_g=round(totals.carbs_g),
        fat_g=round(totals.fat_g),
        fiber_g=round(totals.fiber_g),
    )
