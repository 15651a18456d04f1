"""Nutrition pipeline from meal text to a verification view."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from nutrition_assistant.domain.chat import PipelineResult
from nutrition_assistant.domain.meals import (
    MEAL_ACTIONS,
    TdeeResult,
    VerificationRow,
    VerificationView,
)
from nutrition_assistant.domain.nutrition import MacroProfile
from nutrition_assistant.services.cascade import MacroLookupCascade
from nutrition_assistant.services.energy import TdeeService, compute_tef
from nutrition_assistant.services.normalizer import NutritionNormalizer
from nutrition_assistant.services.portions import resolve_portions
from nutrition_assistant.services.sanitizer import sanitize_items
from nutrition_assistant.services.verification import build_view, infer_meal_slot

_logger = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class NutritionPipeline:
    """Runs normalize, sanitize, portion, lookup, energy, and view steps."""

    normalizer: NutritionNormalizer
    cascade: MacroLookupCascade
    tdee_service: TdeeService
    clock: Callable[[], datetime] = field(default=_local_now)

    async def process(
        self,
        message: str,
        user_id: UUID,
        log_prominent: bool = True,
        dev_override: bool = False,
    ) -> PipelineResult:
        """Resolve a meal message into a verification view."""
        if dev_override:
            return canned_result(self.clock())
        try:
            normalized = await self.normalizer.normalize(message)
            items = resolve_portions(sanitize_items(normalized))
            lookup = await self.cascade.lookup(items, user_id)
            tef = compute_tef(lookup.totals)
            now = self.clock()
            tdee = self.tdee_service.compute(user_id, lookup.totals, tef, now)
            view = build_view(
                lookup.items,
                lookup.totals,
                tef,
                tdee,
                now,
                warnings=lookup.warnings,
                log_prominent=log_prominent,
            )
        except Exception as exc:
            _logger.exception("Nutrition pipeline failed for user %s", user_id)
            return PipelineResult(success=False, error=str(exc) or type(exc).__name__)

        _logger.info(
            "Pipeline complete: items=%s calories=%.1f tef=%.1f remaining=%.1f",
            len(lookup.items),
            lookup.totals.calories,
            tef.kcal,
            tdee.remaining_kcal,
        )
        return PipelineResult(
            success=True,
            view=view,
            items=lookup.items,
            skills_fired=lookup.skills_fired,
        )


def canned_result(now: datetime) -> PipelineResult:
    """Return the fixed two-item view used for deterministic pipeline checks."""
    rows = [
        VerificationRow("big mac", 1, "piece", 219, 9, 21, 12, 0),
        VerificationRow("large fries", 1, "piece", 323, 4, 41, 16, 4),
    ]
    view = VerificationView(
        rows=rows,
        totals=MacroProfile(542, 13, 62, 28, 4),
        tef_kcal=40,
        tdee=TdeeResult(
            target_kcal=2000,
            consumed_kcal=0,
            remaining_kcal=1498,
            remaining_percentage=74.9,
        ),
        meal_slot=infer_meal_slot(now.hour),
        eaten_at=now,
        actions=list(MEAL_ACTIONS),
    )
    return PipelineResult(success=True, view=view)
