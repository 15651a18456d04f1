"""Meal commit service with atomic and compensated write paths."""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Protocol
from uuid import UUID

from nutrition_assistant.domain.meals import (
    CommitResult,
    CommitState,
    MealItemDraft,
    MealLogDraft,
    RowEdit,
    VerificationRow,
    VerificationView,
)
from nutrition_assistant.domain.nutrition import MacroProfile
from nutrition_assistant.services.energy import compute_tef

_logger = logging.getLogger(__name__)


class MealLogRepository(Protocol):
    """Persistence interface for meal logs."""

    def log_meal_atomic(self, draft: MealLogDraft) -> UUID | None:
        """Insert header and items in one transaction, returning the log id."""

    def create_meal_log(self, draft: MealLogDraft) -> UUID:
        """Insert a meal header and return its id."""

    def create_meal_items(self, meal_log_id: UUID, items: list[MealItemDraft]) -> None:
        """Insert meal item rows for a meal log."""

    def upsert_daily_totals(self, user_id: UUID, day: date) -> None:
        """Refresh the daily totals aggregate."""

    def delete_meal_items(self, meal_log_id: UUID) -> None:
        """Delete every item of a meal log."""

    def delete_meal_log(self, meal_log_id: UUID) -> None:
        """Delete a meal header."""


@dataclass
class MealCommitService:
    """Persists a confirmed verification view."""

    repository: MealLogRepository
    source: str = "chat"

    def commit(
        self,
        user_id: UUID,
        view: VerificationView,
        edits: list[RowEdit] | None = None,
    ) -> CommitResult:
        """Persist the approved rows, rolling back partial writes on failure."""
        try:
            rows = apply_edits(view.rows, edits or [])
        except ValueError as exc:
            return _failed(str(exc))
        if not rows:
            return _failed("Meal has no items to log")

        totals = sum_rows(rows)
        tef_kcal = compute_tef(totals).kcal if edits else view.tef_kcal
        draft = MealLogDraft(
            user_id=user_id,
            eaten_at=view.eaten_at,
            meal_slot=view.meal_slot,
            totals=totals,
            tef_kcal=tef_kcal,
            items=[
                MealItemDraft(
                    name=row.name,
                    quantity=row.quantity,
                    unit=row.unit,
                    macros=row.macros,
                    source=row.source,
                    confidence=row.confidence,
                )
                for row in rows
            ],
            source=self.source,
        )

        try:
            log_id = self.repository.log_meal_atomic(draft)
        except Exception as exc:
            _logger.warning("Atomic meal log failed, using sequential path: %s", exc)
            log_id = None
        if log_id is not None:
            _logger.info("Meal %s committed atomically for user %s", log_id, user_id)
            return CommitResult(ok=True, state=CommitState.COMMITTED, log_id=log_id)

        return self._commit_sequential(draft)

    def _commit_sequential(self, draft: MealLogDraft) -> CommitResult:
        try:
            log_id = self.repository.create_meal_log(draft)
        except Exception as exc:
            _logger.exception("Meal header insert failed for user %s", draft.user_id)
            return _failed(str(exc))

        try:
            self.repository.create_meal_items(log_id, draft.items)
        except Exception as exc:
            _logger.exception("Meal items failed for log %s, rolling back", log_id)
            self._rollback(log_id)
            return _failed(str(exc))

        try:
            self.repository.upsert_daily_totals(draft.user_id, draft.eaten_at.date())
        except Exception as exc:
            _logger.warning("Daily totals refresh failed for log %s: %s", log_id, exc)

        _logger.info("Meal %s committed for user %s", log_id, draft.user_id)
        return CommitResult(ok=True, state=CommitState.COMMITTED, log_id=log_id)

    def _rollback(self, log_id: UUID) -> None:
        try:
            self.repository.delete_meal_items(log_id)
        except Exception as exc:
            _logger.warning("Rollback of items for log %s failed: %s", log_id, exc)
        try:
            self.repository.delete_meal_log(log_id)
        except Exception as exc:
            _logger.error("Rollback of meal log %s failed: %s", log_id, exc)


def apply_edits(
    rows: list[VerificationRow], edits: list[RowEdit]
) -> list[VerificationRow]:
    """Apply user edits to verification rows, dropping removed rows."""
    edited: list[VerificationRow | None] = list(rows)
    for edit in edits:
        if not 0 <= edit.index < len(rows):
            raise ValueError(f"Edit refers to unknown row {edit.index}")
        row = edited[edit.index]
        if row is None:
            continue
        if edit.remove:
            edited[edit.index] = None
            continue
        edited[edit.index] = _edit_row(row, edit)
    return [row for row in edited if row is not None]


def sum_rows(rows: list[VerificationRow]) -> MacroProfile:
    """Sum row macros."""
    return MacroProfile(
        calories=sum(row.calories for row in rows),
        protein_g=sum(row.protein_g for row in rows),
        carbs_g=sum(row.carbs_g for row in rows),
        fat_g=sum(row.fat_g for row in rows),
        fiber_g=sum(row.fiber_g for row in rows),
    )


def _edit_row(row: VerificationRow, edit: RowEdit) -> VerificationRow:
    updated = row
    if (
        edit.quantity is not None
        and not edit.has_macros()
        and row.quantity
        and edit.quantity > 0
    ):
        scaled = row.macros.scaled(edit.quantity / row.quantity)
        updated = replace(
            updated,
            calories=scaled.calories,
            protein_g=scaled.protein_g,
            carbs_g=scaled.carbs_g,
            fat_g=scaled.fat_g,
            fiber_g=scaled.fiber_g,
        )
    changes: dict[str, object] = {
        key: value
        for key, value in (
            ("name", edit.name),
            ("quantity", edit.quantity),
            ("unit", edit.unit),
            ("calories", edit.calories),
            ("protein_g", edit.protein_g),
            ("carbs_g", edit.carbs_g),
            ("fat_g", edit.fat_g),
            ("fiber_g", edit.fiber_g),
        )
        if value is not None
    }
    if changes:
        updated = replace(updated, source="user_edit", **changes)
    return updated


def _failed(error: str) -> CommitResult:
    return CommitResult(ok=False, state=CommitState.FAILED, error=error)
