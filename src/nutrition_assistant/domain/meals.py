"""Meal verification and logging domain models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from nutrition_assistant.domain.nutrition import ItemWarning, MacroProfile

MEAL_ACTIONS = ["CONFIRM_LOG", "EDIT_ITEMS", "CANCEL"]


@dataclass(frozen=True)
class TefBreakdown:
    """Thermic effect of food for a meal."""

    kcal: float
    protein_kcal: float
    carbs_kcal: float
    fat_kcal: float


@dataclass(frozen=True)
class TdeeResult:
    """Daily energy budget after a meal."""

    target_kcal: float
    consumed_kcal: float
    remaining_kcal: float
    remaining_percentage: float


@dataclass(frozen=True)
class VerificationRow:
    """Editable row of the verification view."""

    name: str
    quantity: float | None
    unit: str | None
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float
    editable: bool = True
    source: str | None = None
    confidence: float | None = None

    @property
    def macros(self) -> MacroProfile:
        return MacroProfile(
            calories=self.calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
            fiber_g=self.fiber_g,
        )


@dataclass(frozen=True)
class VerificationView:
    """Structure rendered for the user to confirm, edit, or cancel a meal."""

    rows: list[VerificationRow]
    totals: MacroProfile
    tef_kcal: float
    tdee: TdeeResult
    meal_slot: str
    eaten_at: datetime
    actions: list[str] = field(default_factory=lambda: list(MEAL_ACTIONS))
    warnings: list[ItemWarning] = field(default_factory=list)
    log_prominent: bool = True


@dataclass(frozen=True)
class RowEdit:
    """User edit applied to one verification row before commit."""

    index: int
    name: str | None = None
    quantity: float | None = None
    unit: str | None = None
    calories: float | None = None
    protein_g: float | None = None
    carbs_g: float | None = None
    fat_g: float | None = None
    fiber_g: float | None = None
    remove: bool = False

    def has_macros(self) -> bool:
        return any(
            value is not None
            for value in (
                self.calories,
                self.protein_g,
                self.carbs_g,
                self.fat_g,
                self.fiber_g,
            )
        )


@dataclass(frozen=True)
class MealItemDraft:
    """Meal item ready to persist."""

    name: str
    quantity: float | None
    unit: str | None
    macros: MacroProfile
    source: str | None = None
    confidence: float | None = None


@dataclass(frozen=True)
class MealLogDraft:
    """Meal header and items ready to persist."""

    user_id: UUID
    eaten_at: datetime
    meal_slot: str
    totals: MacroProfile
    tef_kcal: float
    items: list[MealItemDraft]
    source: str = "chat"


class CommitState(StrEnum):
    """Lifecycle of a meal commit."""

    PENDING = "pending"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass(frozen=True)
class CommitResult:
    """Outcome of committing a meal."""

    ok: bool
    state: CommitState
    log_id: UUID | None = None
    error: str | None = None


@dataclass(frozen=True)
class MealHistoryHit:
    """A previously logged meal item matching a memory query."""

    name: str
    quantity: float | None
    unit: str | None
    calories: float
    eaten_at: datetime
    meal_slot: str | None = None
