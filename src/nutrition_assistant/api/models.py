"""Pydantic models for HTTP request payloads."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from nutrition_assistant.domain.meals import (
    MEAL_ACTIONS,
    RowEdit,
    TdeeResult,
    VerificationRow,
    VerificationView,
)
from nutrition_assistant.domain.nutrition import ItemWarning, MacroProfile


class ChatMessageRequest(BaseModel):
    """Incoming chat message."""

    text: str = Field(min_length=1)
    user_id: UUID
    session_id: UUID | None = None


class MacroTotalsModel(BaseModel):
    calories: float = Field(ge=0)
    protein_g: float = Field(ge=0)
    carbs_g: float = Field(ge=0)
    fat_g: float = Field(ge=0)
    fiber_g: float = Field(default=0.0, ge=0)

    def to_domain(self) -> MacroProfile:
        return MacroProfile(
            calories=self.calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
            fiber_g=self.fiber_g,
        )


class VerificationRowModel(MacroTotalsModel):
    """Row of a verification view."""

    name: str
    quantity: float | None = None
    unit: str | None = None
    editable: bool = True
    source: str | None = None
    confidence: float | None = None

    def to_row(self) -> VerificationRow:
        return VerificationRow(
            name=self.name,
            quantity=self.quantity,
            unit=self.unit,
            calories=self.calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
            fiber_g=self.fiber_g,
            editable=self.editable,
            source=self.source,
            confidence=self.confidence,
        )


class TdeeModel(BaseModel):
    target_kcal: float
    consumed_kcal: float
    remaining_kcal: float
    remaining_percentage: float


class ItemWarningModel(BaseModel):
    type: str
    item: str
    message: str


class VerificationViewModel(BaseModel):
    """Verification view echoed back by the client on confirm."""

    rows: list[VerificationRowModel]
    totals: MacroTotalsModel
    tef_kcal: float = Field(ge=0)
    tdee: TdeeModel
    meal_slot: str
    eaten_at: datetime
    actions: list[str] = Field(default_factory=lambda: list(MEAL_ACTIONS))
    warnings: list[ItemWarningModel] = Field(default_factory=list)
    log_prominent: bool = True

    def to_domain(self) -> VerificationView:
        return VerificationView(
            rows=[row.to_row() for row in self.rows],
            totals=self.totals.to_domain(),
            tef_kcal=self.tef_kcal,
            tdee=TdeeResult(**self.tdee.model_dump()),
            meal_slot=self.meal_slot,
            eaten_at=self.eaten_at,
            actions=list(self.actions),
            warnings=[ItemWarning(**warning.model_dump()) for warning in self.warnings],
            log_prominent=self.log_prominent,
        )


class RowEditModel(BaseModel):
    """User edit to one verification row."""

    index: int = Field(ge=0)
    name: str | None = None
    quantity: float | None = Field(default=None, gt=0)
    unit: str | None = None
    calories: float | None = Field(default=None, ge=0)
    protein_g: float | None = Field(default=None, ge=0)
    carbs_g: float | None = Field(default=None, ge=0)
    fat_g: float | None = Field(default=None, ge=0)
    fiber_g: float | None = Field(default=None, ge=0)
    remove: bool = False

    def to_domain(self) -> RowEdit:
        return RowEdit(**self.model_dump())


class MealCommitRequest(BaseModel):
    """Confirmed meal to persist."""

    user_id: UUID
    view: VerificationViewModel
    edits: list[RowEditModel] = Field(default_factory=list)
