"""Nutrition domain models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class MacroSource(StrEnum):
    """Where a macro result came from."""

    GLOBAL_CACHE = "global_cache"
    BRAND = "brand"
    GENERIC = "generic"
    GEMINI = "gemini"
    OPENAI = "openai"
    BRAND_RESOLVER = "brand_resolver"
    STUB = "stub"


@dataclass(frozen=True)
class MacroProfile:
    """Energy and macronutrients for some amount of food."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float = 0.0

    def scaled(self, factor: float) -> "MacroProfile":
        """Return the profile multiplied by a portion factor."""
        return MacroProfile(
            calories=self.calories * factor,
            protein_g=self.protein_g * factor,
            carbs_g=self.carbs_g * factor,
            fat_g=self.fat_g * factor,
            fiber_g=self.fiber_g * factor,
        )


ZERO_MACROS = MacroProfile(0.0, 0.0, 0.0, 0.0, 0.0)


@dataclass(frozen=True)
class NormalizedItem:
    """A food mention extracted from free text."""

    name: str
    amount: float | str | None = None
    unit: str | None = None
    brand: str | None = None
    serving_label: str | None = None
    size_label: str | None = None
    is_branded: bool = False


@dataclass(frozen=True)
class PortionedItem:
    """A food mention with a canonical quantity and unit."""

    name: str
    quantity: float
    unit: str
    grams: float | None = None
    brand: str | None = None
    serving_label: str | None = None
    size_label: str | None = None
    is_branded: bool = False

    def describe(self) -> str:
        """Human readable label used in provider prompts."""
        label = self.name
        if self.brand:
            label = f"{label} ({self.brand})"
        if self.serving_label:
            label = f"{label} - {self.serving_label}"
        if self.size_label and self.size_label not in self.name.lower():
            label = f"{label} {self.size_label}"
        return label


@dataclass(frozen=True)
class MacroResult:
    """Resolved macros for one portioned item."""

    name: str
    quantity: float
    unit: str
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float
    confidence: float
    source: MacroSource
    provider: str
    brand: str | None = None

    @classmethod
    def from_profile(  # noqa: PLR0913
        cls,
        item: PortionedItem,
        macros: MacroProfile,
        *,
        confidence: float,
        source: MacroSource,
        provider: str | None = None,
    ) -> "MacroResult":
        """Build a result for an item from a macro profile."""
        return cls(
            name=item.name,
            quantity=item.quantity,
            unit=item.unit,
            calories=macros.calories,
            protein_g=macros.protein_g,
            carbs_g=macros.carbs_g,
            fat_g=macros.fat_g,
            fiber_g=macros.fiber_g,
            confidence=confidence,
            source=source,
            provider=provider or source.value,
            brand=item.brand,
        )

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
class GlobalCacheEntry:
    """Shared per-serving nutrition data reused across users."""

    normalized_name: str
    brand: str | None
    serving_label: str | None
    grams_per_serving: float | None
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    fiber_g: float
    source: str
    confidence: float
    size_label: str | None = None
    created_at: datetime | None = None

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
class ItemWarning:
    """Per-item warning shown in the verification view."""

    type: str
    item: str
    message: str


@dataclass(frozen=True)
class LookupResult:
    """Output of the macro lookup cascade."""

    items: list[MacroResult]
    totals: MacroProfile
    skills_fired: list[str] = field(default_factory=list)
    warnings: list[ItemWarning] = field(default_factory=list)


class NormalizedItemPayload(BaseModel):
    """Single item returned by the normalizer model."""

    name: str
    amount: float | str | None = None
    unit: str | None = None
    brand: str | None = None


class NormalizerPayload(BaseModel):
    """Structured output for the meal text normalizer."""

    items: list[NormalizedItemPayload]


class MacroPayload(BaseModel):
    """Structured macro output returned by LLM providers."""

    calories: float = Field(ge=0.0)
    protein_g: float = Field(ge=0.0)
    carbs_g: float = Field(ge=0.0)
    fat_g: float = Field(ge=0.0)
    fiber_g: float | None = Field(default=None, ge=0.0)

    def to_profile(self) -> MacroProfile:
        return MacroProfile(
            calories=self.calories,
            protein_g=self.protein_g,
            carbs_g=self.carbs_g,
            fat_g=self.fat_g,
            fiber_g=self.fiber_g or 0.0,
        )


@dataclass(frozen=True)
class FoodSummary:
    """Search hit from a food composition database."""

    fdc_id: int
    description: str
    data_type: str | None = None
    brand_owner: str | None = None


@dataclass(frozen=True)
class FoodDetails:
    """Per-100 g nutrient profile of a food."""

    summary: FoodSummary
    macros: MacroProfile
    serving_size_g: float | None = None
