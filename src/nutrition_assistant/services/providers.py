"""Nutrition providers consulted by the macro lookup cascade."""

import logging
import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from pydantic import ValidationError

from nutrition_assistant.domain.nutrition import (
    GlobalCacheEntry,
    MacroPayload,
    MacroProfile,
    MacroResult,
    MacroSource,
    PortionedItem,
)
from nutrition_assistant.services.completions import ChatClient
from nutrition_assistant.services.global_cache import (
    NutritionCacheRepository,
    cache_key,
)
from nutrition_assistant.services.json_repair import LenientJsonError, decode_lenient
from nutrition_assistant.services.nutrition import FoodDataService

BRAND_CONFIDENCE = 0.95
GENERIC_CONFIDENCE = 0.9
BRAND_RESOLVER_CONFIDENCE = 0.8
LLM_CONFIDENCE = 0.75
PROVIDER_TEMPERATURE = 0.1

_MASS_UNITS = {"g", "kg", "oz", "lb"}
_PACK_COUNT = re.compile(r"^(\d+)-piece$")

_logger = logging.getLogger(__name__)


class NutritionProvider(StrEnum):
    """Providers the cascade can dispatch to."""

    BRAND = "brand"
    GENERIC = "generic"
    GEMINI = "gemini"
    OPENAI = "openai"
    BRAND_RESOLVER = "brand_resolver"


class MacroProvider(Protocol):
    """Uniform provider interface."""

    async def resolve(self, item: PortionedItem) -> MacroResult | None:
        """Return macros for the whole portion, or None when unknown."""


@dataclass(frozen=True)
class BrandMenuItem:
    """Per-serving macros for a branded item, optionally by size."""

    macros: MacroProfile
    sizes: dict[str, MacroProfile] = field(default_factory=dict)
    per_piece: bool = False

    def for_size(self, size_label: str | None) -> MacroProfile:
        if size_label and size_label in self.sizes:
            return self.sizes[size_label]
        return self.macros


BRAND_MENU: dict[tuple[str, str], BrandMenuItem] = {
    ("mcdonald's", "big mac"): BrandMenuItem(MacroProfile(590, 25, 46, 34, 3)),
    ("mcdonald's", "nugget"): BrandMenuItem(
        MacroProfile(43, 2.4, 2.6, 2.6, 0.2), per_piece=True
    ),
    ("mcdonald's", "fries"): BrandMenuItem(
        MacroProfile(320, 4, 43, 15, 4),
        sizes={
            "small": MacroProfile(230, 3, 31, 11, 3),
            "medium": MacroProfile(320, 4, 43, 15, 4),
            "large": MacroProfile(480, 7, 65, 23, 6),
        },
    ),
    ("mcdonald's", "mcchicken"): BrandMenuItem(MacroProfile(400, 14, 39, 21, 1)),
    ("starbucks", "latte"): BrandMenuItem(
        MacroProfile(190, 13, 19, 7, 0),
        sizes={
            "tall": MacroProfile(150, 10, 15, 6, 0),
            "grande": MacroProfile(190, 13, 19, 7, 0),
            "venti": MacroProfile(250, 16, 24, 9, 0),
        },
    ),
    ("chipotle", "burrito bowl"): BrandMenuItem(MacroProfile(665, 43, 61, 27, 12)),
    ("chick-fil-a", "chicken sandwich"): BrandMenuItem(
        MacroProfile(420, 29, 41, 18, 1)
    ),
    ("chick-fil-a", "nugget"): BrandMenuItem(
        MacroProfile(32, 3.3, 1.4, 1.4, 0.1), per_piece=True
    ),
    ("taco bell", "crunchy taco"): BrandMenuItem(MacroProfile(170, 8, 13, 10, 3)),
    ("wendy's", "frosty"): BrandMenuItem(
        MacroProfile(470, 12, 79, 12, 0),
        sizes={
            "small": MacroProfile(350, 9, 58, 9, 0),
            "medium": MacroProfile(470, 12, 79, 12, 0),
            "large": MacroProfile(600, 16, 101, 15, 0),
        },
    ),
    ("burger king", "whopper"): BrandMenuItem(MacroProfile(670, 31, 54, 40, 2)),
    ("subway", "turkey"): BrandMenuItem(MacroProfile(280, 18, 46, 3.5, 5)),
    ("kirkland", "rotisserie chicken"): BrandMenuItem(MacroProfile(140, 19, 0, 7, 0)),
}


@dataclass
class BrandStaticProvider:
    """Static per-serving table for common restaurant and grocery brands."""

    menu: dict[tuple[str, str], BrandMenuItem] = field(
        default_factory=lambda: dict(BRAND_MENU)
    )

    async def resolve(self, item: PortionedItem) -> MacroResult | None:
        if not item.brand:
            return None
        brand = item.brand.lower()
        name = item.name.lower()
        for (menu_brand, keyword), entry in self.menu.items():
            if menu_brand != brand or keyword not in name:
                continue
            factor = item.quantity
            if entry.per_piece:
                factor *= _pack_count(item.serving_label)
            macros = entry.for_size(item.size_label).scaled(factor)
            return MacroResult.from_profile(
                item,
                macros,
                confidence=BRAND_CONFIDENCE,
                source=MacroSource.BRAND,
            )
        return None


@dataclass
class GenericFoodProvider:
    """Whole-food lookup via USDA FoodData Central."""

    food_data: FoodDataService

    async def resolve(self, item: PortionedItem) -> MacroResult | None:
        details = await self.food_data.best_match(item.name)
        if details is None:
            return None
        if item.grams:
            grams = item.grams
        elif details.serving_size_g:
            grams = details.serving_size_g * item.quantity
        else:
            grams = 100.0 * item.quantity
        return MacroResult.from_profile(
            item,
            details.macros.scaled(grams / 100.0),
            confidence=GENERIC_CONFIDENCE,
            source=MacroSource.GENERIC,
        )


@dataclass
class LlmMacroProvider:
    """Asks a language model for the macros of one unit of an item."""

    client: ChatClient
    source: MacroSource = MacroSource.OPENAI

    async def resolve(self, item: PortionedItem) -> MacroResult | None:
        basis, factor = _request_basis(item)
        prompt = (
            "You are a nutrition expert. Given this food item, return exact "
            "nutritional data in this JSON format only:\n"
            '{"calories": number, "protein_g": number, "carbs_g": number, '
            '"fat_g": number, "fiber_g": number}\n\n'
            f"Food: {item.describe()}\n"
            f"Amount: {basis}\n\n"
            "Return only the JSON object, no other text."
        )
        raw = await self.client.complete(
            prompt, item.name, PROVIDER_TEMPERATURE, json_mode=True
        )
        macros = _parse_macros(raw, provider=self.source.value, item=item.name)
        if macros is None:
            return None
        return MacroResult.from_profile(
            item,
            macros.scaled(factor),
            confidence=LLM_CONFIDENCE,
            source=self.source,
        )


@dataclass
class BrandResolver:
    """Verification-oriented model lookup that back-fills the global cache."""

    client: ChatClient
    cache_repository: NutritionCacheRepository

    async def resolve(self, item: PortionedItem) -> MacroResult | None:
        basis, factor = _request_basis(item)
        prompt = (
            "You are a nutrition database expert. Find the verifiable nutritional "
            "information for this food item.\n\n"
            f"Food: {item.describe()}\n"
            f"Amount: {basis}\n\n"
            "IMPORTANT: Search for official sources like USDA, FDA, or brand "
            "websites. Return ONLY valid JSON in this exact format:\n"
            '{"calories": number, "protein_g": number, "carbs_g": number, '
            '"fat_g": number, "fiber_g": number}\n\n'
            'If you cannot find reliable data, return: {"error": "not_found"}\n'
            "Do not make up numbers. Only return verified nutritional data."
        )
        raw = await self.client.complete(
            prompt, item.name, PROVIDER_TEMPERATURE, json_mode=True
        )
        macros = _parse_macros(
            raw, provider=NutritionProvider.BRAND_RESOLVER.value, item=item.name
        )
        if macros is None or macros.calories <= 0:
            return None
        self._write_back(item, macros)
        return MacroResult.from_profile(
            item,
            macros.scaled(factor),
            confidence=BRAND_RESOLVER_CONFIDENCE,
            source=MacroSource.BRAND_RESOLVER,
        )

    def _write_back(self, item: PortionedItem, per_serving: MacroProfile) -> None:
        normalized_name, brand = cache_key(item)
        if item.unit in _MASS_UNITS:
            serving_label = "100 g"
            grams_per_serving: float | None = 100.0
        else:
            serving_label = item.unit
            grams_per_serving = item.grams / item.quantity if item.grams else None
        entry = GlobalCacheEntry(
            normalized_name=normalized_name,
            brand=brand,
            serving_label=serving_label,
            size_label=item.size_label,
            grams_per_serving=grams_per_serving,
            calories=per_serving.calories,
            protein_g=per_serving.protein_g,
            carbs_g=per_serving.carbs_g,
            fat_g=per_serving.fat_g,
            fiber_g=per_serving.fiber_g,
            source=MacroSource.BRAND_RESOLVER.value,
            confidence=BRAND_RESOLVER_CONFIDENCE,
        )
        try:
            self.cache_repository.save(entry)
        except Exception:
            _logger.exception("Failed to cache brand resolver result for %s", item.name)
            return
        _logger.info("Cached brand resolver result for %s", normalized_name)


def _request_basis(item: PortionedItem) -> tuple[str, float]:
    """Return the amount to ask a model about and the factor to scale by."""
    if item.unit in _MASS_UNITS and item.grams:
        return "100 g", item.grams / 100.0
    return f"1 {item.unit}", item.quantity


def _pack_count(serving_label: str | None) -> float:
    if serving_label:
        match = _PACK_COUNT.match(serving_label)
        if match:
            return float(match.group(1))
    return 1.0


def _parse_macros(raw: str, *, provider: str, item: str) -> MacroProfile | None:
    try:
        document = decode_lenient(raw or "")
    except LenientJsonError as exc:
        _logger.warning(
            "Provider %s returned unparseable macros for %s: %s", provider, item, exc
        )
        return None
    if not isinstance(document, dict) or "error" in document:
        _logger.info("Provider %s has no verified data for %s", provider, item)
        return None
    required = ("calories", "protein_g", "carbs_g", "fat_g")
    if not all(_is_number(document.get(key)) for key in required):
        _logger.warning("Provider %s returned incomplete macros for %s", provider, item)
        return None
    try:
        return MacroPayload.model_validate(document).to_profile()
    except ValidationError as exc:
        _logger.warning(
            "Provider %s returned invalid macros for %s: %s", provider, item, exc
        )
        return None


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)
