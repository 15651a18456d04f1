"""Generic food lookups backed by USDA FoodData Central."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from nutrition_assistant.adapters.fdc_client import FdcClient
from nutrition_assistant.domain.nutrition import FoodDetails, FoodSummary, MacroProfile
from nutrition_assistant.services.cache import Cache

_NUTRIENT_IDS = {
    1008: "calories",
    1003: "protein",
    1004: "fat",
    1005: "carbs",
    1079: "fiber",
}
# Energy reported under the Atwater general factor id in Foundation foods.
_ENERGY_FALLBACK_ID = 2047

GENERIC_DATA_TYPES = ["Foundation", "SR Legacy", "Survey (FNDDS)"]

_logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


@dataclass
class FoodDataService:
    """Searches generic foods and returns per-100 g macros, with caching."""

    fdc_client: FdcClient
    cache: Cache
    data_types: list[str] = field(default_factory=lambda: list(GENERIC_DATA_TYPES))
    search_ttl_seconds: int = 3600
    food_ttl_seconds: int = 86400
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def search(self, query: str, limit: int = 5) -> list[FoodSummary]:
        """Search generic foods with caching."""
        cache_key = f"fdc:search:{query.lower()}:{limit}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        payload = await self._call_with_retry(
            lambda: self.fdc_client.search_foods(
                query, page_size=limit, data_types=self.data_types
            ),
            action=f"search:{query}",
        )
        foods = [
            FoodSummary(
                fdc_id=food["fdcId"],
                description=food.get("description", ""),
                data_type=food.get("dataType"),
                brand_owner=food.get("brandOwner"),
            )
            for food in payload.get("foods", [])
        ]
        self.cache.set(cache_key, foods, ttl_seconds=self.search_ttl_seconds)
        _logger.debug("FDC search: query=%s results=%s", query, len(foods))
        return foods

    async def get_food(self, fdc_id: int) -> FoodDetails:
        """Retrieve per-100 g macros for a food."""
        cache_key = f"fdc:food:{fdc_id}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, FoodDetails):
            return cached

        payload = await self._call_with_retry(
            lambda: self.fdc_client.get_food(fdc_id),
            action=f"get_food:{fdc_id}",
        )
        details = FoodDetails(
            summary=FoodSummary(
                fdc_id=payload["fdcId"],
                description=payload.get("description", ""),
                data_type=payload.get("dataType"),
                brand_owner=payload.get("brandOwner"),
            ),
            macros=extract_macros(payload.get("foodNutrients", [])),
            serving_size_g=_serving_size_g(payload),
        )
        self.cache.set(cache_key, details, ttl_seconds=self.food_ttl_seconds)
        return details

    async def best_match(self, query: str) -> FoodDetails | None:
        """Return details for the top search hit, or None when nothing matches."""
        results = await self.search(query, limit=1)
        if not results:
            return None
        return await self.get_food(results[0].fdc_id)

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object]]]", *, action: str
    ) -> dict[str, object]:
        """Call an async function with a short retry."""
        attempt = 0
        while True:
            try:
                return await func()
            except Exception as exc:
                attempt += 1
                _logger.warning(
                    "FDC %s failed (attempt %s/%s, status=%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    _status_code_from_exception(exc),
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise
                await asyncio.sleep(self.retry_delay_seconds)


def extract_macros(food_nutrients: list[dict[str, object]]) -> MacroProfile:
    """Extract calories, protein, carbs, fat, and fiber from FDC nutrients."""
    values: dict[str, float] = {}
    fallback_energy: float | None = None
    for nutrient in food_nutrients:
        nutrient_info = nutrient.get("nutrient") or {}
        nutrient_id = nutrient_info.get("id") or nutrient.get("nutrientId")
        amount = nutrient.get("amount", nutrient.get("value"))
        if amount is None:
            continue
        if nutrient_id == _ENERGY_FALLBACK_ID:
            fallback_energy = float(amount)
        key = _NUTRIENT_IDS.get(nutrient_id)
        if key is not None:
            values[key] = float(amount)

    return MacroProfile(
        calories=values.get("calories", fallback_energy or 0.0),
        protein_g=values.get("protein", 0.0),
        carbs_g=values.get("carbs", 0.0),
        fat_g=values.get("fat", 0.0),
        fiber_g=values.get("fiber", 0.0),
    )


def _serving_size_g(payload: dict[str, object]) -> float | None:
    size = payload.get("servingSize")
    unit = str(payload.get("servingSizeUnit") or "g").lower()
    if isinstance(size, int | float) and size > 0 and unit in {"g", "grm"}:
        return float(size)
    for portion in payload.get("foodPortions") or []:
        grams = portion.get("gramWeight")
        if isinstance(grams, int | float) and grams > 0:
            return float(grams)
    return None


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"
