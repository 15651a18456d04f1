"""Macro lookup cascade over the nutrition providers."""

import asyncio
import logging
from dataclasses import dataclass
from uuid import UUID

from nutrition_assistant.domain.nutrition import (
    ZERO_MACROS,
    ItemWarning,
    LookupResult,
    MacroProfile,
    MacroResult,
    MacroSource,
    PortionedItem,
)
from nutrition_assistant.services.global_cache import (
    NutritionCacheRepository,
    cache_key,
    portion_factor,
)
from nutrition_assistant.services.providers import MacroProvider, NutritionProvider

STUB_CONFIDENCE = 0.1
LOW_CONFIDENCE_THRESHOLD = 0.7

_logger = logging.getLogger(__name__)


@dataclass
class MacroLookupCascade:
    """Resolves each item through the cache and an ordered provider chain."""

    cache_repository: NutritionCacheRepository
    providers: dict[NutritionProvider, MacroProvider]
    gemini_enabled: bool = False
    timeout_seconds: float = 20.0

    async def lookup(self, items: list[PortionedItem], user_id: UUID) -> LookupResult:
        """Resolve macros for every item and sum the totals."""
        results: list[MacroResult] = []
        skills: list[str] = []
        for item in items:
            result, fired = await self._resolve_item(item)
            results.append(result)
            for skill in fired:
                if skill not in skills:
                    skills.append(skill)
        _logger.info(
            "Macro lookup for user %s: items=%s skills=%s",
            user_id,
            len(results),
            skills,
        )
        return LookupResult(
            items=results,
            totals=sum_totals(results),
            skills_fired=skills,
            warnings=collect_warnings(results),
        )

    def provider_order(self, item: PortionedItem) -> list[NutritionProvider]:
        """Return the providers to try for an item, in order."""
        llm = NutritionProvider.OPENAI
        if self.gemini_enabled:
            llm = NutritionProvider.GEMINI
        if item.is_branded:
            return [
                NutritionProvider.BRAND,
                llm,
                NutritionProvider.GENERIC,
                NutritionProvider.BRAND_RESOLVER,
            ]
        return [NutritionProvider.GENERIC, llm, NutritionProvider.BRAND_RESOLVER]

    async def _resolve_item(
        self, item: PortionedItem
    ) -> tuple[MacroResult, list[str]]:
        cached = self._from_cache(item)
        if cached is not None:
            return cached, [f"macro_lookup_{MacroSource.GLOBAL_CACHE}"]

        for provider in self.provider_order(item):
            result = await self._try_provider(provider, item)
            if result is not None:
                return result, [f"macro_lookup_{provider}"]

        _logger.info("Retrying brand resolver as last resort for %s", item.name)
        result = await self._try_provider(NutritionProvider.BRAND_RESOLVER, item)
        if result is not None:
            return result, [f"macro_lookup_{NutritionProvider.BRAND_RESOLVER}"]

        _logger.warning("All providers failed for %s, using stub", item.name)
        return (
            MacroResult.from_profile(
                item,
                ZERO_MACROS,
                confidence=STUB_CONFIDENCE,
                source=MacroSource.STUB,
            ),
            [],
        )

    def _from_cache(self, item: PortionedItem) -> MacroResult | None:
        normalized_name, brand = cache_key(item)
        try:
            entry = self.cache_repository.find(normalized_name, brand)
        except Exception as exc:
            _logger.warning("Global cache read failed for %s: %s", item.name, exc)
            return None
        if entry is None:
            return None
        _logger.info("Global cache hit for %s", item.name)
        return MacroResult.from_profile(
            item,
            entry.macros.scaled(portion_factor(item, entry)),
            confidence=entry.confidence,
            source=MacroSource.GLOBAL_CACHE,
        )

    async def _try_provider(
        self, provider: NutritionProvider, item: PortionedItem
    ) -> MacroResult | None:
        implementation = self.providers.get(provider)
        if implementation is None:
            return None
        try:
            result = await asyncio.wait_for(
                implementation.resolve(item), timeout=self.timeout_seconds
            )
        except TimeoutError:
            _logger.warning("Provider %s timed out for %s", provider, item.name)
            return None
        except Exception as exc:
            _logger.warning("Provider %s failed for %s: %s", provider, item.name, exc)
            return None
        if result is None or result.calories <= 0:
            _logger.debug("Provider %s had no data for %s", provider, item.name)
            return None
        return result


def sum_totals(results: list[MacroResult]) -> MacroProfile:
    """Sum item macros without rounding."""
    return MacroProfile(
        calories=sum(result.calories for result in results),
        protein_g=sum(result.protein_g for result in results),
        carbs_g=sum(result.carbs_g for result in results),
        fat_g=sum(result.fat_g for result in results),
        fiber_g=sum(result.fiber_g for result in results),
    )


def collect_warnings(results: list[MacroResult]) -> list[ItemWarning]:
    """Flag low-confidence and unknown items."""
    warnings: list[ItemWarning] = []
    for result in results:
        if result.confidence < LOW_CONFIDENCE_THRESHOLD:
            warnings.append(
                ItemWarning(
                    type="low_confidence",
                    item=result.name,
                    message=f'Low confidence on "{result.name}" - please verify macros',
                )
            )
        if (
            result.calories == 0
            and result.protein_g == 0
            and result.carbs_g == 0
            and result.fat_g == 0
        ):
            warnings.append(
                ItemWarning(
                    type="missing_portion",
                    item=result.name,
                    message=(
                        f'Unknown food "{result.name}" - please add quantity and unit'
                    ),
                )
            )
    return warnings
