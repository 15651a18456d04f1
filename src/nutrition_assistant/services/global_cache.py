"""Shared nutrition cache interface and keying rules."""

from typing import Protocol

from nutrition_assistant.domain.nutrition import GlobalCacheEntry, PortionedItem


class NutritionCacheRepository(Protocol):
    """Persistence interface for the global nutrition cache."""

    def find(self, normalized_name: str, brand: str | None) -> GlobalCacheEntry | None:
        """Return the newest entry for a name and brand."""

    def save(self, entry: GlobalCacheEntry) -> None:
        """Insert a new cache entry."""


def cache_key(item: PortionedItem) -> tuple[str, str | None]:
    """Return the (normalized_name, brand) key for an item."""
    brand = item.brand.strip().lower() if item.brand else None
    return item.name.lower().strip(), brand or None


def portion_factor(item: PortionedItem, entry: GlobalCacheEntry) -> float:
    """Return how many cached servings the item's portion represents."""
    if entry.serving_label == item.unit:
        return item.quantity
    if item.grams and entry.grams_per_serving:
        return item.grams / entry.grams_per_serving
    return item.quantity
