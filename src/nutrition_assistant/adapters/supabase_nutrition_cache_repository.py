"""Supabase repository for the global nutrition cache."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from nutrition_assistant.domain.nutrition import GlobalCacheEntry
from nutrition_assistant.services.global_cache import NutritionCacheRepository


@dataclass
class SupabaseNutritionCacheRepository(NutritionCacheRepository):
    """Supabase implementation for the shared nutrition cache."""

    client: Client

    def find(self, normalized_name: str, brand: str | None) -> GlobalCacheEntry | None:
        """Return the newest entry for a name and brand, if present."""
        query = (
            self.client.table("global_nutrition_cache")
            .select("*")
            .eq("normalized_name", normalized_name)
        )
        query = query.eq("brand", brand) if brand else query.is_("brand", "null")
        response = query.order("created_at", desc=True).limit(1).execute()
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def save(self, entry: GlobalCacheEntry) -> None:
        """Insert a cache entry."""
        self.client.table("global_nutrition_cache").insert(
            {
                "normalized_name": entry.normalized_name,
                "brand": entry.brand,
                "serving_label": entry.serving_label,
                "size_label": entry.size_label,
                "grams_per_serving": entry.grams_per_serving,
                "calories": entry.calories,
                "protein_g": entry.protein_g,
                "carbs_g": entry.carbs_g,
                "fat_g": entry.fat_g,
                "fiber_g": entry.fiber_g,
                "source": entry.source,
                "confidence": entry.confidence,
            }
        ).execute()


def _parse_entry(row: dict[str, object]) -> GlobalCacheEntry:
    grams = row.get("grams_per_serving")
    created_at = row.get("created_at")
    return GlobalCacheEntry(
        normalized_name=str(row["normalized_name"]),
        brand=row.get("brand"),
        serving_label=row.get("serving_label"),
        grams_per_serving=float(grams) if grams is not None else None,
        calories=float(row.get("calories") or 0.0),
        protein_g=float(row.get("protein_g") or 0.0),
        carbs_g=float(row.get("carbs_g") or 0.0),
        fat_g=float(row.get("fat_g") or 0.0),
        fiber_g=float(row.get("fiber_g") or 0.0),
        source=str(row.get("source") or "brand_resolver"),
        confidence=float(row.get("confidence") or 0.9),
        size_label=row.get("size_label"),
        created_at=datetime.fromisoformat(str(created_at)) if created_at else None,
    )
