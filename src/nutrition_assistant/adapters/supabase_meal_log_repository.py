"""Supabase repository for meal logs."""

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from supabase import Client

from nutrition_assistant.domain.meals import MealHistoryHit, MealItemDraft, MealLogDraft
from nutrition_assistant.domain.nutrition import MacroProfile
from nutrition_assistant.services.meals import MealLogRepository
from nutrition_assistant.services.memory import MealHistoryRepository


@dataclass
class SupabaseMealLogRepository(MealLogRepository, MealHistoryRepository):
    """Supabase implementation for meal logs."""

    client: Client

    def log_meal_atomic(self, draft: MealLogDraft) -> UUID | None:
        """Insert a meal through the transactional RPC."""
        response = self.client.rpc(
            "log_meal_atomic",
            {
                "p_user_id": str(draft.user_id),
                "p_eaten_at": draft.eaten_at.isoformat(),
                "p_meal_slot": draft.meal_slot,
                "p_totals": _macro_columns(draft.totals),
                "p_tef_kcal": draft.tef_kcal,
                "p_items": [_item_payload(item) for item in draft.items],
            },
        ).execute()
        return _parse_log_id(response.data)

    def create_meal_log(self, draft: MealLogDraft) -> UUID:
        """Create a meal log row and return its id."""
        response = (
            self.client.table("meal_logs")
            .insert(
                {
                    "user_id": str(draft.user_id),
                    "eaten_at": draft.eaten_at.isoformat(),
                    "meal_slot": draft.meal_slot,
                    "tef_kcal": draft.tef_kcal,
                    "source": draft.source,
                    **_macro_columns(draft.totals),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create meal log")
        return UUID(response.data[0]["id"])

    def create_meal_items(self, meal_log_id: UUID, items: list[MealItemDraft]) -> None:
        """Create meal item rows."""
        payload = [
            {"meal_log_id": str(meal_log_id), **_item_payload(item)} for item in items
        ]
        if payload:
            self.client.table("meal_items").insert(payload).execute()

    def upsert_daily_totals(self, user_id: UUID, day: date) -> None:
        """Recompute the day's aggregate row."""
        self.client.rpc(
            "upsert_daily_totals",
            {"p_user_id": str(user_id), "p_day_iso": day.isoformat()},
        ).execute()

    def delete_meal_items(self, meal_log_id: UUID) -> None:
        self.client.table("meal_items").delete().eq(
            "meal_log_id", str(meal_log_id)
        ).execute()

    def delete_meal_log(self, meal_log_id: UUID) -> None:
        self.client.table("meal_logs").delete().eq("id", str(meal_log_id)).execute()

    def search_meal_items(
        self, user_id: UUID, term: str, limit: int = 5
    ) -> list[MealHistoryHit]:
        """Return the user's newest meal items matching a name fragment."""
        response = (
            self.client.table("meal_items")
            .select(
                "name, quantity, unit, calories, "
                "meal_logs!inner(eaten_at, user_id, meal_slot)"
            )
            .eq("meal_logs.user_id", str(user_id))
            .ilike("name", f"%{term}%")
            .order("eaten_at", desc=True, foreign_table="meal_logs")
            .limit(limit)
            .execute()
        )
        hits = [_parse_hit(row) for row in response.data or []]
        hits.sort(key=lambda hit: hit.eaten_at, reverse=True)
        return hits


def _macro_columns(totals: MacroProfile) -> dict[str, float]:
    return {
        "calories": totals.calories,
        "protein_g": totals.protein_g,
        "carbs_g": totals.carbs_g,
        "fat_g": totals.fat_g,
        "fiber_g": totals.fiber_g,
    }


def _item_payload(item: MealItemDraft) -> dict[str, object]:
    return {
        "name": item.name,
        "quantity": item.quantity,
        "unit": item.unit,
        "source": item.source,
        "confidence": item.confidence,
        **_macro_columns(item.macros),
    }


def _parse_log_id(data: object) -> UUID | None:
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, dict):
        data = data.get("log_id") or data.get("id")
    if not data:
        return None
    return UUID(str(data))


def _parse_hit(row: dict[str, object]) -> MealHistoryHit:
    log = row.get("meal_logs") or {}
    if isinstance(log, list):
        log = log[0] if log else {}
    quantity = row.get("quantity")
    return MealHistoryHit(
        name=str(row.get("name", "")),
        quantity=float(quantity) if quantity is not None else None,
        unit=row.get("unit"),
        calories=float(row.get("calories") or 0.0),
        eaten_at=datetime.fromisoformat(str(log["eaten_at"])),
        meal_slot=log.get("meal_slot"),
    )
