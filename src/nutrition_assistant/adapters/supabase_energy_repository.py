"""Supabase repository for energy targets and daily totals."""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from supabase import Client

from nutrition_assistant.services.energy import EnergyRepository


@dataclass
class SupabaseEnergyRepository(EnergyRepository):
    """Supabase implementation for energy lookups."""

    client: Client

    def get_target_kcal(self, user_id: UUID) -> float | None:
        """Return the user's calorie target, if set."""
        response = (
            self.client.table("user_metrics")
            .select("target_kcal")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        target = response.data[0].get("target_kcal")
        return float(target) if target is not None else None

    def get_consumed_kcal(self, user_id: UUID, day: date) -> float:
        """Return calories logged on a day."""
        response = (
            self.client.table("daily_totals")
            .select("calories")
            .eq("user_id", str(user_id))
            .eq("day", day.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return 0.0
        return float(response.data[0].get("calories") or 0.0)
