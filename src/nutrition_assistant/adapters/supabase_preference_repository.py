"""Supabase repository for user preferences."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from nutrition_assistant.domain.chat import UserPreference
from nutrition_assistant.services.preferences import PreferenceRepository


@dataclass
class SupabasePreferenceRepository(PreferenceRepository):
    client: Client

    def list_preferences(self, user_id: UUID) -> list[UserPreference]:
        """Return every stored preference for a user."""
        response = (
            self.client.table("user_preferences")
            .select("id, preference_text")
            .eq("user_id", str(user_id))
            .execute()
        )
        return [
            UserPreference(id=str(row["id"]), text=str(row["preference_text"]))
            for row in response.data or []
            if row.get("preference_text")
        ]
