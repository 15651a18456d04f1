"""Ranking of stored user preferences against the current message."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from nutrition_assistant.domain.chat import RankedPreference, UserPreference
from nutrition_assistant.services.embeddings import EmbeddingService, cosine_similarity

_logger = logging.getLogger(__name__)


class PreferenceRepository(Protocol):
    """Read access to stored user preferences."""

    def list_preferences(self, user_id: UUID) -> list[UserPreference]:
        """Return every preference stored for a user."""


@dataclass
class PreferenceService:
    """Selects the preferences most relevant to a message."""

    repository: PreferenceRepository
    embeddings: EmbeddingService

    async def rank_top(
        self, user_id: UUID, query: str, k: int = 3
    ) -> list[RankedPreference]:
        """Return up to k preferences ordered by similarity to the query."""
        try:
            preferences = self.repository.list_preferences(user_id)
        except Exception as exc:
            _logger.warning("Preference load failed for user %s: %s", user_id, exc)
            return []
        if not preferences:
            return []

        vectors = await self.embeddings.embed_many(
            [query, *(preference.text for preference in preferences)]
        )
        if not vectors:
            return []
        query_vector, preference_vectors = vectors[0], vectors[1:]
        ranked = [
            RankedPreference(
                id=preference.id,
                text=preference.text,
                score=cosine_similarity(query_vector, vector),
            )
            for preference, vector in zip(preferences, preference_vectors, strict=True)
        ]
        ranked.sort(key=lambda preference: preference.score, reverse=True)
        return ranked[:k]


def preferences_to_system_line(preferences: list[RankedPreference]) -> str:
    """Render preferences as a system prompt line, or "" when there are none."""
    if not preferences:
        return ""
    joined = "; ".join(preference.text for preference in preferences)
    return f"User preferences to honor: [{joined}]"
