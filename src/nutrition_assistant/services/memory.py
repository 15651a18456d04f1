"""Recall of previously logged meals for chat context."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from nutrition_assistant.domain.meals import MealHistoryHit

_MEAL_PATTERNS = [
    re.compile(r"when (was the )?(last time|did) i (ate?|had|logged?) (\w+)", re.I),
    re.compile(r"have i (ever )?eaten (\w+)", re.I),
    re.compile(r"did i (eat|have|log) (\w+)", re.I),
    re.compile(r"last time i (ate|had) (\w+)", re.I),
]
_WORKOUT_PATTERN = re.compile(
    r"when (was the )?(last time|did) i (last )?(work ?out|train|lift)", re.I
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MemoryQuery:
    kind: str
    search_term: str | None = None


class MealHistoryRepository(Protocol):
    """Search over logged meal items."""

    def search_meal_items(
        self, user_id: UUID, term: str, limit: int = 5
    ) -> list[MealHistoryHit]:
        """Return the newest meal items whose name contains the term."""


def detect_memory_query(text: str) -> MemoryQuery | None:
    """Recognise questions about past meals or workouts."""
    for pattern in _MEAL_PATTERNS:
        match = pattern.search(text)
        if match:
            return MemoryQuery(kind="meal", search_term=match.groups()[-1].lower())
    if _WORKOUT_PATTERN.search(text):
        return MemoryQuery(kind="workout")
    return None


def format_relative_time(then: datetime, now: datetime) -> str:
    """Describe how long ago a timestamp was in calendar days, weeks, or months."""
    if then.tzinfo is None:
        then = then.replace(tzinfo=UTC)
    days = (now.date() - then.astimezone(now.tzinfo).date()).days
    if days <= 0:
        return "today"
    if days == 1:
        return "yesterday"
    if days < 7:  # noqa: PLR2004
        return f"{days} days ago"
    if days < 30:  # noqa: PLR2004
        return f"{days // 7} weeks ago"
    if days < 365:  # noqa: PLR2004
        return f"{days // 30} months ago"
    return f"{days // 365} years ago"


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class MemoryService:
    """Builds a memory line for the chat system prompt."""

    repository: MealHistoryRepository
    clock: Callable[[], datetime] = field(default=_utc_now)

    def context_for(self, user_id: UUID, text: str) -> str:
        query = detect_memory_query(text)
        if query is None:
            return ""
        if query.kind != "meal" or not query.search_term:
            _logger.debug("No history search for %s memory query", query.kind)
            return ""
        try:
            hits = self.repository.search_meal_items(user_id, query.search_term)
        except Exception as exc:
            _logger.warning("Meal history search failed: %s", exc)
            return ""
        if not hits:
            return ""
        latest = hits[0]
        relative = format_relative_time(latest.eaten_at, self.clock())
        quantity = f"{_format_number(latest.quantity)} {latest.unit or ''}".strip()
        return (
            f"[Memory] User's last meal: {latest.name} ({quantity}) - "
            f"{_format_number(latest.calories)} cal ({relative})"
        )


def _format_number(value: float | None) -> str:
    if value is None:
        return "?"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"
