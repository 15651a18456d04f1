"""Supabase repository for intent routes."""

import json
import logging
from dataclasses import dataclass

from supabase import Client

from nutrition_assistant.domain.routing import (
    DEFAULT_HI_THRESHOLD,
    DEFAULT_MID_THRESHOLD,
    Route,
)
from nutrition_assistant.services.route_cache import RouteStore

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseRouteRepository(RouteStore):
    """Supabase implementation for intent routes."""

    client: Client

    def list_routes(self) -> list[Route]:
        """Return all routes, skipping rows with invalid thresholds."""
        response = (
            self.client.table("intent_routes")
            .select("id, name, examples, embedding, hi_threshold, mid_threshold")
            .execute()
        )
        routes: list[Route] = []
        for row in response.data or []:
            try:
                routes.append(_parse_route(row))
            except ValueError as exc:
                _logger.warning("Skipping route %s: %s", row.get("name"), exc)
        return routes


def parse_vector(value: object) -> list[float]:
    """Parse a pgvector value returned as text or as a list."""
    if value is None:
        return []
    if isinstance(value, str):
        value = json.loads(value) if value.strip() else []
    if not isinstance(value, list):
        raise ValueError("Embedding is not a list")
    return [float(component) for component in value]


def _parse_route(row: dict[str, object]) -> Route:
    hi = row.get("hi_threshold")
    mid = row.get("mid_threshold")
    return Route(
        id=str(row["id"]),
        name=str(row["name"]),
        examples=list(row.get("examples") or []),
        embedding=parse_vector(row.get("embedding")),
        hi_threshold=float(hi) if hi is not None else DEFAULT_HI_THRESHOLD,
        mid_threshold=float(mid) if mid is not None else DEFAULT_MID_THRESHOLD,
    )
