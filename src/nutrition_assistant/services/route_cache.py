"""Process-wide cache of intent routes."""

import asyncio
import logging
from typing import Protocol

from nutrition_assistant.domain.routing import Route

_logger = logging.getLogger(__name__)


class RouteStore(Protocol):
    """Persistence interface for intent routes."""

    def list_routes(self) -> list[Route]:
        """Return every configured route."""


class RouteCache:
    """Loads routes once and serves them until invalidated."""

    def __init__(self) -> None:
        self._routes: list[Route] | None = None
        self._lock = asyncio.Lock()

    async def load(self, store: RouteStore) -> list[Route]:
        """Return cached routes, fetching them on first use."""
        if self._routes is not None:
            return self._routes
        async with self._lock:
            if self._routes is not None:
                return self._routes
            try:
                routes = await asyncio.to_thread(store.list_routes)
            except Exception:
                _logger.exception("Failed to load intent routes")
                routes = []
            _logger.info("Loaded %s intent route(s)", len(routes))
            self._routes = routes
            return routes

    @property
    def loaded(self) -> bool:
        return self._routes is not None

    def peek(self) -> list[Route]:
        """Return the cached routes without fetching."""
        return list(self._routes or [])

    def invalidate(self) -> None:
        """Drop cached routes so the next load fetches again."""
        self._routes = None
