"""Semantic router choosing a route by embedding similarity."""

import logging
from dataclasses import dataclass

from nutrition_assistant.domain.routing import (
    DEFAULT_HI_THRESHOLD,
    DEFAULT_MID_THRESHOLD,
    GENERAL_ROUTE,
    MEAL_ROUTE,
    ConfidenceLevel,
    Route,
    RouteDecision,
)
from nutrition_assistant.services.embeddings import EmbeddingService, cosine_similarity

_logger = logging.getLogger(__name__)

_REASONING = {
    MEAL_ROUTE: "Using my nutrition tools to log this.",
}
_DEFAULT_REASONING = "Answering from knowledge and the web."
_MATCH_REASONING = "Routing based on semantic match."


@dataclass
class SemanticRouter:
    """Routes messages to the most similar configured route."""

    embeddings: EmbeddingService
    default_route: str = GENERAL_ROUTE

    async def route(self, message: str, routes: list[Route]) -> RouteDecision:
        """Embed the message and pick the best route."""
        vector = await self.embeddings.embed(message)
        if not vector:
            return RouteDecision(
                route_name=self.default_route,
                confidence=ConfidenceLevel.LOW,
                similarity=0.0,
                reasoning="embedding failed",
            )

        best_name = self.default_route
        best_similarity = -1.0
        best_hi = DEFAULT_HI_THRESHOLD
        best_mid = DEFAULT_MID_THRESHOLD
        for route in routes:
            if not route.embedding:
                continue
            similarity = cosine_similarity(vector, route.embedding)
            if similarity > best_similarity:
                best_name = route.name
                best_similarity = similarity
                best_hi = route.hi_threshold
                best_mid = route.mid_threshold

        if best_similarity >= best_hi:
            confidence = ConfidenceLevel.HIGH
        elif best_similarity >= best_mid:
            confidence = ConfidenceLevel.MID
        else:
            confidence = ConfidenceLevel.LOW

        route_name = best_name
        if confidence == ConfidenceLevel.LOW:
            route_name = self.default_route
        decision = RouteDecision(
            route_name=route_name,
            confidence=confidence,
            similarity=best_similarity,
            reasoning=self._reasoning(route_name),
            hi_threshold=best_hi,
            mid_threshold=best_mid,
        )
        _logger.info(
            "Route decision: route=%s confidence=%s similarity=%.3f",
            decision.route_name,
            decision.confidence,
            decision.similarity,
        )
        return decision

    def _reasoning(self, route_name: str) -> str:
        if route_name == self.default_route:
            return _DEFAULT_REASONING
        return _REASONING.get(route_name, _MATCH_REASONING)
