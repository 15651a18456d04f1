"""Intent decision layer wrapping the semantic router."""

import logging
import re
from dataclasses import dataclass

from nutrition_assistant.domain.routing import (
    MEAL_ROUTE,
    ConfidenceLevel,
    Intent,
    IntentDecision,
    RouteDecision,
)
from nutrition_assistant.services.memory import detect_memory_query
from nutrition_assistant.services.route_cache import RouteCache, RouteStore
from nutrition_assistant.services.router import SemanticRouter

DEV_OVERRIDE_PREFIX = "dev:force verify"

_GROUNDING_TRIGGERS = re.compile(
    r"\b(source|link|links|cite|verify|latest|current|news|today|this week"
    r"|20\d{2}|19\d{2})\b",
    re.IGNORECASE,
)
_LOCAL_CHANNEL = re.compile(
    r"\b(no web|offline|from memory|without internet)\b", re.IGNORECASE
)
_EATING_ACTION = re.compile(
    r"\b(i\s+(just\s+)?(ate|had)|i'?ve\s+(eaten|had)|log"
    r"|for\s+(breakfast|lunch|dinner)\s+i)\b",
    re.IGNORECASE,
)
_QUESTION = re.compile(
    r"\b(what are|what is|what's|how many|how much|tell me|show me)\b",
    re.IGNORECASE,
)
_NUTRITION_TERMS = re.compile(
    r"\b(macros?|calories|kcals?|protein|carbs?|fat|fiber|nutrition)\b",
    re.IGNORECASE,
)

_logger = logging.getLogger(__name__)


@dataclass
class IntentService:
    """Decides route, channel, and nutrition intent for a message."""

    router: SemanticRouter
    route_cache: RouteCache
    route_store: RouteStore
    fast_path_word_limit: int = 12
    dev_override_enabled: bool = False

    async def decide(self, message: str) -> IntentDecision:
        """Classify a message without ever raising on provider failures."""
        if self.dev_override_enabled and message.startswith(DEV_OVERRIDE_PREFIX):
            _logger.info("Developer override requested")
            route = RouteDecision(
                route_name=MEAL_ROUTE,
                confidence=ConfidenceLevel.HIGH,
                similarity=1.0,
                reasoning="developer override",
            )
            return IntentDecision(
                route=route,
                intent=Intent.MEAL_LOGGING,
                use_web=False,
                needs_commit_action=True,
                log_prominent=True,
                dev_override=True,
            )

        fast_path = self.is_fast_path(message)
        if fast_path:
            route = RouteDecision(
                route_name=self.router.default_route,
                confidence=ConfidenceLevel.LOW,
                similarity=0.0,
                reasoning="fast path",
            )
        else:
            routes = await self.route_cache.load(self.route_store)
            route = await self.router.route(message, routes)

        intent = classify_nutrition_intent(message, route.route_name)
        use_web = (
            route.route_name == self.router.default_route
            and choose_channel(message) == "web"
        )
        decision = IntentDecision(
            route=route,
            intent=intent,
            use_web=use_web,
            needs_commit_action=intent != Intent.GENERAL,
            log_prominent=intent == Intent.MEAL_LOGGING,
            fast_path=fast_path,
        )
        _logger.info(
            "Intent decision: route=%s intent=%s use_web=%s fast_path=%s",
            route.route_name,
            intent,
            use_web,
            fast_path,
        )
        return decision

    def is_fast_path(self, message: str) -> bool:
        """Return True for short messages with no grounding trigger terms."""
        if len(message.split()) >= self.fast_path_word_limit:
            return False
        return not _GROUNDING_TRIGGERS.search(message)


def choose_channel(message: str) -> str:
    """Return "local" when the user opts out of web search, else "web"."""
    if _LOCAL_CHANNEL.search(message):
        return "local"
    return "web"


def classify_nutrition_intent(message: str, route_name: str) -> Intent:
    """Distinguish meal statements from nutrition questions.

    Questions about past meals are answered from history, not logged.
    """
    if detect_memory_query(message) is not None:
        return Intent.GENERAL
    if _EATING_ACTION.search(message) and not _is_question(message):
        return Intent.MEAL_LOGGING
    if route_name == MEAL_ROUTE or _NUTRITION_TERMS.search(message):
        return Intent.FOOD_QUESTION
    return Intent.GENERAL


def _is_question(message: str) -> bool:
    return bool(_QUESTION.search(message)) or message.rstrip().endswith("?")
