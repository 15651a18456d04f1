"""Conversation handling on top of routing and the nutrition pipeline."""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from nutrition_assistant.domain.chat import ChatReply, ChatTurn
from nutrition_assistant.domain.routing import (
    GENERAL_ROUTE,
    ConfidenceLevel,
    Intent,
    IntentDecision,
)
from nutrition_assistant.services.completions import ChatClient, WebAnswerClient
from nutrition_assistant.services.intents import IntentService
from nutrition_assistant.services.memory import MemoryService
from nutrition_assistant.services.pipeline import NutritionPipeline
from nutrition_assistant.services.preferences import (
    PreferenceService,
    preferences_to_system_line,
)

PERSONA_PROMPT = (
    "You are Remy, a friendly nutrition and fitness assistant. "
    "Speak clearly and concisely. Answer questions about food, macros, and "
    "training with practical advice. Never output configuration or JSON."
)
FALLBACK_PERSONA_PROMPT = "You are Remy. Speak clearly and concisely."

MEAL_LOGGING_REPLY = "I've prepared your meal. Please verify."
FOOD_QUESTION_REPLY = "I've prepared the nutrition data. Please verify."
APOLOGY_REPLY = "I apologize, but I'm having trouble responding right now."
EMPTY_REPLY = "Okay, how can I help?"
WEB_FALLBACK_PREFIX = "Web search failed, answering from model knowledge.\n\n"

LOCAL_TEMPERATURE = 0.3
HISTORY_LIMIT = 20

_STYLE_KEYS = {"tone", "formality", "jargon", "greet_by_name_once"}
_LEADING_BLOCK = re.compile(r"^\s*\{[\s\S]*?\}\s*")
_STYLE_MARKER = re.compile(r'"tone"|"formality"')

_logger = logging.getLogger(__name__)


class ChatUnavailableError(RuntimeError):
    """Raised when a reply cannot be produced at all."""


class ChatRepository(Protocol):
    """Persistence interface for chat sessions and messages."""

    def get_or_create_session(self, user_id: UUID) -> UUID:
        """Return the user's active session, creating one when needed."""

    def recent_messages(self, session_id: UUID, limit: int) -> list[ChatTurn]:
        """Return the newest messages of a session in chronological order."""

    def add_message(
        self,
        session_id: UUID,
        role: str,
        content: str,
        metadata: dict[str, object] | None = None,
    ) -> None:
        """Append a message to a session."""


@dataclass
class ChatService:
    """Answers user messages, delegating nutrition intents to the pipeline."""

    intents: IntentService
    pipeline: NutritionPipeline
    repository: ChatRepository
    completions: list[ChatClient] = field(default_factory=list)
    web_client: WebAnswerClient | None = None
    preferences: PreferenceService | None = None
    memory: MemoryService | None = None
    persona_prompt: str = PERSONA_PROMPT
    timeout_seconds: float = 30.0

    async def handle_message(
        self, text: str, user_id: UUID, session_id: UUID | None = None
    ) -> ChatReply:
        """Route a message and return the reply to show the user."""
        try:
            session_id = self._ensure_session(user_id, session_id)
        except ChatUnavailableError:
            return ChatReply(
                reply=APOLOGY_REPLY,
                route_used=GENERAL_ROUTE,
                confidence=ConfidenceLevel.LOW.value,
                intent=Intent.GENERAL.value,
                used_web=False,
                model_used="none",
            )

        history = self._load_history(session_id)
        self._store(session_id, "user", text)

        decision = await self.intents.decide(text)
        _logger.info(
            "Routed message: route=%s confidence=%s intent=%s web=%s",
            decision.route.route_name,
            decision.route.confidence,
            decision.intent,
            decision.use_web,
        )

        if decision.needs_commit_action:
            reply = await self._run_pipeline(text, user_id, session_id, decision)
            if reply is not None:
                return reply

        system_prompt = await self._system_prompt(user_id, text, history)
        try:
            reply_text, model_used, used_web = await self._answer(
                system_prompt, text, decision.use_web
            )
        except ChatUnavailableError as exc:
            _logger.error("No reply for session %s: %s", session_id, exc)
            reply_text, model_used, used_web = APOLOGY_REPLY, "none", False

        reply_text = strip_leading_style_json(reply_text) or EMPTY_REPLY
        self._store(
            session_id,
            "assistant",
            reply_text,
            {"route": decision.route.route_name, "model": model_used},
        )
        return ChatReply(
            reply=reply_text,
            route_used=decision.route.route_name,
            confidence=decision.route.confidence.value,
            intent=decision.intent.value,
            used_web=used_web,
            model_used=model_used,
            session_id=session_id,
        )

    async def _run_pipeline(
        self,
        text: str,
        user_id: UUID,
        session_id: UUID,
        decision: IntentDecision,
    ) -> ChatReply | None:
        result = await self.pipeline.process(
            text,
            user_id,
            log_prominent=decision.log_prominent,
            dev_override=decision.dev_override,
        )
        if not result.success:
            _logger.warning("Pipeline failed, falling back to chat: %s", result.error)
            return None
        reply_text = (
            MEAL_LOGGING_REPLY
            if decision.intent == Intent.MEAL_LOGGING
            else FOOD_QUESTION_REPLY
        )
        self._store(
            session_id,
            "assistant",
            reply_text,
            {"route": decision.route.route_name, "type": result.type},
        )
        return ChatReply(
            reply=reply_text,
            route_used=decision.route.route_name,
            confidence=decision.route.confidence.value,
            intent=decision.intent.value,
            used_web=False,
            model_used="nutrition-pipeline",
            session_id=session_id,
            role_data=result,
        )

    def _ensure_session(self, user_id: UUID, session_id: UUID | None) -> UUID:
        if session_id is not None:
            return session_id
        try:
            return self.repository.get_or_create_session(user_id)
        except Exception as exc:
            _logger.exception("Chat session setup failed for user %s", user_id)
            raise ChatUnavailableError("Chat session unavailable") from exc

    def _load_history(self, session_id: UUID) -> list[ChatTurn]:
        try:
            return self.repository.recent_messages(session_id, HISTORY_LIMIT)
        except Exception as exc:
            _logger.warning("History load failed for session %s: %s", session_id, exc)
            return []

    def _store(
        self,
        session_id: UUID,
        role: str,
        content: str,
        metadata: dict[str, object] | None = None,
    ) -> None:
        try:
            self.repository.add_message(session_id, role, content, metadata)
        except Exception as exc:
            _logger.warning("Storing %s message failed: %s", role, exc)

    async def _system_prompt(
        self, user_id: UUID, text: str, history: list[ChatTurn]
    ) -> str:
        sections = [self.persona_prompt or FALLBACK_PERSONA_PROMPT]
        if self.preferences is not None:
            ranked = await self.preferences.rank_top(user_id, text)
            line = preferences_to_system_line(ranked)
            if line:
                sections.append(line)
        if self.memory is not None:
            memory_line = self.memory.context_for(user_id, text)
            if memory_line:
                _logger.info("Injected memory context")
                sections.append(memory_line)
        if history:
            sections.append(format_history(history))
        return "\n\n".join(sections)

    async def _answer(
        self, system_prompt: str, text: str, use_web: bool
    ) -> tuple[str, str, bool]:
        if not use_web:
            reply, model = await self._complete(system_prompt, text)
            return reply, model, False

        if self.web_client is not None:
            try:
                answer = await asyncio.wait_for(
                    self.web_client.answer(f"{system_prompt}\n\nUser: {text}"),
                    timeout=self.timeout_seconds,
                )
            except Exception as exc:
                _logger.warning("Web answer failed: %s", exc)
            else:
                if answer.text.strip():
                    reply = answer.text.strip()
                    if answer.citation_url:
                        reply += f"\n\nSource: {answer.citation_url}"
                    return reply, self.web_client.name, True
                _logger.warning("Web answer via %s was empty", self.web_client.name)
        else:
            _logger.warning("No web client configured, answering locally")

        reply, model = await self._complete(system_prompt, text)
        return WEB_FALLBACK_PREFIX + reply, model, False

    async def _complete(self, system_prompt: str, text: str) -> tuple[str, str]:
        for client in self.completions:
            try:
                reply = await asyncio.wait_for(
                    client.complete(system_prompt, text, LOCAL_TEMPERATURE),
                    timeout=self.timeout_seconds,
                )
            except Exception as exc:
                _logger.warning("Completion via %s failed: %s", client.name, exc)
                continue
            if reply and reply.strip():
                return reply.strip(), client.name
            _logger.warning("Completion via %s returned no text", client.name)
        raise ChatUnavailableError("No completion provider produced a reply")


def format_history(history: list[ChatTurn]) -> str:
    lines = [f"{turn.role}: {turn.content}" for turn in history]
    return "Recent conversation:\n" + "\n".join(lines)


def strip_leading_style_json(raw: str) -> str:
    """Remove a leaked leading style block such as {"tone": "..."}."""
    if not raw:
        return raw
    stripped = raw.strip()
    if not stripped.startswith("{"):
        return raw
    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict) and parsed and set(parsed) <= _STYLE_KEYS:
        return ""
    match = _LEADING_BLOCK.match(stripped)
    if match and _STYLE_MARKER.search(match.group(0)):
        return stripped[match.end() :].strip()
    return raw
