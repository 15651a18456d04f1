"""Conversation domain models."""

from dataclasses import dataclass, field
from uuid import UUID

from nutrition_assistant.domain.meals import VerificationView
from nutrition_assistant.domain.nutrition import MacroResult

VERIFY_ROLE = "meal.verify"


@dataclass(frozen=True)
class WebAnswer:
    """Answer produced by a web-grounded model."""

    text: str
    citation_url: str | None = None
    citation_title: str | None = None


@dataclass(frozen=True)
class ChatTurn:
    """Single message in a chat session."""

    role: str
    content: str


@dataclass(frozen=True)
class UserPreference:
    """Stored free-text preference."""

    id: str
    text: str


@dataclass(frozen=True)
class RankedPreference:
    """Stored user preference scored against the current message."""

    id: str
    text: str
    score: float


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of the nutrition pipeline."""

    success: bool
    view: VerificationView | None = None
    items: list[MacroResult] = field(default_factory=list)
    skills_fired: list[str] = field(default_factory=list)
    error: str | None = None
    type: str = VERIFY_ROLE


@dataclass(frozen=True)
class ChatReply:
    """Reply returned for one user message."""

    reply: str
    route_used: str
    confidence: str
    intent: str
    used_web: bool
    model_used: str
    session_id: UUID | None = None
    role_data: PipelineResult | None = None
