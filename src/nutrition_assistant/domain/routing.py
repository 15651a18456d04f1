"""Domain models for intent routing."""

from dataclasses import dataclass, field
from enum import StrEnum

GENERAL_ROUTE = "general"
MEAL_ROUTE = "meal_logging"

DEFAULT_HI_THRESHOLD = 0.85
DEFAULT_MID_THRESHOLD = 0.60


class ConfidenceLevel(StrEnum):
    """How much a route decision can be trusted."""

    HIGH = "high"
    MID = "mid"
    LOW = "low"


class Intent(StrEnum):
    """What the user wants the assistant to do with a message."""

    MEAL_LOGGING = "meal_logging"
    FOOD_QUESTION = "food_question"
    GENERAL = "general"


@dataclass(frozen=True)
class Route:
    """A named intent anchored by a precomputed example embedding."""

    id: str
    name: str
    examples: list[str] = field(default_factory=list)
    embedding: list[float] = field(default_factory=list)
    hi_threshold: float = DEFAULT_HI_THRESHOLD
    mid_threshold: float = DEFAULT_MID_THRESHOLD

    def __post_init__(self) -> None:
        if not 0.0 <= self.mid_threshold <= self.hi_threshold <= 1.0:
            raise ValueError(
                f"Route {self.name!r} thresholds must satisfy "
                f"0 <= mid ({self.mid_threshold}) <= hi ({self.hi_threshold}) <= 1"
            )


@dataclass(frozen=True)
class RouteDecision:
    """Outcome of routing a single message."""

    route_name: str
    confidence: ConfidenceLevel
    similarity: float
    reasoning: str
    hi_threshold: float = DEFAULT_HI_THRESHOLD
    mid_threshold: float = DEFAULT_MID_THRESHOLD


@dataclass(frozen=True)
class IntentDecision:
    """Routing decision enriched with channel and nutrition intent."""

    route: RouteDecision
    intent: Intent
    use_web: bool
    needs_commit_action: bool
    log_prominent: bool
    fast_path: bool = False
    dev_override: bool = False
