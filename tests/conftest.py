"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import date, datetime
from uuid import UUID, uuid4

import pytest

from nutrition_assistant.adapters.fdc_client import FdcClient
from nutrition_assistant.config import Settings
from nutrition_assistant.containers import AppContainer
from nutrition_assistant.domain.chat import ChatTurn, UserPreference, WebAnswer
from nutrition_assistant.domain.meals import (
    MealHistoryHit,
    MealItemDraft,
    MealLogDraft,
)
from nutrition_assistant.domain.nutrition import (
    GlobalCacheEntry,
    MacroProfile,
    MacroResult,
    MacroSource,
    PortionedItem,
)
from nutrition_assistant.domain.routing import MEAL_ROUTE, Route
from nutrition_assistant.services.cascade import MacroLookupCascade
from nutrition_assistant.services.chat import ChatRepository, ChatService
from nutrition_assistant.services.completions import ChatClient, WebAnswerClient
from nutrition_assistant.services.embeddings import EmbeddingClient, EmbeddingService
from nutrition_assistant.services.energy import EnergyRepository, TdeeService
from nutrition_assistant.services.global_cache import NutritionCacheRepository
from nutrition_assistant.services.intents import IntentService
from nutrition_assistant.services.meals import MealCommitService, MealLogRepository
from nutrition_assistant.services.memory import MealHistoryRepository, MemoryService
from nutrition_assistant.services.normalizer import NutritionNormalizer
from nutrition_assistant.services.pipeline import NutritionPipeline
from nutrition_assistant.services.preferences import (
    PreferenceRepository,
    PreferenceService,
)
from nutrition_assistant.services.providers import NutritionProvider
from nutrition_assistant.services.route_cache import RouteCache, RouteStore
from nutrition_assistant.services.router import SemanticRouter

FIXED_NOW = datetime(2026, 3, 2, 12, 30).astimezone()

EGGS_AND_TOAST_JSON = (
    '{"items": [{"name": "eggs", "amount": 2, "unit": "piece"}, '
    '{"name": "toast", "amount": 1, "unit": "slice"}]}'
)


@dataclass
class FakeEmbeddingClient(EmbeddingClient):
    """Fake embedding client with per-text vectors."""

    vectors: dict[str, list[float]] = field(default_factory=dict)
    default: list[float] = field(default_factory=lambda: [0.0, 1.0])
    error: Exception | None = None
    calls: list[list[str]] = field(default_factory=list)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.error is not None:
            raise self.error
        return [self.vectors.get(text, self.default) for text in texts]


@dataclass
class FakeChatClient(ChatClient):
    """Fake completion client replaying queued replies."""

    replies: list[str] = field(default_factory=list)
    error: Exception | None = None
    name: str = "fake"
    calls: list[tuple[str, str, float, bool]] = field(default_factory=list)

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        temperature: float,
        *,
        json_mode: bool = False,
    ) -> str:
        self.calls.append((system_prompt, user_message, temperature, json_mode))
        if self.error is not None:
            raise self.error
        if not self.replies:
            return ""
        if len(self.replies) == 1:
            return self.replies[0]
        return self.replies.pop(0)


@dataclass
class FakeWebAnswerClient(WebAnswerClient):
    """Fake web-grounded client."""

    answer_value: WebAnswer = field(default_factory=lambda: WebAnswer(text=""))
    error: Exception | None = None
    name: str = "fake-web"
    prompts: list[str] = field(default_factory=list)

    async def answer(self, prompt: str) -> WebAnswer:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer_value


@dataclass
class InMemoryRouteStore(RouteStore):
    """In-memory route store counting fetches."""

    routes: list[Route] = field(default_factory=list)
    error: Exception | None = None
    calls: int = 0

    def list_routes(self) -> list[Route]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.routes)


@dataclass
class InMemoryNutritionCacheRepository(NutritionCacheRepository):
    """In-memory global nutrition cache."""

    entries: list[GlobalCacheEntry] = field(default_factory=list)
    read_error: Exception | None = None
    write_error: Exception | None = None

    def find(self, normalized_name: str, brand: str | None) -> GlobalCacheEntry | None:
        if self.read_error is not None:
            raise self.read_error
        for entry in reversed(self.entries):
            if entry.normalized_name == normalized_name and entry.brand == brand:
                return entry
        return None

    def save(self, entry: GlobalCacheEntry) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.entries.append(entry)


@dataclass
class TableMacroProvider:
    """Provider returning fixed macros per item name."""

    table: dict[str, MacroProfile] = field(default_factory=dict)
    source: MacroSource = MacroSource.GENERIC
    confidence: float = 0.9
    error: Exception | None = None
    calls: list[str] = field(default_factory=list)

    async def resolve(self, item: PortionedItem) -> MacroResult | None:
        self.calls.append(item.name)
        if self.error is not None:
            raise self.error
        macros = self.table.get(item.name)
        if macros is None:
            return None
        return MacroResult.from_profile(
            item, macros, confidence=self.confidence, source=self.source
        )


@dataclass
class InMemoryMealLogRepository(MealLogRepository, MealHistoryRepository):
    """In-memory meal log repository with injectable failures."""

    atomic_error: Exception | None = None
    atomic_returns_none: bool = False
    header_error: Exception | None = None
    items_error: Exception | None = None
    totals_error: Exception | None = None
    logs: dict[UUID, MealLogDraft] = field(default_factory=dict)
    items: dict[UUID, list[MealItemDraft]] = field(default_factory=dict)
    totals_refreshed: list[tuple[UUID, date]] = field(default_factory=list)
    deleted_items: list[UUID] = field(default_factory=list)
    deleted_logs: list[UUID] = field(default_factory=list)
    atomic_calls: int = 0
    history: list[MealHistoryHit] = field(default_factory=list)

    def log_meal_atomic(self, draft: MealLogDraft) -> UUID | None:
        self.atomic_calls += 1
        if self.atomic_error is not None:
            raise self.atomic_error
        if self.atomic_returns_none:
            return None
        log_id = uuid4()
        self.logs[log_id] = draft
        self.items[log_id] = list(draft.items)
        return log_id

    def create_meal_log(self, draft: MealLogDraft) -> UUID:
        if self.header_error is not None:
            raise self.header_error
        log_id = uuid4()
        self.logs[log_id] = draft
        return log_id

    def create_meal_items(self, meal_log_id: UUID, items: list[MealItemDraft]) -> None:
        if self.items_error is not None:
            raise self.items_error
        self.items[meal_log_id] = list(items)

    def upsert_daily_totals(self, user_id: UUID, day: date) -> None:
        if self.totals_error is not None:
            raise self.totals_error
        self.totals_refreshed.append((user_id, day))

    def delete_meal_items(self, meal_log_id: UUID) -> None:
        self.deleted_items.append(meal_log_id)
        self.items.pop(meal_log_id, None)

    def delete_meal_log(self, meal_log_id: UUID) -> None:
        self.deleted_logs.append(meal_log_id)
        self.logs.pop(meal_log_id, None)

    def search_meal_items(
        self, user_id: UUID, term: str, limit: int = 5
    ) -> list[MealHistoryHit]:
        hits = [hit for hit in self.history if term.lower() in hit.name.lower()]
        hits.sort(key=lambda hit: hit.eaten_at, reverse=True)
        return hits[:limit]


@dataclass
class InMemoryChatRepository(ChatRepository):
    """In-memory chat session store."""

    session_error: Exception | None = None
    history_error: Exception | None = None
    sessions: dict[UUID, UUID] = field(default_factory=dict)
    messages: dict[UUID, list[tuple[str, str, dict[str, object] | None]]] = field(
        default_factory=dict
    )

    def get_or_create_session(self, user_id: UUID) -> UUID:
        if self.session_error is not None:
            raise self.session_error
        if user_id not in self.sessions:
            self.sessions[user_id] = uuid4()
        return self.sessions[user_id]

    def recent_messages(self, session_id: UUID, limit: int) -> list[ChatTurn]:
        if self.history_error is not None:
            raise self.history_error
        stored = self.messages.get(session_id, [])[-limit:]
        return [ChatTurn(role=role, content=content) for role, content, _ in stored]

    def add_message(
        self,
        session_id: UUID,
        role: str,
        content: str,
        metadata: dict[str, object] | None = None,
    ) -> None:
        self.messages.setdefault(session_id, []).append((role, content, metadata))


@dataclass
class InMemoryPreferenceRepository(PreferenceRepository):
    preferences: dict[UUID, list[UserPreference]] = field(default_factory=dict)
    error: Exception | None = None

    def list_preferences(self, user_id: UUID) -> list[UserPreference]:
        if self.error is not None:
            raise self.error
        return list(self.preferences.get(user_id, []))


@dataclass
class InMemoryEnergyRepository(EnergyRepository):
    target_kcal: float | None = None
    consumed_kcal: float = 0.0
    error: Exception | None = None

    def get_target_kcal(self, user_id: UUID) -> float | None:
        if self.error is not None:
            raise self.error
        return self.target_kcal

    def get_consumed_kcal(self, user_id: UUID, day: date) -> float:
        if self.error is not None:
            raise self.error
        return self.consumed_kcal


@dataclass
class FakeFdcClient(FdcClient):
    """Fake FDC client with in-memory responses."""

    search_payload: dict[str, object] = field(
        default_factory=lambda: {
            "foods": [
                {
                    "fdcId": 173424,
                    "description": "Egg, whole, raw, fresh",
                    "dataType": "SR Legacy",
                }
            ]
        }
    )
    food_payload: dict[str, object] = field(
        default_factory=lambda: {
            "fdcId": 173424,
            "description": "Egg, whole, raw, fresh",
            "dataType": "SR Legacy",
            "foodNutrients": [
                {"nutrient": {"id": 1008}, "amount": 143},
                {"nutrient": {"id": 1003}, "amount": 12.6},
                {"nutrient": {"id": 1004}, "amount": 9.5},
                {"nutrient": {"id": 1005}, "amount": 0.7},
                {"nutrient": {"id": 1079}, "amount": 0},
            ],
        }
    )
    search_calls: int = 0
    food_calls: int = 0

    async def search_foods(
        self, query: str, page_size: int = 5, data_types: list[str] | None = None
    ) -> dict[str, object]:
        self.search_calls += 1
        return self.search_payload

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        self.food_calls += 1
        return self.food_payload


def meal_route(embedding: list[float] | None = None) -> Route:
    return Route(
        id="route-meal",
        name=MEAL_ROUTE,
        examples=["I ate two eggs", "log my lunch"],
        embedding=embedding or [1.0, 0.0],
        hi_threshold=0.85,
        mid_threshold=0.6,
    )


def eggs_and_toast_provider() -> TableMacroProvider:
    return TableMacroProvider(
        table={
            "eggs": MacroProfile(140, 12, 1, 10, 0),
            "toast": MacroProfile(75, 2, 13, 1, 1),
        }
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        openai_api_key="openai-key",
        fdc_api_key="fdc-key",
    )


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def meal_log_repository() -> InMemoryMealLogRepository:
    return InMemoryMealLogRepository()


@pytest.fixture
def chat_repository() -> InMemoryChatRepository:
    return InMemoryChatRepository()


@pytest.fixture
def completion_client() -> FakeChatClient:
    return FakeChatClient(replies=["Protein supports muscle repair."])


@pytest.fixture
def container(
    settings: Settings,
    meal_log_repository: InMemoryMealLogRepository,
    chat_repository: InMemoryChatRepository,
    completion_client: FakeChatClient,
) -> AppContainer:
    embeddings = EmbeddingService(FakeEmbeddingClient())
    route_store = InMemoryRouteStore(routes=[meal_route()])
    route_cache = RouteCache()
    intent_service = IntentService(
        router=SemanticRouter(embeddings),
        route_cache=route_cache,
        route_store=route_store,
        dev_override_enabled=True,
    )
    cascade = MacroLookupCascade(
        cache_repository=InMemoryNutritionCacheRepository(),
        providers={NutritionProvider.GENERIC: eggs_and_toast_provider()},
    )
    pipeline = NutritionPipeline(
        normalizer=NutritionNormalizer(
            FakeChatClient(replies=[EGGS_AND_TOAST_JSON], name="normalizer")
        ),
        cascade=cascade,
        tdee_service=TdeeService(InMemoryEnergyRepository()),
        clock=lambda: FIXED_NOW,
    )
    chat_service = ChatService(
        intents=intent_service,
        pipeline=pipeline,
        repository=chat_repository,
        completions=[completion_client],
        preferences=PreferenceService(InMemoryPreferenceRepository(), embeddings),
        memory=MemoryService(meal_log_repository),
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        route_cache=route_cache,
        route_store=route_store,
        intent_service=intent_service,
        nutrition_pipeline=pipeline,
        chat_service=chat_service,
        meal_commit_service=MealCommitService(meal_log_repository),
        close_resources=close_resources,
    )
