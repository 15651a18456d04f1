"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from uuid import UUID, uuid4

import pytest

from nutrition_assistant.adapters.supabase_chat_repository import (
    SupabaseChatRepository,
)
from nutrition_assistant.adapters.supabase_energy_repository import (
    SupabaseEnergyRepository,
)
from nutrition_assistant.adapters.supabase_meal_log_repository import (
    SupabaseMealLogRepository,
)
from nutrition_assistant.adapters.supabase_nutrition_cache_repository import (
    SupabaseNutritionCacheRepository,
)
from nutrition_assistant.adapters.supabase_preference_repository import (
    SupabasePreferenceRepository,
)
from nutrition_assistant.adapters.supabase_route_repository import (
    SupabaseRouteRepository,
    parse_vector,
)
from nutrition_assistant.domain.meals import MealItemDraft, MealLogDraft
from nutrition_assistant.domain.nutrition import GlobalCacheEntry, MacroProfile


@dataclass
class FakeResponse:
    data: object


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "insert": [], "delete": []}
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    last_order: tuple[str, dict[str, object]] | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def is_(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def ilike(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def order(self, column: str, **kwargs: object) -> "FakeTable":
        self.last_order = (column, kwargs)
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeRpc:
    data: object

    def execute(self) -> FakeResponse:
        return FakeResponse(data=self.data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)
    rpc_results: dict[str, object] = field(default_factory=dict)
    rpc_calls: list[tuple[str, dict[str, object]]] = field(default_factory=list)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]

    def rpc(self, name: str, params: dict[str, object]) -> FakeRpc:
        self.rpc_calls.append((name, params))
        return FakeRpc(self.rpc_results.get(name))


EATEN_AT = datetime(2026, 3, 2, 12, 30, tzinfo=UTC)


def _draft(user_id: UUID) -> MealLogDraft:
    return MealLogDraft(
        user_id=user_id,
        eaten_at=EATEN_AT,
        meal_slot="lunch",
        totals=MacroProfile(215, 14, 14, 11, 1),
        tef_kcal=21.45,
        items=[
            MealItemDraft(
                "eggs",
                2.0,
                "piece",
                MacroProfile(140, 12, 1, 10, 0),
                source="generic",
                confidence=0.9,
            )
        ],
    )


def test_meal_log_atomic_rpc() -> None:
    log_id = uuid4()
    user_id = uuid4()
    client = FakeSupabaseClient(
        rpc_results={"log_meal_atomic": [{"log_id": str(log_id)}]}
    )

    result = SupabaseMealLogRepository(client).log_meal_atomic(_draft(user_id))

    assert result == log_id
    name, params = client.rpc_calls[0]
    assert name == "log_meal_atomic"
    assert params["p_user_id"] == str(user_id)
    assert params["p_eaten_at"] == EATEN_AT.isoformat()
    assert params["p_meal_slot"] == "lunch"
    assert params["p_totals"]["calories"] == 215
    assert params["p_tef_kcal"] == 21.45
    assert params["p_items"][0]["name"] == "eggs"
    assert params["p_items"][0]["protein_g"] == 12


@pytest.mark.parametrize("data", [None, [], {}])
def test_meal_log_atomic_rpc_without_id(data: object) -> None:
    client = FakeSupabaseClient(rpc_results={"log_meal_atomic": data})

    assert SupabaseMealLogRepository(client).log_meal_atomic(_draft(uuid4())) is None


def test_meal_log_atomic_rpc_scalar_id() -> None:
    log_id = uuid4()
    client = FakeSupabaseClient(rpc_results={"log_meal_atomic": str(log_id)})

    assert SupabaseMealLogRepository(client).log_meal_atomic(_draft(uuid4())) == log_id


def test_meal_log_sequential_writes() -> None:
    client = FakeSupabaseClient()
    log_id = uuid4()
    user_id = uuid4()
    client.table("meal_logs").queue("insert", [{"id": str(log_id)}])
    repository = SupabaseMealLogRepository(client)
    draft = _draft(user_id)

    created = repository.create_meal_log(draft)
    repository.create_meal_items(created, draft.items)
    repository.upsert_daily_totals(user_id, date(2026, 3, 2))

    assert created == log_id
    header = client.tables["meal_logs"].last_payload
    assert header["meal_slot"] == "lunch"
    assert header["tef_kcal"] == 21.45
    assert header["source"] == "chat"
    assert header["calories"] == 215
    items = client.tables["meal_items"].last_payload
    assert items[0]["meal_log_id"] == str(log_id)
    assert items[0]["unit"] == "piece"
    assert client.rpc_calls == [
        ("upsert_daily_totals", {"p_user_id": str(user_id), "p_day_iso": "2026-03-02"})
    ]


def test_meal_log_header_without_data_raises() -> None:
    repository = SupabaseMealLogRepository(FakeSupabaseClient())

    with pytest.raises(RuntimeError):
        repository.create_meal_log(_draft(uuid4()))


def test_meal_log_deletes() -> None:
    client = FakeSupabaseClient()
    log_id = uuid4()
    repository = SupabaseMealLogRepository(client)

    repository.delete_meal_items(log_id)
    repository.delete_meal_log(log_id)

    assert client.tables["meal_items"].last_filters == [("meal_log_id", str(log_id))]
    assert client.tables["meal_logs"].last_filters == [("id", str(log_id))]


def test_search_meal_items() -> None:
    client = FakeSupabaseClient()
    user_id = uuid4()
    client.table("meal_items").queue(
        "select",
        [
            {
                "name": "pizza",
                "quantity": 1,
                "unit": "slice",
                "calories": 285,
                "meal_logs": {"eaten_at": "2026-02-01T19:00:00+00:00"},
            },
            {
                "name": "pepperoni pizza",
                "quantity": None,
                "unit": None,
                "calories": None,
                "meal_logs": [
                    {"eaten_at": "2026-03-01T12:00:00+00:00", "meal_slot": "lunch"}
                ],
            },
        ],
    )

    hits = SupabaseMealLogRepository(client).search_meal_items(user_id, "pizza")

    assert [hit.name for hit in hits] == ["pepperoni pizza", "pizza"]
    assert hits[0].meal_slot == "lunch"
    assert hits[0].quantity is None
    assert hits[0].calories == 0.0
    assert hits[1].quantity == 1.0
    table = client.tables["meal_items"]
    assert ("meal_logs.user_id", str(user_id)) in table.last_filters
    assert ("name", "%pizza%") in table.last_filters
    assert table.last_order == (
        "eaten_at",
        {"desc": True, "foreign_table": "meal_logs"},
    )


def test_route_repository_parses_and_skips_invalid_rows() -> None:
    client = FakeSupabaseClient()
    client.table("intent_routes").queue(
        "select",
        [
            {
                "id": 1,
                "name": "meal_logging",
                "examples": ["I ate eggs"],
                "embedding": "[1, 0]",
                "hi_threshold": 0.8,
                "mid_threshold": 0.5,
            },
            {
                "id": 2,
                "name": "broken",
                "embedding": [0, 1],
                "hi_threshold": 0.4,
                "mid_threshold": 0.6,
            },
            {"id": 3, "name": "defaults", "embedding": None},
        ],
    )

    routes = SupabaseRouteRepository(client).list_routes()

    assert [route.name for route in routes] == ["meal_logging", "defaults"]
    assert routes[0].id == "1"
    assert routes[0].embedding == [1.0, 0.0]
    assert routes[0].hi_threshold == 0.8
    assert routes[1].embedding == []
    assert routes[1].hi_threshold == 0.85
    assert routes[1].mid_threshold == 0.6


def test_parse_vector() -> None:
    assert parse_vector("[0.5, 1]") == [0.5, 1.0]
    assert parse_vector([1, 2]) == [1.0, 2.0]
    assert parse_vector("") == []
    with pytest.raises(ValueError):
        parse_vector({"x": 1})


def test_nutrition_cache_find_by_brand() -> None:
    client = FakeSupabaseClient()
    table = client.table("global_nutrition_cache")
    table.queue(
        "select",
        [
            {
                "normalized_name": "latte",
                "brand": "starbucks",
                "serving_label": "serving",
                "grams_per_serving": None,
                "calories": 190,
                "protein_g": 13,
                "carbs_g": 19,
                "fat_g": 7,
                "created_at": "2026-03-01T10:00:00+00:00",
            }
        ],
    )

    entry = SupabaseNutritionCacheRepository(client).find("latte", "starbucks")

    assert entry is not None
    assert entry.calories == 190
    assert entry.fiber_g == 0.0
    assert entry.source == "brand_resolver"
    assert entry.confidence == 0.9
    assert entry.created_at == datetime(2026, 3, 1, 10, tzinfo=UTC)
    assert table.last_filters == [
        ("normalized_name", "latte"),
        ("brand", "starbucks"),
    ]
    assert table.last_order == ("created_at", {"desc": True})


def test_nutrition_cache_find_without_brand() -> None:
    client = FakeSupabaseClient()

    entry = SupabaseNutritionCacheRepository(client).find("eggs", None)

    assert entry is None
    assert ("brand", "null") in client.tables["global_nutrition_cache"].last_filters


def test_nutrition_cache_save() -> None:
    client = FakeSupabaseClient()
    entry = GlobalCacheEntry(
        normalized_name="almonds",
        brand=None,
        serving_label="100 g",
        grams_per_serving=100.0,
        calories=579,
        protein_g=21,
        carbs_g=22,
        fat_g=50,
        fiber_g=12.5,
        source="brand_resolver",
        confidence=0.8,
    )

    SupabaseNutritionCacheRepository(client).save(entry)

    payload = client.tables["global_nutrition_cache"].last_payload
    assert payload["normalized_name"] == "almonds"
    assert payload["grams_per_serving"] == 100.0
    assert payload["confidence"] == 0.8


def test_preference_repository_skips_empty_text() -> None:
    client = FakeSupabaseClient()
    user_id = uuid4()
    client.table("user_preferences").queue(
        "select",
        [
            {"id": "p1", "preference_text": "no dairy"},
            {"id": "p2", "preference_text": ""},
        ],
    )

    preferences = SupabasePreferenceRepository(client).list_preferences(user_id)

    assert [(pref.id, pref.text) for pref in preferences] == [("p1", "no dairy")]
    assert client.tables["user_preferences"].last_filters == [
        ("user_id", str(user_id))
    ]


def test_chat_repository_reuses_active_session() -> None:
    client = FakeSupabaseClient()
    session_id = uuid4()
    client.table("chat_sessions").queue("select", [{"id": str(session_id)}])

    result = SupabaseChatRepository(client).get_or_create_session(uuid4())

    assert result == session_id
    assert ("active", True) in client.tables["chat_sessions"].last_filters
    assert client.tables["chat_sessions"].last_payload is None


def test_chat_repository_creates_session() -> None:
    client = FakeSupabaseClient()
    session_id = uuid4()
    user_id = uuid4()
    client.table("chat_sessions").queue("insert", [{"id": str(session_id)}])

    result = SupabaseChatRepository(client).get_or_create_session(user_id)

    assert result == session_id
    payload = client.tables["chat_sessions"].last_payload
    assert payload["user_id"] == str(user_id)
    assert payload["session_type"] == "general"
    assert payload["active"] is True


def test_chat_repository_messages() -> None:
    client = FakeSupabaseClient()
    session_id = uuid4()
    table = client.table("chat_messages")
    table.queue(
        "select",
        [
            {"role": "assistant", "content": "Hi!"},
            {"role": "user", "content": "hello"},
        ],
    )
    repository = SupabaseChatRepository(client)

    turns = repository.recent_messages(session_id, limit=20)
    repository.add_message(session_id, "user", "what now")

    assert [(turn.role, turn.content) for turn in turns] == [
        ("user", "hello"),
        ("assistant", "Hi!"),
    ]
    assert table.last_payload == {
        "session_id": str(session_id),
        "role": "user",
        "content": "what now",
        "metadata": {},
    }


def test_energy_repository() -> None:
    client = FakeSupabaseClient()
    client.table("user_metrics").queue("select", [{"target_kcal": 2200}])
    client.table("daily_totals").queue("select", [{"calories": 850.5}])
    repository = SupabaseEnergyRepository(client)
    user_id = uuid4()

    assert repository.get_target_kcal(user_id) == 2200.0
    assert repository.get_consumed_kcal(user_id, date(2026, 3, 2)) == 850.5
    assert ("day", "2026-03-02") in client.tables["daily_totals"].last_filters
    assert repository.get_target_kcal(user_id) is None
    assert repository.get_consumed_kcal(user_id, date(2026, 3, 3)) == 0.0
