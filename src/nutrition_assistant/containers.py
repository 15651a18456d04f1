"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from google import genai
from openai import AsyncOpenAI
from supabase import create_client

from nutrition_assistant.adapters.fdc_client import HttpxFdcClient
from nutrition_assistant.adapters.gemini_client import (
    GeminiChatClient,
    GeminiWebAnswerClient,
)
from nutrition_assistant.adapters.openai_chat_client import OpenAIChatClient
from nutrition_assistant.adapters.openai_embedding_client import OpenAIEmbeddingClient
from nutrition_assistant.adapters.supabase_chat_repository import SupabaseChatRepository
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
)
from nutrition_assistant.config import Settings
from nutrition_assistant.domain.nutrition import MacroSource
from nutrition_assistant.services.cache import InMemoryCache
from nutrition_assistant.services.cascade import MacroLookupCascade
from nutrition_assistant.services.chat import ChatService
from nutrition_assistant.services.completions import ChatClient
from nutrition_assistant.services.embeddings import EmbeddingService
from nutrition_assistant.services.energy import TdeeService
from nutrition_assistant.services.intents import IntentService
from nutrition_assistant.services.meals import MealCommitService
from nutrition_assistant.services.memory import MemoryService
from nutrition_assistant.services.normalizer import NutritionNormalizer
from nutrition_assistant.services.nutrition import FoodDataService
from nutrition_assistant.services.pipeline import NutritionPipeline
from nutrition_assistant.services.preferences import PreferenceService
from nutrition_assistant.services.providers import (
    BrandResolver,
    BrandStaticProvider,
    GenericFoodProvider,
    LlmMacroProvider,
    MacroProvider,
    NutritionProvider,
)
from nutrition_assistant.services.route_cache import RouteCache, RouteStore
from nutrition_assistant.services.router import SemanticRouter


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    route_cache: RouteCache
    route_store: RouteStore
    intent_service: IntentService
    nutrition_pipeline: NutritionPipeline
    chat_service: ChatService
    meal_commit_service: MealCommitService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    timeout = resolved_settings.provider_timeout_seconds
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    route_repository = SupabaseRouteRepository(supabase_client)
    cache_repository = SupabaseNutritionCacheRepository(supabase_client)
    meal_log_repository = SupabaseMealLogRepository(supabase_client)
    chat_repository = SupabaseChatRepository(supabase_client)
    preference_repository = SupabasePreferenceRepository(supabase_client)
    energy_repository = SupabaseEnergyRepository(supabase_client)

    openai_client = AsyncOpenAI(api_key=resolved_settings.openai_api_key)
    openai_chat = OpenAIChatClient(
        client=openai_client, model=resolved_settings.openai_model
    )
    embeddings = EmbeddingService(
        client=OpenAIEmbeddingClient(
            client=openai_client, model=resolved_settings.openai_embedding_model
        ),
        timeout_seconds=timeout,
    )
    completions: list[ChatClient] = [openai_chat]
    gemini_chat: GeminiChatClient | None = None
    web_client: GeminiWebAnswerClient | None = None
    if resolved_settings.web_grounding_available:
        gemini_client = genai.Client(api_key=resolved_settings.gemini_api_key)
        gemini_chat = GeminiChatClient(
            client=gemini_client, model=resolved_settings.gemini_model
        )
        web_client = GeminiWebAnswerClient(
            client=gemini_client, model=resolved_settings.gemini_model
        )
        completions.append(gemini_chat)

    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
    )
    food_data = FoodDataService(fdc_client=fdc_client, cache=InMemoryCache())
    providers: dict[NutritionProvider, MacroProvider] = {
        NutritionProvider.BRAND: BrandStaticProvider(),
        NutritionProvider.GENERIC: GenericFoodProvider(food_data),
        NutritionProvider.OPENAI: LlmMacroProvider(openai_chat),
        NutritionProvider.BRAND_RESOLVER: BrandResolver(openai_chat, cache_repository),
    }
    if gemini_chat is not None:
        providers[NutritionProvider.GEMINI] = LlmMacroProvider(
            gemini_chat, source=MacroSource.GEMINI
        )
    cascade = MacroLookupCascade(
        cache_repository=cache_repository,
        providers=providers,
        gemini_enabled=resolved_settings.gemini_nutrition_enabled
        and gemini_chat is not None,
        timeout_seconds=timeout,
    )
    pipeline = NutritionPipeline(
        normalizer=NutritionNormalizer(openai_chat, timeout_seconds=timeout),
        cascade=cascade,
        tdee_service=TdeeService(
            energy_repository,
            default_target_kcal=resolved_settings.default_target_kcal,
        ),
    )

    route_cache = RouteCache()
    intent_service = IntentService(
        router=SemanticRouter(embeddings),
        route_cache=route_cache,
        route_store=route_repository,
        fast_path_word_limit=resolved_settings.fast_path_word_limit,
        dev_override_enabled=resolved_settings.dev_override_enabled,
    )
    chat_service = ChatService(
        intents=intent_service,
        pipeline=pipeline,
        repository=chat_repository,
        completions=completions,
        web_client=web_client,
        preferences=PreferenceService(preference_repository, embeddings),
        memory=MemoryService(meal_log_repository),
        timeout_seconds=timeout,
    )
    meal_commit_service = MealCommitService(meal_log_repository)

    async def close_resources() -> None:
        await fdc_client.close()
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        route_cache=route_cache,
        route_store=route_repository,
        intent_service=intent_service,
        nutrition_pipeline=pipeline,
        chat_service=chat_service,
        meal_commit_service=meal_commit_service,
        close_resources=close_resources,
    )
