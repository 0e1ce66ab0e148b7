from decimal import Decimal
from functools import lru_cache
import logging

from stopover_agent.core.config import settings
from stopover_agent.api.schemas import ChatApiConfig
from stopover_agent.application.ports.catalog import CatalogPort
from stopover_agent.application.ports.conversation_store import ConversationStorePort
from stopover_agent.application.ports.llm import LLMPort
from stopover_agent.application.use_cases.handle_chat_turn import HandleChatTurnUseCase, OrchestratorConfig
from stopover_agent.application.use_cases.model_fallback import ModelChainConfig, ModelFallbackController
from stopover_agent.domain.entities.conversation_record import ItineraryInfo
from stopover_agent.domain.entities.pricing import PricingConfig
from stopover_agent.infrastructure.knowledge.catalog_store import StaticCatalogStore
from stopover_agent.infrastructure.llm.mock_llm import MockLLM
from stopover_agent.infrastructure.llm.openrouter_llm import OpenRouterLLM
from stopover_agent.infrastructure.store.json_store import JsonConversationStore
from stopover_agent.infrastructure.store.memory_store import MemoryConversationStore


_conversation_store: ConversationStorePort | None = None


@lru_cache
def get_llm() -> LLMPort:
    logger = logging.getLogger(__name__)
    if settings.OPENROUTER_API_KEY and settings.OPENROUTER_API_KEY.strip():
        return OpenRouterLLM(
            api_key=settings.OPENROUTER_API_KEY,
            base_url=settings.OPENROUTER_BASE_URL,
            timeout_seconds=settings.MODEL_TIMEOUT_SECONDS,
        )
    if settings.ENV.lower() in {"dev", "local"}:
        logger.info("Using MockLLM (OPENROUTER_API_KEY missing, ENV=dev/local)")
        return MockLLM()
    # Without a key the adapter reports a configuration error on every call.
    logger.error("OPENROUTER_API_KEY is not configured")
    return OpenRouterLLM(api_key=None, base_url=settings.OPENROUTER_BASE_URL)


def get_conversation_store() -> ConversationStorePort:
    global _conversation_store
    if _conversation_store is None:
        ttl_seconds = settings.CONVERSATION_TTL_HOURS * 60 * 60
        if settings.STORE_PROVIDER.lower() == "json":
            _conversation_store = JsonConversationStore(
                data_dir=settings.DATA_DIR,
                history_limit=settings.HISTORY_LIMIT,
                ttl_seconds=ttl_seconds,
            )
        else:
            _conversation_store = MemoryConversationStore(
                history_limit=settings.HISTORY_LIMIT,
                ttl_seconds=ttl_seconds,
            )
    return _conversation_store


@lru_cache
def get_catalog() -> CatalogPort:
    return StaticCatalogStore()


def get_pricing_config() -> PricingConfig:
    return PricingConfig(
        flight_fare_difference=Decimal(settings.FLIGHT_FARE_DIFFERENCE),
        conversion_rate=settings.AVIOS_CONVERSION_RATE,
    )


def get_model_controller() -> ModelFallbackController:
    return ModelFallbackController(
        llm=get_llm(),
        config=ModelChainConfig(
            models=settings.model_chain,
            max_tokens=settings.MAX_TOKENS,
            temperature=settings.TEMPERATURE,
            attempt_timeout_seconds=settings.MODEL_TIMEOUT_SECONDS,
        ),
    )


def get_chat_api_config() -> ChatApiConfig:
    return ChatApiConfig(streaming_enabled=settings.STREAMING_ENABLED)


def get_chat_use_case() -> HandleChatTurnUseCase:
    return HandleChatTurnUseCase(
        store=get_conversation_store(),
        catalog=get_catalog(),
        controller=get_model_controller(),
        pricing=get_pricing_config(),
        config=OrchestratorConfig(
            max_tool_rounds=settings.MAX_TOOL_ROUNDS,
            default_itinerary=ItineraryInfo(
                pnr=settings.ORIGINAL_PNR,
                origin=settings.DEFAULT_ORIGIN,
                destination=settings.DEFAULT_DESTINATION,
                passengers=settings.DEFAULT_PASSENGERS,
            ),
        ),
    )
