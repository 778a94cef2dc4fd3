"""API dependency wiring - thin DI glue over the service factories."""

from functools import lru_cache

from ..config import settings
from ..domain.interceptor import ConfirmationBroker
from ..domain.provider import create_agent_provider
from ..domain.tools import parse_confirm_tools
from ..service import ConversationService, create_conversation_service
from ..service.storage import MemoryStoreConfig, StorageService, create_storage_service


@lru_cache(maxsize=1)
def get_storage_service() -> StorageService:
    """Create storage service from config (cached singleton)."""
    return create_storage_service(
        backend=settings.storage_backend,
        memory_config=MemoryStoreConfig(url=settings.redis_url, ttl_seconds=settings.session_ttl_seconds),
    )


@lru_cache(maxsize=1)
def get_confirmation_broker() -> ConfirmationBroker:
    """Process-wide broker so resume calls reach turns started by other requests."""
    return ConfirmationBroker()


@lru_cache(maxsize=1)
def get_conversation_service() -> ConversationService:
    """
    Create conversation service (cached singleton).

    Raises ConfigurationError when inference credentials are missing; main.py
    calls this during startup so the fault surfaces before any turn.
    """
    storage = get_storage_service()
    return create_conversation_service(
        provider=create_agent_provider(settings.openrouter_api_key, settings.inference_model),
        histories=storage.history_store(),
        states=storage.state_store(),
        broker=get_confirmation_broker(),
        step_budget=settings.expert_step_budget,
        confirm_tools=parse_confirm_tools(settings.confirm_tools),
    )
