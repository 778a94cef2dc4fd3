"""Service layer exports."""

from .conversation import GENERIC_FAILURE, ConversationService, create_conversation_service
from .storage import (
    HistoryStore,
    MemoryHistoryStore,
    MemoryStateStore,
    MemoryStoreConfig,
    RedisHistoryStore,
    RedisStateStore,
    StateStore,
    StorageService,
    create_storage_service,
)

__all__ = [
    "GENERIC_FAILURE",
    "ConversationService",
    "HistoryStore",
    "MemoryHistoryStore",
    "MemoryStateStore",
    "MemoryStoreConfig",
    "RedisHistoryStore",
    "RedisStateStore",
    "StateStore",
    "StorageService",
    "create_conversation_service",
    "create_storage_service",
]
