"""Storage service - Redis-backed (or in-memory) history and session state.

Two stores, both keyed by ConversationId:
    - HistoryStore: ConversationHistory JSON at `conversation:{uuid}`
    - StateStore: SessionState JSON at `session:{uuid}:state`

StateStore funnels every mutation through a per-session asyncio.Lock so that
read-modify-write cycles for one session never interleave (last writer wins,
one at a time). The in-memory backend exists for local development and tests.
"""

from __future__ import annotations

import asyncio
import weakref
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

from ..domain.domain_type import StorageBackend
from ..domain.domain_value import ConversationHistory, ConversationId
from ..domain.session_state import LedgerEntry, Note, SessionState

if TYPE_CHECKING:
    from redis.asyncio import Redis


class MemoryStoreConfig(BaseModel):
    """Redis connection configuration."""

    url: str
    ttl_seconds: int = 0

    model_config = ConfigDict(frozen=True)

    @property
    def expiry(self) -> int | None:
        return self.ttl_seconds or None


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


class StateStore(ABC):
    """Narrow mutation API over SessionState, serialized per session."""

    def __init__(self) -> None:
        # A lock lives only while some mutation holds or awaits it
        self._locks: weakref.WeakValueDictionary[ConversationId, asyncio.Lock] = weakref.WeakValueDictionary()

    @abstractmethod
    async def get(self, session_id: ConversationId) -> SessionState:
        """Current state; an empty SessionState if the session was never written."""

    @abstractmethod
    async def _put(self, session_id: ConversationId, state: SessionState) -> None: ...

    def _lock(self, session_id: ConversationId) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    async def _mutate(
        self, session_id: ConversationId, change: Callable[[SessionState], SessionState]
    ) -> SessionState:
        lock = self._lock(session_id)
        async with lock:
            state = change(await self.get(session_id))
            await self._put(session_id, state)
            return state

    async def merge(self, session_id: ConversationId, **fields: Any) -> SessionState:
        """Shallow merge; unnamed fields are left exactly as they were."""
        return await self._mutate(session_id, lambda state: state.merged(fields))

    async def append_ledger_entries(
        self, session_id: ConversationId, entries: tuple[LedgerEntry, ...]
    ) -> SessionState:
        return await self._mutate(session_id, lambda state: state.with_ledger_entries(entries))

    async def append_note(self, session_id: ConversationId, note: Note) -> SessionState:
        return await self._mutate(session_id, lambda state: state.with_note(note))

    async def set_weight(self, session_id: ConversationId, weight: float) -> SessionState:
        return await self._mutate(session_id, lambda state: state.with_weight(weight))

    async def set_height(self, session_id: ConversationId, height: float) -> SessionState:
        return await self._mutate(session_id, lambda state: state.with_height(height))


class MemoryStateStore(StateStore):
    def __init__(self) -> None:
        super().__init__()
        self._states: dict[ConversationId, SessionState] = {}

    async def get(self, session_id: ConversationId) -> SessionState:
        return self._states.get(session_id, SessionState())

    async def _put(self, session_id: ConversationId, state: SessionState) -> None:
        self._states[session_id] = state


class RedisStateStore(StateStore):
    def __init__(self, redis: Redis, ttl_seconds: int | None = None):
        super().__init__()
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(session_id: ConversationId) -> str:
        return f"session:{session_id.root}:state"

    async def get(self, session_id: ConversationId) -> SessionState:
        data = await self.redis.get(self.key(session_id))
        if not data:
            return SessionState()
        return SessionState.model_validate_json(data)

    async def _put(self, session_id: ConversationId, state: SessionState) -> None:
        await self.redis.set(self.key(session_id), state.model_dump_json(), ex=self.ttl_seconds)


# ---------------------------------------------------------------------------
# Conversation history
# ---------------------------------------------------------------------------


class HistoryStore(ABC):
    @abstractmethod
    async def load(self, conv_id: ConversationId) -> ConversationHistory | None:
        """Stored history, or None if the conversation doesn't exist."""

    @abstractmethod
    async def save(self, history: ConversationHistory) -> None: ...


class MemoryHistoryStore(HistoryStore):
    def __init__(self) -> None:
        self._histories: dict[ConversationId, ConversationHistory] = {}

    async def load(self, conv_id: ConversationId) -> ConversationHistory | None:
        return self._histories.get(conv_id)

    async def save(self, history: ConversationHistory) -> None:
        self._histories[history.id] = history


class RedisHistoryStore(HistoryStore):
    """Domain owns serialization (Pydantic), infrastructure provides the client."""

    def __init__(self, redis: Redis, ttl_seconds: int | None = None):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(conv_id: ConversationId) -> str:
        return f"conversation:{conv_id.root}"

    async def load(self, conv_id: ConversationId) -> ConversationHistory | None:
        data = await self.redis.get(self.key(conv_id))
        if not data:
            return None
        return ConversationHistory.model_validate_json(data)

    async def save(self, history: ConversationHistory) -> None:
        await self.redis.set(self.key(history.id), history.model_dump_json(), ex=self.ttl_seconds)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class StorageService:
    """
    Thin orchestrator - builds the configured stores, lazy-loads Redis.

    Responsibilities:
    - Provide Redis client when the redis backend is selected
    - Provide the history and state stores (one instance each)
    """

    def __init__(self, backend: StorageBackend, memory_config: MemoryStoreConfig):
        self.backend = backend
        self.memory_config = memory_config
        self._memory_client: Redis | None = None
        self._history_store: HistoryStore | None = None
        self._state_store: StateStore | None = None

    def get_memory_client(self) -> Redis:
        """Get or create Redis client (lazy)."""
        if self._memory_client is None:
            from redis.asyncio import Redis

            self._memory_client = Redis.from_url(self.memory_config.url)
        return self._memory_client

    def history_store(self) -> HistoryStore:
        if self._history_store is None:
            if self.backend is StorageBackend.REDIS:
                self._history_store = RedisHistoryStore(self.get_memory_client(), self.memory_config.expiry)
            else:
                self._history_store = MemoryHistoryStore()
        return self._history_store

    def state_store(self) -> StateStore:
        if self._state_store is None:
            if self.backend is StorageBackend.REDIS:
                self._state_store = RedisStateStore(self.get_memory_client(), self.memory_config.expiry)
            else:
                self._state_store = MemoryStateStore()
        return self._state_store

    async def close(self) -> None:
        if self._memory_client is not None:
            await self._memory_client.aclose()
            self._memory_client = None


def create_storage_service(backend: StorageBackend, memory_config: MemoryStoreConfig) -> StorageService:
    """Factory from infrastructure configs."""
    return StorageService(backend, memory_config)


__all__ = [
    "HistoryStore",
    "MemoryHistoryStore",
    "MemoryStateStore",
    "MemoryStoreConfig",
    "RedisHistoryStore",
    "RedisStateStore",
    "StateStore",
    "StorageService",
    "create_storage_service",
]
