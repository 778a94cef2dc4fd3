"""
Shared test fixtures and configuration.

Environment strategy:
- All tests load .env.test (in-memory storage, placeholder API key)
- No test talks to a real model: the provider is replaced by ScriptedProvider
  or a Pydantic AI FunctionModel
"""

from pathlib import Path

import logfire
import pytest
from dotenv import load_dotenv

ENV_FILE = Path(__file__).parent.parent / ".env.test"

load_dotenv(ENV_FILE, override=True)

# Spans and logs stay in-process during tests
logfire.configure(send_to_logfire=False, console=False)

from expertchat.domain.domain_value import ConversationHistory, ConversationId, StoredMessage
from expertchat.domain.interceptor import ConfirmationBroker, ToolCallInterceptor
from expertchat.domain.turn_context import TurnContext
from expertchat.service.storage import MemoryHistoryStore, MemoryStateStore

from .doubles import FrameSink


@pytest.fixture
def conversation_id() -> ConversationId:
    """Generate a valid ConversationId for testing."""
    return ConversationId()


@pytest.fixture
def stored_message() -> StoredMessage:
    """Create a valid user StoredMessage for testing."""
    return StoredMessage.user("Test message")


@pytest.fixture
def empty_history(conversation_id: ConversationId) -> ConversationHistory:
    """Create an empty ConversationHistory for testing."""
    return ConversationHistory(id=conversation_id, messages=())


@pytest.fixture
def history_with_messages(conversation_id: ConversationId, stored_message: StoredMessage) -> ConversationHistory:
    """Create a ConversationHistory with one message for testing."""
    return ConversationHistory(id=conversation_id, messages=()).append_message(stored_message)


@pytest.fixture
def state_store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def history_store() -> MemoryHistoryStore:
    return MemoryHistoryStore()


@pytest.fixture
def broker() -> ConfirmationBroker:
    return ConfirmationBroker()


@pytest.fixture
def sink() -> FrameSink:
    return FrameSink()


@pytest.fixture
def interceptor(
    conversation_id: ConversationId, state_store: MemoryStateStore, broker: ConfirmationBroker, sink: FrameSink
) -> ToolCallInterceptor:
    """Interceptor with the default confirmation set (add_transactions gated)."""
    return ToolCallInterceptor(session_id=conversation_id, store=state_store, broker=broker, emit=sink)


@pytest.fixture
def turn_context(
    conversation_id: ConversationId,
    state_store: MemoryStateStore,
    interceptor: ToolCallInterceptor,
    sink: FrameSink,
) -> TurnContext:
    return TurnContext(session_id=conversation_id, store=state_store, interceptor=interceptor, emit=sink)
