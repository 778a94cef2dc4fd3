"""
Tests for ConversationHistory and StoredMessage domain models.

These tests demonstrate:
- Testing immutability patterns (not testing frozen=True itself)
- Testing business logic (not testing Pydantic validation)
- Testing derived views (roles, latest user text, raw message content)
"""

from pydantic_ai.messages import ModelRequest, ToolReturnPart

from expertchat.domain.domain_type import MessageRole
from expertchat.domain.domain_value import ConversationHistory, ConversationId, MessageId, StoredMessage


def test_empty_creates_zero_length_history():
    """
    Demonstrates: Testing constructor behavior.

    We don't test that ConversationHistory validates its fields, that's Pydantic's job.
    We test that creating an empty history works correctly.
    """
    history = ConversationHistory(id=ConversationId(), messages=())

    assert len(history.messages) == 0
    assert history.messages == ()
    assert history.latest_user_text == ""


def test_append_message_returns_new_instance():
    """
    Demonstrates: Testing immutability pattern without testing frozen=True.

    The business behavior is that append returns a new instance and leaves
    the original untouched.
    """
    history = ConversationHistory(id=ConversationId(), messages=())

    new_history = history.append_message(StoredMessage.user("Hello"))

    assert new_history is not history
    assert len(new_history.messages) == 1
    assert len(history.messages) == 0


def test_append_multiple_messages_maintains_order():
    """
    Demonstrates: Testing domain invariant (append order).

    Messages appear in the order appended.
    """
    history = ConversationHistory(id=ConversationId(), messages=())
    messages = [StoredMessage.user(f"Message {i}") for i in range(5)]

    for msg in messages:
        history = history.append_message(msg)

    assert history.messages == tuple(messages)
    assert [m.text for m in history.messages] == [f"Message {i}" for i in range(5)]


def test_roles_are_derived_from_wrapped_content():
    """
    Demonstrates: Role derivation without modifying Pydantic AI types.

    Requests are user turns unless they carry tool returns; responses are
    assistant turns.
    """
    tool_return = StoredMessage(
        id=MessageId(),
        content=ModelRequest(parts=[ToolReturnPart(tool_name="get_notes", content="No notes found.")]),
    )

    assert StoredMessage.user("hi").role is MessageRole.USER
    assert StoredMessage.assistant("hello").role is MessageRole.ASSISTANT
    assert tool_return.role is MessageRole.TOOL


def test_latest_user_text_skips_assistant_turns():
    """
    Demonstrates: Testing a derived view used by the synthesizer.

    The query handed to synthesis is the most recent user message, even when
    assistant turns come after it.
    """
    history = (
        ConversationHistory(id=ConversationId())
        .append_message(StoredMessage.user("first question"))
        .append_message(StoredMessage.assistant("first answer"))
        .append_message(StoredMessage.user("second question"))
    )

    assert history.latest_user_text == "second question"
    assert history.append_message(StoredMessage.assistant("done")).latest_user_text == "second question"


def test_message_content_exposes_raw_pydantic_ai_messages(history_with_messages: ConversationHistory):
    """
    Demonstrates: Testing the seam to Pydantic AI.

    message_content is exactly what Agent.run(message_history=...) expects.
    """
    content = history_with_messages.message_content

    assert len(content) == 1
    assert isinstance(content[0], ModelRequest)
    assert content[0] is history_with_messages.messages[0].content
