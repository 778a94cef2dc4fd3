"""Identity Layer - Persistence Identities for Pydantic AI Content.

This module provides the identity layer that wraps Pydantic AI's content types
with our own UUID-based identifiers for persistence and reference, plus the
small value objects a turn produces (routing plan, expert findings).

Architecture:
    - Identity (our layer): MessageId, ConversationId, CorrelationId
    - Content (Pydantic AI): ModelMessage (ModelRequest | ModelResponse)
    - Turn values (our layer): RoutingPlan, ExpertFinding

This separation allows us to:
1. Store and retrieve conversations by ID
2. Derive roles (user/assistant/tool) without modifying Pydantic AI types
3. Keep per-turn orchestration results immutable and comparable
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    TextPart,
    ToolReturnPart,
    UserPromptPart,
)

from .domain_type import ExpertIdentity, MessageRole
from .errors import RoutingError


class MessageId(RootModel[UUID]):
    """Unique Identifier for Individual Messages.

    Uses Pydantic's RootModel pattern to create a strongly-typed UUID wrapper.

    Note:
        Frozen for use as dictionary keys and in immutable data structures
    """

    root: UUID = Field(default_factory=uuid4)
    model_config = ConfigDict(frozen=True)


class ConversationId(RootModel[UUID]):
    """Unique Identifier for Conversations.

    Primary key for conversation persistence and also the session identity
    that scopes SessionState.

    Usage:
        >>> conv_id = ConversationId()
        >>> redis_key = f"conversation:{conv_id.root}"
    """

    root: UUID = Field(default_factory=uuid4)
    model_config = ConfigDict(frozen=True)


class CorrelationId(RootModel[UUID]):
    """Identifies one tool invocation awaiting external confirmation."""

    root: UUID = Field(default_factory=uuid4)
    model_config = ConfigDict(frozen=True)


class StoredMessage(BaseModel):
    """Message with Persistence Identity.

    Wraps Pydantic AI's ModelMessage with our own MessageId for storage and
    reference. Role and plain text are derived from the wrapped content so the
    message stays a faithful Pydantic AI object.

    Attributes:
        id: Our unique identifier for this message
        content: Pydantic AI's ModelMessage (discriminated union of Request/Response)
    """

    id: MessageId
    content: ModelMessage
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @classmethod
    def user(cls, text: str) -> StoredMessage:
        """Wrap user text as a model request."""
        return cls(id=MessageId(), content=ModelRequest(parts=[UserPromptPart(content=text)]))

    @classmethod
    def assistant(cls, text: str) -> StoredMessage:
        """Wrap assistant text as a model response."""
        return cls(id=MessageId(), content=ModelResponse(parts=[TextPart(content=text)]))

    @property
    def role(self) -> MessageRole:
        if isinstance(self.content, ModelResponse):
            return MessageRole.ASSISTANT
        if any(isinstance(part, ToolReturnPart) for part in self.content.parts):
            return MessageRole.TOOL
        return MessageRole.USER

    @property
    def text(self) -> str:
        """Concatenated plain text of user prompt or text response parts."""
        chunks: list[str] = []
        for part in self.content.parts:
            if isinstance(part, (UserPromptPart, TextPart)) and isinstance(part.content, str):
                chunks.append(part.content)
        return "\n".join(chunks)


class ConversationHistory(BaseModel):
    """Complete Conversation State for Persistence.

    The serializable aggregate representing an entire conversation. Bridges our
    identity layer (IDs) with Pydantic AI's content layer.

    Design Notes:
        - Immutable (frozen=True) for safe sharing across async contexts
        - Uses tuple instead of list to enforce immutability
        - Serializes cleanly to JSON for Redis storage
    """

    id: ConversationId
    messages: tuple[StoredMessage, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def message_content(self) -> tuple[ModelMessage, ...]:
        """Raw ModelMessage objects, as Pydantic AI expects in message_history."""
        return tuple(msg.content for msg in self.messages)

    @property
    def used_tokens(self) -> int:
        """Total tokens across stored responses. Observability only."""
        total = 0
        for msg in self.messages:
            if isinstance(msg.content, ModelResponse) and msg.content.usage:
                total += msg.content.usage.total_tokens
        return total

    @property
    def latest_user_text(self) -> str:
        for msg in reversed(self.messages):
            if msg.role is MessageRole.USER:
                return msg.text
        return ""

    def append_message(self, msg: StoredMessage) -> ConversationHistory:
        """Append Message Immutably.

        Functional update pattern: creates new ConversationHistory with added
        message. Original instance remains unchanged.
        """
        return self.model_copy(update={"messages": (*self.messages, msg)})


class ExpertFinding(BaseModel):
    """One expert's contribution to the current turn.

    Attributes:
        identity: Expert that produced the finding
        text: Final answer text, or NO_ANSWER when nothing was produced
        answered: False when the step budget ran out without any text
    """

    identity: ExpertIdentity
    text: str
    answered: bool = True

    model_config = ConfigDict(frozen=True)


class RoutingPlan(RootModel[tuple[ExpertIdentity, ...]]):
    """Ordered, duplicate-free experts to consult for one turn.

    Construction rejects duplicates outright; `from_labels` is the lenient
    factory for classifier output that keeps the first occurrence of each
    label and drops later repeats.

    Usage:
        >>> plan = RoutingPlan.from_labels(["finance", "health", "finance"])
        >>> plan.root
        (<ExpertIdentity.FINANCE: 'finance'>, <ExpertIdentity.HEALTH: 'health'>)
    """

    root: tuple[ExpertIdentity, ...] = ()
    model_config = ConfigDict(frozen=True)

    @field_validator("root")
    @classmethod
    def reject_duplicates(cls, v: tuple[ExpertIdentity, ...]) -> tuple[ExpertIdentity, ...]:
        if len(set(v)) != len(v):
            raise ValueError("RoutingPlan entries must be unique")
        return v

    @classmethod
    def from_labels(cls, labels: Iterable[str]) -> RoutingPlan:
        """Build a plan from raw classifier labels.

        Raises:
            RoutingError: A label is not a known ExpertIdentity
        """
        ordered: dict[ExpertIdentity, None] = {}
        for label in labels:
            try:
                identity = ExpertIdentity(label)
            except ValueError as exc:
                raise RoutingError(f"Unknown expert label: {label!r}") from exc
            ordered.setdefault(identity, None)
        return cls(tuple(ordered))

    def __iter__(self):  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)


__all__ = [
    "ConversationHistory",
    "ConversationId",
    "CorrelationId",
    "ExpertFinding",
    "MessageId",
    "RoutingPlan",
    "StoredMessage",
]
