"""Stream frames emitted to the transport during one turn.

A turn yields any number of text-delta and confirmation-request frames and
ends with exactly one terminal frame: finish on success, error on abort.
Frames serialize to one JSON object per line (NDJSON).
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .domain_type import FrameType, MessageRole, ToolName
from .domain_value import ConversationId, CorrelationId, MessageId, StoredMessage


class TurnMessage(BaseModel):
    """Transport view of a stored turn."""

    id: MessageId
    role: MessageRole
    content: str

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_stored(cls, message: StoredMessage) -> TurnMessage:
        return cls(id=message.id, role=message.role, content=message.text)


class TextDeltaFrame(BaseModel):
    type: Literal[FrameType.TEXT_DELTA] = FrameType.TEXT_DELTA
    delta: str

    model_config = ConfigDict(frozen=True)


class ConfirmationRequestFrame(BaseModel):
    """A tool call is suspended until the client approves or declines it."""

    type: Literal[FrameType.CONFIRMATION_REQUEST] = FrameType.CONFIRMATION_REQUEST
    correlation_id: CorrelationId
    tool_name: ToolName
    arguments: dict[str, Any]

    model_config = ConfigDict(frozen=True)


class ErrorFrame(BaseModel):
    type: Literal[FrameType.ERROR] = FrameType.ERROR
    message: str

    model_config = ConfigDict(frozen=True)


class FinishFrame(BaseModel):
    type: Literal[FrameType.FINISH] = FrameType.FINISH
    conversation_id: ConversationId
    message: TurnMessage

    model_config = ConfigDict(frozen=True)


StreamFrame = Annotated[
    TextDeltaFrame | ConfirmationRequestFrame | ErrorFrame | FinishFrame,
    Field(discriminator="type"),
]


__all__ = [
    "ConfirmationRequestFrame",
    "ErrorFrame",
    "FinishFrame",
    "StreamFrame",
    "TextDeltaFrame",
    "TurnMessage",
]
