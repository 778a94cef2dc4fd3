# src/expertchat/api/contracts/conversation.py
"""Conversation API contracts - use domain types directly."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ...domain.domain_type import ConfirmationDecision, ExpertIdentity
from ...domain.domain_value import ConversationId
from ...domain.session_state import HealthMetrics, LedgerEntry, Note


class SendMessageRequest(BaseModel):
    """Request to send a message in a conversation."""

    text: str = Field(
        min_length=1,
        max_length=10_000,
        description="User message to send",
        examples=["I spent $42 on groceries today, and what's my BMI at 70kg and 175cm?"],
    )
    conversation_id: ConversationId | None = Field(
        default=None,
        description="Existing conversation ID to continue, or None to start new",
        examples=["3fa85f64-5717-4562-b3fc-2c963f66afa6"],
    )


class ConfirmationRequest(BaseModel):
    """Client verdict on a suspended tool call."""

    decision: ConfirmationDecision = Field(
        description="Whether the tool call may apply its side effect",
        examples=["approve"],
    )


class ConfirmationResponse(BaseModel):
    correlation_id: str
    decision: ConfirmationDecision


class ConversationHistoryResponse(BaseModel):
    """Response containing conversation history metadata."""

    conversation_id: ConversationId
    message_count: int = Field(ge=0)
    total_tokens: int = Field(ge=0)


class SessionStateResponse(BaseModel):
    """Snapshot of the session's ledger, notes and health metrics."""

    conversation_id: ConversationId
    ledger_entries: list[LedgerEntry]
    notes: list[Note]
    health: HealthMetrics


class ExpertsResponse(BaseModel):
    experts: list[ExpertIdentity]
