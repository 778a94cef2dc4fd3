"""Conversation API Router - thin HTTP layer over the conversation service."""

from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from ...domain.domain_type import ExpertIdentity
from ...domain.domain_value import ConversationId, CorrelationId
from ...domain.errors import UnknownConfirmationError
from ...service import ConversationService
from ..contracts import (
    ConfirmationRequest,
    ConfirmationResponse,
    ConversationHistoryResponse,
    ExpertsResponse,
    SendMessageRequest,
    SessionStateResponse,
)
from ..deps import get_conversation_service

router = APIRouter(prefix="/conversation", tags=["conversation"])

NDJSON = "application/x-ndjson"


@router.get("/experts", response_model=ExpertsResponse)
async def list_experts() -> ExpertsResponse:
    """List the experts the router can select."""
    return ExpertsResponse(experts=list(ExpertIdentity))


@router.post("/", response_class=StreamingResponse)
async def send_message(
    request: SendMessageRequest,
    service: Annotated[ConversationService, Depends(get_conversation_service)],
) -> StreamingResponse:
    """
    Send a message and stream the answer as NDJSON frames.

    Frames: text-delta while the answer is written, confirmation-request when
    a tool needs approval, then exactly one of finish or error.
    """
    conv_id = request.conversation_id or ConversationId()

    async def frames() -> AsyncIterator[str]:
        async with aclosing(service.stream_turn(request.text, conv_id)) as stream:
            async for frame in stream:
                yield frame.model_dump_json() + "\n"

    return StreamingResponse(
        frames(),
        media_type=NDJSON,
        headers={"X-Conversation-Id": str(conv_id.root)},
    )


@router.post(
    "/confirmations/{correlation_id}",
    response_model=ConfirmationResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def resolve_confirmation(
    correlation_id: UUID,
    request: ConfirmationRequest,
    service: Annotated[ConversationService, Depends(get_conversation_service)],
) -> ConfirmationResponse:
    """Approve or decline exactly one suspended tool call."""
    try:
        service.resolve_confirmation(CorrelationId(root=correlation_id), request.decision)
    except UnknownConfirmationError as exc:
        raise HTTPException(status_code=404, detail="No pending confirmation with that id") from exc
    return ConfirmationResponse(correlation_id=str(correlation_id), decision=request.decision)


@router.get("/{conversation_id}", response_model=ConversationHistoryResponse)
async def get_conversation(
    conversation_id: UUID,
    service: Annotated[ConversationService, Depends(get_conversation_service)],
) -> ConversationHistoryResponse:
    """Get conversation metadata by ID."""
    history = await service.get_history(ConversationId(root=conversation_id))
    if history is None:
        raise HTTPException(status_code=404, detail="Conversation not found")

    return ConversationHistoryResponse(
        conversation_id=history.id,
        message_count=len(history.messages),
        total_tokens=history.used_tokens,
    )


@router.get("/{conversation_id}/state", response_model=SessionStateResponse)
async def get_session_state(
    conversation_id: UUID,
    service: Annotated[ConversationService, Depends(get_conversation_service)],
) -> SessionStateResponse:
    """Get the ledger, notes and health metrics recorded for a conversation."""
    conv_id = ConversationId(root=conversation_id)
    state = await service.get_state(conv_id)
    return SessionStateResponse(
        conversation_id=conv_id,
        ledger_entries=list(state.ledger_entries),
        notes=list(state.notes),
        health=state.health,
    )
