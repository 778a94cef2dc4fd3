from .conversation import (
    ConfirmationRequest,
    ConfirmationResponse,
    ConversationHistoryResponse,
    ExpertsResponse,
    SendMessageRequest,
    SessionStateResponse,
)
from .health import HealthResponse

__all__ = [
    "ConfirmationRequest",
    "ConfirmationResponse",
    "ConversationHistoryResponse",
    "ExpertsResponse",
    "HealthResponse",
    "SendMessageRequest",
    "SessionStateResponse",
]
