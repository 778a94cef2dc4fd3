"""Domain Type System - Core Enumerations.

Defines type-safe constants using Python's StrEnum for domain concepts.
Using StrEnum instead of plain Enum provides automatic string coercion
and better JSON serialization without custom encoders.
"""

from enum import StrEnum


class ExpertIdentity(StrEnum):
    """Closed set of experts the router may select.

    Each identity maps to exactly one ExpertProfile (persona, step budget,
    tools). Values double as the classifier's output labels.

    Note:
        Adding an identity requires a matching entry in EXPERT_PROFILES
    """

    SCHEDULING = "scheduling"
    FINANCE = "finance"
    HEALTH = "health"
    KNOWLEDGE = "knowledge"


class MessageRole(StrEnum):
    """Who authored a stored conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolName(StrEnum):
    """Every tool an expert can call. Closed set, one typed call model each."""

    ADD_TRANSACTIONS = "add_transactions"
    GET_TRANSACTION_HISTORY = "get_transaction_history"
    UPDATE_HEALTH_METRICS = "update_health_metrics"
    GET_HEALTH_METRICS = "get_health_metrics"
    STORE_NOTE = "store_note"
    GET_NOTES = "get_notes"


class InvocationState(StrEnum):
    """Tool invocation lifecycle tracked by the interceptor.

    Transitions:
        REQUESTED -> AUTO_APPROVED -> EXECUTED | FAILED
        REQUESTED -> PENDING_CONFIRMATION -> APPROVED -> EXECUTED | FAILED
        REQUESTED -> PENDING_CONFIRMATION -> DECLINED
    """

    REQUESTED = "requested"
    AUTO_APPROVED = "auto_approved"
    PENDING_CONFIRMATION = "pending_confirmation"
    APPROVED = "approved"
    DECLINED = "declined"
    EXECUTED = "executed"
    FAILED = "failed"


class ToolOutcome(StrEnum):
    """Terminal result reported back to the model for one invocation."""

    SUCCESS = "success"
    DECLINED = "declined"
    FAILED = "failed"


class ConfirmationDecision(StrEnum):
    """External verdict on a tool invocation awaiting confirmation."""

    APPROVE = "approve"
    DECLINE = "decline"


class FrameType(StrEnum):
    """Stream frame discriminator values sent over the transport."""

    TEXT_DELTA = "text-delta"
    CONFIRMATION_REQUEST = "confirmation-request"
    ERROR = "error"
    FINISH = "finish"


class StorageBackend(StrEnum):
    """Where conversation history and session state live."""

    REDIS = "redis"
    MEMORY = "memory"


__all__ = [
    "ConfirmationDecision",
    "ExpertIdentity",
    "FrameType",
    "InvocationState",
    "MessageRole",
    "StorageBackend",
    "ToolName",
    "ToolOutcome",
]
