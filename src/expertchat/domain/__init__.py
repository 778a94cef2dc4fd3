"""Domain Layer - Orchestration Pipeline and Session State.

Key Components:
    - Orchestrator: route -> consult experts in order -> stream synthesis
    - ExpertRouter: classifies a conversation into an ordered RoutingPlan
    - ExpertInvoker: one persona + step budget over the InferenceProvider
    - ToolCallInterceptor: confirmation gate in front of tool side effects
    - SessionState: ledger, notes and health metrics mutated only by tools

Design Principles:
    - Pydantic AI Native: Use Pydantic AI types directly, minimal wrapping
    - Immutable by Default: domain records use frozen=True
    - Explicit Dependencies: the TurnContext is passed, never looked up
"""

from .domain_type import (
    ConfirmationDecision,
    ExpertIdentity,
    FrameType,
    InvocationState,
    MessageRole,
    ToolName,
    ToolOutcome,
)
from .domain_value import (
    ConversationHistory,
    ConversationId,
    CorrelationId,
    ExpertFinding,
    MessageId,
    RoutingPlan,
    StoredMessage,
)
from .errors import (
    ConfigurationError,
    ExpertInvocationError,
    RoutingError,
    SynthesisError,
    TurnAborted,
    TurnCancelled,
    UnknownConfirmationError,
)
from .experts import NO_ANSWER, ExpertInvoker, ExpertProfile, build_invokers
from .frames import ConfirmationRequestFrame, ErrorFrame, FinishFrame, StreamFrame, TextDeltaFrame
from .interceptor import ConfirmationBroker, ToolCallInterceptor, ToolInvocationRequest, ToolInvocationResult
from .orchestrator import Orchestrator, TurnProgress
from .provider import AgentProvider, InferenceProvider
from .router import ExpertRouter
from .session_state import HealthMetrics, LedgerEntry, Note, SessionState
from .synthesizer import Synthesizer
from .tools import TOOL_REGISTRY, ToolCall, ToolSpec, execute_tool
from .turn_context import TurnContext

__all__ = [
    "NO_ANSWER",
    "TOOL_REGISTRY",
    "AgentProvider",
    "ConfigurationError",
    "ConfirmationBroker",
    "ConfirmationDecision",
    "ConfirmationRequestFrame",
    "ConversationHistory",
    "ConversationId",
    "CorrelationId",
    "ErrorFrame",
    "ExpertFinding",
    "ExpertIdentity",
    "ExpertInvocationError",
    "ExpertInvoker",
    "ExpertProfile",
    "ExpertRouter",
    "FinishFrame",
    "FrameType",
    "HealthMetrics",
    "InferenceProvider",
    "InvocationState",
    "LedgerEntry",
    "MessageId",
    "MessageRole",
    "Note",
    "Orchestrator",
    "RoutingError",
    "RoutingPlan",
    "SessionState",
    "StoredMessage",
    "StreamFrame",
    "SynthesisError",
    "Synthesizer",
    "TextDeltaFrame",
    "ToolCall",
    "ToolCallInterceptor",
    "ToolInvocationRequest",
    "ToolInvocationResult",
    "ToolName",
    "ToolOutcome",
    "ToolSpec",
    "TurnAborted",
    "TurnCancelled",
    "TurnContext",
    "TurnProgress",
    "UnknownConfirmationError",
    "build_invokers",
    "execute_tool",
]
