"""Tool-Call Interceptor - Confirmation Gate in Front of Tool Side Effects.

Every tool call an expert makes passes through a ToolCallInterceptor before
anything touches session state:

    requested -> auto_approved -> executed | failed
    requested -> pending_confirmation -> approved -> executed | failed
    requested -> pending_confirmation -> declined

Pending invocations are parked in the ConfirmationBroker under a fresh
CorrelationId and surfaced to the transport as a confirmation-request frame.
Only a resolve() carrying that exact id resumes the invocation. There is no
timeout here; how long to wait is the caller's business.

Failures while executing a tool never escape: they come back to the model as
a failed outcome so the expert can retry or report it.

Several tool calls in one model response are run concurrently by Pydantic AI,
each through its own submit(); their results go back to the model matched to
the originating call by tool_call_id.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import logfire
from pydantic import BaseModel, ConfigDict, Field

from .domain_type import ConfirmationDecision, InvocationState, ToolName, ToolOutcome
from .domain_value import ConversationId, CorrelationId
from .errors import UnknownConfirmationError
from .frames import ConfirmationRequestFrame, StreamFrame
from .session_state import SessionStateStore
from .tools import DEFAULT_CONFIRM_TOOLS, ToolCall, execute_tool

Emitter = Callable[[StreamFrame], Awaitable[None]]


class ToolInvocationRequest(BaseModel):
    """A validated tool call plus the gate it must pass."""

    correlation_id: CorrelationId = Field(default_factory=CorrelationId)
    call: ToolCall
    requires_confirmation: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def tool_name(self) -> ToolName:
        return self.call.kind

    @property
    def arguments(self) -> dict[str, Any]:
        return self.call.model_dump(mode="json", exclude={"kind"})


class ToolInvocationResult(BaseModel):
    """Outcome of one invocation, fed back into the expert's reasoning."""

    correlation_id: CorrelationId
    tool_name: ToolName
    arguments: dict[str, Any]
    outcome: ToolOutcome
    text: str | None = None
    reason: str | None = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def for_request(
        cls,
        request: ToolInvocationRequest,
        outcome: ToolOutcome,
        *,
        text: str | None = None,
        reason: str | None = None,
    ) -> ToolInvocationResult:
        return cls(
            correlation_id=request.correlation_id,
            tool_name=request.tool_name,
            arguments=request.arguments,
            outcome=outcome,
            text=text,
            reason=reason,
        )

    def render(self) -> str:
        """Text returned to the model as the tool's result."""
        match self.outcome:
            case ToolOutcome.SUCCESS:
                return self.text or ""
            case ToolOutcome.DECLINED:
                suffix = f" ({self.reason})" if self.reason else ""
                return f"The user declined the {self.tool_name} request; nothing was changed{suffix}."
            case ToolOutcome.FAILED:
                return f"The {self.tool_name} request failed: {self.reason}"


class ConfirmationBroker:
    """Invocations suspended on a confirmation, keyed by correlation id.

    One broker is shared by all turns in the process so that the resume
    endpoint can reach a suspension created by a different request.
    """

    def __init__(self) -> None:
        self._pending: dict[CorrelationId, asyncio.Future[ConfirmationDecision]] = {}

    def open(self, correlation_id: CorrelationId) -> asyncio.Future[ConfirmationDecision]:
        future: asyncio.Future[ConfirmationDecision] = asyncio.get_running_loop().create_future()
        self._pending[correlation_id] = future
        return future

    def resolve(self, correlation_id: CorrelationId, decision: ConfirmationDecision) -> None:
        """Resume exactly the invocation parked under `correlation_id`.

        Raises:
            UnknownConfirmationError: Nothing is waiting on that id
        """
        future = self._pending.pop(correlation_id, None)
        if future is None or future.done():
            raise UnknownConfirmationError(str(correlation_id.root))
        future.set_result(decision)

    def discard(self, correlation_id: CorrelationId) -> None:
        self._pending.pop(correlation_id, None)

    def is_pending(self, correlation_id: CorrelationId) -> bool:
        return correlation_id in self._pending

    @property
    def pending_ids(self) -> tuple[CorrelationId, ...]:
        return tuple(self._pending)

    @property
    def pending_count(self) -> int:
        return len(self._pending)


class ToolCallInterceptor:
    """Per-turn gate between an expert's tool calls and the state store.

    Args:
        session_id: Session whose state the tools act on
        store: State store; serializes writes per session
        broker: Shared registry of suspended invocations
        emit: Sends frames (confirmation requests) to the transport
        confirm_tools: Tools whose side effects need approval first
    """

    def __init__(
        self,
        session_id: ConversationId,
        store: SessionStateStore,
        broker: ConfirmationBroker,
        emit: Emitter,
        confirm_tools: frozenset[ToolName] = DEFAULT_CONFIRM_TOOLS,
    ):
        self.session_id = session_id
        self.store = store
        self.broker = broker
        self.confirm_tools = confirm_tools
        self._emit = emit
        self._awaiting: set[CorrelationId] = set()
        self._abandoned = False
        self.transitions: list[tuple[CorrelationId, InvocationState]] = []

    def request(self, call: ToolCall) -> ToolInvocationRequest:
        return ToolInvocationRequest(call=call, requires_confirmation=call.kind in self.confirm_tools)

    async def submit(self, call: ToolCall) -> ToolInvocationResult:
        """Run one tool call through the gate and return its outcome."""
        request = self.request(call)
        with logfire.span(
            "tool {tool_name}",
            tool_name=request.tool_name,
            correlation_id=str(request.correlation_id.root),
            requires_confirmation=request.requires_confirmation,
        ):
            self._transition(request, InvocationState.REQUESTED)

            if not request.requires_confirmation:
                self._transition(request, InvocationState.AUTO_APPROVED)
                return await self._execute(request)

            decision, reason = await self._await_confirmation(request)
            if decision is ConfirmationDecision.DECLINE:
                self._transition(request, InvocationState.DECLINED)
                return ToolInvocationResult.for_request(request, ToolOutcome.DECLINED, reason=reason)

            self._transition(request, InvocationState.APPROVED)
            return await self._execute(request)

    def abandon(self) -> None:
        """Decline everything still waiting and refuse new confirmations.

        Used when the client disconnects: no gated side effect may be applied
        for a confirmation that will never arrive.
        """
        self._abandoned = True
        for correlation_id in list(self._awaiting):
            if self.broker.is_pending(correlation_id):
                self.broker.resolve(correlation_id, ConfirmationDecision.DECLINE)

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    async def _await_confirmation(
        self, request: ToolInvocationRequest
    ) -> tuple[ConfirmationDecision, str | None]:
        if self._abandoned:
            return ConfirmationDecision.DECLINE, "turn cancelled"

        future = self.broker.open(request.correlation_id)
        self._awaiting.add(request.correlation_id)
        self._transition(request, InvocationState.PENDING_CONFIRMATION)
        try:
            await self._emit(
                ConfirmationRequestFrame(
                    correlation_id=request.correlation_id,
                    tool_name=request.tool_name,
                    arguments=request.arguments,
                )
            )
            decision = await future
        finally:
            self._awaiting.discard(request.correlation_id)
            self.broker.discard(request.correlation_id)

        if self._abandoned:
            return ConfirmationDecision.DECLINE, "turn cancelled"
        return decision, None

    async def _execute(self, request: ToolInvocationRequest) -> ToolInvocationResult:
        try:
            text = await execute_tool(request.call, self.session_id, self.store)
        except Exception as exc:
            self._transition(request, InvocationState.FAILED)
            logfire.warn("tool {tool_name} failed: {error}", tool_name=request.tool_name, error=str(exc))
            return ToolInvocationResult.for_request(request, ToolOutcome.FAILED, reason=str(exc) or type(exc).__name__)

        self._transition(request, InvocationState.EXECUTED)
        return ToolInvocationResult.for_request(request, ToolOutcome.SUCCESS, text=text)

    def _transition(self, request: ToolInvocationRequest, state: InvocationState) -> None:
        self.transitions.append((request.correlation_id, state))
        logfire.debug("tool {tool_name} -> {state}", tool_name=request.tool_name, state=state)


__all__ = [
    "ConfirmationBroker",
    "Emitter",
    "ToolCallInterceptor",
    "ToolInvocationRequest",
    "ToolInvocationResult",
]
