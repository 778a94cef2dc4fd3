"""Conversation service - runs one turn per request and bridges it to the transport.

The orchestrator runs as its own task and writes frames into a queue; the
transport drains the queue. That split is what lets a confirmation-request
frame reach the client while an expert is still suspended mid-call.

If the client goes away before the terminal frame, the turn is cancelled:
pending confirmations are declined without side effects and the orchestrator
stops at its next safe point. Nothing is persisted for an aborted turn.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import logfire

from ..domain.domain_type import ConfirmationDecision, ToolName
from ..domain.domain_value import ConversationHistory, ConversationId, CorrelationId, StoredMessage
from ..domain.errors import TurnAborted, TurnCancelled
from ..domain.experts import DEFAULT_STEP_BUDGET, build_invokers
from ..domain.frames import ErrorFrame, FinishFrame, StreamFrame, TurnMessage
from ..domain.interceptor import ConfirmationBroker, ToolCallInterceptor
from ..domain.orchestrator import Orchestrator
from ..domain.provider import InferenceProvider
from ..domain.router import ExpertRouter
from ..domain.session_state import SessionState
from ..domain.synthesizer import Synthesizer
from ..domain.tools import DEFAULT_CONFIRM_TOOLS
from ..domain.turn_context import TurnContext
from .storage import HistoryStore, StateStore

GENERIC_FAILURE = "Sorry, something went wrong while preparing the answer. Please try again."


class ConversationService:
    """
    Turn runner - zero business logic of its own.

    Service responsibilities:
    1. Load or start the conversation history
    2. Build the explicit TurnContext (session, store, interceptor, emitter)
    3. Run the orchestrator and translate its outcome into frames
    4. Persist user turn + assistant turn only after a successful turn
    5. Route confirmation decisions to the suspended invocation
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        histories: HistoryStore,
        states: StateStore,
        broker: ConfirmationBroker,
        confirm_tools: frozenset[ToolName] = DEFAULT_CONFIRM_TOOLS,
    ):
        self.orchestrator = orchestrator
        self.histories = histories
        self.states = states
        self.broker = broker
        self.confirm_tools = confirm_tools
        self._turns: set[asyncio.Task[None]] = set()

    async def load_or_start(self, conv_id: ConversationId | None) -> ConversationHistory:
        """Stored history for `conv_id`, or a fresh one (with that id if given)."""
        if conv_id is None:
            return ConversationHistory(id=ConversationId())
        history = await self.histories.load(conv_id)
        return history if history is not None else ConversationHistory(id=conv_id)

    async def stream_turn(self, text: str, conv_id: ConversationId | None = None) -> AsyncIterator[StreamFrame]:
        """Answer one user message, yielding frames until a terminal one."""
        history = (await self.load_or_start(conv_id)).append_message(StoredMessage.user(text))

        queue: asyncio.Queue[StreamFrame | None] = asyncio.Queue()
        interceptor = ToolCallInterceptor(
            session_id=history.id,
            store=self.states,
            broker=self.broker,
            emit=queue.put,
            confirm_tools=self.confirm_tools,
        )
        context = TurnContext(session_id=history.id, store=self.states, interceptor=interceptor, emit=queue.put)

        task = asyncio.create_task(self._run_turn(history, context, queue))
        self._turns.add(task)
        task.add_done_callback(self._turns.discard)

        drained = False
        try:
            while (frame := await queue.get()) is not None:
                yield frame
            drained = True
        finally:
            if not drained:
                logfire.info("client left mid-turn; cancelling {conversation_id}", conversation_id=str(history.id.root))
                context.cancel()

    async def _run_turn(
        self,
        history: ConversationHistory,
        context: TurnContext,
        queue: asyncio.Queue[StreamFrame | None],
    ) -> None:
        try:
            assistant = await self.orchestrator.run(history, context)
            await self.histories.save(history.append_message(assistant))
            await queue.put(FinishFrame(conversation_id=history.id, message=TurnMessage.from_stored(assistant)))
        except TurnCancelled:
            logfire.info("turn cancelled for {conversation_id}", conversation_id=str(history.id.root))
            await queue.put(ErrorFrame(message=GENERIC_FAILURE))
        except TurnAborted as exc:
            logfire.warn("turn aborted: {error}", error=str(exc), error_type=type(exc).__name__)
            await queue.put(ErrorFrame(message=GENERIC_FAILURE))
        except Exception:
            logfire.exception("unexpected failure while answering {conversation_id}", conversation_id=str(history.id.root))
            await queue.put(ErrorFrame(message=GENERIC_FAILURE))
        finally:
            await queue.put(None)

    def resolve_confirmation(self, correlation_id: CorrelationId, decision: ConfirmationDecision) -> None:
        """Resume the one invocation waiting on `correlation_id`.

        Raises:
            UnknownConfirmationError: Nothing is waiting on that id
        """
        logfire.info(
            "confirmation {decision} for {correlation_id}",
            decision=decision,
            correlation_id=str(correlation_id.root),
        )
        self.broker.resolve(correlation_id, decision)

    async def get_history(self, conv_id: ConversationId) -> ConversationHistory | None:
        return await self.histories.load(conv_id)

    async def get_state(self, conv_id: ConversationId) -> SessionState:
        return await self.states.get(conv_id)

    async def drain(self) -> None:
        """Wait for in-flight turns (used on shutdown)."""
        if self._turns:
            await asyncio.gather(*self._turns, return_exceptions=True)


def create_conversation_service(
    provider: InferenceProvider,
    histories: HistoryStore,
    states: StateStore,
    broker: ConfirmationBroker | None = None,
    step_budget: int = DEFAULT_STEP_BUDGET,
    confirm_tools: frozenset[ToolName] = DEFAULT_CONFIRM_TOOLS,
) -> ConversationService:
    """
    Factory function for creating ConversationService.

    Service owns its own construction logic - deps.py just calls this.
    """
    orchestrator = Orchestrator(
        router=ExpertRouter(provider=provider),
        experts=build_invokers(provider, step_budget),
        synthesizer=Synthesizer(provider=provider),
    )
    return ConversationService(
        orchestrator=orchestrator,
        histories=histories,
        states=states,
        broker=broker or ConfirmationBroker(),
        confirm_tools=confirm_tools,
    )


__all__ = ["GENERIC_FAILURE", "ConversationService", "create_conversation_service"]
