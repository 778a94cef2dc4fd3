"""
Tests for the tool-call interceptor and confirmation broker.

These tests demonstrate:
- Testing a state machine through its recorded transitions
- Testing suspension: nothing is applied until the matching confirmation
- Testing disconnects: abandoned turns never apply gated side effects
"""

import asyncio
from datetime import date

import pytest

from expertchat.domain.domain_type import ConfirmationDecision, InvocationState, ToolName, ToolOutcome
from expertchat.domain.domain_value import ConversationId, CorrelationId
from expertchat.domain.errors import UnknownConfirmationError
from expertchat.domain.frames import ConfirmationRequestFrame
from expertchat.domain.interceptor import ConfirmationBroker, ToolCallInterceptor
from expertchat.domain.session_state import LedgerEntry, Note, SessionState
from expertchat.domain.tools import AddTransactions, StoreNote
from expertchat.service.storage import MemoryStateStore
from tests.doubles import FrameSink

LUNCH = AddTransactions(transactions=(LedgerEntry(date=date(2024, 5, 1), description="lunch", amount=-12),))


async def wait_for_confirmations(sink: FrameSink, count: int = 1) -> list[ConfirmationRequestFrame]:
    while len(sink.of_type(ConfirmationRequestFrame)) < count:
        await asyncio.sleep(0)
    return sink.of_type(ConfirmationRequestFrame)


def states(interceptor: ToolCallInterceptor) -> list[InvocationState]:
    return [state for _, state in interceptor.transitions]


class BrokenNoteStore(MemoryStateStore):
    async def append_note(self, session_id: ConversationId, note: Note) -> SessionState:
        raise ConnectionError("store unavailable")


@pytest.mark.asyncio
async def test_auto_approved_tool_executes_immediately(interceptor: ToolCallInterceptor, sink: FrameSink):
    """
    Demonstrates: Tools outside the confirmation set run without any frame.
    """
    result = await interceptor.submit(StoreNote(title="todo", content="buy milk"))

    assert result.outcome is ToolOutcome.SUCCESS
    assert result.render() == 'Note "todo" saved successfully.'
    assert states(interceptor) == [
        InvocationState.REQUESTED,
        InvocationState.AUTO_APPROVED,
        InvocationState.EXECUTED,
    ]
    assert sink.frames == []


@pytest.mark.asyncio
async def test_execution_failure_is_reported_not_raised(
    conversation_id: ConversationId, broker: ConfirmationBroker, sink: FrameSink
):
    """
    Demonstrates: A failing side effect becomes a failed outcome for the expert.
    """
    interceptor = ToolCallInterceptor(conversation_id, BrokenNoteStore(), broker, sink)

    result = await interceptor.submit(StoreNote(title="todo", content="buy milk"))

    assert result.outcome is ToolOutcome.FAILED
    assert result.reason == "store unavailable"
    assert "failed" in result.render()
    assert states(interceptor)[-1] is InvocationState.FAILED


@pytest.mark.asyncio
async def test_confirmation_approve_applies_side_effect(
    interceptor: ToolCallInterceptor,
    broker: ConfirmationBroker,
    state_store: MemoryStateStore,
    conversation_id: ConversationId,
    sink: FrameSink,
):
    """
    Demonstrates: Suspension until the matching approval arrives.

    While pending, state is untouched; after approval the entry is recorded.
    """
    task = asyncio.create_task(interceptor.submit(LUNCH))
    [frame] = await wait_for_confirmations(sink)

    assert frame.tool_name is ToolName.ADD_TRANSACTIONS
    assert frame.arguments == {"transactions": [{"date": "2024-05-01", "description": "lunch", "amount": -12.0}]}
    assert broker.is_pending(frame.correlation_id)
    assert broker.pending_ids == (frame.correlation_id,)
    assert (await state_store.get(conversation_id)).ledger_entries == ()

    broker.resolve(frame.correlation_id, ConfirmationDecision.APPROVE)
    result = await task

    assert result.outcome is ToolOutcome.SUCCESS
    assert result.correlation_id == frame.correlation_id
    assert len((await state_store.get(conversation_id)).ledger_entries) == 1
    assert states(interceptor) == [
        InvocationState.REQUESTED,
        InvocationState.PENDING_CONFIRMATION,
        InvocationState.APPROVED,
        InvocationState.EXECUTED,
    ]
    assert broker.pending_count == 0


@pytest.mark.asyncio
async def test_confirmation_decline_changes_nothing(
    interceptor: ToolCallInterceptor,
    broker: ConfirmationBroker,
    state_store: MemoryStateStore,
    conversation_id: ConversationId,
    sink: FrameSink,
):
    task = asyncio.create_task(interceptor.submit(LUNCH))
    [frame] = await wait_for_confirmations(sink)

    broker.resolve(frame.correlation_id, ConfirmationDecision.DECLINE)
    result = await task

    assert result.outcome is ToolOutcome.DECLINED
    assert "declined" in result.render()
    assert (await state_store.get(conversation_id)).ledger_entries == ()
    assert states(interceptor)[-1] is InvocationState.DECLINED


@pytest.mark.asyncio
async def test_resolve_targets_exactly_one_invocation(
    interceptor: ToolCallInterceptor, broker: ConfirmationBroker, sink: FrameSink
):
    """
    Demonstrates: Each confirmation resumes only the invocation with its id.
    """
    first = asyncio.create_task(interceptor.submit(LUNCH))
    second = asyncio.create_task(interceptor.submit(LUNCH))
    frame_a, frame_b = await wait_for_confirmations(sink, 2)

    broker.resolve(frame_b.correlation_id, ConfirmationDecision.DECLINE)
    await asyncio.sleep(0)

    assert broker.is_pending(frame_a.correlation_id)
    assert not first.done()

    broker.resolve(frame_a.correlation_id, ConfirmationDecision.APPROVE)
    results = {r.correlation_id: r.outcome for r in await asyncio.gather(first, second)}

    assert results == {
        frame_a.correlation_id: ToolOutcome.SUCCESS,
        frame_b.correlation_id: ToolOutcome.DECLINED,
    }


def test_resolve_unknown_correlation_id_raises(broker: ConfirmationBroker):
    with pytest.raises(UnknownConfirmationError):
        broker.resolve(CorrelationId(), ConfirmationDecision.APPROVE)


@pytest.mark.asyncio
async def test_resolve_twice_raises(interceptor: ToolCallInterceptor, broker: ConfirmationBroker, sink: FrameSink):
    task = asyncio.create_task(interceptor.submit(LUNCH))
    [frame] = await wait_for_confirmations(sink)

    broker.resolve(frame.correlation_id, ConfirmationDecision.APPROVE)
    with pytest.raises(UnknownConfirmationError):
        broker.resolve(frame.correlation_id, ConfirmationDecision.DECLINE)
    assert (await task).outcome is ToolOutcome.SUCCESS


@pytest.mark.asyncio
async def test_abandon_declines_pending_and_future_confirmations(
    interceptor: ToolCallInterceptor,
    broker: ConfirmationBroker,
    state_store: MemoryStateStore,
    conversation_id: ConversationId,
    sink: FrameSink,
):
    """
    Demonstrates: A client that goes away can never approve anything.
    """
    task = asyncio.create_task(interceptor.submit(LUNCH))
    await wait_for_confirmations(sink)

    interceptor.abandon()
    pending = await task
    later = await interceptor.submit(LUNCH)

    assert pending.outcome is ToolOutcome.DECLINED
    assert later.outcome is ToolOutcome.DECLINED
    assert len(sink.of_type(ConfirmationRequestFrame)) == 1
    assert (await state_store.get(conversation_id)).ledger_entries == ()
    assert broker.pending_count == 0
