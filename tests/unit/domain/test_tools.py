"""
Tests for tool execution against session state.

These tests demonstrate:
- Testing side effects through the store API only
- Testing the exact texts handed back to the model
- Testing registry configuration (ownership and confirmation flags)
"""

import json
from datetime import date

import pytest

from expertchat.domain.domain_type import ExpertIdentity, ToolName
from expertchat.domain.domain_value import ConversationId
from expertchat.domain.session_state import LedgerEntry
from expertchat.domain.tools import (
    DEFAULT_CONFIRM_TOOLS,
    TOOL_CALL_ADAPTER,
    TOOL_REGISTRY,
    AddTransactions,
    GetHealthMetrics,
    GetNotes,
    GetTransactionHistory,
    StoreNote,
    UpdateHealthMetrics,
    execute_tool,
    parse_confirm_tools,
    tools_for,
)
from expertchat.service.storage import MemoryStateStore


def _transactions(count: int) -> AddTransactions:
    return AddTransactions(
        transactions=tuple(
            LedgerEntry(date=date(2024, 3, day), description=f"coffee {day}", amount=-3.5)
            for day in range(1, count + 1)
        )
    )


@pytest.mark.asyncio
async def test_add_transactions_records_and_summarizes(conversation_id: ConversationId, state_store: MemoryStateStore):
    text = await execute_tool(_transactions(2), conversation_id, state_store)

    assert text == "Transactions recorded: 2024-03-01 coffee 1 -3.50, 2024-03-02 coffee 2 -3.50"
    assert len((await state_store.get(conversation_id)).ledger_entries) == 2


@pytest.mark.asyncio
async def test_transaction_history_limit(conversation_id: ConversationId, state_store: MemoryStateStore):
    """
    Demonstrates: limit returns the most recent entries in chronological order.
    """
    assert await execute_tool(GetTransactionHistory(), conversation_id, state_store) == "No transaction history found."

    await execute_tool(_transactions(5), conversation_id, state_store)
    text = await execute_tool(GetTransactionHistory(limit=2), conversation_id, state_store)

    assert [entry["description"] for entry in json.loads(text)] == ["coffee 4", "coffee 5"]


@pytest.mark.asyncio
async def test_update_health_metrics_reports_bmi(conversation_id: ConversationId, state_store: MemoryStateStore):
    text = await execute_tool(UpdateHealthMetrics(weight=70, height=175), conversation_id, state_store)

    assert text == "Health metrics updated: Weight: 70kg Height: 175cm BMI: 22.86"


@pytest.mark.asyncio
async def test_update_weight_only_keeps_height(conversation_id: ConversationId, state_store: MemoryStateStore):
    await execute_tool(UpdateHealthMetrics(height=180), conversation_id, state_store)

    text = await execute_tool(UpdateHealthMetrics(weight=81), conversation_id, state_store)

    state = await state_store.get(conversation_id)
    assert (state.weight, state.height) == (81, 180)
    assert "BMI: 25.00" in text


@pytest.mark.asyncio
async def test_get_health_metrics_is_idempotent(conversation_id: ConversationId, state_store: MemoryStateStore):
    """
    Demonstrates: A read tool returns the same text twice and changes nothing.
    """
    assert await execute_tool(GetHealthMetrics(), conversation_id, state_store) == "No health metrics found."

    await execute_tool(UpdateHealthMetrics(weight=70), conversation_id, state_store)
    before = await state_store.get(conversation_id)
    first = await execute_tool(GetHealthMetrics(), conversation_id, state_store)
    second = await execute_tool(GetHealthMetrics(), conversation_id, state_store)

    assert first == second
    assert json.loads(first) == {"weight": 70.0}
    assert await state_store.get(conversation_id) == before


@pytest.mark.asyncio
async def test_notes_store_and_filter(conversation_id: ConversationId, state_store: MemoryStateStore):
    assert await execute_tool(GetNotes(), conversation_id, state_store) == "No notes found."

    saved = await execute_tool(
        StoreNote(title="Paper", content="Read attention paper", tags=("research",)), conversation_id, state_store
    )
    await execute_tool(StoreNote(title="Groceries", content="milk"), conversation_id, state_store)

    assert saved == 'Note "Paper" saved successfully.'
    found = json.loads(await execute_tool(GetNotes(tag="research"), conversation_id, state_store))
    assert [note["title"] for note in found] == ["Paper"]


@pytest.mark.asyncio
async def test_sessions_are_isolated(state_store: MemoryStateStore):
    first, second = ConversationId(), ConversationId()

    await execute_tool(UpdateHealthMetrics(weight=70), first, state_store)

    assert (await state_store.get(second)).weight is None


def test_registry_covers_every_tool_once():
    assert set(TOOL_REGISTRY) == set(ToolName)
    assert DEFAULT_CONFIRM_TOOLS == frozenset({ToolName.ADD_TRANSACTIONS})


def test_tools_for_expert():
    assert [spec.name for spec in tools_for(ExpertIdentity.FINANCE)] == [
        ToolName.ADD_TRANSACTIONS,
        ToolName.GET_TRANSACTION_HISTORY,
    ]
    assert tools_for(ExpertIdentity.SCHEDULING) == ()


def test_parse_confirm_tools():
    assert parse_confirm_tools(" store_note, add_transactions ,") == frozenset(
        {ToolName.STORE_NOTE, ToolName.ADD_TRANSACTIONS}
    )
    assert parse_confirm_tools("") == frozenset()
    with pytest.raises(ValueError):
        parse_confirm_tools("delete_everything")


def test_tool_call_union_dispatches_on_kind():
    """
    Demonstrates: The tagged union picks the variant from its discriminator.
    """
    call = TOOL_CALL_ADAPTER.validate_python({"kind": "get_notes", "tag": "work"})

    assert isinstance(call, GetNotes)
    assert call.tag == "work"


def test_add_transactions_requires_at_least_one_entry():
    with pytest.raises(ValueError):
        AddTransactions(transactions=())
