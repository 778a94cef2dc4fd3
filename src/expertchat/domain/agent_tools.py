"""Agent Tools - Pydantic AI Entry Points for the Typed Tool Calls.

Each function is what the LLM actually calls. Pydantic AI builds the schema
from the single typed call parameter (and the docstring), validates the
arguments, and hands us a ready ToolCall variant. We never execute anything
here: the call goes straight to the turn's interceptor, which decides whether
it runs now, waits for confirmation, or is declined.

Tool Registration:
    >>> Agent(model, deps_type=TurnContext, tools=agent_tools_for(specs))
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from pydantic_ai import RunContext

from .domain_type import ToolName
from .tools import (
    AddTransactions,
    GetHealthMetrics,
    GetNotes,
    GetTransactionHistory,
    StoreNote,
    ToolCall,
    ToolSpec,
    UpdateHealthMetrics,
)
from .turn_context import TurnContext


async def _submit(ctx: RunContext[TurnContext], call: ToolCall) -> str:
    result = await ctx.deps.interceptor.submit(call)
    return result.render()


async def add_transactions(ctx: RunContext[TurnContext], call: AddTransactions) -> str:
    """Record new financial transactions in the user's history.

    The user may be asked to confirm before anything is recorded.
    """
    return await _submit(ctx, call)


async def get_transaction_history(ctx: RunContext[TurnContext], call: GetTransactionHistory) -> str:
    """Retrieve the user's financial transaction history, oldest first."""
    return await _submit(ctx, call)


async def update_health_metrics(ctx: RunContext[TurnContext], call: UpdateHealthMetrics) -> str:
    """Update the user's weight (kg) and/or height (cm); reports BMI when both are known."""
    return await _submit(ctx, call)


async def get_health_metrics(ctx: RunContext[TurnContext]) -> str:
    """Get the user's current health metrics including weight, height, and BMI."""
    return await _submit(ctx, GetHealthMetrics())


async def store_note(ctx: RunContext[TurnContext], call: StoreNote) -> str:
    """Store a note or piece of information for the user."""
    return await _submit(ctx, call)


async def get_notes(ctx: RunContext[TurnContext], call: GetNotes) -> str:
    """Retrieve notes stored by the user, optionally filtered by tag or search term."""
    return await _submit(ctx, call)


AGENT_TOOLS: dict[ToolName, Callable[..., Any]] = {
    ToolName.ADD_TRANSACTIONS: add_transactions,
    ToolName.GET_TRANSACTION_HISTORY: get_transaction_history,
    ToolName.UPDATE_HEALTH_METRICS: update_health_metrics,
    ToolName.GET_HEALTH_METRICS: get_health_metrics,
    ToolName.STORE_NOTE: store_note,
    ToolName.GET_NOTES: get_notes,
}


def agent_tools_for(specs: Sequence[ToolSpec]) -> list[Callable[..., Any]]:
    return [AGENT_TOOLS[spec.name] for spec in specs]


__all__ = ["AGENT_TOOLS", "agent_tools_for"]
