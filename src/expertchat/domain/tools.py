"""Domain Tools - Typed Tool Calls and Their Side Effects.

Every tool is a closed, tagged variant: one frozen Pydantic model per tool,
discriminated by its `kind` literal and combined in the ToolCall union. The
model is the tool's parameter contract; Pydantic AI derives the JSON schema
the LLM sees from it and validates arguments before anything runs.

Execution is a single exhaustive `match` over the variants. Side effects go
through the narrow SessionStateStore API only, never by reassigning state.

Tool Registry:
    TOOL_REGISTRY maps ToolName -> ToolSpec (owning expert, description,
    call model, whether the side effect needs external confirmation).

Reference: https://ai.pydantic.dev/tools/
"""

from __future__ import annotations

from typing import Annotated, Literal, assert_never

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .domain_type import ExpertIdentity, ToolName
from .domain_value import ConversationId
from .session_state import LedgerEntry, Note, SessionStateStore

_LEDGER_JSON = TypeAdapter(tuple[LedgerEntry, ...])
_NOTES_JSON = TypeAdapter(tuple[Note, ...])


# ---------------------------------------------------------------------------
# Tagged tool call variants
# ---------------------------------------------------------------------------


class AddTransactions(BaseModel):
    """Record new financial transactions in the user's history."""

    kind: Literal[ToolName.ADD_TRANSACTIONS] = ToolName.ADD_TRANSACTIONS
    transactions: tuple[LedgerEntry, ...] = Field(
        min_length=1,
        description="The transactions to be recorded. Dates in YYYY-MM-DD format, "
        "amounts in dollars (negative for expenses).",
    )

    model_config = ConfigDict(frozen=True)


class GetTransactionHistory(BaseModel):
    """Retrieve the user's financial transaction history."""

    kind: Literal[ToolName.GET_TRANSACTION_HISTORY] = ToolName.GET_TRANSACTION_HISTORY
    limit: int | None = Field(
        default=None,
        ge=1,
        description="Number of most recent transactions to return, defaults to all",
    )

    model_config = ConfigDict(frozen=True)


class UpdateHealthMetrics(BaseModel):
    """Update the user's health metrics."""

    kind: Literal[ToolName.UPDATE_HEALTH_METRICS] = ToolName.UPDATE_HEALTH_METRICS
    weight: float | None = Field(default=None, gt=0, description="User's weight in kg")
    height: float | None = Field(default=None, gt=0, description="User's height in cm")

    model_config = ConfigDict(frozen=True)


class GetHealthMetrics(BaseModel):
    """Get the user's current health metrics including weight, height, and BMI."""

    kind: Literal[ToolName.GET_HEALTH_METRICS] = ToolName.GET_HEALTH_METRICS

    model_config = ConfigDict(frozen=True)


class StoreNote(BaseModel):
    """Store a note or piece of information for the user."""

    kind: Literal[ToolName.STORE_NOTE] = ToolName.STORE_NOTE
    title: str = Field(min_length=1, description="Title or topic of the note")
    content: str = Field(description="Content of the note")
    tags: tuple[str, ...] = Field(default=(), description="Optional tags for categorization")

    model_config = ConfigDict(frozen=True)


class GetNotes(BaseModel):
    """Retrieve notes stored by the user."""

    kind: Literal[ToolName.GET_NOTES] = ToolName.GET_NOTES
    tag: str | None = Field(default=None, description="Filter notes by tag")
    query: str | None = Field(default=None, description="Search term to find in title or content")

    model_config = ConfigDict(frozen=True)


ToolCall = Annotated[
    AddTransactions | GetTransactionHistory | UpdateHealthMetrics | GetHealthMetrics | StoreNote | GetNotes,
    Field(discriminator="kind"),
]

TOOL_CALL_ADAPTER: TypeAdapter[ToolCall] = TypeAdapter(ToolCall)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ToolSpec(BaseModel):
    """Registry entry: who owns the tool and whether it needs confirmation."""

    name: ToolName
    expert: ExpertIdentity
    description: str
    call_type: type[BaseModel]
    requires_confirmation: bool = False

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


def _spec(call_type: type[BaseModel], expert: ExpertIdentity, requires_confirmation: bool = False) -> ToolSpec:
    name = call_type.model_fields["kind"].default
    return ToolSpec(
        name=name,
        expert=expert,
        description=(call_type.__doc__ or "").strip(),
        call_type=call_type,
        requires_confirmation=requires_confirmation,
    )


TOOL_REGISTRY: dict[ToolName, ToolSpec] = {
    spec.name: spec
    for spec in (
        _spec(AddTransactions, ExpertIdentity.FINANCE, requires_confirmation=True),
        _spec(GetTransactionHistory, ExpertIdentity.FINANCE),
        _spec(UpdateHealthMetrics, ExpertIdentity.HEALTH),
        _spec(GetHealthMetrics, ExpertIdentity.HEALTH),
        _spec(StoreNote, ExpertIdentity.KNOWLEDGE),
        _spec(GetNotes, ExpertIdentity.KNOWLEDGE),
    )
}

DEFAULT_CONFIRM_TOOLS: frozenset[ToolName] = frozenset(
    spec.name for spec in TOOL_REGISTRY.values() if spec.requires_confirmation
)


def tools_for(identity: ExpertIdentity) -> tuple[ToolSpec, ...]:
    """Tools an expert may call, in registry order."""
    return tuple(spec for spec in TOOL_REGISTRY.values() if spec.expert is identity)


def parse_confirm_tools(raw: str) -> frozenset[ToolName]:
    """Parse a comma-separated tool list (config value) into ToolNames.

    Raises:
        ValueError: An entry is not a registered tool
    """
    return frozenset(ToolName(item.strip()) for item in raw.split(",") if item.strip())


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


async def execute_tool(call: ToolCall, session_id: ConversationId, store: SessionStateStore) -> str:
    """Apply a validated tool call against the session's state.

    Returns the text handed back to the model. Exceptions propagate; the
    interceptor turns them into failed outcomes.
    """
    match call:
        case AddTransactions(transactions=entries):
            await store.append_ledger_entries(session_id, entries)
            summary = ", ".join(f"{e.date.isoformat()} {e.description} {e.amount:+.2f}" for e in entries)
            return f"Transactions recorded: {summary}"

        case GetTransactionHistory(limit=limit):
            state = await store.get(session_id)
            if not state.ledger_entries:
                return "No transaction history found."
            return _LEDGER_JSON.dump_json(state.recent_ledger(limit)).decode()

        case UpdateHealthMetrics(weight=weight, height=height):
            state = None
            if weight is not None:
                state = await store.set_weight(session_id, weight)
            if height is not None:
                state = await store.set_height(session_id, height)
            if state is None:
                state = await store.get(session_id)
            return state.health.describe()

        case GetHealthMetrics():
            metrics = (await store.get(session_id)).health
            if metrics.weight is None and metrics.height is None:
                return "No health metrics found."
            return metrics.model_dump_json(exclude_none=True)

        case StoreNote(title=title, content=content, tags=tags):
            await store.append_note(session_id, Note(title=title, content=content, tags=tags))
            return f'Note "{title}" saved successfully.'

        case GetNotes(tag=tag, query=query):
            state = await store.get(session_id)
            if not state.notes:
                return "No notes found."
            return _NOTES_JSON.dump_json(state.find_notes(tag=tag, query=query)).decode()

        case _:
            assert_never(call)


__all__ = [
    "AddTransactions",
    "DEFAULT_CONFIRM_TOOLS",
    "GetHealthMetrics",
    "GetNotes",
    "GetTransactionHistory",
    "StoreNote",
    "TOOL_CALL_ADAPTER",
    "TOOL_REGISTRY",
    "ToolCall",
    "ToolSpec",
    "UpdateHealthMetrics",
    "execute_tool",
    "parse_confirm_tools",
    "tools_for",
]
