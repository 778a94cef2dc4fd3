"""Session State - Per-Session Domain Records Mutated by Tools.

SessionState is the only mutable shared resource in a conversation: the
ledger, the notes and the health metrics. The record itself is immutable;
each narrow mutation (append ledger entries, append a note, set weight, set
height) returns a new instance with every unrelated field untouched.
Persistence and per-session serialization of writes belong to the state
store (see service.storage).
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .domain_value import ConversationId

# Fields that the shallow merge API accepts
MERGEABLE_FIELDS = frozenset({"ledger_entries", "notes", "weight", "height"})


class LedgerEntry(BaseModel):
    """One financial transaction. Negative amounts are expenses."""

    date: dt.date
    description: str
    amount: float

    model_config = ConfigDict(frozen=True)


class Note(BaseModel):
    """A stored note with optional categorisation tags."""

    title: str
    content: str
    timestamp: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.UTC))
    tags: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    def matches(self, tag: str | None = None, query: str | None = None) -> bool:
        """Tag must match exactly; query is a case-insensitive title/content search."""
        if tag and tag not in self.tags:
            return False
        if query:
            needle = query.lower()
            return needle in self.title.lower() or needle in self.content.lower()
        return True


class HealthMetrics(BaseModel):
    """Read view over weight (kg) and height (cm) with derived BMI.

    BMI is only present when both weight and height are known; serialize with
    exclude_none so an unknown BMI is omitted rather than reported as zero.
    """

    weight: float | None = None
    height: float | None = None

    model_config = ConfigDict(frozen=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def bmi(self) -> float | None:
        if self.weight is None or not self.height:
            return None
        meters = self.height / 100
        return self.weight / (meters * meters)

    def describe(self) -> str:
        """Human readable summary the health tools return to the model."""
        text = "Health metrics updated:"
        if self.weight is not None:
            text += f" Weight: {self.weight:g}kg"
        if self.height is not None:
            text += f" Height: {self.height:g}cm"
        if self.bmi is not None:
            text += f" BMI: {self.bmi:.2f}"
        return text


class SessionState(BaseModel):
    """Everything the tools know about one session.

    Created lazily on first mutation; an empty instance stands in for a session
    that has never been written.
    """

    ledger_entries: tuple[LedgerEntry, ...] = ()
    notes: tuple[Note, ...] = ()
    weight: float | None = None
    height: float | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def health(self) -> HealthMetrics:
        return HealthMetrics(weight=self.weight, height=self.height)

    def with_ledger_entries(self, entries: tuple[LedgerEntry, ...]) -> SessionState:
        return self.model_copy(update={"ledger_entries": (*self.ledger_entries, *entries)})

    def with_note(self, note: Note) -> SessionState:
        return self.model_copy(update={"notes": (*self.notes, note)})

    def with_weight(self, weight: float) -> SessionState:
        return self.model_copy(update={"weight": weight})

    def with_height(self, height: float) -> SessionState:
        return self.model_copy(update={"height": height})

    def merged(self, update: dict[str, Any]) -> SessionState:
        """Shallow merge: named fields are replaced, all others kept as-is.

        Raises:
            ValueError: update names a field SessionState does not have
        """
        unknown = set(update) - MERGEABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown session state fields: {sorted(unknown)}")
        return SessionState.model_validate({**self.model_dump(), **update})

    def recent_ledger(self, limit: int | None = None) -> tuple[LedgerEntry, ...]:
        """Last `limit` entries in chronological (insertion) order, all if None."""
        if limit is None:
            return self.ledger_entries
        if limit <= 0:
            return ()
        return self.ledger_entries[-limit:]

    def find_notes(self, tag: str | None = None, query: str | None = None) -> tuple[Note, ...]:
        return tuple(note for note in self.notes if note.matches(tag=tag, query=query))


class SessionStateStore(Protocol):
    """What tools need from the state store.

    Mutations for one session are applied one at a time; each returns the
    state after the write.
    """

    async def get(self, session_id: ConversationId) -> SessionState: ...

    async def merge(self, session_id: ConversationId, **fields: Any) -> SessionState: ...

    async def append_ledger_entries(
        self, session_id: ConversationId, entries: tuple[LedgerEntry, ...]
    ) -> SessionState: ...

    async def append_note(self, session_id: ConversationId, note: Note) -> SessionState: ...

    async def set_weight(self, session_id: ConversationId, weight: float) -> SessionState: ...

    async def set_height(self, session_id: ConversationId, height: float) -> SessionState: ...


__all__ = [
    "HealthMetrics",
    "LedgerEntry",
    "MERGEABLE_FIELDS",
    "Note",
    "SessionState",
    "SessionStateStore",
]
