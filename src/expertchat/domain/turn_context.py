"""Explicit per-turn context.

Passed by value from the orchestrator into every expert call and, as Pydantic
AI `deps`, into every tool function. Nothing about the active session is ever
looked up ambiently.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from .domain_value import ConversationId
from .interceptor import Emitter, ToolCallInterceptor
from .session_state import SessionStateStore


@dataclass(frozen=True)
class TurnContext:
    """Session identity plus the collaborators one turn may touch."""

    session_id: ConversationId
    store: SessionStateStore
    interceptor: ToolCallInterceptor
    emit: Emitter
    cancelled: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled.is_set()

    def cancel(self) -> None:
        """Stop at the next safe point and decline pending confirmations."""
        self.cancelled.set()
        self.interceptor.abandon()


__all__ = ["TurnContext"]
