"""Agent Pool - Caching of Pydantic AI Agents per Persona.

Pydantic AI Agents are stateless executors: conversation history and the turn
context are passed per run, so one Agent per (purpose, persona, tools) can
serve every conversation.

Three agent shapes are pooled:
    - classifier: structured list output over a closed label set
    - expert: free text output, tools bound to TurnContext deps
    - writer: free text output, no tools (streamed synthesis)

Personas are installed as `instructions`, which Pydantic AI applies on every
run even when message_history is supplied.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, PrivateAttr

from .agent_tools import agent_tools_for
from .tools import ToolSpec
from .turn_context import TurnContext

if TYPE_CHECKING:
    from pydantic_ai import Agent
    from pydantic_ai.models import Model


class AgentPool(BaseModel):
    """Agent cache over a single underlying model.

    Attributes:
        model: Pydantic AI model (or 'provider:model' string) every agent runs on
        _cache: Private dict of built agents keyed by purpose and persona

    Cache Strategy:
        Key: (purpose, persona, frozenset[tool names])
        - Same persona with a different tool set is a different agent
    """

    model: Any
    _cache: dict[tuple[str, str, frozenset[str]], Agent[Any, Any]] = PrivateAttr(default_factory=dict)

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    def classifier(self, persona: str, labels: type[StrEnum]) -> Agent[None, list[Any]]:
        """Agent returning an ordered list drawn from `labels`."""
        from pydantic_ai import Agent

        key = ("classify", persona, frozenset(labels.__members__))
        if key not in self._cache:
            self._cache[key] = Agent(
                self.model,
                output_type=list[labels],  # type: ignore[valid-type]
                instructions=persona,
            )
        return self._cache[key]

    def expert(self, persona: str, tools: tuple[ToolSpec, ...]) -> Agent[TurnContext, str]:
        """Agent for one expert persona with its tools registered."""
        from pydantic_ai import Agent

        key = ("consult", persona, frozenset(spec.name for spec in tools))
        if key not in self._cache:
            self._cache[key] = Agent(
                self.model,
                deps_type=TurnContext,
                output_type=str,
                instructions=persona,
                tools=agent_tools_for(tools),
            )
        return self._cache[key]

    def writer(self, persona: str) -> Agent[None, str]:
        """Tool-less agent used for streaming synthesis."""
        from pydantic_ai import Agent

        key = ("synthesize", persona, frozenset())
        if key not in self._cache:
            self._cache[key] = Agent(self.model, output_type=str, instructions=persona)
        return self._cache[key]

    @property
    def size(self) -> int:
        return len(self._cache)


__all__ = ["AgentPool"]
