"""Inference Provider Adapter - One Call Surface for Classify, Consult, Synthesize.

The orchestration code only knows the InferenceProvider protocol. AgentProvider
implements it with Pydantic AI agents from an AgentPool:

    classify   -> structured list output constrained to a label enum
    consult    -> free text, tools bound to the turn context, bounded steps
    synthesize -> streamed free text, consumed lazily chunk by chunk

Step budget:
    Each model request counts as one step (UsageLimits.request_limit). Running
    out is not a failure: the last text the model produced during this run is
    returned, or None when it produced none. Text from earlier turns in the
    history never counts.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import logfire
from pydantic_ai import capture_run_messages
from pydantic_ai.exceptions import UsageLimitExceeded
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart
from pydantic_ai.usage import UsageLimits

from .agent_pool import AgentPool
from .errors import ConfigurationError
from .tools import ToolSpec
from .turn_context import TurnContext

if TYPE_CHECKING:
    from pydantic_ai.models import Model


@runtime_checkable
class InferenceProvider(Protocol):
    """What the router, experts and synthesizer need from a model provider."""

    async def classify(
        self, persona: str, messages: Sequence[ModelMessage], labels: type[StrEnum]
    ) -> list[str]: ...

    async def consult(
        self,
        persona: str,
        messages: Sequence[ModelMessage],
        step_budget: int,
        tools: tuple[ToolSpec, ...],
        context: TurnContext,
    ) -> str | None: ...

    def synthesize(self, persona: str, prompt: str) -> AsyncGenerator[str, None]: ...


def last_text(messages: Sequence[ModelMessage]) -> str | None:
    """Most recent non-empty text the model produced, if any."""
    for message in reversed(messages):
        if not isinstance(message, ModelResponse):
            continue
        text = "".join(part.content for part in message.parts if isinstance(part, TextPart)).strip()
        if text:
            return text
    return None


class AgentProvider:
    """InferenceProvider backed by pooled Pydantic AI agents."""

    def __init__(self, pool: AgentPool):
        self.pool = pool

    async def classify(
        self, persona: str, messages: Sequence[ModelMessage], labels: type[StrEnum]
    ) -> list[str]:
        agent = self.pool.classifier(persona, labels)
        result = await agent.run(message_history=list(messages))
        return [str(label) for label in result.output]

    async def consult(
        self,
        persona: str,
        messages: Sequence[ModelMessage],
        step_budget: int,
        tools: tuple[ToolSpec, ...],
        context: TurnContext,
    ) -> str | None:
        agent = self.pool.expert(persona, tools)
        history = list(messages)
        with capture_run_messages() as run_messages:
            try:
                result = await agent.run(
                    message_history=history,
                    deps=context,
                    usage_limits=UsageLimits(request_limit=step_budget),
                )
            except UsageLimitExceeded:
                logfire.info("step budget of {step_budget} exhausted", step_budget=step_budget)
                # run_messages starts with the history we passed in; only this run counts
                return last_text(run_messages[len(history):])
        return result.output.strip() or None

    async def synthesize(self, persona: str, prompt: str) -> AsyncGenerator[str, None]:
        agent = self.pool.writer(persona)
        async with agent.run_stream(prompt) as result:
            async for delta in result.stream_text(delta=True):
                yield delta


def build_model(api_key: str | None, model_name: str) -> Model:
    """OpenRouter-hosted chat model for all agents.

    Raises:
        ConfigurationError: No API key configured
    """
    if not api_key or api_key == "NEED-API-KEY":
        raise ConfigurationError(
            "OPENROUTER_API_KEY is not set; add it to .env or the environment before starting the service"
        )

    from pydantic_ai.models.openai import OpenAIChatModel
    from pydantic_ai.providers.openrouter import OpenRouterProvider

    return OpenAIChatModel(model_name, provider=OpenRouterProvider(api_key=api_key))


def create_agent_provider(api_key: str | None, model_name: str) -> AgentProvider:
    """Factory from configuration values."""
    return AgentProvider(AgentPool(model=build_model(api_key, model_name)))


__all__ = ["AgentProvider", "InferenceProvider", "build_model", "create_agent_provider", "last_text"]
