"""Expert Invokers - Personas as Data, One Shared Invocation Path.

Each ExpertIdentity maps to exactly one ExpertProfile: a private persona, a
step budget and the tools it may call. ExpertInvoker wraps the provider's
consult mode with a profile and turns the result into an ExpertFinding.

Context seen by an expert:
    full stored conversation + the latest user message + every finding
    produced earlier in this turn (read-only, appended to the latest request).

Experts never call one another; the only channel between them is the text
of earlier findings.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

import logfire
from pydantic import BaseModel, ConfigDict, Field
from pydantic_ai.messages import ModelMessage, ModelRequest, UserPromptPart

from .domain_type import ExpertIdentity
from .domain_value import ConversationHistory, ExpertFinding
from .errors import ExpertInvocationError
from .provider import InferenceProvider
from .tools import ToolSpec, tools_for
from .turn_context import TurnContext

NO_ANSWER = "(no answer produced)"
DEFAULT_STEP_BUDGET = 10

_ANALYZE = (
    "You should analyze the user input from the perspective of your expertise "
    "and provide a detailed answer to the user."
)

PERSONAS: dict[ExpertIdentity, str] = {
    ExpertIdentity.SCHEDULING: (
        "You are a scheduling assistant designed to help users plan and coordinate meetings, "
        "appointments, and events. Your goal is to provide clear scheduling options, resolve "
        "conflicts, consider time zones, and ask clarifying questions when details are ambiguous. "
        "Respond with concise, actionable scheduling recommendations that optimize the user's time.\n"
        + _ANALYZE
    ),
    ExpertIdentity.FINANCE: (
        "You are a finance expert with deep knowledge of personal budgeting, investments, market "
        "trends, and financial planning. Your role is to offer clear, responsible financial advice "
        "and insights based on the user's inquiry. Ensure that your recommendations are "
        "well-explained and include caveats such as \"for informational purposes only\" when "
        "necessary. Use the transaction tools to record or review the user's ledger.\n" + _ANALYZE
    ),
    ExpertIdentity.HEALTH: (
        "You are a health and wellness assistant specializing in general medical advice, nutrition, "
        "fitness, and mental health. Provide accurate, balanced information while reminding users "
        "that your advice is informational and not a substitute for professional medical "
        "consultation. Ask clarifying questions if needed, and offer actionable wellness tips. "
        "Use the health metric tools to record or read weight, height and BMI.\n" + _ANALYZE
    ),
    ExpertIdentity.KNOWLEDGE: (
        "You are a research assistant with expertise spanning science, technology, history, the "
        "arts, and more. Your task is to provide detailed, well-researched, and accurate responses "
        "to the user's questions. Ensure clarity, include context when needed, and cite reliable "
        "sources if applicable. Use the note tools to store or look up the user's notes.\n" + _ANALYZE
    ),
}


class ExpertProfile(BaseModel):
    """Persona, step budget and tool set for one expert identity."""

    identity: ExpertIdentity
    persona: str
    step_budget: int = Field(default=DEFAULT_STEP_BUDGET, ge=1)
    tools: tuple[ToolSpec, ...] = ()

    model_config = ConfigDict(frozen=True)


def build_profiles(step_budget: int = DEFAULT_STEP_BUDGET) -> dict[ExpertIdentity, ExpertProfile]:
    """One profile per identity; fails loudly if a persona is missing."""
    return {
        identity: ExpertProfile(
            identity=identity,
            persona=PERSONAS[identity],
            step_budget=step_budget,
            tools=tools_for(identity),
        )
        for identity in ExpertIdentity
    }


def findings_block(findings: Sequence[ExpertFinding]) -> str:
    lines = ["Findings from specialists consulted earlier in this turn:"]
    lines.extend(f"- {finding.identity} specialist: {finding.text}" for finding in findings)
    return "\n".join(lines)


def working_context(history: ConversationHistory, findings: Sequence[ExpertFinding]) -> list[ModelMessage]:
    """Conversation as the next expert sees it.

    Earlier findings ride along as an extra prompt part on the latest request,
    so the history still ends with the user's turn.
    """
    messages = list(history.message_content)
    if not findings:
        return messages

    extra = UserPromptPart(content=findings_block(findings))
    if messages and isinstance(messages[-1], ModelRequest):
        messages[-1] = replace(messages[-1], parts=[*messages[-1].parts, extra])
    else:
        messages.append(ModelRequest(parts=[extra]))
    return messages


class ExpertInvoker(BaseModel):
    """Consults one expert and returns exactly one finding."""

    profile: ExpertProfile
    provider: InferenceProvider

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def identity(self) -> ExpertIdentity:
        return self.profile.identity

    async def invoke(
        self,
        history: ConversationHistory,
        findings: Sequence[ExpertFinding],
        context: TurnContext,
    ) -> ExpertFinding:
        """Run the bounded reasoning loop for this expert.

        Raises:
            ExpertInvocationError: The provider call failed
        """
        with logfire.span("consult {identity}", identity=self.identity, prior_findings=len(findings)):
            try:
                text = await self.provider.consult(
                    self.profile.persona,
                    working_context(history, findings),
                    self.profile.step_budget,
                    self.profile.tools,
                    context,
                )
            except Exception as exc:
                raise ExpertInvocationError(self.identity, str(exc) or type(exc).__name__) from exc

        if not text:
            logfire.info("{identity} produced no answer", identity=self.identity)
            return ExpertFinding(identity=self.identity, text=NO_ANSWER, answered=False)
        return ExpertFinding(identity=self.identity, text=text)


def build_invokers(
    provider: InferenceProvider, step_budget: int = DEFAULT_STEP_BUDGET
) -> dict[ExpertIdentity, ExpertInvoker]:
    return {
        identity: ExpertInvoker(profile=profile, provider=provider)
        for identity, profile in build_profiles(step_budget).items()
    }


__all__ = [
    "DEFAULT_STEP_BUDGET",
    "NO_ANSWER",
    "PERSONAS",
    "ExpertInvoker",
    "ExpertProfile",
    "build_invokers",
    "build_profiles",
    "findings_block",
    "working_context",
]
