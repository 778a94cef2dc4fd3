"""Orchestrator - Route, Consult in Order, Synthesize.

The single entry point for one conversation turn:

    Phase 1 - Routing: one classify call produces the RoutingPlan
    Phase 2 - Consultation: experts run strictly in plan order; each sees the
              findings of those before it (TurnProgress is the explicit,
              immutable task list being consumed)
    Phase 3 - Synthesis: the answer is streamed as text-delta frames

Failure policy:
    Any stage fault raises a TurnAborted subclass and nothing after it runs.
    In particular a failing expert means no later experts and no synthesis;
    we never synthesize from a partial set of findings.

Cancellation:
    Checked between stages and between experts, i.e. after the in-flight
    provider call has returned. A cancelled turn raises TurnCancelled.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import aclosing

import logfire
from pydantic import BaseModel, ConfigDict

from .domain_type import ExpertIdentity
from .domain_value import ConversationHistory, ExpertFinding, RoutingPlan, StoredMessage
from .errors import RoutingError, SynthesisError, TurnAborted, TurnCancelled
from .experts import ExpertInvoker
from .frames import TextDeltaFrame
from .router import ExpertRouter
from .synthesizer import Synthesizer
from .turn_context import TurnContext


class TurnProgress(BaseModel):
    """Plan plus the findings gathered so far; one finding per plan entry, in order."""

    plan: RoutingPlan
    findings: tuple[ExpertFinding, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def next_expert(self) -> ExpertIdentity | None:
        if self.complete:
            return None
        return self.plan.root[len(self.findings)]

    @property
    def complete(self) -> bool:
        return len(self.findings) == len(self.plan)

    def record(self, finding: ExpertFinding) -> TurnProgress:
        """Append the finding for the expert that was due.

        Raises:
            ValueError: Finding is out of plan order
        """
        if finding.identity != self.next_expert:
            raise ValueError(f"Expected finding from {self.next_expert}, got {finding.identity}")
        return self.model_copy(update={"findings": (*self.findings, finding)})


class Orchestrator(BaseModel):
    """Composes router, expert invokers and synthesizer for one turn."""

    router: ExpertRouter
    experts: Mapping[ExpertIdentity, ExpertInvoker]
    synthesizer: Synthesizer

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    async def run(self, history: ConversationHistory, context: TurnContext) -> StoredMessage:
        """Answer the latest user message in `history`.

        Returns the synthesized assistant turn; persisting it is the caller's job.

        Raises:
            TurnAborted: Routing, an expert, or synthesis failed, or the turn
                was cancelled
        """
        with logfire.span("conversation turn", conversation_id=str(history.id.root)):
            plan = await self.router.route(history)
            progress = await self.consult(history, TurnProgress(plan=plan), context)
            return await self.synthesize(history.latest_user_text, progress, context)

    async def consult(
        self, history: ConversationHistory, progress: TurnProgress, context: TurnContext
    ) -> TurnProgress:
        """Consume the plan one expert at a time."""
        while (identity := progress.next_expert) is not None:
            self._checkpoint(context)
            invoker = self.experts.get(identity)
            if invoker is None:
                raise RoutingError(f"No expert configured for {identity}")
            finding = await invoker.invoke(history, progress.findings, context)
            progress = progress.record(finding)
        self._checkpoint(context)
        return progress

    async def synthesize(self, query: str, progress: TurnProgress, context: TurnContext) -> StoredMessage:
        """Stream the final answer to the transport and return it as a stored turn."""
        chunks: list[str] = []
        with logfire.span("synthesize", findings=len(progress.findings)):
            try:
                async with aclosing(self.synthesizer.stream(query, progress.findings)) as stream:
                    async for delta in stream:
                        self._checkpoint(context)
                        chunks.append(delta)
                        await context.emit(TextDeltaFrame(delta=delta))
            except TurnAborted:
                raise
            except Exception as exc:
                raise SynthesisError(f"Synthesis failed: {exc}") from exc
        return StoredMessage.assistant("".join(chunks))

    @staticmethod
    def _checkpoint(context: TurnContext) -> None:
        if context.is_cancelled:
            raise TurnCancelled("Turn cancelled by the client")


__all__ = ["Orchestrator", "TurnProgress"]
