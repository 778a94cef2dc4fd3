"""Expert Router - Classifies a Conversation into an Ordered Expert Plan.

One classify-mode provider call per turn. The output domain is the closed
ExpertIdentity set and the result is an array ordered by consultation order.

Contract:
    - Duplicate labels are a soft violation: logged, first occurrence kept
    - A label outside the expert set is a routing fault (RoutingError)
    - An empty plan is legal; the synthesizer then answers directly
"""

from __future__ import annotations

import logfire
from pydantic import BaseModel, ConfigDict

from .domain_type import ExpertIdentity
from .domain_value import ConversationHistory, RoutingPlan
from .errors import RoutingError
from .provider import InferenceProvider

ROUTER_SYSTEM_PROMPT = """
You are a routing agent. Read the conversation and decide which specialized
experts should handle the user's latest message.

Available experts:
- scheduling: meetings, appointments, events, time zones, calendars
- finance: budgeting, transactions, spending history, investments
- health: fitness, nutrition, weight/height and BMI, general wellness
- knowledge: research questions, explanations, storing and finding notes

Rules:
- Return a JSON array of expert names, ordered in the sequence they should be consulted
- An expert consulted later sees what the earlier ones found, so put prerequisites first
- Never list an expert twice
- Skip an expert whose contribution would duplicate another one already selected;
  every extra expert makes the user wait longer
- Return an empty array when no expert is needed (greetings, small talk)
""".strip()


class ExpertRouter(BaseModel):
    """Turns a conversation into a RoutingPlan using a classify-mode call."""

    provider: InferenceProvider
    persona: str = ROUTER_SYSTEM_PROMPT

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    async def route(self, history: ConversationHistory) -> RoutingPlan:
        """Decide which experts to consult, in order.

        Raises:
            RoutingError: Provider failed or returned an unknown label
        """
        with logfire.span("route conversation", conversation_id=str(history.id.root)):
            try:
                labels = await self.provider.classify(self.persona, history.message_content, ExpertIdentity)
            except RoutingError:
                raise
            except Exception as exc:
                raise RoutingError(f"Classification failed: {exc}") from exc

            plan = RoutingPlan.from_labels(labels)
            if len(plan) != len(labels):
                logfire.warn(
                    "router returned duplicate experts {labels}; using {plan}",
                    labels=list(labels),
                    plan=[str(identity) for identity in plan],
                )
            logfire.info("routing plan {plan}", plan=[str(identity) for identity in plan])
            return plan


__all__ = ["ROUTER_SYSTEM_PROMPT", "ExpertRouter"]
