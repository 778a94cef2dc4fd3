"""
Tests for RoutingPlan and ExpertRouter.

These tests demonstrate:
- Testing an invariant over many randomized classifier outputs
- Testing the lenient factory vs the strict constructor
- Testing fault translation (provider errors become RoutingError)
"""

import random

import pytest
from pydantic import ValidationError

from expertchat.domain.domain_type import ExpertIdentity
from expertchat.domain.domain_value import ConversationHistory, RoutingPlan
from expertchat.domain.errors import RoutingError
from expertchat.domain.router import ExpertRouter
from tests.doubles import ScriptedProvider

LABELS = [identity.value for identity in ExpertIdentity]


def test_from_labels_keeps_first_occurrence():
    """
    Demonstrates: Duplicate labels are a soft violation.

    Later repeats are dropped; the order of first occurrences is kept.
    """
    plan = RoutingPlan.from_labels(["health", "finance", "health", "knowledge", "finance"])

    assert list(plan) == [ExpertIdentity.HEALTH, ExpertIdentity.FINANCE, ExpertIdentity.KNOWLEDGE]


@pytest.mark.parametrize("seed", range(50))
def test_randomized_classifier_output_never_yields_duplicate_plan(seed: int):
    """
    Demonstrates: Invariant over adversarial input.

    Whatever the classifier returns (with repeats), the plan has no duplicates,
    never exceeds the number of experts, and preserves first-occurrence order.
    """
    rng = random.Random(seed)
    labels = [rng.choice(LABELS) for _ in range(rng.randint(0, 12))]

    plan = RoutingPlan.from_labels(labels)

    assert len(plan) <= len(ExpertIdentity)
    assert len(set(plan)) == len(plan)
    assert [identity.value for identity in plan] == list(dict.fromkeys(labels))


def test_from_labels_rejects_unknown_label():
    """
    Demonstrates: A label outside the expert set is a routing fault, not a soft one.
    """
    with pytest.raises(RoutingError, match="astrology"):
        RoutingPlan.from_labels(["finance", "astrology"])


def test_constructor_rejects_duplicates():
    """
    Demonstrates: The strict constructor guards the invariant directly.
    """
    with pytest.raises(ValidationError):
        RoutingPlan((ExpertIdentity.FINANCE, ExpertIdentity.FINANCE))


def test_empty_plan_is_legal():
    plan = RoutingPlan.from_labels([])

    assert len(plan) == 0
    assert list(plan) == []


@pytest.mark.asyncio
async def test_router_deduplicates_classifier_output(history_with_messages: ConversationHistory):
    """
    Demonstrates: Router applies the soft-violation policy to provider output.
    """
    provider = ScriptedProvider(labels=["finance", "finance", "health"])
    router = ExpertRouter(provider=provider)

    plan = await router.route(history_with_messages)

    assert list(plan) == [ExpertIdentity.FINANCE, ExpertIdentity.HEALTH]
    assert provider.calls == [("classify",)]


@pytest.mark.asyncio
async def test_router_wraps_provider_failure(history_with_messages: ConversationHistory):
    """
    Demonstrates: Provider faults surface as RoutingError so the turn aborts cleanly.
    """
    router = ExpertRouter(provider=ScriptedProvider(classify_error=TimeoutError("model timed out")))

    with pytest.raises(RoutingError, match="model timed out"):
        await router.route(history_with_messages)


@pytest.mark.asyncio
async def test_router_rejects_unknown_label(history_with_messages: ConversationHistory):
    router = ExpertRouter(provider=ScriptedProvider(labels=["finance", "legal"]))

    with pytest.raises(RoutingError):
        await router.route(history_with_messages)
