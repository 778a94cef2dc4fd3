"""Error taxonomy for a conversation turn.

Turn-level faults derive from TurnAborted: the orchestrator stops, nothing is
persisted, and the transport sees a generic error frame. Tool execution faults
and declined confirmations never raise; they are reported to the expert as
tool outcomes.
"""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Service cannot be built (e.g. missing inference credentials)."""


class TurnAborted(Exception):
    """A stage failed and the whole turn must stop."""


class RoutingError(TurnAborted):
    """Classifier failed or returned a label outside the expert set."""


class ExpertInvocationError(TurnAborted):
    """An expert's provider call failed."""

    def __init__(self, identity: str, message: str):
        super().__init__(f"{identity} expert failed: {message}")
        self.identity = identity


class SynthesisError(TurnAborted):
    """Streaming the final answer failed."""


class TurnCancelled(TurnAborted):
    """The client went away; stopped at a safe point."""


class UnknownConfirmationError(KeyError):
    """No suspended invocation matches the correlation id."""


__all__ = [
    "ConfigurationError",
    "ExpertInvocationError",
    "RoutingError",
    "SynthesisError",
    "TurnAborted",
    "TurnCancelled",
    "UnknownConfirmationError",
]
