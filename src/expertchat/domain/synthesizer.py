"""Synthesizer - Streams the Single Externally Visible Answer.

Takes the user's query and every finding of the turn (possibly none) and
streams one integrated answer. Read-only: no tools are bound, so synthesis
can never block on a confirmation or touch session state.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence

from pydantic import BaseModel, ConfigDict

from .domain_value import ExpertFinding
from .provider import InferenceProvider

SYNTHESIZER_SYSTEM_PROMPT = """
You are a skilled summarizer and synthesizer of expert knowledge.
Your role is to provide the user with a clear, coherent, and comprehensive answer based solely on
the insights provided, without revealing that these insights come from multiple sources or naming
any internal specialist.
Focus on addressing the user's original query in a way that feels fresh and integrated, as if you
are providing a singular expert opinion.
You can also ask clarifying questions to the user if you think it is necessary.
Format your response in Markdown.
""".strip()

NO_INSIGHTS = "No specialist insights were gathered for this message; answer the user directly."


def synthesis_prompt(query: str, findings: Sequence[ExpertFinding]) -> str:
    """Prompt handed to the synthesis model.

    Findings that produced no answer are left out; an empty set yields the
    NO_INSIGHTS instruction instead.
    """
    usable = [finding for finding in findings if finding.answered]
    if not usable:
        insights = NO_INSIGHTS
    else:
        insights = "\n\n".join(f"Insight {n}:\n{finding.text}" for n, finding in enumerate(usable, 1))
    return f"Original user input: {query}\n\nExpert insights:\n{insights}"


class Synthesizer(BaseModel):
    provider: InferenceProvider
    persona: str = SYNTHESIZER_SYSTEM_PROMPT

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    def stream(self, query: str, findings: Sequence[ExpertFinding]) -> AsyncGenerator[str, None]:
        """Lazy, finite, non-restartable sequence of answer chunks."""
        return self.provider.synthesize(self.persona, synthesis_prompt(query, findings))


__all__ = ["NO_INSIGHTS", "SYNTHESIZER_SYSTEM_PROMPT", "Synthesizer", "synthesis_prompt"]
