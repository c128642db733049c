"""Complexity scoring for the planroute routing engine.

Complexity is an integer from 1 (trivial) to 10 (maximal orchestration)
computed additively from the request shape. Each term is capped before
summation and the total is rounded half-up and clamped to [1, 10].

Score Terms:
    - Base: 1
    - Tools: 0.5 per tool, capped at 3
    - Context: 0.2 per context key, capped at 2
    - Complex verb: +2 when the operation names a complex verb
    - Parameters: 0.1 per parameter, capped at 1
    - Priority: +1 for high priority

Example:
    >>> scorer = ComplexityScorer()
    >>> scorer.score(Request("get_tasks"))
    1
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from planroute.routing.classifier import normalize_text
from planroute.routing.schemas import Priority, Request


logger = logging.getLogger(__name__)


MIN_COMPLEXITY = 1
MAX_COMPLEXITY = 10

COMPLEX_VERBS: tuple[str, ...] = (
    "research", "analyze", "compare", "synthesize", "evaluate",
    "crawl", "extract", "automate", "navigate",
)


@dataclass(frozen=True)
class ScoringProfile:
    """Weights and caps for each complexity term.

    Attributes:
        base: Starting score.
        per_tool / tool_cap: Tool count contribution.
        per_context_key / context_cap: Context size contribution.
        complex_verbs / verb_bonus: Operation keyword contribution.
        per_parameter / parameter_cap: Parameter count contribution.
        high_priority_bonus: Added for Priority.HIGH.
    """

    base: float = 1.0
    per_tool: float = 0.5
    tool_cap: float = 3.0
    per_context_key: float = 0.2
    context_cap: float = 2.0
    complex_verbs: tuple[str, ...] = COMPLEX_VERBS
    verb_bonus: float = 2.0
    per_parameter: float = 0.1
    parameter_cap: float = 1.0
    high_priority_bonus: float = 1.0


@dataclass(frozen=True)
class ScoreBreakdown:
    """Individual score terms, useful for explaining a decision."""

    base: float
    tools: float
    context: float
    operation: float
    parameters: float
    priority: float
    score: int

    @property
    def raw_total(self) -> float:
        return self.base + self.tools + self.context + self.operation + self.parameters + self.priority

    def to_dict(self) -> dict[str, Any]:
        return {
            "base": self.base,
            "tools": self.tools,
            "context": self.context,
            "operation": self.operation,
            "parameters": self.parameters,
            "priority": self.priority,
            "raw_total": round(self.raw_total, 3),
            "score": self.score,
        }


class ComplexityScorer:
    """Scores request complexity on a bounded 1-10 integer scale.

    Pure function of the Request: no I/O and no hidden state.
    """

    def __init__(self, profile: ScoringProfile | None = None) -> None:
        self.profile = profile or ScoringProfile()
        self._verbs = tuple(normalize_text(v) for v in self.profile.complex_verbs if v.strip())

    def score(self, request: Request) -> int:
        """Score a request.

        Args:
            request: The request to score.

        Returns:
            Integer complexity in [1, 10].
        """
        return self.breakdown(request).score

    def breakdown(self, request: Request) -> ScoreBreakdown:
        """Score a request and return every term.

        Args:
            request: The request to score.

        Returns:
            ScoreBreakdown with the capped terms and the final score.
        """
        p = self.profile
        tools = min(request.tool_count * p.per_tool, p.tool_cap)
        context = min(len(request.context) * p.per_context_key, p.context_cap)
        operation = p.verb_bonus if self._has_complex_verb(request.operation_name) else 0.0
        parameters = min(len(request.parameters) * p.per_parameter, p.parameter_cap)
        priority = p.high_priority_bonus if request.priority == Priority.HIGH else 0.0

        total = p.base + tools + context + operation + parameters + priority
        # round half up; the inner round() absorbs float drift like 2.4999999
        score = int(math.floor(round(total, 6) + 0.5))
        score = max(MIN_COMPLEXITY, min(score, MAX_COMPLEXITY))

        logger.debug(
            "Complexity for '%s': %d (tools=%.1f, context=%.1f, operation=%.1f, "
            "parameters=%.1f, priority=%.1f)",
            request.operation_name, score, tools, context, operation, parameters, priority,
        )

        return ScoreBreakdown(
            base=p.base,
            tools=tools,
            context=context,
            operation=operation,
            parameters=parameters,
            priority=priority,
            score=score,
        )

    def _has_complex_verb(self, operation_name: str) -> bool:
        # substring match on the normalized name, so 'researching' counts
        text = normalize_text(operation_name)
        return any(verb in text for verb in self._verbs)


__all__ = [
    "MIN_COMPLEXITY",
    "MAX_COMPLEXITY",
    "COMPLEX_VERBS",
    "ScoringProfile",
    "ScoreBreakdown",
    "ComplexityScorer",
]
