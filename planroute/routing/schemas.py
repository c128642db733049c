"""Data model for the planroute routing engine.

Key Types:
    Priority: Caller-declared request priority.
    Category: Closed set of request categories produced by the classifier.
    Request: Immutable operation submitted to Router.route().
    RoutingDecision: Memoized outcome of classification, scoring and rule lookup.
    AttemptRecord: One step of the fallback chain.
    RouteMetadata / RouteResult: Caller-facing route outcome.
    RouteState: Linear request lifecycle states.

Example:
    >>> request = Request(
    ...     operation_name="research_market_opportunity",
    ...     tools=["tavily-search"],
    ...     context={"stage": "market_research"},
    ...     parameters={"query": "AI planning tools"},
    ... )
    >>> request.priority
    <Priority.MEDIUM: 'medium'>
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Union


# =============================================================================
# Enumerations
# =============================================================================


class Priority(str, Enum):
    """Caller-declared request priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, value: Union["Priority", str, None]) -> "Priority":
        """Coerce a string (any case) or None into a Priority.

        Unknown values fall back to MEDIUM.
        """
        if isinstance(value, Priority):
            return value
        if not value:
            return cls.MEDIUM
        try:
            return cls(str(value).lower().strip())
        except ValueError:
            return cls.MEDIUM


class Category(str, Enum):
    """Request category produced by the classifier.

    Attributes:
        TECHNICAL: Libraries, frameworks, architecture, implementation.
        MARKET: Market sizing, customers, pricing, opportunities.
        COMPETITIVE: Competitor and alternative analysis.
        HYBRID: Both technical and market signals present.
        UIUX: Interface and user experience research (synthesis profile).
        GENERAL: Anything else; also the policy answer for ambiguity.
    """

    TECHNICAL = "technical"
    MARKET = "market"
    COMPETITIVE = "competitive"
    HYBRID = "hybrid"
    UIUX = "uiux"
    GENERAL = "general"


class RouteState(str, Enum):
    """Linear request lifecycle. No transition leaves a terminal state."""

    RECEIVED = "received"
    CLASSIFIED = "classified"
    SCORED = "scored"
    HANDLER_SELECTED = "handler_selected"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RouteState.COMPLETED, RouteState.FAILED)


class AttemptOutcome(str, Enum):
    """Outcome of one fallback-chain candidate."""

    SKIPPED = "skipped"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


# =============================================================================
# Request
# =============================================================================


def _snapshot(value: Any) -> Any:
    # copies plain containers; other objects (clients, locks) are kept by reference
    if isinstance(value, Mapping):
        return {k: _snapshot(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_snapshot(v) for v in value]
    if isinstance(value, set):
        return {_snapshot(v) for v in value}
    return value


def _freeze_mapping(value: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    if not value:
        return MappingProxyType({})
    return MappingProxyType(_snapshot(value))


@dataclass(frozen=True)
class Request:
    """An operation submitted for routing.

    The constructor snapshots ``context`` and ``parameters`` into read-only
    mappings (nested dicts, lists and sets are copied; other values are
    kept by reference) and normalizes ``tools`` into a frozenset, so a
    Request cannot change after it has been handed to the router.

    Requests hash on operation name, tools and priority, which is
    consistent with field equality.

    Attributes:
        operation_name: Operation or tool name, e.g. 'research_market_opportunity'.
        tools: Tool names the operation needs (order is irrelevant).
        context: Structured context such as the workflow ``stage``.
        parameters: Operation parameters such as ``query``.
        priority: Caller priority.
    """

    operation_name: str
    tools: frozenset[str] = field(default_factory=frozenset)
    context: Mapping[str, Any] = field(default_factory=dict)
    parameters: Mapping[str, Any] = field(default_factory=dict)
    priority: Priority = Priority.MEDIUM

    def __post_init__(self) -> None:
        if not isinstance(self.operation_name, str):
            raise TypeError(
                f"operation_name must be a string, got {type(self.operation_name).__name__}"
            )
        tools: Iterable[str] = self.tools or ()
        if isinstance(tools, str):
            tools = (tools,)
        object.__setattr__(self, "tools", frozenset(str(t) for t in tools))
        object.__setattr__(self, "context", _freeze_mapping(self.context))
        object.__setattr__(self, "parameters", _freeze_mapping(self.parameters))
        object.__setattr__(self, "priority", Priority.parse(self.priority))

    def __hash__(self) -> int:
        return hash((self.operation_name, self.tools, self.priority))

    @property
    def tool_count(self) -> int:
        return len(self.tools)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Request":
        """Build a Request from a dict using snake_case or camelCase keys.

        Args:
            data: Dictionary with ``operation_name``/``operationName`` (or
                ``operation``), ``tools``, ``context``, ``parameters`` and
                ``priority``.

        Returns:
            New Request instance.
        """
        name = data.get("operation_name", data.get("operationName", data.get("operation", "")))
        return cls(
            operation_name=name,
            tools=data.get("tools") or (),
            context=data.get("context") or {},
            parameters=data.get("parameters") or {},
            priority=data.get("priority"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert request to a plain dictionary (tools sorted)."""
        return {
            "operation_name": self.operation_name,
            "tools": sorted(self.tools),
            "context": dict(self.context),
            "parameters": dict(self.parameters),
            "priority": self.priority.value,
        }


# =============================================================================
# Routing Decision
# =============================================================================


@dataclass(frozen=True)
class RoutingDecision:
    """Outcome of classification, scoring and rule-table lookup.

    Decisions are pure functions of the request shape and the registry
    contents at decision time, which is what makes them safe to memoize.

    Attributes:
        use_handler: False means the direct path (no handler involved).
        handler_id: Primary handler id when use_handler is True.
        category: Classified category.
        complexity: Complexity score in [1, 10].
        reasoning: Human-readable explanation of the decision.
        handler_tag: Capability tag the matching rule asked for.
        rule_name: Name of the rule that matched, if any.
        requires_synthesis: True when the request needs a synthesis agent.
    """

    use_handler: bool
    handler_id: Optional[str]
    category: Category
    complexity: int
    reasoning: str
    handler_tag: Optional[str] = None
    rule_name: Optional[str] = None
    requires_synthesis: bool = False

    def __post_init__(self) -> None:
        if not 1 <= self.complexity <= 10:
            raise ValueError(f"Complexity must be 1-10, got {self.complexity}")
        if self.use_handler and not self.handler_id:
            raise ValueError("use_handler=True requires a handler_id")

    def to_dict(self) -> dict[str, Any]:
        """Convert decision to dictionary for serialization."""
        return {
            "use_handler": self.use_handler,
            "handler_id": self.handler_id,
            "category": self.category.value,
            "complexity": self.complexity,
            "reasoning": self.reasoning,
            "handler_tag": self.handler_tag,
            "rule_name": self.rule_name,
            "requires_synthesis": self.requires_synthesis,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RoutingDecision":
        """Rebuild a decision produced by to_dict()."""
        return cls(
            use_handler=bool(data["use_handler"]),
            handler_id=data.get("handler_id"),
            category=Category(data["category"]),
            complexity=int(data["complexity"]),
            reasoning=data.get("reasoning", ""),
            handler_tag=data.get("handler_tag"),
            rule_name=data.get("rule_name"),
            requires_synthesis=bool(data.get("requires_synthesis", False)),
        )


# =============================================================================
# Fallback Attempts
# =============================================================================


@dataclass(frozen=True)
class AttemptRecord:
    """One candidate tried by the fallback executor.

    Attributes:
        handler_id: Candidate handler id.
        outcome: skipped (unavailable), failed (invocation error) or succeeded.
        reason: Skip or failure reason; empty on success.
        duration_ms: Time spent on this candidate.
    """

    handler_id: str
    outcome: AttemptOutcome
    reason: str = ""
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "handler_id": self.handler_id,
            "outcome": self.outcome.value,
            "reason": self.reason,
            "duration_ms": self.duration_ms,
        }


# =============================================================================
# Route Result
# =============================================================================


@dataclass
class RouteMetadata:
    """Metadata attached to every RouteResult.

    Attributes:
        handler_id: Handler that served the request (None on the direct path).
        tools_used: Tools of the request, sorted.
        execution_time_ms: Whole round trip, classification included.
        complexity: Complexity score (0 when routing failed before scoring).
        cache_hit: Whether the decision came from the cache.
        category: Classified category value.
        reasoning: Decision reasoning, plus fallback notes.
        fallback_used: True when a non-primary handler served the request.
        attempts: Fallback-chain attempts in order.
        timestamp: Completion time (UTC).
    """

    handler_id: Optional[str] = None
    tools_used: list[str] = field(default_factory=list)
    execution_time_ms: int = 0
    complexity: int = 0
    cache_hit: bool = False
    category: Optional[str] = None
    reasoning: str = ""
    fallback_used: bool = False
    attempts: list[AttemptRecord] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire shape."""
        return {
            "handlerId": self.handler_id,
            "toolsUsed": list(self.tools_used),
            "executionTimeMs": self.execution_time_ms,
            "complexity": self.complexity,
            "cacheHit": self.cache_hit,
            "category": self.category,
            "reasoning": self.reasoning,
            "fallbackUsed": self.fallback_used,
            "attempts": [a.to_dict() for a in self.attempts],
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RouteResult:
    """Caller-facing outcome of Router.route().

    Attributes:
        success: True when a handler (or the direct path) produced data.
        data: Handler response payload.
        metadata: Routing metadata.
        error: Complete error description on failure.
        error_code: Machine-readable error code on failure.
    """

    success: bool
    data: Any = None
    metadata: RouteMetadata = field(default_factory=RouteMetadata)
    error: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def handler_id(self) -> Optional[str]:
        return self.metadata.handler_id

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire shape."""
        result: dict[str, Any] = {
            "success": self.success,
            "data": self.data,
            "metadata": self.metadata.to_dict(),
        }
        if self.error is not None:
            result["error"] = self.error
            result["errorCode"] = self.error_code
        return result


__all__ = [
    "Priority",
    "Category",
    "RouteState",
    "AttemptOutcome",
    "Request",
    "RoutingDecision",
    "AttemptRecord",
    "RouteMetadata",
    "RouteResult",
]
