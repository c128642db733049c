"""Router: the composition root of the planroute routing engine.

``Router.route(request)`` runs the whole pipeline:

    1. Fingerprint the request and look the decision up in the cache.
    2. On a miss: classify, score and evaluate the rule table.
    3. Execute: the fallback chain when the decision uses a handler,
       otherwise the direct executor.
    4. Memoize a newly computed decision once execution has finished
       (success or exhaustion). Timed-out and cancelled routes write nothing.
    5. Record latency for the whole round trip keyed by operation name.
    6. Return a RouteResult.

Each request moves through RouteState received -> classified -> scored ->
handler_selected -> executing -> completed | failed; every transition is
logged at DEBUG.

Only two outcomes become failed results: every handler exhausted
(ALL_HANDLERS_EXHAUSTED) and the route deadline passing (ROUTE_TIMEOUT).
Caller cancellation is re-raised.

Example:
    >>> registry = HandlerRegistry([
    ...     FunctionHandler("market-provider", {"market"}, search_market),
    ... ])
    >>> router = Router(registry)
    >>> result = await router.route(Request("research_market_opportunity"))
    >>> result.metadata.handler_id
    'market-provider'
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Optional

from planroute.cache.decision_cache import DecisionCache
from planroute.core.exceptions import AllHandlersExhaustedError, RouteTimeoutError
from planroute.handlers.direct import DirectExecutor, acknowledge
from planroute.handlers.registry import HandlerRegistry
from planroute.routing.classifier import CategoryClassifier
from planroute.routing.complexity import ComplexityScorer
from planroute.routing.fallback import FallbackExecutor
from planroute.routing.fingerprint import digest, fingerprint
from planroute.routing.profiles import RoutingProfile, default_profile
from planroute.routing.schemas import (
    AttemptOutcome,
    AttemptRecord,
    Request,
    RouteMetadata,
    RouteResult,
    RouteState,
    RoutingDecision,
)
from planroute.telemetry.metrics import MetricsRecorder


# =============================================================================
# Module Logger
# =============================================================================

logger = logging.getLogger(__name__)


# =============================================================================
# Route Trace
# =============================================================================


@dataclass
class _RouteTrace:
    """Mutable per-call progress, readable after a timeout."""

    request: Request
    started: float
    state: RouteState = RouteState.RECEIVED
    decision: Optional[RoutingDecision] = None
    cache_hit: bool = False
    attempts: list[AttemptRecord] = field(default_factory=list)

    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started) * 1000)


# =============================================================================
# Router
# =============================================================================


class Router:
    """Routes requests to handlers with caching, fallback and metrics.

    One Router class serves every variant; the RoutingProfile decides the
    keywords, weights, rules and fallback order. The registry is frozen on
    construction.

    Attributes:
        registry: Frozen handler registry.
        profile: Routing profile in use.
        cache: Decision cache owned by this router.
        metrics: Metrics recorder owned by this router.
        route_timeout_seconds: Default deadline for route(); None disables.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        profile: Optional[RoutingProfile] = None,
        cache: Optional[DecisionCache] = None,
        metrics: Optional[MetricsRecorder] = None,
        direct_executor: DirectExecutor = acknowledge,
        route_timeout_seconds: Optional[float] = None,
    ) -> None:
        """Initialize the router.

        Args:
            registry: Handlers to route to. Frozen here.
            profile: Routing profile; defaults to the default profile.
            cache: Decision cache; defaults to a local-only cache.
            metrics: Metrics recorder; defaults to a 100-sample window.
            direct_executor: Async callable for use_handler=False decisions.
            route_timeout_seconds: Default per-route deadline.
        """
        self.registry = registry.freeze()
        self.profile = profile or default_profile()
        self.cache = cache if cache is not None else DecisionCache()
        self.metrics = metrics if metrics is not None else MetricsRecorder()
        self.direct_executor = direct_executor
        self.route_timeout_seconds = route_timeout_seconds

        self.classifier = CategoryClassifier(self.profile.classifier)
        self.scorer = ComplexityScorer(self.profile.scoring)
        self.fallback = FallbackExecutor(self.registry, self.profile.fallback_order)
        self.cache_namespace = self._cache_namespace()

        logger.info(
            "Router initialized (profile=%s, handlers=%s)",
            self.profile.name, self.registry.handler_ids(),
        )

    # -------------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------------

    def _cache_namespace(self) -> str:
        # everything besides the request that shapes a decision
        shape = digest({
            "profile": self.profile.name,
            "keywords": self.profile.classifier.keywords,
            "stage_hints": self.profile.classifier.stage_hints,
            "focus_hints": self.profile.classifier.focus_hints,
            "tool_hints": self.profile.classifier.tool_hints,
            "scoring": asdict(self.profile.scoring),
            "rules": self.profile.rules.rule_names(),
            "handlers": [[h.handler_id, sorted(h.categories)] for h in self.registry],
        })
        return f"{self.profile.name}:{shape[:16]}"

    def cache_key(self, request: Request) -> str:
        """Decision cache key: profile and registry namespace plus fingerprint.

        Routers that share a cache tier only share decisions when their
        profile and registry agree.
        """
        return f"{self.cache_namespace}:{fingerprint(request)}"

    def _transition(self, trace: _RouteTrace, state: RouteState) -> None:
        trace.state = state
        logger.debug(
            "Route '%s' -> %s", trace.request.operation_name, state.value,
            extra={"operation": trace.request.operation_name, "state": state.value},
        )

    def _compute_decision(self, request: Request, trace: Optional[_RouteTrace] = None) -> RoutingDecision:
        classification = self.classifier.explain(request)
        if trace is not None:
            self._transition(trace, RouteState.CLASSIFIED)

        complexity = self.scorer.score(request)
        if trace is not None:
            self._transition(trace, RouteState.SCORED)

        selection = self.profile.rules.select(
            classification.category, complexity, request, self.registry
        )
        reasoning = (
            f"category '{classification.category.value}' from {classification.source}; "
            f"complexity {complexity}; {selection.reasoning()}"
        )
        return RoutingDecision(
            use_handler=selection.matched,
            handler_id=selection.handler_id,
            category=classification.category,
            complexity=complexity,
            reasoning=reasoning,
            handler_tag=selection.rule.tag if selection.rule else None,
            rule_name=selection.rule.name if selection.rule else None,
            requires_synthesis=bool(selection.rule and selection.rule.requires_synthesis),
        )

    async def decide(self, request: Request) -> RoutingDecision:
        """Return the routing decision without executing anything.

        Reads the cache but never writes it.

        Args:
            request: Request to decide for.

        Returns:
            The cached or freshly computed decision.
        """
        cached = await self.cache.get(self.cache_key(request))
        if cached is not None:
            return cached
        return self._compute_decision(request)

    def explain(self, request: Request) -> dict[str, Any]:
        """Describe how a request would be routed, ignoring the cache.

        Returns:
            Dict with the fingerprint, classifier signals, score breakdown
            and the resulting decision.
        """
        return {
            "fingerprint": fingerprint(request),
            "cache_key": self.cache_key(request),
            "profile": self.profile.name,
            "classification": self.classifier.explain(request).to_dict(),
            "complexity": self.scorer.breakdown(request).to_dict(),
            "decision": self._compute_decision(request).to_dict(),
        }

    # -------------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------------

    async def route(self, request: Request, timeout: Optional[float] = None) -> RouteResult:
        """Route one request.

        Args:
            request: The request to route.
            timeout: Deadline in seconds; defaults to route_timeout_seconds.

        Returns:
            RouteResult. ``success`` is False only for exhaustion or timeout.

        Raises:
            asyncio.CancelledError: If the caller cancels the route.
            Exception: Direct executor errors propagate, including a
                TimeoutError that is not the route deadline.
        """
        trace = _RouteTrace(request=request, started=time.perf_counter())
        self._transition(trace, RouteState.RECEIVED)
        deadline = timeout if timeout is not None else self.route_timeout_seconds
        # a None deadline never expires
        scope = asyncio.timeout(deadline)

        try:
            async with scope:
                result = await self._route(trace)
        except TimeoutError:
            # a TimeoutError raised inside the route is not the deadline
            if not scope.expired():
                raise
            error = RouteTimeoutError(deadline, operation_name=request.operation_name)
            logger.warning(
                "Route '%s' timed out after %ss", request.operation_name, deadline,
                extra={"operation": request.operation_name, "duration_ms": trace.elapsed_ms()},
            )
            return self._failure(trace, error)
        except AllHandlersExhaustedError as error:
            trace.attempts = list(error.attempts)
            return self._failure(trace, error)
        except asyncio.CancelledError:
            self._transition(trace, RouteState.FAILED)
            logger.info("Route '%s' cancelled", request.operation_name)
            raise

        return result

    async def _route(self, trace: _RouteTrace) -> RouteResult:
        request = trace.request
        key = self.cache_key(request)

        decision = await self.cache.get(key)
        if decision is not None:
            trace.cache_hit = True
            logger.debug("Cache hit for '%s'", request.operation_name)
        else:
            decision = self._compute_decision(request, trace)
        trace.decision = decision
        self._transition(trace, RouteState.HANDLER_SELECTED)

        self._transition(trace, RouteState.EXECUTING)
        if decision.use_handler:
            try:
                outcome = await self.fallback.execute(decision, request, decision.complexity)
            except AllHandlersExhaustedError:
                if not trace.cache_hit:
                    await self.cache.put(key, decision)
                raise
            data = outcome.data
            handler_id: Optional[str] = outcome.handler_id
            fallback_used = outcome.fallback_used
            trace.attempts = outcome.attempts
        else:
            data = await self.direct_executor(request, decision)
            handler_id = None
            fallback_used = False

        if not trace.cache_hit:
            await self.cache.put(key, decision)

        duration_ms = trace.elapsed_ms()
        self.metrics.record(request.operation_name, duration_ms, decision.complexity)
        self._transition(trace, RouteState.COMPLETED)

        reasoning = decision.reasoning
        if fallback_used:
            notes = "; ".join(
                f"{a.handler_id} {a.outcome.value}: {a.reason}"
                for a in trace.attempts if a.outcome != AttemptOutcome.SUCCEEDED
            )
            reasoning = f"{reasoning}; served by fallback '{handler_id}' after {notes}"

        logger.info(
            "Routed '%s' via %s in %dms", request.operation_name,
            handler_id or "direct path", duration_ms,
            extra={
                "operation": request.operation_name,
                "handler_id": handler_id,
                "duration_ms": duration_ms,
                "cache_hit": trace.cache_hit,
                "complexity": decision.complexity,
                "category": decision.category.value,
            },
        )

        return RouteResult(
            success=True,
            data=data,
            metadata=RouteMetadata(
                handler_id=handler_id,
                tools_used=sorted(request.tools),
                execution_time_ms=duration_ms,
                complexity=decision.complexity,
                cache_hit=trace.cache_hit,
                category=decision.category.value,
                reasoning=reasoning,
                fallback_used=fallback_used,
                attempts=list(trace.attempts),
            ),
        )

    def _failure(self, trace: _RouteTrace, error: Exception) -> RouteResult:
        self._transition(trace, RouteState.FAILED)
        request = trace.request
        decision = trace.decision
        duration_ms = trace.elapsed_ms()
        if decision is not None:
            self.metrics.record(request.operation_name, duration_ms, decision.complexity)

        logger.error(
            "Route '%s' failed: %s", request.operation_name, error,
            extra={
                "operation": request.operation_name,
                "duration_ms": duration_ms,
                "cache_hit": trace.cache_hit,
            },
        )
        return RouteResult(
            success=False,
            error=str(error),
            error_code=getattr(error, "code", None),
            metadata=RouteMetadata(
                handler_id=None,
                tools_used=sorted(request.tools),
                execution_time_ms=duration_ms,
                complexity=decision.complexity if decision else 0,
                cache_hit=trace.cache_hit,
                category=decision.category.value if decision else None,
                reasoning=decision.reasoning if decision else "",
                fallback_used=False,
                attempts=list(trace.attempts),
            ),
        )

    async def route_batch(
        self,
        requests: Iterable[Request],
        timeout: Optional[float] = None,
    ) -> list[RouteResult]:
        """Route several requests concurrently.

        Returns:
            Results in input order.
        """
        return list(await asyncio.gather(*(self.route(r, timeout=timeout) for r in requests)))

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, dict[str, Any]]:
        """Per-operation latency and complexity aggregates."""
        return self.metrics.get_stats()

    def get_routing_stats(self) -> dict[str, Any]:
        """Registered handlers, rule table, fallback order and cache counters."""
        return {
            "profile": self.profile.name,
            "handlers": {
                h.handler_id: sorted(h.categories) for h in self.registry
            },
            "rules": self.profile.rules.rule_names(),
            "fallback_order": self.fallback.candidates(None),
            "cache": self.cache.stats(),
            "operations": self.metrics.operations(),
        }

    async def aclose(self) -> None:
        """Release the shared cache tier."""
        await self.cache.close()

    async def __aenter__(self) -> "Router":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = ["Router"]
