"""Routing engine: classification, scoring, rules, fallback and the Router.

Usage:
    from planroute.routing import Request, build_router

    router = build_router(settings, handlers=[...])
    result = await router.route(Request("research_market_opportunity"))
"""

from planroute.routing.schemas import (
    AttemptOutcome,
    AttemptRecord,
    Category,
    Priority,
    Request,
    RouteMetadata,
    RouteResult,
    RouteState,
    RoutingDecision,
)
from planroute.routing.classifier import CategoryClassifier, ClassificationResult, ClassifierProfile
from planroute.routing.complexity import ComplexityScorer, ScoreBreakdown, ScoringProfile
from planroute.routing.fingerprint import fingerprint
from planroute.routing.rules import Rule, RuleSelection, RuleTable
from planroute.routing.profiles import RoutingProfile, get_profile
from planroute.routing.fallback import ExecutionOutcome, FallbackExecutor
from planroute.routing.router import Router
from planroute.routing.factory import build_router

__all__ = [
    "AttemptOutcome",
    "AttemptRecord",
    "Category",
    "Priority",
    "Request",
    "RouteMetadata",
    "RouteResult",
    "RouteState",
    "RoutingDecision",
    "CategoryClassifier",
    "ClassificationResult",
    "ClassifierProfile",
    "ComplexityScorer",
    "ScoreBreakdown",
    "ScoringProfile",
    "fingerprint",
    "Rule",
    "RuleSelection",
    "RuleTable",
    "RoutingProfile",
    "get_profile",
    "ExecutionOutcome",
    "FallbackExecutor",
    "Router",
    "build_router",
]
