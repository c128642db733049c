"""planroute - Adaptive request routing for AI-assisted project planning.

Routes research queries and tool invocations to AI research providers or
specialized synthesis agents:
- Keyword and stage based request classification
- Bounded 1-10 complexity scoring
- Table-driven handler selection with ordered fallback chains
- Two-tier routing decision cache (local LRU/TTL + optional Redis)
- Per-operation latency metrics
"""

__version__ = "1.0.0"

from planroute.routing import (
    Category,
    Priority,
    Request,
    RouteResult,
    Router,
    RoutingDecision,
    build_router,
)

__all__ = [
    "Category",
    "Priority",
    "Request",
    "RouteResult",
    "Router",
    "RoutingDecision",
    "build_router",
]
