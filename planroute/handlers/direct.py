"""Direct-path executor.

Requests whose decision has ``use_handler=False`` skip the handler registry
and go to a direct executor: a plain async callable of (request, decision).
The default executor only acknowledges the operation; applications inject
their own to perform the actual direct tool call.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from planroute.routing.schemas import Request, RoutingDecision


logger = logging.getLogger(__name__)


DirectExecutor = Callable[[Request, RoutingDecision], Awaitable[Any]]


async def acknowledge(request: Request, decision: RoutingDecision) -> dict[str, Any]:
    """Default direct executor."""
    logger.debug("Direct path for '%s' (complexity %d)", request.operation_name, decision.complexity)
    return {
        "message": "Direct tool call executed",
        "operation": request.operation_name,
        "tools": sorted(request.tools),
    }


__all__ = ["DirectExecutor", "acknowledge"]
