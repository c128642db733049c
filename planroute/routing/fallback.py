"""Fallback chain execution.

Given a decision naming a primary handler, the executor tries the primary
and then every handler of the global fallback order, strictly one after the
other. An unavailable candidate is skipped; a candidate that raises is
recorded as failed and the chain moves on. The first success ends the chain.
When nobody succeeds, AllHandlersExhaustedError lists every attempt.

There are no retries inside the executor and ``asyncio.CancelledError`` is
always propagated.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from planroute.core.exceptions import AllHandlersExhaustedError, HandlerUnavailableError
from planroute.handlers.registry import HandlerRegistry
from planroute.routing.schemas import AttemptOutcome, AttemptRecord, Request, RoutingDecision


# =============================================================================
# Module Logger
# =============================================================================

logger = logging.getLogger(__name__)


@dataclass
class ExecutionOutcome:
    """Result of a successful fallback chain.

    Attributes:
        data: Payload returned by the serving handler.
        handler_id: Handler that served the request.
        fallback_used: True when the serving handler is not the primary.
        attempts: Every attempt, the successful one last.
    """

    data: Any
    handler_id: str
    fallback_used: bool
    attempts: list[AttemptRecord] = field(default_factory=list)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class FallbackExecutor:
    """Runs a decision's handler chain against the registry.

    Attributes:
        registry: Registry the candidates are resolved against.
        fallback_order: Global order; empty means registration order.
    """

    def __init__(self, registry: HandlerRegistry, fallback_order: Sequence[str] = ()) -> None:
        self.registry = registry
        self.fallback_order = tuple(fallback_order)
        unknown = [h for h in self.fallback_order if h not in registry]
        if unknown:
            logger.warning("Fallback order names unregistered handlers: %s", unknown)

    def candidates(self, primary: Optional[str]) -> list[str]:
        """Primary first, then the fallback order, then every other handler.

        Handlers the fallback order leaves out follow in registration order,
        so an exhausted chain has tried the whole registry. Duplicates and
        unregistered ids are dropped.
        """
        chain: list[str] = []
        for handler_id in (primary, *self.fallback_order, *self.registry.handler_ids()):
            if handler_id is None or handler_id in chain:
                continue
            if handler_id not in self.registry:
                continue
            chain.append(handler_id)
        return chain

    async def execute(
        self,
        decision: RoutingDecision,
        request: Request,
        complexity: Optional[int] = None,
    ) -> ExecutionOutcome:
        """Walk the chain until a handler succeeds.

        Args:
            decision: Decision naming the primary handler.
            request: Request to serve.
            complexity: Score for log context; defaults to the decision's.

        Returns:
            ExecutionOutcome from the first successful handler.

        Raises:
            AllHandlersExhaustedError: If every candidate was skipped or failed.
            asyncio.CancelledError: Always propagated.
        """
        complexity = decision.complexity if complexity is None else complexity
        primary = decision.handler_id
        attempts: list[AttemptRecord] = []

        for handler_id in self.candidates(primary):
            started = time.perf_counter()
            if not await self.registry.is_available(handler_id):
                attempts.append(AttemptRecord(
                    handler_id=handler_id,
                    outcome=AttemptOutcome.SKIPPED,
                    reason="unavailable",
                    duration_ms=_elapsed_ms(started),
                ))
                logger.info("Handler %s unavailable for '%s', trying next", handler_id, request.operation_name)
                continue

            handler = self.registry.get(handler_id)
            try:
                data = await handler.invoke(request)
            except asyncio.CancelledError:
                raise
            except HandlerUnavailableError as e:
                attempts.append(AttemptRecord(
                    handler_id=handler_id,
                    outcome=AttemptOutcome.SKIPPED,
                    reason=e.reason,
                    duration_ms=_elapsed_ms(started),
                ))
                logger.info("Handler %s became unavailable: %s", handler_id, e.reason)
                continue
            except Exception as e:
                attempts.append(AttemptRecord(
                    handler_id=handler_id,
                    outcome=AttemptOutcome.FAILED,
                    reason=f"{type(e).__name__}: {e}",
                    duration_ms=_elapsed_ms(started),
                ))
                logger.warning(
                    "Handler %s failed for '%s' (complexity %d): %s",
                    handler_id, request.operation_name, complexity, e,
                )
                continue

            attempts.append(AttemptRecord(
                handler_id=handler_id,
                outcome=AttemptOutcome.SUCCEEDED,
                duration_ms=_elapsed_ms(started),
            ))
            fallback_used = handler_id != primary
            if fallback_used:
                logger.info(
                    "Fallback handler %s served '%s' (primary %s)",
                    handler_id, request.operation_name, primary,
                )
            return ExecutionOutcome(
                data=data,
                handler_id=handler_id,
                fallback_used=fallback_used,
                attempts=attempts,
            )

        logger.error("All handlers exhausted for '%s': %s", request.operation_name,
                     [a.handler_id for a in attempts])
        raise AllHandlersExhaustedError(attempts, operation_name=request.operation_name)


__all__ = ["ExecutionOutcome", "FallbackExecutor"]
