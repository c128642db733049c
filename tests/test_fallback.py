"""Tests for the fallback executor.

Test Coverage:
- Candidate ordering (primary first, fallback order deduplicated)
- Skipping unavailable handlers and continuing past failures
- Exhaustion lists every attempted handler
- Strictly sequential invocation
- Cancellation is never absorbed
"""

from __future__ import annotations

import asyncio

import pytest

from planroute.core.exceptions import AllHandlersExhaustedError, HandlerUnavailableError
from planroute.handlers.registry import HandlerRegistry
from planroute.routing.fallback import FallbackExecutor
from planroute.routing.schemas import AttemptOutcome, Category, Request, RoutingDecision


def _decision(primary: str) -> RoutingDecision:
    return RoutingDecision(
        use_handler=True,
        handler_id=primary,
        category=Category.MARKET,
        complexity=3,
        reasoning="test",
    )


class TestCandidates:

    def test_registration_order_by_default(self, registry):
        executor = FallbackExecutor(registry)
        assert executor.candidates("market-provider") == [
            "market-provider", "tech-docs", "multi-tool-agent", "general-research",
        ]

    def test_explicit_order_deduplicated_and_filtered(self, registry):
        executor = FallbackExecutor(
            registry, ["general-research", "market-provider", "unknown", "general-research"]
        )
        assert executor.candidates("market-provider") == [
            "market-provider", "general-research", "tech-docs", "multi-tool-agent",
        ]

    def test_partial_order_keeps_unlisted_handlers(self, registry):
        executor = FallbackExecutor(registry, ["multi-tool-agent"])
        assert executor.candidates(None) == [
            "multi-tool-agent", "tech-docs", "market-provider", "general-research",
        ]


class TestExecute:

    @pytest.mark.asyncio
    async def test_primary_serves(self, registry, handlers):
        outcome = await FallbackExecutor(registry).execute(_decision("market-provider"), Request("op"))
        assert outcome.handler_id == "market-provider"
        assert outcome.fallback_used is False
        assert outcome.data == {"served_by": "market-provider"}
        assert [a.outcome for a in outcome.attempts] == [AttemptOutcome.SUCCEEDED]
        assert handlers["tech-docs"].calls == []

    @pytest.mark.asyncio
    async def test_unavailable_primary_falls_back(self, make_handler):
        primary = make_handler("primary", {"market"}, available=False)
        backup = make_handler("backup", {"general-research"})
        executor = FallbackExecutor(HandlerRegistry([primary, backup]))

        outcome = await executor.execute(_decision("primary"), Request("op"))

        assert outcome.handler_id == "backup"
        assert outcome.fallback_used is True
        assert outcome.attempts[0].outcome == AttemptOutcome.SKIPPED
        assert primary.calls == []

    @pytest.mark.asyncio
    async def test_failing_primary_falls_back(self, make_handler):
        primary = make_handler("primary", {"market"}, error=RuntimeError("502 from provider"))
        backup = make_handler("backup", {"market"})
        executor = FallbackExecutor(HandlerRegistry([primary, backup]))

        outcome = await executor.execute(_decision("primary"), Request("op"))

        assert outcome.handler_id == "backup"
        assert outcome.attempts[0].outcome == AttemptOutcome.FAILED
        assert "502 from provider" in outcome.attempts[0].reason

    @pytest.mark.asyncio
    async def test_unavailable_error_from_invoke_is_a_skip(self, make_handler):
        primary = make_handler("primary", {"market"}, error=HandlerUnavailableError("primary", "no key"))
        backup = make_handler("backup", {"market"})
        outcome = await FallbackExecutor(HandlerRegistry([primary, backup])).execute(
            _decision("primary"), Request("op")
        )
        assert outcome.attempts[0].outcome == AttemptOutcome.SKIPPED
        assert outcome.attempts[0].reason == "no key"

    @pytest.mark.asyncio
    async def test_exhaustion_lists_every_handler(self, make_handler):
        registry = HandlerRegistry([
            make_handler("a", {"market"}, available=False),
            make_handler("b", {"market"}, error=ValueError("bad")),
            make_handler("c", {"market"}, available=False),
        ])
        with pytest.raises(AllHandlersExhaustedError) as exc_info:
            await FallbackExecutor(registry).execute(_decision("b"), Request("op"))

        error = exc_info.value
        assert error.code == "ALL_HANDLERS_EXHAUSTED"
        assert error.handler_ids == ["b", "a", "c"]
        for handler_id in ("a", "b", "c"):
            assert handler_id in str(error)

    @pytest.mark.asyncio
    async def test_exhaustion_with_partial_fallback_order(self, make_handler):
        registry = HandlerRegistry([
            make_handler("a", {"market"}, available=False),
            make_handler("b", {"market"}, error=ValueError("bad")),
            make_handler("c", {"market"}, error=RuntimeError("down")),
        ])
        with pytest.raises(AllHandlersExhaustedError) as exc_info:
            await FallbackExecutor(registry, ["c"]).execute(_decision("b"), Request("op"))
        assert exc_info.value.handler_ids == ["b", "c", "a"]

    @pytest.mark.asyncio
    async def test_candidates_tried_sequentially(self, make_handler):
        active = 0
        peak = 0

        class SlowFailing:
            def __init__(self, handler_id):
                self.handler_id = handler_id
                self.categories = frozenset({"market"})

            def serves(self, tag):
                return tag in self.categories

            async def is_available(self):
                return True

            async def invoke(self, request):
                nonlocal active, peak
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1
                raise RuntimeError("fail")

        registry = HandlerRegistry([SlowFailing("a"), SlowFailing("b"), SlowFailing("c")])
        with pytest.raises(AllHandlersExhaustedError):
            await FallbackExecutor(registry).execute(_decision("a"), Request("op"))
        assert peak == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, make_handler):
        primary = make_handler("primary", {"market"}, error=asyncio.CancelledError())
        backup = make_handler("backup", {"market"})
        with pytest.raises(asyncio.CancelledError):
            await FallbackExecutor(HandlerRegistry([primary, backup])).execute(
                _decision("primary"), Request("op")
            )
        assert backup.calls == []
