"""Tests for the planroute exception hierarchy."""

from __future__ import annotations

from planroute.core.exceptions import (
    CacheTierError,
    PlanrouteError,
    RouteTimeoutError,
    RoutingError,
)


class TestRouteTimeoutError:

    def test_message_with_deadline(self):
        error = RouteTimeoutError(0.5, operation_name="get_tasks")
        assert str(error) == "[ROUTE_TIMEOUT] Route timed out after 0.5s"
        assert error.context == {"timeout_seconds": 0.5, "operation_name": "get_tasks"}

    def test_message_without_deadline(self):
        error = RouteTimeoutError(None)
        assert str(error) == "[ROUTE_TIMEOUT] Route timed out"
        assert error.timeout_seconds is None

    def test_hierarchy(self):
        assert isinstance(RouteTimeoutError(1), RoutingError)
        assert isinstance(RouteTimeoutError(1), PlanrouteError)


class TestCacheTierError:

    def test_recoverable_by_default(self):
        error = CacheTierError("connection refused", tier="redis")
        assert error.recoverable is True
        assert error.to_log_dict()["context"] == {"tier": "redis"}
