"""Shared pytest fixtures for planroute tests.

This module provides common fixtures used across all test modules:
- Settings cache isolation
- Recording handlers for each capability tag
- A populated registry and a default-profile router
"""

from __future__ import annotations

from typing import Any, Optional

import pytest

from planroute.config.settings import clear_settings_cache
from planroute.handlers.base import Handler
from planroute.handlers.registry import HandlerRegistry
from planroute.routing.router import Router
from planroute.routing.schemas import Request


# -----------------------------------------------------------------------------
# Test Isolation
# -----------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clean_settings_cache():
    """Clear settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove PLANROUTE_ and TAVILY_ env vars and run from an empty dir."""
    import os

    for key in list(os.environ):
        if key.startswith("PLANROUTE_") or key == "TAVILY_API_KEY":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# -----------------------------------------------------------------------------
# Handlers
# -----------------------------------------------------------------------------

class RecordingHandler(Handler):
    """Handler that records calls and can be told to fail or be unavailable."""

    def __init__(
        self,
        handler_id: str,
        categories: set[str],
        available: bool = True,
        error: Optional[BaseException] = None,
        payload: Any = None,
    ) -> None:
        self.handler_id = handler_id
        self.categories = frozenset(categories)
        self.available = available
        self.error = error
        self.payload = payload if payload is not None else {"served_by": handler_id}
        self.calls: list[Request] = []
        self.probes = 0

    async def is_available(self) -> bool:
        self.probes += 1
        return self.available

    async def invoke(self, request: Request) -> Any:
        self.calls.append(request)
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def make_handler():
    """Factory for RecordingHandler instances."""
    def _make(handler_id: str, categories=(), **kwargs) -> RecordingHandler:
        return RecordingHandler(handler_id, set(categories), **kwargs)
    return _make


@pytest.fixture
def handlers(make_handler) -> dict[str, RecordingHandler]:
    """One handler per default capability tag, in registration order."""
    return {
        "tech-docs": make_handler("tech-docs", {"technical"}),
        "market-provider": make_handler("market-provider", {"market"}),
        "multi-tool-agent": make_handler("multi-tool-agent", {"multi-tool"}),
        "general-research": make_handler("general-research", {"general-research"}),
    }


@pytest.fixture
def registry(handlers) -> HandlerRegistry:
    return HandlerRegistry(handlers.values())


@pytest.fixture
def router(registry) -> Router:
    """Default-profile router with a local-only cache."""
    return Router(registry)
