"""Tests for the Tavily handler.

Note: These tests DO NOT require TAVILY_API_KEY; the SDK client is mocked.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from planroute.core.exceptions import HandlerInvocationError, HandlerUnavailableError
from planroute.handlers.registry import HandlerRegistry
from planroute.handlers.tavily import TavilyHandler
from planroute.routing.router import Router
from planroute.routing.schemas import Request


@pytest.fixture
def client():
    client = MagicMock()
    client.search = AsyncMock(return_value={"results": [{"title": "AI planning market"}]})
    client.extract = AsyncMock(return_value={"results": [{"raw_content": "..."}]})
    return client


class TestTavilyHandler:

    @pytest.mark.asyncio
    async def test_availability_follows_key(self):
        assert await TavilyHandler(api_key="tvly-x").is_available() is True
        assert await TavilyHandler(api_key=None).is_available() is False

    @pytest.mark.asyncio
    async def test_search(self, client):
        handler = TavilyHandler(client=client, max_results=3)
        request = Request(
            "research_market_opportunity",
            parameters={"query": "AI planning tools", "search_depth": "advanced", "ignored": 1},
        )
        result = await handler.invoke(request)
        assert result["operation"] == "search"
        assert result["result"]["results"][0]["title"] == "AI planning market"
        client.search.assert_awaited_once_with(
            query="AI planning tools", max_results=3, search_depth="advanced"
        )

    @pytest.mark.asyncio
    async def test_extract(self, client):
        handler = TavilyHandler(client=client)
        request = Request("extract_pages", tools=["tavily-extract"], parameters={"urls": "https://example.com"})
        result = await handler.invoke(request)
        assert result["operation"] == "extract"
        client.extract.assert_awaited_once_with(urls=["https://example.com"])

    @pytest.mark.asyncio
    async def test_missing_query(self, client):
        with pytest.raises(HandlerInvocationError):
            await TavilyHandler(client=client).invoke(Request("research_topic"))

    @pytest.mark.asyncio
    async def test_api_failure_wrapped(self, client):
        client.search.side_effect = RuntimeError("rate limited")
        with pytest.raises(HandlerInvocationError) as exc_info:
            await TavilyHandler(client=client).invoke(Request("r", parameters={"query": "q"}))
        assert "rate limited" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_no_key_is_unavailable(self):
        with pytest.raises(HandlerUnavailableError):
            await TavilyHandler(api_key=None).invoke(Request("r", parameters={"query": "q"}))

    @pytest.mark.asyncio
    async def test_client_built_lazily_from_key(self):
        with patch("planroute.handlers.tavily.AsyncTavilyClient") as client_cls:
            client_cls.return_value.search = AsyncMock(return_value={"results": []})
            handler = TavilyHandler(api_key="tvly-x")
            await handler.invoke(Request("r", parameters={"query": "q"}))
            client_cls.assert_called_once_with(api_key="tvly-x")

    @pytest.mark.asyncio
    async def test_routed_market_request(self, client):
        router = Router(HandlerRegistry([TavilyHandler(client=client)]))
        result = await router.route(Request(
            "research_market_opportunity",
            tools=["tavily-search"],
            parameters={"query": "AI planning tools"},
        ))
        assert result.success
        assert result.metadata.handler_id == "tavily"
        assert result.data["operation"] == "search"
