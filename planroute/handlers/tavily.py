"""Tavily web-search handler for planroute.

Serves routed requests through the native tavily-python SDK
(``AsyncTavilyClient``). Market and general research requests are answered
with a web search; requests that carry ``urls`` and either name the
``tavily-extract`` tool or an extract operation get a content extraction.

Availability is "an API key is configured"; no network probe is made.

Example:
    >>> handler = TavilyHandler(api_key="tvly-...")
    >>> result = await handler.invoke(Request(
    ...     "research_market_opportunity",
    ...     parameters={"query": "AI planning tools market size"},
    ... ))
    >>> result["operation"]
    'search'
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from tavily import AsyncTavilyClient

from planroute.core.exceptions import HandlerInvocationError, HandlerUnavailableError
from planroute.handlers.base import Handler
from planroute.routing.classifier import normalize_text
from planroute.routing.schemas import Request


# =============================================================================
# Module Logger
# =============================================================================

logger = logging.getLogger(__name__)


DEFAULT_CATEGORIES: frozenset[str] = frozenset({"market", "general-research"})

SEARCH_OPTIONS: tuple[str, ...] = (
    "search_depth",
    "include_answer",
    "include_raw_content",
    "include_domains",
    "exclude_domains",
    "topic",
)


# =============================================================================
# Tavily Handler
# =============================================================================


class TavilyHandler(Handler):
    """Handler backed by Tavily's search and extract APIs.

    Attributes:
        handler_id: Handler identifier (default 'tavily').
        categories: Capability tags served.
        max_results: Default ``max_results`` for searches.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        handler_id: str = "tavily",
        categories: Iterable[str] = DEFAULT_CATEGORIES,
        max_results: int = 5,
        client: Optional[Any] = None,
    ) -> None:
        """Initialize the handler.

        Args:
            api_key: Tavily API key. Without one the handler reports itself
                unavailable.
            handler_id: Registry id.
            categories: Capability tags.
            max_results: Default result count for searches.
            client: Pre-built client, mainly for tests.
        """
        self.handler_id = handler_id
        self.categories = frozenset(categories)
        self.max_results = max_results
        self._api_key = api_key
        self._client = client

    def _ensure_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self._api_key:
            raise HandlerUnavailableError(self.handler_id, reason="Tavily API key not configured")
        self._client = AsyncTavilyClient(api_key=self._api_key)
        logger.debug("Tavily client initialized for handler %s", self.handler_id)
        return self._client

    async def is_available(self) -> bool:
        return self._client is not None or bool(self._api_key)

    async def invoke(self, request: Request) -> dict[str, Any]:
        """Run a search or an extraction for the request.

        Args:
            request: The routed request.

        Returns:
            Dict with ``operation`` ('search' or 'extract') and the raw
            Tavily ``result``.

        Raises:
            HandlerUnavailableError: If no API key is configured.
            HandlerInvocationError: If arguments are missing or the API call
                fails.
        """
        client = self._ensure_client()
        operation = "extract" if self._wants_extract(request) else "search"
        logger.info("[Tavily] %s -> %s", request.operation_name, operation)

        try:
            if operation == "extract":
                result = await self._extract(client, request)
            else:
                result = await self._search(client, request)
        except HandlerInvocationError:
            raise
        except Exception as e:
            logger.error("[Tavily] %s failed: %s", request.operation_name, e)
            raise HandlerInvocationError(
                self.handler_id, reason=f"Tavily API call failed: {e}", cause=e
            ) from e

        logger.info("[Tavily] %s completed successfully", request.operation_name)
        return {"operation": operation, "result": result}

    def _wants_extract(self, request: Request) -> bool:
        if not request.parameters.get("urls"):
            return False
        return "tavily-extract" in request.tools or "extract" in normalize_text(request.operation_name)

    async def _search(self, client: Any, request: Request) -> Any:
        params = request.parameters
        query = params.get("query") or request.context.get("query")
        if not query:
            raise HandlerInvocationError(self.handler_id, reason="'query' parameter is required for search")

        search_kwargs: dict[str, Any] = {
            "query": query,
            "max_results": params.get("max_results", self.max_results),
        }
        for option in SEARCH_OPTIONS:
            if option in params:
                search_kwargs[option] = params[option]

        logger.debug("[Tavily] Search kwargs: %s", search_kwargs)
        return await client.search(**search_kwargs)

    async def _extract(self, client: Any, request: Request) -> Any:
        urls = request.parameters["urls"]
        if isinstance(urls, str):
            urls = [urls]
        return await client.extract(urls=list(urls))


__all__ = ["TavilyHandler", "DEFAULT_CATEGORIES"]
