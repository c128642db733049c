"""Handler capability interface for planroute.

A handler is a pluggable unit (an AI research provider adapter or a
specialized synthesis agent) that can serve one or more capability tags.
Every handler exposes the same three things:

    handler_id: Unique, stable identifier.
    categories: Capability tags the rule table selects on
        (e.g. 'technical', 'market', 'multi-tool', 'general-research').
    is_available(): Async probe; may perform I/O and may fail.
    invoke(request): Async call that serves the request.

Example:
    >>> async def search(request):
    ...     return {"answer": "..."}
    >>> handler = FunctionHandler("market-provider", {"market"}, search)
    >>> await handler.is_available()
    True
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from planroute.routing.schemas import Request


InvokeFn = Callable[[Request], Union[Any, Awaitable[Any]]]
AvailabilityFn = Callable[[], Union[bool, Awaitable[bool]]]


class Handler(ABC):
    """Abstract base class for all handlers.

    Subclasses must set ``handler_id`` and ``categories`` and implement
    ``invoke``. ``is_available`` defaults to always available.
    """

    handler_id: str
    categories: frozenset[str]

    async def is_available(self) -> bool:
        """Report whether the handler can currently serve requests."""
        return True

    @abstractmethod
    async def invoke(self, request: Request) -> Any:
        """Serve a request.

        Args:
            request: The routed request.

        Returns:
            Handler-specific response payload.

        Raises:
            Exception: Any failure; the fallback executor treats it as a
                failed attempt.
        """

    def serves(self, tag: str) -> bool:
        return tag in self.categories

    def __repr__(self) -> str:
        return f"{type(self).__name__}(handler_id={self.handler_id!r}, categories={sorted(self.categories)!r})"


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class FunctionHandler(Handler):
    """Handler built from plain callables.

    Both callables may be sync or async.

    Attributes:
        handler_id: Unique handler identifier.
        categories: Capability tags.
    """

    def __init__(
        self,
        handler_id: str,
        categories: Iterable[str],
        invoke: InvokeFn,
        availability_check: Optional[AvailabilityFn] = None,
    ) -> None:
        if not handler_id:
            raise ValueError("handler_id must be a non-empty string")
        self.handler_id = handler_id
        self.categories = frozenset(categories)
        self._invoke = invoke
        self._availability_check = availability_check

    async def is_available(self) -> bool:
        if self._availability_check is None:
            return True
        return bool(await _maybe_await(self._availability_check()))

    async def invoke(self, request: Request) -> Any:
        return await _maybe_await(self._invoke(request))


__all__ = [
    "Handler",
    "FunctionHandler",
    "InvokeFn",
    "AvailabilityFn",
]
