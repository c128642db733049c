"""Handler registry for planroute.

The registry holds handlers keyed by id and tagged with capability
categories. It is populated once at startup and frozen before routing
starts; after ``freeze()`` it is read-only, so concurrent routes can read it
without locking.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

from planroute.core.exceptions import RegistryError
from planroute.handlers.base import Handler


logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Append-only registry of handlers.

    Example:
        >>> registry = HandlerRegistry()
        >>> registry.register(FunctionHandler("tech", {"technical"}, fn))
        >>> [h.handler_id for h in registry.find("technical")]
        ['tech']
    """

    def __init__(self, handlers: Optional[Iterable[Handler]] = None) -> None:
        self._handlers: dict[str, Handler] = {}
        self._frozen = False
        for handler in handlers or ():
            self.register(handler)

    def register(self, handler: Handler) -> None:
        """Register a handler.

        Args:
            handler: Handler to add.

        Raises:
            RegistryError: If the registry is frozen or the id is taken.
        """
        if self._frozen:
            raise RegistryError(
                f"Cannot register '{handler.handler_id}': registry is frozen",
                handler_id=handler.handler_id,
            )
        if handler.handler_id in self._handlers:
            raise RegistryError(
                f"Handler '{handler.handler_id}' is already registered",
                handler_id=handler.handler_id,
            )
        self._handlers[handler.handler_id] = handler
        logger.debug(
            "Registered handler %s with categories %s",
            handler.handler_id, sorted(handler.categories),
        )

    def freeze(self) -> "HandlerRegistry":
        """Make the registry read-only. Idempotent."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def find(self, tag: str) -> list[Handler]:
        """Return handlers serving ``tag`` in registration order."""
        return [h for h in self._handlers.values() if h.serves(tag)]

    def get(self, handler_id: str) -> Optional[Handler]:
        return self._handlers.get(handler_id)

    def handler_ids(self) -> list[str]:
        """Registered handler ids in registration order."""
        return list(self._handlers)

    async def is_available(self, handler_id: str) -> bool:
        """Probe a handler's availability.

        Unknown ids and probes that raise report False; the failure is
        logged rather than propagated.

        Args:
            handler_id: Handler to probe.

        Returns:
            True if the handler reports itself available.
        """
        handler = self._handlers.get(handler_id)
        if handler is None:
            logger.warning("Availability probe for unknown handler '%s'", handler_id)
            return False
        try:
            return bool(await handler.is_available())
        except Exception as e:
            logger.warning("Availability probe for '%s' failed: %s", handler_id, e)
            return False

    def __contains__(self, handler_id: object) -> bool:
        return handler_id in self._handlers

    def __iter__(self) -> Iterator[Handler]:
        return iter(list(self._handlers.values()))

    def __len__(self) -> int:
        return len(self._handlers)


__all__ = ["HandlerRegistry"]
