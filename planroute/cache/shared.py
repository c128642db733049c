"""Shared (cross-process) tier of the decision cache.

The shared tier is a plain bytes key-value store with per-key TTL. The
decision cache treats it as best effort: every failure is reported as a
CacheTierError and degrades the cache to local-only for that call.

Classes:
    SharedTier: Protocol every shared tier satisfies.
    InMemorySharedTier: Process-local implementation for tests and
        single-process deployments.
    RedisSharedTier: Redis implementation on ``redis.asyncio``.

Example:
    >>> tier = InMemorySharedTier()
    >>> await tier.set("k", b"v", ttl_seconds=60)
    >>> await tier.get("k")
    b'v'
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Protocol, runtime_checkable

import redis.asyncio as redis

from planroute.core.exceptions import CacheTierError


# =============================================================================
# Module Logger
# =============================================================================

logger = logging.getLogger(__name__)


DEFAULT_KEY_PREFIX = "planroute:routing:"


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class SharedTier(Protocol):
    """Protocol for shared cache tiers.

    ``ttl_seconds`` of 0 or less stores the value without expiry.
    """

    name: str

    async def get(self, key: str) -> Optional[bytes]:
        ...

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        ...

    async def close(self) -> None:
        ...


# =============================================================================
# In-Memory Tier
# =============================================================================


class InMemorySharedTier:
    """Dictionary-backed shared tier.

    Data is lost when the process ends. Safe for concurrent coroutines
    through an asyncio lock.
    """

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._data: dict[str, tuple[bytes, Optional[float]]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get(self, key: str) -> Optional[bytes]:
        async with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._data[key]
                return None
            return value

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds > 0 else None
        async with self._lock:
            self._data[key] = (value, expires_at)

    async def close(self) -> None:
        return None

    def clear(self) -> None:
        """Drop all entries. Synchronous for use in test fixtures."""
        self._data.clear()

    def size(self) -> int:
        return len(self._data)


# =============================================================================
# Redis Tier
# =============================================================================


class RedisSharedTier:
    """Redis-backed shared tier.

    Keys are namespaced with ``key_prefix``. Any Redis error is re-raised as
    CacheTierError.

    Attributes:
        url: Redis connection URL.
        key_prefix: Namespace prepended to every key.
    """

    name = "redis"

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        key_prefix: str = DEFAULT_KEY_PREFIX,
        client: Optional[redis.Redis] = None,
    ) -> None:
        self.url = url
        self.key_prefix = key_prefix
        self._client = client

    def _ensure_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(self.url)
            logger.info("Redis shared tier connected to %s", self.url)
        return self._client

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[bytes]:
        try:
            return await self._ensure_client().get(self._key(key))
        except redis.RedisError as e:
            raise CacheTierError(f"Redis get failed: {e}", tier=self.name) from e

    async def set(self, key: str, value: bytes, ttl_seconds: int) -> None:
        try:
            client = self._ensure_client()
            if ttl_seconds > 0:
                await client.setex(self._key(key), ttl_seconds, value)
            else:
                await client.set(self._key(key), value)
        except redis.RedisError as e:
            raise CacheTierError(f"Redis set failed: {e}", tier=self.name) from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis shared tier closed")


__all__ = [
    "DEFAULT_KEY_PREFIX",
    "SharedTier",
    "InMemorySharedTier",
    "RedisSharedTier",
]
