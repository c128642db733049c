"""Two-tier memo of routing decisions keyed by request fingerprint.

Lookup order is local first, then the optional shared tier; a shared hit is
copied into the local tier. Writes go to both tiers. The shared tier is best
effort: any failure is logged at WARNING and the call continues local-only.

The local tier is a bounded LRU with optional TTL. Its state is guarded by a
``threading.Lock`` so each publish is atomic even when routers are driven
from several event loops; concurrent writers of the same key are
last-writer-wins, which is safe because equal fingerprints yield equal
decisions.

Example:
    >>> cache = DecisionCache(max_entries=128, ttl_seconds=600)
    >>> await cache.put(key, decision)
    >>> (await cache.get(key)) == decision
    True
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

from planroute.cache.shared import SharedTier
from planroute.config.settings import DEFAULT_CACHE_MAX_ENTRIES, DEFAULT_CACHE_TTL_SECONDS, DEFAULT_SHARED_TTL_SECONDS
from planroute.routing.schemas import RoutingDecision


# =============================================================================
# Module Logger
# =============================================================================

logger = logging.getLogger(__name__)


# =============================================================================
# Local Tier
# =============================================================================


@dataclass(frozen=True)
class CacheEntry:
    """One memoized decision.

    Attributes:
        key: Request fingerprint.
        decision: The cached decision.
        created_at: Monotonic timestamp of the write.
    """

    key: str
    decision: RoutingDecision
    created_at: float


class LocalTier:
    """Bounded LRU map with optional TTL.

    Attributes:
        max_entries: Capacity; the least recently used entry is evicted first.
        ttl_seconds: Entry lifetime; 0 disables expiry.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {ttl_seconds}")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self.evictions = 0
        self.expirations = 0

    def get(self, key: str) -> Optional[RoutingDecision]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self.ttl_seconds and self._clock() - entry.created_at >= self.ttl_seconds:
                del self._entries[key]
                self.expirations += 1
                return None
            self._entries.move_to_end(key)
            return entry.decision

    def put(self, key: str, decision: RoutingDecision) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(key=key, decision=decision, created_at=self._clock())
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                self.evictions += 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries


# =============================================================================
# Decision Cache
# =============================================================================


class DecisionCache:
    """Local tier plus optional shared tier.

    Attributes:
        local: The in-process LocalTier.
        shared: Optional SharedTier.
        shared_ttl_seconds: TTL passed to shared-tier writes.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        shared: Optional[SharedTier] = None,
        shared_ttl_seconds: int = DEFAULT_SHARED_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.local = LocalTier(max_entries=max_entries, ttl_seconds=ttl_seconds, clock=clock)
        self.shared = shared
        self.shared_ttl_seconds = shared_ttl_seconds
        self._stats_lock = threading.Lock()
        self._counters = {
            "local_hits": 0,
            "local_misses": 0,
            "shared_hits": 0,
            "shared_misses": 0,
            "shared_errors": 0,
            "writes": 0,
        }

    def _bump(self, counter: str) -> None:
        with self._stats_lock:
            self._counters[counter] += 1

    async def get(self, key: str) -> Optional[RoutingDecision]:
        """Look up a decision.

        Args:
            key: Request fingerprint.

        Returns:
            The cached decision, or None on a miss in every tier.
        """
        decision = self.local.get(key)
        if decision is not None:
            self._bump("local_hits")
            return decision
        self._bump("local_misses")

        if self.shared is None:
            return None

        try:
            raw = await self.shared.get(key)
            decision = self._decode(raw) if raw is not None else None
        except Exception as e:
            self._bump("shared_errors")
            logger.warning("Shared cache tier read failed, using local tier only: %s", e)
            return None

        if decision is None:
            self._bump("shared_misses")
            return None

        self._bump("shared_hits")
        self.local.put(key, decision)
        return decision

    async def put(self, key: str, decision: RoutingDecision) -> None:
        """Store a decision in every tier.

        Args:
            key: Request fingerprint.
            decision: Decision to memoize.
        """
        self.local.put(key, decision)
        self._bump("writes")
        if self.shared is None:
            return
        try:
            await self.shared.set(key, self._encode(decision), self.shared_ttl_seconds)
        except Exception as e:
            self._bump("shared_errors")
            logger.warning("Shared cache tier write failed, using local tier only: %s", e)

    @staticmethod
    def _encode(decision: RoutingDecision) -> bytes:
        return json.dumps(decision.to_dict(), sort_keys=True).encode("utf-8")

    @staticmethod
    def _decode(raw: bytes) -> RoutingDecision:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return RoutingDecision.from_dict(json.loads(raw))

    def stats(self) -> dict[str, Any]:
        """Hit, miss and size counters for both tiers."""
        with self._stats_lock:
            counters = dict(self._counters)
        return {
            "local": {
                "size": len(self.local),
                "max_entries": self.local.max_entries,
                "ttl_seconds": self.local.ttl_seconds,
                "hits": counters["local_hits"],
                "misses": counters["local_misses"],
                "evictions": self.local.evictions,
                "expirations": self.local.expirations,
            },
            "shared": {
                "backend": self.shared.name if self.shared is not None else None,
                "hits": counters["shared_hits"],
                "misses": counters["shared_misses"],
                "errors": counters["shared_errors"],
            },
            "writes": counters["writes"],
        }

    def clear(self) -> None:
        """Drop the local tier. The shared tier is left untouched."""
        self.local.clear()

    async def close(self) -> None:
        if self.shared is not None:
            await self.shared.close()


__all__ = ["CacheEntry", "LocalTier", "DecisionCache"]
