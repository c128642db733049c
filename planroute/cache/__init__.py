"""Decision cache: bounded local tier plus optional shared tier."""

from planroute.cache.decision_cache import CacheEntry, DecisionCache, LocalTier
from planroute.cache.shared import (
    DEFAULT_KEY_PREFIX,
    InMemorySharedTier,
    RedisSharedTier,
    SharedTier,
)

__all__ = [
    "CacheEntry",
    "DecisionCache",
    "LocalTier",
    "SharedTier",
    "InMemorySharedTier",
    "RedisSharedTier",
    "DEFAULT_KEY_PREFIX",
]
