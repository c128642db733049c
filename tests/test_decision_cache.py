"""Tests for the two-tier decision cache.

Test Coverage:
- LRU eviction and TTL expiry in the local tier
- Shared-tier read-through and write-through
- Shared-tier failures degrade to local-only
- Redis tier key prefixing and error wrapping
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from planroute.cache.decision_cache import DecisionCache, LocalTier
from planroute.cache.shared import DEFAULT_KEY_PREFIX, InMemorySharedTier, RedisSharedTier
from planroute.core.exceptions import CacheTierError
from planroute.routing.schemas import Category, RoutingDecision


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _decision(handler_id="market-provider", complexity=4) -> RoutingDecision:
    return RoutingDecision(
        use_handler=True,
        handler_id=handler_id,
        category=Category.MARKET,
        complexity=complexity,
        reasoning="rule 'market'",
        handler_tag="market",
        rule_name="market",
    )


# =============================================================================
# Test: Local Tier
# =============================================================================


class TestLocalTier:

    def test_lru_eviction(self):
        tier = LocalTier(max_entries=2, ttl_seconds=0)
        tier.put("a", _decision("a"))
        tier.put("b", _decision("b"))
        assert tier.get("a") is not None  # a is now most recent
        tier.put("c", _decision("c"))
        assert "b" not in tier
        assert "a" in tier
        assert "c" in tier
        assert tier.evictions == 1

    def test_ttl_expiry(self):
        clock = FakeClock()
        tier = LocalTier(max_entries=10, ttl_seconds=60, clock=clock)
        tier.put("a", _decision())
        clock.now += 59
        assert tier.get("a") is not None
        clock.now += 1
        assert tier.get("a") is None
        assert tier.expirations == 1
        assert len(tier) == 0

    def test_zero_ttl_never_expires(self):
        clock = FakeClock()
        tier = LocalTier(ttl_seconds=0, clock=clock)
        tier.put("a", _decision())
        clock.now += 10 ** 9
        assert tier.get("a") is not None

    def test_invalid_bounds(self):
        with pytest.raises(ValueError):
            LocalTier(max_entries=0)
        with pytest.raises(ValueError):
            LocalTier(ttl_seconds=-1)


# =============================================================================
# Test: Decision Cache
# =============================================================================


class TestDecisionCache:

    @pytest.mark.asyncio
    async def test_miss_then_hit(self):
        cache = DecisionCache()
        assert await cache.get("k") is None
        await cache.put("k", _decision())
        assert await cache.get("k") == _decision()
        stats = cache.stats()
        assert stats["local"]["hits"] == 1
        assert stats["local"]["misses"] == 1
        assert stats["shared"]["backend"] is None

    @pytest.mark.asyncio
    async def test_writes_reach_shared_tier(self):
        shared = InMemorySharedTier()
        cache = DecisionCache(shared=shared)
        await cache.put("k", _decision())
        raw = await shared.get("k")
        assert json.loads(raw)["handler_id"] == "market-provider"

    @pytest.mark.asyncio
    async def test_shared_hit_populates_local(self):
        shared = InMemorySharedTier()
        await DecisionCache(shared=shared).put("k", _decision())

        other_process = DecisionCache(shared=shared)
        assert await other_process.get("k") == _decision()
        assert "k" in other_process.local
        assert other_process.stats()["shared"]["hits"] == 1

    @pytest.mark.asyncio
    async def test_shared_read_failure_degrades(self, caplog):
        shared = MagicMock()
        shared.name = "redis"
        shared.get = AsyncMock(side_effect=CacheTierError("down", tier="redis"))
        cache = DecisionCache(shared=shared)
        assert await cache.get("k") is None
        assert cache.stats()["shared"]["errors"] == 1
        assert "Shared cache tier read failed" in caplog.text

    @pytest.mark.asyncio
    async def test_shared_write_failure_keeps_local(self):
        shared = MagicMock()
        shared.name = "redis"
        shared.set = AsyncMock(side_effect=ConnectionError("refused"))
        cache = DecisionCache(shared=shared)
        await cache.put("k", _decision())
        assert await cache.get("k") == _decision()

    @pytest.mark.asyncio
    async def test_corrupt_shared_entry_is_a_miss(self):
        shared = InMemorySharedTier()
        await shared.set("k", b"not json", ttl_seconds=0)
        cache = DecisionCache(shared=shared)
        assert await cache.get("k") is None
        assert cache.stats()["shared"]["errors"] == 1


# =============================================================================
# Test: Shared Tiers
# =============================================================================


class TestInMemorySharedTier:

    @pytest.mark.asyncio
    async def test_ttl(self):
        clock = FakeClock()
        tier = InMemorySharedTier(clock=clock)
        await tier.set("k", b"v", ttl_seconds=10)
        assert await tier.get("k") == b"v"
        clock.now += 10
        assert await tier.get("k") is None
        assert tier.size() == 0


class TestRedisSharedTier:

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.get = AsyncMock(return_value=b"payload")
        client.setex = AsyncMock()
        client.set = AsyncMock()
        client.aclose = AsyncMock()
        return client

    @pytest.mark.asyncio
    async def test_keys_are_prefixed(self, client):
        tier = RedisSharedTier(client=client)
        assert await tier.get("abc") == b"payload"
        client.get.assert_awaited_once_with(f"{DEFAULT_KEY_PREFIX}abc")
        await tier.set("abc", b"v", ttl_seconds=3600)
        client.setex.assert_awaited_once_with(f"{DEFAULT_KEY_PREFIX}abc", 3600, b"v")

    @pytest.mark.asyncio
    async def test_redis_errors_wrapped(self, client):
        client.get.side_effect = redis.ConnectionError("refused")
        tier = RedisSharedTier(client=client)
        with pytest.raises(CacheTierError) as exc_info:
            await tier.get("abc")
        assert exc_info.value.tier == "redis"

    @pytest.mark.asyncio
    async def test_close(self, client):
        tier = RedisSharedTier(client=client)
        await tier.close()
        client.aclose.assert_awaited_once()
