# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the fail-closed cache store."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from schoolhub.infrastructure.cache import (
    CacheKeyError,
    CacheStatus,
    CacheStore,
    RedisClient,
    SortDirection,
)


@pytest.fixture
def down_store(settings, redis_client, redis_server) -> CacheStore:
    """Provide a store whose Redis server has gone away after connecting."""
    redis_server.connected = False
    return CacheStore(redis_client, operation_timeout=settings.cache.operation_timeout)


@pytest.fixture
def unconnected_store(settings) -> CacheStore:
    """Provide a store over a client that never connected."""
    return CacheStore(RedisClient(settings), operation_timeout=0.1)


@pytest.mark.unit
class TestStringShape:
    """Tests for string values."""

    async def test_set_and_get_roundtrips_json(self, cache_store):
        """Test that structured values come back decoded."""
        assert await cache_store.string.set("school:1", {"name": "Acme", "n": 3}) is True

        assert await cache_store.string.get("school:1") == {"name": "Acme", "n": 3}

    async def test_get_falls_back_to_raw_value(self, cache_store, redis_client):
        """Test that a non-JSON value is returned as stored."""
        await redis_client.connection().set(redis_client.key("greeting"), "hello world")

        assert await cache_store.string.get("greeting") == "hello world"

    async def test_keys_are_prefixed(self, cache_store, redis_client):
        """Test that stored keys carry the configured namespace."""
        await cache_store.string.set("school:1", "x")

        assert await redis_client.connection().get("test:ch:school:1") == "x"

    async def test_lookup_distinguishes_hit_and_miss(self, cache_store):
        """Test typed results for hits and misses."""
        await cache_store.string.set("present", "1")

        hit = await cache_store.string.lookup("present")
        miss = await cache_store.string.lookup("absent")

        assert hit.status is CacheStatus.HIT
        assert hit.value == 1
        assert miss.status is CacheStatus.MISS
        assert miss.value is None
        assert cache_store.stats.hits == 1
        assert cache_store.stats.misses == 1

    async def test_set_with_ttl_and_expire(self, cache_store, redis_client):
        """Test TTL handling."""
        await cache_store.string.set("temp", "v", ttl=30)
        ttl = await redis_client.connection().ttl(redis_client.key("temp"))
        assert 0 < ttl <= 30

        assert await cache_store.string.expire("temp", 100) is True
        assert await cache_store.string.expire("missing", 100) is False

    async def test_delete_missing_key_is_success(self, cache_store):
        """Test that deleting an absent key still reports success."""
        assert await cache_store.string.delete("never-set") is True

    async def test_exists(self, cache_store):
        """Test key existence checks."""
        await cache_store.string.set("here", "1")

        assert await cache_store.string.exists("here") is True
        assert await cache_store.string.exists("gone") is False


@pytest.mark.unit
class TestHashShape:
    """Tests for hash values."""

    async def test_set_get_and_fields(self, cache_store):
        """Test setting and reading fields."""
        created = await cache_store.hash.set("h", {"a": "1", "b": {"x": 1}})

        assert created == 2
        assert await cache_store.hash.get("h") == {"a": "1", "b": '{"x": 1}'}
        assert await cache_store.hash.get_field("h", "a") == "1"
        assert await cache_store.hash.get_fields("h", ["a", "missing"]) == {
            "a": "1",
            "missing": None,
        }

    async def test_incr_by_and_delete(self, cache_store):
        """Test numeric increments and field deletion."""
        assert await cache_store.hash.incr_by("counters", "views") == 1
        assert await cache_store.hash.incr_by("counters", "views", 4) == 5
        assert await cache_store.hash.delete("counters", ["views"]) == 1
        assert await cache_store.hash.get("counters") == {}


@pytest.mark.unit
class TestSetShape:
    """Tests for set values."""

    async def test_add_remove_get_has(self, cache_store):
        """Test member operations."""
        assert await cache_store.set.add("tags", ["a", "b", "a"]) == 2
        assert await cache_store.set.has("tags", "a") is True
        assert await cache_store.set.remove("tags", ["a"]) == 1
        assert await cache_store.set.get("tags") == {"b"}


@pytest.mark.unit
class TestSortedShape:
    """Tests for sorted-set values."""

    async def test_get_orders_high_to_low_by_default(self, cache_store):
        """Test default ordering and score output."""
        await cache_store.sorted.set("rank", {"a": 1, "b": 3, "c": 2})

        assert await cache_store.sorted.get("rank") == ["b", "c", "a"]
        assert await cache_store.sorted.get(
            "rank", direction=SortDirection.LOW_TO_HIGH
        ) == ["a", "c", "b"]
        assert await cache_store.sorted.get("rank", with_scores=True, end=1) == {
            "b": 3.0,
            "c": 2.0,
        }

    async def test_update_incr_and_remove(self, cache_store):
        """Test score replacement, increments and removal."""
        await cache_store.sorted.set("rank", {"a": 1})
        await cache_store.sorted.update("rank", {"a": 10})

        assert await cache_store.sorted.incr_by("rank", "a", 5) == 15.0
        assert await cache_store.sorted.remove("rank", "a") is True
        assert await cache_store.sorted.get("rank") == []


@pytest.mark.unit
class TestKeyValidation:
    """Tests for the missing-key contract violation."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.string.get(""),
            lambda s: s.string.set("", "v"),
            lambda s: s.string.delete(""),
            lambda s: s.hash.set("", {"a": "1"}),
            lambda s: s.hash.get_field("", "a"),
            lambda s: s.set.add("", ["a"]),
            lambda s: s.sorted.get(""),
        ],
    )
    async def test_empty_key_raises(self, cache_store, call):
        """Test that an empty key is raised, not swallowed."""
        with pytest.raises(CacheKeyError):
            await call(cache_store)

    async def test_empty_key_raises_even_when_cache_is_down(self, down_store):
        """Test that the contract violation is independent of availability."""
        with pytest.raises(CacheKeyError):
            await down_store.string.set("", "v")


@pytest.mark.unit
class TestFailClosed:
    """Tests for degraded mode: failures become empty values."""

    async def test_reads_return_empty_values(self, down_store):
        """Test that every read shape yields its empty value."""
        assert await down_store.string.get("k") is None
        assert await down_store.hash.get("k") == {}
        assert await down_store.hash.get_fields("k", ["a"]) == {}
        assert await down_store.set.get("k") == set()
        assert await down_store.sorted.get("k") == []
        assert await down_store.sorted.get("k", with_scores=True) == {}
        assert await down_store.string.exists("k") is False

    async def test_writes_return_falsy(self, down_store):
        """Test that every write reports failure without raising."""
        assert await down_store.string.set("k", "v") is False
        assert await down_store.string.delete("k") is False
        assert await down_store.hash.set("k", {"a": "1"}) == 0
        assert await down_store.hash.incr_by("k", "a") is None
        assert await down_store.set.add("k", ["a"]) == 0
        assert await down_store.sorted.set("k", {"a": 1}) is False

    async def test_lookup_reports_unavailable(self, down_store):
        """Test that an outage is distinguishable from a miss."""
        result = await down_store.string.lookup("k")

        assert result.status is CacheStatus.UNAVAILABLE
        assert result.available is False
        assert down_store.stats.failures == 1

    async def test_unconnected_client_is_unavailable(self, unconnected_store):
        """Test that a never-connected client degrades like an outage."""
        assert unconnected_store._client.is_connected is False
        assert (await unconnected_store.string.lookup("k")).status is CacheStatus.UNAVAILABLE
        assert await unconnected_store.ping() is False

    async def test_slow_command_times_out(self, settings):
        """Test that a hanging Redis call is bounded by the operation timeout."""

        async def hang(*args, **kwargs):
            await asyncio.sleep(10)

        redis = MagicMock()
        redis.get = AsyncMock(side_effect=hang)
        client = RedisClient(settings, redis=redis)
        store = CacheStore(client, operation_timeout=0.05)

        result = await store.string.lookup("slow")

        assert result.status is CacheStatus.UNAVAILABLE

    async def test_transport_error_is_logged_and_swallowed(self, settings):
        """Test that a connection error never reaches the caller."""
        redis = MagicMock()
        redis.set = AsyncMock(side_effect=RedisConnectionError("refused"))
        store = CacheStore(RedisClient(settings, redis=redis))

        assert await store.string.set("k", "v") is False
        assert store.stats.failures == 1

    async def test_disabled_store_skips_io(self, settings):
        """Test that a disabled store never touches Redis."""
        redis = MagicMock()
        store = CacheStore(RedisClient(settings, redis=redis), enabled=False)

        assert await store.string.get("k") is None
        assert await store.ping() is False
        redis.get.assert_not_called()
