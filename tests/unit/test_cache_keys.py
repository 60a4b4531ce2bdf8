# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for cache keys, invalidation and cache-aside reads."""

from unittest.mock import AsyncMock

import pytest
from pydantic import BaseModel

from schoolhub.infrastructure.cache import (
    CacheAside,
    CacheInvalidator,
    EntityKind,
    detail_key,
    invalidation_keys,
    list_key,
)


class _View(BaseModel):
    id: str
    name: str


@pytest.mark.unit
class TestKeys:
    """Tests for key builders."""

    def test_detail_key(self):
        assert detail_key(EntityKind.CLASSROOM, "c1") == "classroom:c1"

    def test_list_keys(self):
        assert list_key(EntityKind.STUDENT) == "students:list"
        assert list_key(EntityKind.STUDENT, "s1") == "students:list:s1"

    @pytest.mark.parametrize("bad", ["", "a:b"])
    def test_rejects_unsafe_components(self, bad):
        """Test that ids which could collide are refused."""
        with pytest.raises(ValueError):
            detail_key(EntityKind.SCHOOL, bad)
        with pytest.raises(ValueError):
            list_key(EntityKind.SCHOOL, bad)

    def test_invalidation_keys_order(self):
        assert invalidation_keys(EntityKind.CLASSROOM, "c1", "s1") == [
            "classroom:c1",
            "classrooms:list:s1",
            "classrooms:list",
        ]
        assert invalidation_keys(EntityKind.SCHOOL, "s1") == [
            "school:s1",
            "schools:list",
        ]


@pytest.mark.unit
class TestCacheInvalidator:
    """Tests for CacheInvalidator."""

    async def test_deletes_detail_and_list_keys(self, cache_store):
        """Test that every derived key is removed."""
        await cache_store.string.set("classroom:c1", {"id": "c1"})
        await cache_store.hash.set("classrooms:list:s1", {"q": "[]"})
        await cache_store.hash.set("classrooms:list", {"q": "[]"})

        keys = await CacheInvalidator(cache_store).classroom("c1", "s1")

        assert len(keys) == 3
        for key in keys:
            assert await cache_store.string.exists(key) is False

    async def test_failed_deletes_do_not_raise(self):
        """Test that an unreachable cache never fails the caller."""
        store = AsyncMock()
        store.string.delete = AsyncMock(return_value=False)

        keys = await CacheInvalidator(store).school("s1")

        assert keys == ["school:s1", "schools:list"]
        assert store.string.delete.await_count == 2


@pytest.mark.unit
class TestCacheAside:
    """Tests for read-through helpers."""

    async def test_detail_loads_once_then_hits(self, cache_store):
        load = AsyncMock(return_value=_View(id="c1", name="Room"))
        reader = CacheAside(cache_store, detail_ttl=30)

        first = await reader.detail(EntityKind.CLASSROOM, "c1", _View, load)
        second = await reader.detail(EntityKind.CLASSROOM, "c1", _View, load)

        assert first == second == _View(id="c1", name="Room")
        load.assert_awaited_once()

    async def test_invalid_cached_detail_counts_as_miss(self, cache_store):
        """Test that an entry that no longer validates is reloaded."""
        await cache_store.string.set("classroom:c1", {"unexpected": True})
        load = AsyncMock(return_value=_View(id="c1", name="Fresh"))

        value = await CacheAside(cache_store).detail(EntityKind.CLASSROOM, "c1", _View, load)

        assert value.name == "Fresh"
        assert await cache_store.string.get("classroom:c1") == {"id": "c1", "name": "Fresh"}

    async def test_unsafe_id_bypasses_cache(self, cache_store):
        load = AsyncMock(return_value=_View(id="a:b", name="x"))

        await CacheAside(cache_store).detail(EntityKind.SCHOOL, "a:b", _View, load)

        assert cache_store.stats.hits == cache_store.stats.misses == 0
        load.assert_awaited_once()

    async def test_page_is_cached_per_signature(self, cache_store, redis_client):
        load_a = AsyncMock(return_value=_View(id="1", name="a"))
        load_b = AsyncMock(return_value=_View(id="2", name="b"))
        reader = CacheAside(cache_store, list_ttl=20)

        await reader.page(EntityKind.STUDENT, "s1", "qa", _View, load_a)
        await reader.page(EntityKind.STUDENT, "s1", "qb", _View, load_b)
        again = await reader.page(EntityKind.STUDENT, "s1", "qa", _View, load_a)

        assert again.name == "a"
        load_a.assert_awaited_once()
        load_b.assert_awaited_once()
        ttl = await redis_client.connection().ttl(redis_client.key("students:list:s1"))
        assert 0 < ttl <= 20
