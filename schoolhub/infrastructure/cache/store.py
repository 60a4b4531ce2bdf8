# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Best-effort key-value cache over Redis.

CacheStore exposes four value shapes (string, hash, set, sorted set), each
reached through an attribute:

    await store.string.set("school:1", payload, ttl=300)
    await store.hash.get_fields("classrooms:list", ["q1", "q2"])
    await store.set.add("tags", ["a", "b"])
    await store.sorted.get("ranking", with_scores=True)

Every operation fails closed. A transport error, a timeout or a missing
connection is logged and then turned into the shape's empty value for reads
(None, {}, set(), [] or False) and a falsy indicator for writes. Nothing
Redis-related reaches the caller. The one exception is an empty key, which
is a programming error and raises CacheKeyError.

Callers that need to tell a miss from an outage use ``lookup``, which
returns a CacheResult carrying a CacheStatus.
"""

import asyncio
import json
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from redis.asyncio import Redis
from redis.exceptions import RedisError as BaseRedisError

from schoolhub.infrastructure.cache.redis_client import RedisClient, RedisError
from schoolhub.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_CACHE_FAILURES = (BaseRedisError, RedisError, TimeoutError, OSError)

DEFAULT_SORTED_END = 50


class CacheKeyError(ValueError):
    """Raised when a cache operation is called without a key."""


class CacheStatus(str, Enum):
    """Outcome of a cache operation."""

    HIT = "hit"
    MISS = "miss"
    OK = "ok"
    UNAVAILABLE = "unavailable"


class SortDirection(str, Enum):
    """Ordering for sorted-set reads."""

    HIGH_TO_LOW = "H2L"
    LOW_TO_HIGH = "L2H"


@dataclass(frozen=True, slots=True)
class CacheResult(Generic[T]):
    """Typed outcome of a cache call.

    Attributes:
        status: HIT/MISS for reads, OK for writes, UNAVAILABLE on failure.
        value: Returned value, the shape's empty value unless HIT or OK.
    """

    status: CacheStatus
    value: T

    @property
    def hit(self) -> bool:
        return self.status is CacheStatus.HIT

    @property
    def available(self) -> bool:
        return self.status is not CacheStatus.UNAVAILABLE


@dataclass(slots=True)
class CacheStats:
    """Running counters, mainly for health checks and tests."""

    hits: int = 0
    misses: int = 0
    failures: int = 0


def _require_key(key: str) -> None:
    if not key:
        raise CacheKeyError("Cache key is missing")


def _serialize(value: Any) -> str:
    """Serialize a value to a JSON string, strings pass through."""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


def _deserialize(value: str | None) -> Any:
    """Decode JSON, falling back to the raw value."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return value


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, dict, set, tuple)):
        return len(value) == 0
    return False


class CacheStore:
    """Fail-closed cache facade over a shared RedisClient.

    Attributes:
        string: Plain key/value operations.
        hash: Field map operations.
        set: Unordered member operations.
        sorted: Scored member operations.
        stats: Hit, miss and failure counters.
    """

    def __init__(
        self,
        client: RedisClient,
        operation_timeout: float = 0.25,
        enabled: bool = True,
    ) -> None:
        """Initialize the store.

        Args:
            client: Shared Redis client, connected by process startup.
            operation_timeout: Upper bound in seconds for one call.
            enabled: When False every call reports UNAVAILABLE without I/O.
        """
        self._client = client
        self._timeout = operation_timeout
        self._enabled = enabled
        self.stats = CacheStats()

        self.string = StringCache(self)
        self.hash = HashCache(self)
        self.set = SetCache(self)
        self.sorted = SortedSetCache(self)

    def full_key(self, key: str) -> str:
        return self._client.key(key)

    async def ping(self) -> bool:
        """Check if the cache backend is reachable."""
        if not self._enabled:
            return False
        return await self._client.ping()

    async def execute(
        self,
        operation: str,
        key: str,
        command: Callable[[Redis], Awaitable[T]],
        *,
        default: T,
        read: bool = False,
    ) -> CacheResult[T]:
        """Run one Redis command under the fail-closed policy.

        Args:
            operation: Name used in logs, e.g. ``string.get``.
            key: Unprefixed key, for logs.
            command: Coroutine factory receiving the connection.
            default: Value returned on failure or miss.
            read: Classify the outcome as HIT/MISS instead of OK.

        Returns:
            The outcome. Failures are never raised.
        """
        if not self._enabled:
            return CacheResult(CacheStatus.UNAVAILABLE, default)

        try:
            redis = self._client.connection()
            async with asyncio.timeout(self._timeout):
                value = await command(redis)
        except _CACHE_FAILURES as e:
            self.stats.failures += 1
            logger.warning(
                "cache_unavailable",
                operation=operation,
                key=key,
                error=str(e) or type(e).__name__,
            )
            return CacheResult(CacheStatus.UNAVAILABLE, default)

        if not read:
            return CacheResult(CacheStatus.OK, value)
        if _is_empty(value):
            self.stats.misses += 1
            return CacheResult(CacheStatus.MISS, default)
        self.stats.hits += 1
        return CacheResult(CacheStatus.HIT, value)


class _Shape:
    def __init__(self, store: CacheStore) -> None:
        self._store = store


class StringCache(_Shape):
    """String values with optional TTL."""

    async def lookup(self, key: str) -> CacheResult[Any]:
        """Read a value and report whether it was a hit, miss or outage.

        The stored string is JSON-decoded when possible, otherwise the raw
        value is returned.
        """
        _require_key(key)
        full = self._store.full_key(key)
        result = await self._store.execute(
            "string.get", key, lambda r: r.get(full), default=None, read=True
        )
        if result.hit:
            return CacheResult(CacheStatus.HIT, _deserialize(result.value))
        return result

    async def get(self, key: str) -> Any:
        return (await self.lookup(key)).value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store a value, JSON-encoding anything that is not a string.

        Returns:
            True if stored, False otherwise.
        """
        _require_key(key)
        full = self._store.full_key(key)
        payload = _serialize(value)
        result = await self._store.execute(
            "string.set",
            key,
            lambda r: r.set(full, payload, ex=ttl or None),
            default=False,
        )
        return result.available

    async def delete(self, key: str) -> bool:
        """Delete a key. A missing key still counts as success."""
        _require_key(key)
        full = self._store.full_key(key)
        result = await self._store.execute(
            "string.delete", key, lambda r: r.delete(full), default=0
        )
        return result.available

    async def exists(self, key: str) -> bool:
        _require_key(key)
        full = self._store.full_key(key)
        result = await self._store.execute(
            "string.exists", key, lambda r: r.exists(full), default=0
        )
        return bool(result.value)

    async def expire(self, key: str, seconds: int) -> bool:
        """Set a TTL on any key.

        Returns:
            True if the timeout was set, False if the key is missing or the
            cache is unavailable.
        """
        _require_key(key)
        full = self._store.full_key(key)
        result = await self._store.execute(
            "string.expire", key, lambda r: r.expire(full, seconds), default=False
        )
        return bool(result.value)


class HashCache(_Shape):
    """Field maps stored under one key."""

    async def set(self, key: str, data: Mapping[str, Any]) -> int:
        """Set several fields at once.

        Returns:
            Number of fields newly created, 0 on failure.
        """
        _require_key(key)
        if not data:
            return 0
        full = self._store.full_key(key)
        mapping = {field: _serialize(value) for field, value in data.items()}
        result = await self._store.execute(
            "hash.set", key, lambda r: r.hset(full, mapping=mapping), default=0
        )
        return int(result.value or 0)

    async def lookup(self, key: str) -> CacheResult[dict[str, str]]:
        full = self._store.full_key(key)
        return await self._store.execute(
            "hash.get", key, lambda r: r.hgetall(full), default={}, read=True
        )

    async def get(self, key: str) -> dict[str, str]:
        return (await self.lookup(key)).value

    async def get_field(self, key: str, field: str) -> str | None:
        _require_key(key)
        full = self._store.full_key(key)
        result = await self._store.execute(
            "hash.get_field", key, lambda r: r.hget(full, field), default=None, read=True
        )
        return result.value

    async def get_fields(self, key: str, fields: list[str]) -> dict[str, str | None]:
        """Read several fields; missing ones map to None."""
        _require_key(key)
        if not fields:
            return {}
        full = self._store.full_key(key)
        result = await self._store.execute(
            "hash.get_fields", key, lambda r: r.hmget(full, fields), default=None
        )
        if result.value is None:
            return {}
        return dict(zip(fields, result.value))

    async def incr_by(self, key: str, field: str, delta: int = 1) -> int | None:
        """Increment a numeric field.

        Returns:
            The new value, or None on failure.
        """
        _require_key(key)
        full = self._store.full_key(key)
        result = await self._store.execute(
            "hash.incr_by", key, lambda r: r.hincrby(full, field, delta), default=None
        )
        return result.value

    async def delete(self, key: str, fields: Iterable[str]) -> int:
        _require_key(key)
        fields = list(fields)
        if not fields:
            return 0
        full = self._store.full_key(key)
        result = await self._store.execute(
            "hash.delete", key, lambda r: r.hdel(full, *fields), default=0
        )
        return int(result.value or 0)


class SetCache(_Shape):
    """Unordered unique members."""

    async def add(self, key: str, members: Iterable[str]) -> int:
        _require_key(key)
        members = list(members)
        if not members:
            return 0
        full = self._store.full_key(key)
        result = await self._store.execute(
            "set.add", key, lambda r: r.sadd(full, *members), default=0
        )
        return int(result.value or 0)

    async def remove(self, key: str, members: Iterable[str]) -> int:
        _require_key(key)
        members = list(members)
        if not members:
            return 0
        full = self._store.full_key(key)
        result = await self._store.execute(
            "set.remove", key, lambda r: r.srem(full, *members), default=0
        )
        return int(result.value or 0)

    async def get(self, key: str) -> set[str]:
        full = self._store.full_key(key)
        result = await self._store.execute(
            "set.get", key, lambda r: r.smembers(full), default=set(), read=True
        )
        return set(result.value)

    async def has(self, key: str, member: str) -> bool:
        _require_key(key)
        full = self._store.full_key(key)
        result = await self._store.execute(
            "set.has", key, lambda r: r.sismember(full, member), default=False
        )
        return bool(result.value)


class SortedSetCache(_Shape):
    """Members ordered by score."""

    async def set(self, key: str, scores: Mapping[str, float]) -> bool:
        """Add members or replace their scores."""
        _require_key(key)
        if not scores:
            return False
        full = self._store.full_key(key)
        mapping = dict(scores)
        result = await self._store.execute(
            "sorted.set", key, lambda r: r.zadd(full, mapping), default=0
        )
        return result.available

    async def update(self, key: str, scores: Mapping[str, float]) -> bool:
        """Replace member scores, same as set."""
        return await self.set(key, scores)

    async def incr_by(self, key: str, member: str, delta: float) -> float | None:
        _require_key(key)
        full = self._store.full_key(key)
        result = await self._store.execute(
            "sorted.incr_by", key, lambda r: r.zincrby(full, delta, member), default=None
        )
        return result.value

    async def remove(self, key: str, member: str) -> bool:
        _require_key(key)
        full = self._store.full_key(key)
        result = await self._store.execute(
            "sorted.remove", key, lambda r: r.zrem(full, member), default=0
        )
        return bool(result.value)

    async def get(
        self,
        key: str,
        *,
        direction: SortDirection = SortDirection.HIGH_TO_LOW,
        with_scores: bool = False,
        start: int = 0,
        end: int | None = None,
    ) -> list[str] | dict[str, float]:
        """Read a rank range.

        Args:
            key: Sorted-set key.
            direction: HIGH_TO_LOW (default) or LOW_TO_HIGH.
            with_scores: Return ``{member: score}`` instead of a list.
            start: First rank, inclusive.
            end: Last rank, inclusive, defaults to 50.

        Returns:
            Ordered members, or a member-to-score dict when with_scores.
        """
        _require_key(key)
        full = self._store.full_key(key)
        stop = DEFAULT_SORTED_END if end is None else end
        desc = SortDirection(direction) is SortDirection.HIGH_TO_LOW
        empty: list[str] | dict[str, float] = {} if with_scores else []
        result = await self._store.execute(
            "sorted.get",
            key,
            lambda r: r.zrange(full, start, stop, desc=desc, withscores=with_scores),
            default=None,
            read=True,
        )
        if result.value is None:
            return empty
        if with_scores:
            return {member: float(score) for member, score in result.value}
        return list(result.value)
