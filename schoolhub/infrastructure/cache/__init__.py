# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read cache: Redis lifecycle, key builders, fail-closed store and invalidation."""

from schoolhub.infrastructure.cache.aside import CacheAside
from schoolhub.infrastructure.cache.invalidator import CacheInvalidator
from schoolhub.infrastructure.cache.keys import (
    EntityKind,
    detail_key,
    invalidation_keys,
    list_key,
)
from schoolhub.infrastructure.cache.redis_client import (
    RedisClient,
    RedisError,
    close_redis,
    get_redis,
    init_redis,
)
from schoolhub.infrastructure.cache.store import (
    CacheKeyError,
    CacheResult,
    CacheStats,
    CacheStatus,
    CacheStore,
    SortDirection,
)

__all__ = [
    "CacheAside",
    "CacheInvalidator",
    "CacheKeyError",
    "CacheResult",
    "CacheStats",
    "CacheStatus",
    "CacheStore",
    "EntityKind",
    "RedisClient",
    "RedisError",
    "SortDirection",
    "close_redis",
    "detail_key",
    "get_redis",
    "init_redis",
    "invalidation_keys",
    "list_key",
]
