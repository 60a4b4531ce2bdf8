# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cache invalidation after durable writes.

The invalidator never reads what is cached before deleting it: the detail
key, the scoped list key and the unscoped list key of a mutated entity are
always removed. Cache failures are absorbed by the CacheStore, so
invalidation never fails the write that triggered it.
"""

from schoolhub.infrastructure.cache.keys import EntityKind, invalidation_keys
from schoolhub.infrastructure.cache.store import CacheStore
from schoolhub.utils.logging import get_logger

logger = get_logger(__name__)


class CacheInvalidator:
    """Deletes cached views made stale by a mutation."""

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    async def invalidate(
        self,
        kind: EntityKind,
        entity_id: str | None = None,
        scope_id: str | None = None,
    ) -> list[str]:
        """Delete the detail and list keys for one entity.

        Args:
            kind: Kind of the mutated entity.
            entity_id: Mutated entity id.
            scope_id: Owning school id, for scoped lists.

        Returns:
            The keys that were targeted, whether or not the delete succeeded.
        """
        keys = invalidation_keys(kind, entity_id, scope_id)
        failed = [key for key in keys if not await self._store.string.delete(key)]
        if failed:
            logger.warning("cache_invalidation_incomplete", kind=kind.value, keys=failed)
        return keys

    async def school(self, school_id: str) -> list[str]:
        return await self.invalidate(EntityKind.SCHOOL, school_id)

    async def classroom(self, classroom_id: str | None, school_id: str) -> list[str]:
        return await self.invalidate(EntityKind.CLASSROOM, classroom_id, school_id)

    async def student(self, student_id: str, school_id: str) -> list[str]:
        return await self.invalidate(EntityKind.STUDENT, student_id, school_id)
