# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cache-aside reads for entity details and list pages.

Detail views live in the string shape under ``<kind>:<id>``. Each list query
is one field of a hash stored under the list key, so dropping the list key
drops every cached variant of that list. A cached value that no longer
validates against its schema is treated as a miss.
"""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from schoolhub.infrastructure.cache.keys import EntityKind, detail_key, list_key
from schoolhub.infrastructure.cache.store import CacheStore
from schoolhub.utils.logging import get_logger

logger = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class CacheAside:
    """Read-through helper shared by the entity services."""

    def __init__(self, store: CacheStore, detail_ttl: int = 300, list_ttl: int = 60) -> None:
        """Initialize the reader.

        Args:
            store: Shared cache store.
            detail_ttl: TTL in seconds for entity details.
            list_ttl: TTL in seconds for list pages.
        """
        self.store = store
        self.detail_ttl = detail_ttl
        self.list_ttl = list_ttl

    async def detail(
        self,
        kind: EntityKind,
        entity_id: str,
        schema: type[SchemaT],
        load: Callable[[], Awaitable[SchemaT]],
    ) -> SchemaT:
        """Return one entity view, from the cache when possible.

        Args:
            kind: Entity kind, selects the key.
            entity_id: Entity id.
            schema: Response schema used to validate cached data.
            load: Reads the view from the repository on a miss.

        Returns:
            The entity view.
        """
        try:
            key = detail_key(kind, entity_id)
        except ValueError:
            return await load()

        cached = await self.store.string.lookup(key)
        if cached.hit:
            try:
                return schema.model_validate(cached.value)
            except ValidationError:
                logger.warning("cache_entry_invalid", key=key)

        value = await load()
        await self.store.string.set(key, value.model_dump(mode="json"), ttl=self.detail_ttl)
        return value

    async def page(
        self,
        kind: EntityKind,
        scope_id: str | None,
        signature: str,
        schema: type[SchemaT],
        load: Callable[[], Awaitable[SchemaT]],
    ) -> SchemaT:
        """Return one list page, from the cache when possible.

        Args:
            kind: Entity kind, selects the key.
            scope_id: School filter of the query, if any.
            signature: Stable description of the query, the hash field.
            schema: Page schema used to validate cached data.
            load: Runs the query against the repository on a miss.

        Returns:
            The page.
        """
        try:
            key = list_key(kind, scope_id)
        except ValueError:
            return await load()

        cached = await self.store.hash.get_field(key, signature)
        if cached is not None:
            try:
                return schema.model_validate_json(cached)
            except ValidationError:
                logger.warning("cache_entry_invalid", key=key, field=signature)

        value = await load()
        await self.store.hash.set(key, {signature: value.model_dump(mode="json")})
        await self.store.string.expire(key, self.list_ttl)
        return value
