# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cache key builders. Single place for key format.

Keys are plain UTF-8 strings namespaced by kind and id:

    classroom:<id>                 entity detail
    classrooms:list:<schoolId>     lists scoped to one school
    classrooms:list                unscoped lists

Key components must not contain KEY_SEP, otherwise keys could collide.
The RedisClient adds the service-wide prefix on top of these.
"""

from enum import Enum

KEY_SEP = ":"
LIST_SEGMENT = "list"


class EntityKind(str, Enum):
    """Cached entity kinds."""

    SCHOOL = "school"
    CLASSROOM = "classroom"
    STUDENT = "student"

    @property
    def plural(self) -> str:
        return f"{self.value}s"


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is empty or contains the key separator.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value is empty or contains KEY_SEP.
    """
    if not value:
        raise ValueError(f"Cache key component {name!r} must not be empty")
    if KEY_SEP in value:
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {KEY_SEP!r}"
        )


def detail_key(kind: EntityKind, entity_id: str) -> str:
    """Cache key for one entity, e.g. ``classroom:<id>``."""
    _validate_key_component(str(entity_id), "entity_id")
    return f"{kind.value}{KEY_SEP}{entity_id}"


def list_key(kind: EntityKind, scope_id: str | None = None) -> str:
    """Cache key for entity lists, scoped (``classrooms:list:<id>``) or not."""
    if scope_id is None:
        return f"{kind.plural}{KEY_SEP}{LIST_SEGMENT}"
    _validate_key_component(str(scope_id), "scope_id")
    return f"{kind.plural}{KEY_SEP}{LIST_SEGMENT}{KEY_SEP}{scope_id}"


def invalidation_keys(
    kind: EntityKind,
    entity_id: str | None = None,
    scope_id: str | None = None,
) -> list[str]:
    """Keys made stale by a mutation of one entity.

    Args:
        kind: Kind of the mutated entity.
        entity_id: Mutated entity, None for pure list changes.
        scope_id: Enclosing scope (owning school), if any.

    Returns:
        Detail key (when entity_id given), scoped list key (when scope_id
        given) and the unscoped list key, in that order.
    """
    keys = []
    if entity_id is not None:
        keys.append(detail_key(kind, entity_id))
    if scope_id is not None:
        keys.append(list_key(kind, scope_id))
    keys.append(list_key(kind))
    return keys
