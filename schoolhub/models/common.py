# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared schemas: addresses, list queries and paginated results."""

import json
import math
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

ItemT = TypeVar("ItemT")

MAX_PAGE_SIZE = 100


class Address(BaseModel):
    """Postal address. Every part is optional."""

    street: str | None = Field(default=None, max_length=200)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    zip_code: str | None = Field(default=None, max_length=20)
    country: str | None = Field(default=None, max_length=100)


class ListQuery(BaseModel):
    """Filters, pagination and sort shared by every list operation.

    Subclasses add entity-specific filters and set SORTABLE_FIELDS.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    SORTABLE_FIELDS: ClassVar[frozenset[str]] = frozenset({"created_at", "updated_at"})

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=MAX_PAGE_SIZE)
    sort: str = Field(
        default="-created_at",
        description="Field name, prefixed with '-' for descending order",
    )
    search: str | None = Field(default=None, max_length=100)
    is_active: bool | None = None

    @field_validator("sort")
    @classmethod
    def validate_sort(cls, value: str) -> str:
        """Only allow sorting on known columns."""
        if value.lstrip("-") not in cls.SORTABLE_FIELDS:
            allowed = ", ".join(sorted(cls.SORTABLE_FIELDS))
            raise ValueError(f"sort must be one of: {allowed}")
        return value

    def signature(self) -> str:
        """Stable string identifying this query, used as a cache field."""
        return json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))


class Page(BaseModel, Generic[ItemT]):
    """One page of a list result."""

    items: list[ItemT]
    page: int
    limit: int
    total: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def merge_nested(current: dict[str, Any] | None, update: BaseModel) -> dict[str, Any]:
    """Merge the explicitly set fields of a nested schema into stored data."""
    return {**(current or {}), **update.model_dump(exclude_unset=True)}
