# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School schemas.

This module defines request/response schemas for school management.
"""

from datetime import datetime
from typing import ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from schoolhub.models.common import Address, ListQuery


class SchoolAddress(Address):
    """School address. Country defaults to USA."""

    country: str | None = Field(default="USA", max_length=100)


class SchoolContact(BaseModel):
    """School contact details."""

    phone: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=200)


class SchoolCreate(BaseModel):
    """Request to create a school."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=200)
    address: SchoolAddress | None = None
    contact: SchoolContact | None = None
    metadata: dict[str, str] = Field(default_factory=dict)


class SchoolUpdate(BaseModel):
    """Request to update a school.

    Only fields that are set are applied. Nested address and contact are
    merged field by field into the stored values.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=200)
    address: Address | None = None
    contact: SchoolContact | None = None
    metadata: dict[str, str] | None = None


class SchoolResponse(BaseModel):
    """School as returned to callers and stored in the cache."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    address: SchoolAddress | None = None
    contact: SchoolContact | None = None
    metadata: dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("metadata_", "metadata"),
    )
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, value):
        return value or {}


class SchoolListQuery(ListQuery):
    """Filters for listing schools. search matches name and city."""

    SORTABLE_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"created_at", "updated_at", "name"}
    )
