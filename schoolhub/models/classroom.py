# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Classroom schemas."""

from datetime import datetime
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from schoolhub.models.common import ListQuery

MIN_CAPACITY = 1
MAX_CAPACITY = 1000


class ClassroomCreate(BaseModel):
    """Request to create a classroom. Enrollment always starts at zero."""

    model_config = ConfigDict(str_strip_whitespace=True)

    school_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=100)
    capacity: int = Field(ge=MIN_CAPACITY, le=MAX_CAPACITY)
    grade_level: str | None = Field(default=None, max_length=50)
    resources: dict[str, str] = Field(default_factory=dict)


class ClassroomUpdate(BaseModel):
    """Request to update a classroom.

    school_id and current_enrollment are not accepted: the owning school is
    fixed at creation and enrollment changes only through student
    operations.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=1, max_length=100)
    capacity: int | None = Field(default=None, ge=MIN_CAPACITY, le=MAX_CAPACITY)
    grade_level: str | None = Field(default=None, max_length=50)
    resources: dict[str, str] | None = None

    @field_validator("name", "capacity", "resources")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class ClassroomResponse(BaseModel):
    """Classroom as returned to callers and stored in the cache."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    name: str
    capacity: int
    current_enrollment: int
    grade_level: str | None = None
    resources: dict[str, str] = Field(default_factory=dict)
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("resources", mode="before")
    @classmethod
    def default_resources(cls, value):
        return value or {}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def available_spots(self) -> int:
        return max(0, self.capacity - self.current_enrollment)


class ClassroomListQuery(ListQuery):
    """Filters for listing classrooms. search matches the name."""

    SORTABLE_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"created_at", "updated_at", "name", "capacity", "current_enrollment"}
    )

    school_id: str | None = None
    grade_level: str | None = None
