# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student schemas.

StudentUpdate distinguishes "classroom_id not given" from "classroom_id set
to None": the first leaves the assignment alone, the second unassigns the
student. Use ``changes_classroom`` rather than reading the field directly.
"""

from datetime import date, datetime
from typing import ClassVar

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

from schoolhub.models.common import Address, ListQuery
from schoolhub.utils.datetime import age_on


class StudentContact(BaseModel):
    """Student and guardian contact details."""

    email: str | None = Field(default=None, max_length=200)
    phone: str | None = Field(default=None, max_length=50)
    guardian_name: str | None = Field(default=None, max_length=200)
    guardian_phone: str | None = Field(default=None, max_length=50)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        return value.strip().lower() if value else value


class StudentCreate(BaseModel):
    """Request to create a student.

    student_number is generated from the school name when omitted.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    school_id: str = Field(min_length=1)
    classroom_id: str | None = None
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    date_of_birth: date
    student_number: str | None = Field(default=None, min_length=1, max_length=50)
    enrollment_date: date | None = None
    contact: StudentContact | None = None
    address: Address | None = None
    metadata: dict[str, str] = Field(default_factory=dict)


class StudentUpdate(BaseModel):
    """Request to update a student. Only fields that are set are applied."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    classroom_id: str | None = None
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    date_of_birth: date | None = None
    contact: StudentContact | None = None
    address: Address | None = None
    metadata: dict[str, str] | None = None

    @property
    def changes_classroom(self) -> bool:
        """True if classroom_id was given, even as None."""
        return "classroom_id" in self.model_fields_set


class StudentResponse(BaseModel):
    """Student as returned to callers and stored in the cache."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    classroom_id: str | None = None
    first_name: str
    last_name: str
    date_of_birth: date
    student_number: str
    enrollment_date: date
    contact: StudentContact | None = None
    address: Address | None = None
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

    @computed_field  # type: ignore[prop-decorator]
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def age(self) -> int | None:
        return age_on(self.date_of_birth)


class StudentListQuery(ListQuery):
    """Filters for listing students. search matches names and student number."""

    SORTABLE_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {
            "created_at",
            "updated_at",
            "last_name",
            "first_name",
            "student_number",
            "enrollment_date",
        }
    )

    school_id: str | None = None
    classroom_id: str | None = None
