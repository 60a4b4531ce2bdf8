# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response schemas."""

from schoolhub.models.classroom import (
    ClassroomCreate,
    ClassroomListQuery,
    ClassroomResponse,
    ClassroomUpdate,
)
from schoolhub.models.common import Address, ListQuery, Page
from schoolhub.models.school import (
    SchoolAddress,
    SchoolContact,
    SchoolCreate,
    SchoolListQuery,
    SchoolResponse,
    SchoolUpdate,
)
from schoolhub.models.student import (
    StudentContact,
    StudentCreate,
    StudentListQuery,
    StudentResponse,
    StudentUpdate,
)

__all__ = [
    "Address",
    "ClassroomCreate",
    "ClassroomListQuery",
    "ClassroomResponse",
    "ClassroomUpdate",
    "ListQuery",
    "Page",
    "SchoolAddress",
    "SchoolContact",
    "SchoolCreate",
    "SchoolListQuery",
    "SchoolResponse",
    "SchoolUpdate",
    "StudentContact",
    "StudentCreate",
    "StudentListQuery",
    "StudentResponse",
    "StudentUpdate",
]
