# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Classroom service for managing classroom operations.

This module provides the ClassroomService class for:
- Classroom CRUD operations with soft delete
- Capacity changes that never drop below current enrollment
- Cache-aside reads of classroom details and lists

current_enrollment is never written here; student operations change it
through the EnrollmentCoordinator.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import ColumnElement

from schoolhub.core.exceptions import (
    CapacityBelowEnrollmentError,
    DuplicateKeyError,
    DuplicateNameError,
    HasActiveStudentsError,
    NotFoundError,
)
from schoolhub.infrastructure.cache import CacheAside, CacheInvalidator, EntityKind
from schoolhub.infrastructure.database.models import Classroom, Student, generate_id
from schoolhub.infrastructure.database.repositories import (
    ClassroomRepository,
    SchoolRepository,
    StudentRepository,
)
from schoolhub.models.classroom import (
    ClassroomCreate,
    ClassroomListQuery,
    ClassroomResponse,
    ClassroomUpdate,
)
from schoolhub.models.common import Page

logger = logging.getLogger(__name__)


class ClassroomService:
    """Service for managing classrooms.

    Attributes:
        classrooms: Classroom repository.
        schools: School repository, for ownership checks.
        students: Student repository, for dependant checks.
    """

    def __init__(
        self,
        classrooms: ClassroomRepository,
        schools: SchoolRepository,
        students: StudentRepository,
        cache: CacheAside,
        invalidator: CacheInvalidator,
    ) -> None:
        """Initialize classroom service.

        Args:
            classrooms: Classroom repository.
            schools: School repository.
            students: Student repository.
            cache: Cache-aside reader.
            invalidator: Cache invalidator.
        """
        self.classrooms = classrooms
        self.schools = schools
        self.students = students
        self._cache = cache
        self._invalidator = invalidator

    async def create_classroom(self, request: ClassroomCreate) -> ClassroomResponse:
        """Create a new classroom with zero enrollment.

        Args:
            request: Classroom creation data.

        Returns:
            Created classroom response.

        Raises:
            NotFoundError: If the school is absent or inactive.
            DuplicateNameError: If an active classroom of the school has
                the same name.
        """
        school = await self.schools.find_by_id(request.school_id)
        if school is None:
            raise NotFoundError("School")

        await self._ensure_unique_name(request.school_id, request.name)

        classroom = Classroom(
            id=generate_id(),
            school_id=request.school_id,
            name=request.name,
            capacity=request.capacity,
            current_enrollment=0,
            grade_level=request.grade_level,
            resources=request.resources,
            is_active=True,
        )
        try:
            await self.classrooms.save(classroom)
        except DuplicateKeyError as e:
            raise DuplicateNameError("Classroom", request.name) from e

        await self._invalidator.classroom(classroom.id, classroom.school_id)

        logger.info(
            "Classroom created: %s (%s) in school %s, capacity=%s",
            classroom.id,
            classroom.name,
            classroom.school_id,
            classroom.capacity,
        )

        return ClassroomResponse.model_validate(classroom)

    async def _ensure_unique_name(
        self,
        school_id: str,
        name: str,
        exclude_id: str | None = None,
    ) -> None:
        conditions = [
            Classroom.school_id == school_id,
            Classroom.name == name,
            Classroom.is_active.is_(True),
        ]
        if exclude_id is not None:
            conditions.append(Classroom.id != exclude_id)
        if await self.classrooms.find_one(*conditions) is not None:
            raise DuplicateNameError("Classroom", name)

    async def get_classroom(self, classroom_id: str) -> ClassroomResponse:
        """Get a classroom by ID.

        Raises:
            NotFoundError: If the classroom is absent or inactive.
        """
        return await self._cache.detail(
            EntityKind.CLASSROOM,
            classroom_id,
            ClassroomResponse,
            lambda: self._load(classroom_id),
        )

    async def _load(self, classroom_id: str) -> ClassroomResponse:
        return ClassroomResponse.model_validate(await self.classrooms.get(classroom_id))

    async def update_classroom(
        self,
        classroom_id: str,
        request: ClassroomUpdate,
    ) -> ClassroomResponse:
        """Update a classroom.

        Only the given fields are written, so a concurrent enrollment change
        is never overwritten.

        Args:
            classroom_id: Classroom identifier.
            request: Fields to change.

        Returns:
            Updated classroom response.

        Raises:
            NotFoundError: If the classroom is absent or inactive.
            DuplicateNameError: If the new name is taken in the school.
            CapacityBelowEnrollmentError: If the new capacity is below the
                current enrollment.
        """
        classroom = await self.classrooms.get(classroom_id)
        values: dict[str, Any] = request.model_dump(exclude_unset=True)

        if not values:
            return ClassroomResponse.model_validate(classroom)

        if "name" in values and values["name"] != classroom.name:
            await self._ensure_unique_name(classroom.school_id, values["name"], classroom_id)

        capacity = values.get("capacity")
        if capacity is not None and capacity < classroom.current_enrollment:
            raise CapacityBelowEnrollmentError(capacity, classroom.current_enrollment)

        try:
            outcome = await self.classrooms.update_fields(classroom_id, values)
        except DuplicateKeyError as e:
            raise DuplicateNameError("Classroom", values["name"]) from e

        if not outcome.applied:
            current = outcome.entity
            if current is None or not current.is_active:
                raise NotFoundError("Classroom")
            raise CapacityBelowEnrollmentError(capacity, current.current_enrollment)

        await self._invalidator.classroom(classroom_id, classroom.school_id)

        logger.info("Classroom updated: %s, fields=%s", classroom_id, sorted(values))

        return ClassroomResponse.model_validate(outcome.entity)

    async def delete_classroom(self, classroom_id: str) -> None:
        """Soft-delete a classroom.

        Deleting an already deleted classroom is a no-op.

        Raises:
            NotFoundError: If the classroom never existed.
            HasActiveStudentsError: If active students are assigned to it.
        """
        classroom = await self.classrooms.find_by_id(classroom_id, active_only=False)
        if classroom is None:
            raise NotFoundError("Classroom")
        if not classroom.is_active:
            return

        active_students = await self.students.count_active(
            Student.classroom_id == classroom_id
        )
        if active_students:
            raise HasActiveStudentsError("Classroom", active_students)

        outcome = await self.classrooms.deactivate_if_empty(classroom_id)
        if not outcome.applied:
            current = outcome.entity
            if current is None or not current.is_active:
                return
            raise HasActiveStudentsError("Classroom", current.current_enrollment)

        await self._invalidator.classroom(classroom_id, classroom.school_id)

        logger.info("Classroom deleted: %s", classroom_id)

    async def list_classrooms(self, query: ClassroomListQuery) -> Page[ClassroomResponse]:
        """List classrooms with optional filtering.

        Args:
            query: Filters, pagination and sort. search matches the name.

        Returns:
            Page of classroom responses.
        """
        return await self._cache.page(
            EntityKind.CLASSROOM,
            query.school_id,
            query.signature(),
            Page[ClassroomResponse],
            lambda: self._query(query),
        )

    async def _query(self, query: ClassroomListQuery) -> Page[ClassroomResponse]:
        conditions: list[ColumnElement[bool]] = []
        if query.school_id is not None:
            conditions.append(Classroom.school_id == query.school_id)
        if query.is_active is not None:
            conditions.append(Classroom.is_active.is_(query.is_active))
        if query.grade_level is not None:
            conditions.append(Classroom.grade_level == query.grade_level)
        if query.search:
            conditions.append(Classroom.name.icontains(query.search, autoescape=True))

        classrooms, total = await self.classrooms.paginate(
            *conditions, page=query.page, limit=query.limit, sort=query.sort
        )
        return Page[ClassroomResponse](
            items=[ClassroomResponse.model_validate(c) for c in classrooms],
            page=query.page,
            limit=query.limit,
            total=total,
        )
