# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School service for managing school operations.

This module provides the SchoolService class for:
- School CRUD operations with soft delete
- Cache-aside reads of school details and lists
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import ColumnElement, or_

from schoolhub.core.exceptions import (
    ConcurrentModificationError,
    HasActiveClassroomsError,
    HasActiveStudentsError,
    NotFoundError,
)
from schoolhub.infrastructure.cache import CacheAside, CacheInvalidator, EntityKind
from schoolhub.infrastructure.database.models import Classroom, School, Student
from schoolhub.infrastructure.database.repositories import (
    ClassroomRepository,
    SchoolRepository,
    StudentRepository,
)
from schoolhub.models.common import Page, merge_nested
from schoolhub.models.school import (
    SchoolCreate,
    SchoolListQuery,
    SchoolResponse,
    SchoolUpdate,
)

logger = logging.getLogger(__name__)


class SchoolService:
    """Service for managing schools.

    Attributes:
        schools: School repository.
        classrooms: Classroom repository, for dependant checks.
        students: Student repository, for dependant checks.
    """

    def __init__(
        self,
        schools: SchoolRepository,
        classrooms: ClassroomRepository,
        students: StudentRepository,
        cache: CacheAside,
        invalidator: CacheInvalidator,
    ) -> None:
        """Initialize school service.

        Args:
            schools: School repository.
            classrooms: Classroom repository.
            students: Student repository.
            cache: Cache-aside reader.
            invalidator: Cache invalidator.
        """
        self.schools = schools
        self.classrooms = classrooms
        self.students = students
        self._cache = cache
        self._invalidator = invalidator

    async def create_school(self, request: SchoolCreate) -> SchoolResponse:
        """Create a new school.

        Args:
            request: School creation data.

        Returns:
            Created school response.
        """
        school = School(
            name=request.name,
            address=request.address.model_dump() if request.address else None,
            contact=request.contact.model_dump() if request.contact else None,
            metadata_=request.metadata,
            is_active=True,
        )
        await self.schools.save(school)
        await self._invalidator.school(school.id)

        logger.info("School created: %s (%s)", school.id, school.name)

        return SchoolResponse.model_validate(school)

    async def get_school(self, school_id: str) -> SchoolResponse:
        """Get a school by ID.

        Raises:
            NotFoundError: If the school is absent or inactive.
        """
        return await self._cache.detail(
            EntityKind.SCHOOL,
            school_id,
            SchoolResponse,
            lambda: self._load(school_id),
        )

    async def _load(self, school_id: str) -> SchoolResponse:
        return SchoolResponse.model_validate(await self.schools.get(school_id))

    async def update_school(self, school_id: str, request: SchoolUpdate) -> SchoolResponse:
        """Update a school.

        Args:
            school_id: School identifier.
            request: Fields to change. Address and contact are merged.

        Returns:
            Updated school response.

        Raises:
            NotFoundError: If the school is absent or inactive.
        """
        school = await self.schools.get(school_id)

        values: dict[str, Any] = {}
        if request.name is not None:
            values["name"] = request.name
        if request.address is not None:
            values["address"] = merge_nested(school.address, request.address)
        if request.contact is not None:
            values["contact"] = merge_nested(school.contact, request.contact)
        if request.metadata is not None:
            values["metadata_"] = request.metadata

        if not values:
            return SchoolResponse.model_validate(school)

        outcome = await self.schools.conditional_update(
            school_id, values, School.is_active.is_(True)
        )
        if not outcome.applied or outcome.entity is None:
            raise NotFoundError("School")

        await self._invalidator.school(school_id)

        logger.info("School updated: %s", school_id)

        return SchoolResponse.model_validate(outcome.entity)

    async def delete_school(self, school_id: str) -> None:
        """Soft-delete a school.

        Deleting an already deleted school is a no-op.

        Raises:
            NotFoundError: If the school never existed.
            HasActiveClassroomsError: If active classrooms remain.
            HasActiveStudentsError: If active students remain.
            ConcurrentModificationError: If the school kept changing while it
                was being emptied.
        """
        school = await self.schools.find_by_id(school_id, active_only=False)
        if school is None:
            raise NotFoundError("School")
        if not school.is_active:
            return

        outcome = await self.schools.deactivate_if_empty(school_id)
        if not outcome.applied:
            if outcome.entity is None or not outcome.entity.is_active:
                return
            await self._raise_active_dependants(school_id)
            # Dependants left between the guard and the count.
            outcome = await self.schools.deactivate_if_empty(school_id)
            if not outcome.applied:
                if outcome.entity is None or not outcome.entity.is_active:
                    return
                raise ConcurrentModificationError("School")

        await self._invalidator.school(school_id)

        logger.info("School deleted: %s", school_id)

    async def _raise_active_dependants(self, school_id: str) -> None:
        active_classrooms = await self.classrooms.count_active(
            Classroom.school_id == school_id
        )
        if active_classrooms:
            raise HasActiveClassroomsError(active_classrooms)
        active_students = await self.students.count_active(Student.school_id == school_id)
        if active_students:
            raise HasActiveStudentsError("School", active_students)

    async def list_schools(self, query: SchoolListQuery) -> Page[SchoolResponse]:
        """List schools with optional filtering.

        Args:
            query: Filters, pagination and sort. search matches name and city.

        Returns:
            Page of school responses.
        """
        return await self._cache.page(
            EntityKind.SCHOOL,
            None,
            query.signature(),
            Page[SchoolResponse],
            lambda: self._query(query),
        )

    async def _query(self, query: SchoolListQuery) -> Page[SchoolResponse]:
        conditions: list[ColumnElement[bool]] = []
        if query.is_active is not None:
            conditions.append(School.is_active.is_(query.is_active))
        if query.search:
            conditions.append(
                or_(
                    School.name.icontains(query.search, autoescape=True),
                    School.address["city"].as_string().icontains(
                        query.search, autoescape=True
                    ),
                )
            )

        schools, total = await self.schools.paginate(
            *conditions, page=query.page, limit=query.limit, sort=query.sort
        )
        return Page[SchoolResponse](
            items=[SchoolResponse.model_validate(s) for s in schools],
            page=query.page,
            limit=query.limit,
            total=total,
        )
