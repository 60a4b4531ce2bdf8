# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student service for managing student operations.

This module provides the StudentService class for:
- Student CRUD operations with soft delete
- Classroom assignment and transfer through the EnrollmentCoordinator
- Student number generation
- Cache-aside reads of student details and lists

Every change of a student's classroom is paired with exactly one seat
release and one seat claim. The seat changes happen before the student row
is written, and are reversed if that write fails.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import ColumnElement, or_

from schoolhub.core.exceptions import ConcurrentModificationError, NotFoundError
from schoolhub.domains.enrollment import EnrollmentCoordinator
from schoolhub.infrastructure.cache import CacheAside, CacheInvalidator, EntityKind
from schoolhub.infrastructure.database.models import School, Student, generate_id
from schoolhub.infrastructure.database.repositories import (
    SchoolRepository,
    StudentRepository,
)
from schoolhub.models.common import Page, merge_nested
from schoolhub.models.student import (
    StudentCreate,
    StudentListQuery,
    StudentResponse,
    StudentUpdate,
)
from schoolhub.utils.datetime import utc_today

logger = logging.getLogger(__name__)

STUDENT_NUMBER_PREFIX_LENGTH = 3


class StudentService:
    """Service for managing students.

    Attributes:
        students: Student repository.
        schools: School repository.
        coordinator: Enrollment coordinator for every seat change.
    """

    def __init__(
        self,
        students: StudentRepository,
        schools: SchoolRepository,
        coordinator: EnrollmentCoordinator,
        cache: CacheAside,
        invalidator: CacheInvalidator,
    ) -> None:
        """Initialize student service.

        Args:
            students: Student repository.
            schools: School repository.
            coordinator: Enrollment coordinator.
            cache: Cache-aside reader.
            invalidator: Cache invalidator.
        """
        self.students = students
        self.schools = schools
        self.coordinator = coordinator
        self._cache = cache
        self._invalidator = invalidator

    async def create_student(self, request: StudentCreate) -> StudentResponse:
        """Create a new student, optionally seated in a classroom.

        Args:
            request: Student creation data.

        Returns:
            Created student response.

        Raises:
            NotFoundError: If the school or classroom is absent or inactive.
            CrossSchoolAssignmentError: If the classroom is in another school.
            CapacityExceededError: If the classroom is full.
            DuplicateKeyError: If the student number is taken.
        """
        school = await self.schools.find_by_id(request.school_id)
        if school is None:
            raise NotFoundError("School")

        student_number = request.student_number or await self._generate_student_number(
            school
        )
        student = Student(
            id=generate_id(),
            school_id=school.id,
            classroom_id=request.classroom_id,
            first_name=request.first_name,
            last_name=request.last_name,
            date_of_birth=request.date_of_birth,
            student_number=student_number,
            enrollment_date=request.enrollment_date or utc_today(),
            contact=request.contact.model_dump() if request.contact else None,
            address=request.address.model_dump() if request.address else None,
            metadata_=request.metadata,
            is_active=True,
        )

        if request.classroom_id is None:
            await self.students.save(student)
        else:
            await self.coordinator.transfer(
                student.id,
                None,
                request.classroom_id,
                school.id,
                persist=lambda: self.students.save(student),
            )

        await self._invalidator.student(student.id, student.school_id)

        logger.info(
            "Student created: %s (%s) in school %s, classroom=%s",
            student.id,
            student.student_number,
            student.school_id,
            student.classroom_id,
        )

        return StudentResponse.model_validate(student)

    async def _generate_student_number(self, school: School) -> str:
        """Build '<ABC>-<year>-<0001>' from the school's atomic sequence."""
        sequence = await self.schools.next_student_sequence(school.id)
        prefix = school.name[:STUDENT_NUMBER_PREFIX_LENGTH].upper()
        return f"{prefix}-{utc_today().year}-{sequence:04d}"

    async def get_student(self, student_id: str) -> StudentResponse:
        """Get a student by ID.

        Raises:
            NotFoundError: If the student is absent or inactive.
        """
        return await self._cache.detail(
            EntityKind.STUDENT,
            student_id,
            StudentResponse,
            lambda: self._load(student_id),
        )

    async def _load(self, student_id: str) -> StudentResponse:
        return StudentResponse.model_validate(await self.students.get(student_id))

    async def update_student(
        self,
        student_id: str,
        request: StudentUpdate,
    ) -> StudentResponse:
        """Update a student.

        A classroom_id that differs from the current one moves the student
        through the coordinator; classroom_id=None unassigns. Leaving
        classroom_id out keeps the assignment.

        Args:
            student_id: Student identifier.
            request: Fields to change. Contact and address are merged.

        Returns:
            Updated student response.

        Raises:
            NotFoundError: If the student or new classroom is absent or inactive.
            CrossSchoolAssignmentError: If the classroom is in another school.
            CapacityExceededError: If the new classroom is full.
            ConcurrentModificationError: If the student was moved meanwhile.
        """
        student = await self.students.get(student_id)

        values: dict[str, Any] = {}
        for field in ("first_name", "last_name", "date_of_birth"):
            value = getattr(request, field)
            if value is not None:
                values[field] = value
        if request.contact is not None:
            values["contact"] = merge_nested(student.contact, request.contact)
        if request.address is not None:
            values["address"] = merge_nested(student.address, request.address)
        if request.metadata is not None:
            values["metadata_"] = request.metadata

        moves = request.changes_classroom and request.classroom_id != student.classroom_id

        if moves:
            values["classroom_id"] = request.classroom_id
            updated = await self.coordinator.transfer(
                student_id,
                student.classroom_id,
                request.classroom_id,
                student.school_id,
                persist=lambda: self._write(student_id, values, student.classroom_id),
            )
        elif values:
            outcome = await self.students.update_fields(student_id, values)
            if not outcome.applied or outcome.entity is None:
                raise NotFoundError("Student")
            updated = outcome.entity
        else:
            return StudentResponse.model_validate(student)

        await self._invalidator.student(student_id, student.school_id)

        logger.info("Student updated: %s, fields=%s", student_id, sorted(values))

        return StudentResponse.model_validate(updated)

    async def transfer_student(
        self,
        student_id: str,
        classroom_id: str | None,
    ) -> StudentResponse:
        """Move a student to another classroom, or unassign with None.

        Raises:
            NotFoundError: If the student or classroom is absent or inactive.
            NoOpTransferError: If the student is already in that classroom.
            CrossSchoolAssignmentError: If the classroom is in another school.
            CapacityExceededError: If the classroom is full.
            ConcurrentModificationError: If the student was moved meanwhile.
        """
        student = await self.students.get(student_id)

        updated = await self.coordinator.transfer(
            student_id,
            student.classroom_id,
            classroom_id,
            student.school_id,
            persist=lambda: self._write(
                student_id, {"classroom_id": classroom_id}, student.classroom_id
            ),
        )

        await self._invalidator.student(student_id, student.school_id)

        logger.info(
            "Student transferred: %s from %s to %s",
            student_id,
            student.classroom_id,
            classroom_id,
        )

        return StudentResponse.model_validate(updated)

    async def _write(
        self,
        student_id: str,
        values: dict[str, Any],
        expected_classroom_id: str | None,
    ) -> Student:
        """Write a classroom change only if the student is still where we saw it."""
        outcome = await self.students.update_fields(
            student_id,
            values,
            expected_classroom_id=expected_classroom_id,
            check_classroom=True,
        )
        if not outcome.applied:
            if outcome.entity is None or not outcome.entity.is_active:
                raise NotFoundError("Student")
            raise ConcurrentModificationError("Student")
        return outcome.entity

    async def delete_student(self, student_id: str) -> None:
        """Soft-delete a student and release their seat.

        Deleting an already deleted student is a no-op and releases
        nothing.

        Raises:
            NotFoundError: If the student never existed.
        """
        student = await self.students.find_by_id(student_id, active_only=False)
        if student is None:
            raise NotFoundError("Student")

        outcome = await self.students.deactivate(student_id)
        if not outcome.applied or outcome.entity is None:
            logger.debug("Student already deleted: %s", student_id)
            return

        classroom_id = outcome.entity.classroom_id
        if classroom_id is not None:
            try:
                await self.coordinator.apply_delta(classroom_id, -1)
            except BaseException:
                await self._restore(student_id)
                raise

        await self._invalidator.student(student_id, outcome.entity.school_id)

        logger.info("Student deleted: %s, released classroom=%s", student_id, classroom_id)

    async def _restore(self, student_id: str) -> None:
        try:
            await self.students.reactivate(student_id)
            logger.warning("Restored student after failed seat release: %s", student_id)
        except Exception:
            logger.exception("Student restore failed: %s", student_id)

    async def list_students(self, query: StudentListQuery) -> Page[StudentResponse]:
        """List students with optional filtering.

        Args:
            query: Filters, pagination and sort. search matches first name,
                last name and student number.

        Returns:
            Page of student responses.
        """
        return await self._cache.page(
            EntityKind.STUDENT,
            query.school_id,
            query.signature(),
            Page[StudentResponse],
            lambda: self._query(query),
        )

    async def _query(self, query: StudentListQuery) -> Page[StudentResponse]:
        conditions: list[ColumnElement[bool]] = []
        if query.school_id is not None:
            conditions.append(Student.school_id == query.school_id)
        if query.classroom_id is not None:
            conditions.append(Student.classroom_id == query.classroom_id)
        if query.is_active is not None:
            conditions.append(Student.is_active.is_(query.is_active))
        if query.search:
            conditions.append(
                or_(
                    Student.first_name.icontains(query.search, autoescape=True),
                    Student.last_name.icontains(query.search, autoescape=True),
                    Student.student_number.icontains(query.search, autoescape=True),
                )
            )

        students, total = await self.students.paginate(
            *conditions, page=query.page, limit=query.limit, sort=query.sort
        )
        return Page[StudentResponse](
            items=[StudentResponse.model_validate(s) for s in students],
            page=query.page,
            limit=query.limit,
            total=total,
        )
