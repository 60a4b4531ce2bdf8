# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School repository."""

from sqlalchemy import exists, select, update

from schoolhub.core.exceptions import NotFoundError
from schoolhub.infrastructure.database.models import Classroom, School, Student
from schoolhub.infrastructure.database.repositories.base import (
    BaseRepository,
    GuardedUpdate,
)


class SchoolRepository(BaseRepository[School]):
    """Durable access to schools."""

    model = School
    entity_name = "School"

    async def next_student_sequence(self, school_id: str) -> int:
        """Reserve the next student number sequence for an active school.

        The increment and the read happen in one transaction, after the row
        is write-locked by the UPDATE, so two callers never get the same
        value.

        Raises:
            NotFoundError: If the school is absent or inactive.
        """
        stmt = (
            update(School)
            .where(School.id == school_id, self._active())
            .values(student_sequence=School.student_sequence + 1)
            .execution_options(synchronize_session=False)
        )
        async with self.transaction("next_student_sequence") as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise NotFoundError(self.entity_name)
            sequence = await session.execute(
                select(School.student_sequence).where(School.id == school_id)
            )
            return int(sequence.scalar_one())

    async def deactivate_if_empty(self, school_id: str) -> GuardedUpdate[School]:
        """Soft-delete an active school that has no active classrooms or students."""
        active_classrooms = (
            exists()
            .where(Classroom.school_id == School.id, Classroom.is_active.is_(True))
            .correlate(School)
        )
        active_students = (
            exists()
            .where(Student.school_id == School.id, Student.is_active.is_(True))
            .correlate(School)
        )
        return await self.conditional_update(
            school_id,
            {"is_active": False},
            self._active(),
            ~active_classrooms,
            ~active_students,
        )
