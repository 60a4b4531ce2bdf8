# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student repository."""

from typing import Any

from sqlalchemy import ColumnElement

from schoolhub.infrastructure.database.models import Student
from schoolhub.infrastructure.database.repositories.base import (
    BaseRepository,
    GuardedUpdate,
)


class StudentRepository(BaseRepository[Student]):
    """Durable access to students."""

    model = Student
    entity_name = "Student"

    def _in_classroom(self, classroom_id: str | None) -> ColumnElement[bool]:
        if classroom_id is None:
            return Student.classroom_id.is_(None)
        return Student.classroom_id == classroom_id

    async def update_fields(
        self,
        student_id: str,
        values: dict[str, Any],
        expected_classroom_id: str | None = None,
        check_classroom: bool = False,
    ) -> GuardedUpdate[Student]:
        """Write fields of an active student.

        Args:
            student_id: Student to update.
            values: Columns to set, may include classroom_id.
            expected_classroom_id: Classroom the student must still be in.
            check_classroom: Enforce expected_classroom_id, used whenever
                classroom_id is written so two reassignments cannot both
                win.
        """
        guards = [self._active()]
        if check_classroom:
            guards.append(self._in_classroom(expected_classroom_id))
        return await self.conditional_update(student_id, values, *guards)

    async def deactivate(self, student_id: str) -> GuardedUpdate[Student]:
        """Soft-delete an active student.

        Only one of several concurrent calls is applied; the others see
        applied=False and must not release the seat again.
        """
        return await self.conditional_update(
            student_id, {"is_active": False}, self._active()
        )

    async def reactivate(self, student_id: str) -> GuardedUpdate[Student]:
        """Undo a soft-delete whose follow-up step failed."""
        return await self.conditional_update(
            student_id, {"is_active": True}, self.model.is_active.is_(False)
        )
