# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Classroom repository.

current_enrollment is only written through the guarded updates here. Each
one checks the capacity invariant inside the same UPDATE statement that
writes, which keeps concurrent seat changes from overshooting.
"""

from sqlalchemy import ColumnElement

from schoolhub.infrastructure.database.models import Classroom
from schoolhub.infrastructure.database.repositories.base import (
    BaseRepository,
    GuardedUpdate,
)


class ClassroomRepository(BaseRepository[Classroom]):
    """Durable access to classrooms."""

    model = Classroom
    entity_name = "Classroom"

    async def apply_enrollment_delta(
        self, classroom_id: str, delta: int
    ) -> GuardedUpdate[Classroom]:
        """Add delta to current_enrollment if the result stays in [0, capacity].

        Increments also require the classroom to be active. Decrements are
        allowed on inactive classrooms so a seat can always be released.

        Args:
            classroom_id: Classroom to adjust.
            delta: Signed seat change.

        Returns:
            Whether the change was applied, and the classroom afterwards.
        """
        new_enrollment = Classroom.current_enrollment + delta
        guards: list[ColumnElement[bool]] = [
            new_enrollment >= 0,
            new_enrollment <= Classroom.capacity,
        ]
        if delta > 0:
            guards.append(self._active())
        return await self.conditional_update(
            classroom_id,
            {"current_enrollment": new_enrollment},
            *guards,
        )

    async def update_fields(
        self,
        classroom_id: str,
        values: dict,
    ) -> GuardedUpdate[Classroom]:
        """Write plain fields of an active classroom.

        A capacity in values is only written if it is not below the
        enrollment at the moment of the write.
        """
        guards: list[ColumnElement[bool]] = [self._active()]
        if "capacity" in values:
            guards.append(Classroom.current_enrollment <= values["capacity"])
        return await self.conditional_update(classroom_id, values, *guards)

    async def deactivate_if_empty(self, classroom_id: str) -> GuardedUpdate[Classroom]:
        """Soft-delete an active classroom only while it holds no students."""
        return await self.conditional_update(
            classroom_id,
            {"is_active": False},
            self._active(),
            Classroom.current_enrollment == 0,
        )
