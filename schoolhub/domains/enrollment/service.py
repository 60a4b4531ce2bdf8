# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment coordinator: the only writer of Classroom.current_enrollment.

This module provides the EnrollmentCoordinator class for:
- Applying seat deltas under the capacity invariant
- Validating that a student may be seated in a classroom
- Moving a student between classrooms with compensation on failure

Seat changes are guarded UPDATEs in ClassroomRepository, so concurrent
callers in any process cannot overshoot capacity. Within this process,
multi-step moves additionally hold per-classroom locks, always taken in
ascending classroom id order.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TypeVar

from schoolhub.core.exceptions import (
    CapacityExceededError,
    CrossSchoolAssignmentError,
    NegativeEnrollmentError,
    NoOpTransferError,
    NotFoundError,
)
from schoolhub.infrastructure.cache.invalidator import CacheInvalidator
from schoolhub.infrastructure.database.models import Classroom
from schoolhub.infrastructure.database.repositories import ClassroomRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ClassroomLocks:
    """Per-classroom asyncio locks.

    Locks are created on demand and dropped once nobody holds a reference.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock(self, classroom_id: str) -> asyncio.Lock:
        lock = self._locks.get(classroom_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[classroom_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, *classroom_ids: str | None) -> AsyncIterator[None]:
        """Hold the locks of all given classrooms, None ids are skipped.

        Locks are acquired in ascending id order so two callers holding
        the same pair can never wait on each other.
        """
        ids = sorted({cid for cid in classroom_ids if cid is not None})
        async with AsyncExitStack() as stack:
            for classroom_id in ids:
                await stack.enter_async_context(self._lock(classroom_id))
            yield


class EnrollmentCoordinator:
    """Enforces the classroom capacity invariant.

    Managers never write current_enrollment themselves; they call
    apply_delta or transfer here.

    Attributes:
        classrooms: Classroom repository.
        invalidator: Drops classroom caches after each seat change.
    """

    def __init__(
        self,
        classrooms: ClassroomRepository,
        invalidator: CacheInvalidator,
        locks: ClassroomLocks | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            classrooms: Classroom repository.
            invalidator: Cache invalidator shared with the services.
            locks: Lock registry, one per process.
        """
        self.classrooms = classrooms
        self.invalidator = invalidator
        self._locks = locks or ClassroomLocks()

    async def apply_delta(self, classroom_id: str, delta: int) -> Classroom:
        """Add delta to a classroom's enrollment.

        Args:
            classroom_id: Classroom to adjust.
            delta: Signed seat change, usually +1 or -1.

        Returns:
            The updated classroom.

        Raises:
            NotFoundError: If the classroom does not exist, or is inactive
                and delta is positive.
            CapacityExceededError: If the result would exceed capacity.
            NegativeEnrollmentError: If the result would be negative.
        """
        async with self._locks.hold(classroom_id):
            return await self._apply_delta_unlocked(classroom_id, delta)

    async def _apply_delta_unlocked(self, classroom_id: str, delta: int) -> Classroom:
        outcome = await self.classrooms.apply_enrollment_delta(classroom_id, delta)
        classroom = outcome.entity

        if not outcome.applied:
            if classroom is None or (delta > 0 and not classroom.is_active):
                raise NotFoundError("Classroom")
            if classroom.current_enrollment + delta < 0:
                raise NegativeEnrollmentError(classroom.current_enrollment, delta)
            raise CapacityExceededError(classroom.capacity, classroom.current_enrollment)

        await self.invalidator.classroom(classroom.id, classroom.school_id)
        logger.debug(
            "Applied enrollment delta: classroom=%s, delta=%s, enrollment=%s/%s",
            classroom.id,
            delta,
            classroom.current_enrollment,
            classroom.capacity,
        )
        return classroom

    async def validate_assignment(
        self,
        student_school_id: str,
        classroom_id: str,
    ) -> Classroom:
        """Check that a student of a school may take a seat in a classroom.

        This is a check only. A concurrent caller may still take the last
        seat first; apply_delta is what enforces capacity.

        Returns:
            The classroom as read.

        Raises:
            NotFoundError: If the classroom is absent or inactive.
            CrossSchoolAssignmentError: If it belongs to another school.
            CapacityExceededError: If it is already full.
        """
        classroom = await self.classrooms.find_by_id(classroom_id)
        if classroom is None:
            raise NotFoundError("Classroom")
        if classroom.school_id != student_school_id:
            raise CrossSchoolAssignmentError(classroom.school_id, student_school_id)
        if classroom.current_enrollment >= classroom.capacity:
            raise CapacityExceededError(classroom.capacity, classroom.current_enrollment)
        return classroom

    async def transfer(
        self,
        student_id: str | None,
        from_classroom_id: str | None,
        to_classroom_id: str | None,
        school_id: str,
        persist: Callable[[], Awaitable[T]],
    ) -> T:
        """Move one seat from one classroom to another and record it.

        Order, with both classrooms locked:

            1. claim a seat in the target
            2. persist the student's new classroom_id
            3. release the seat in the source

        persist is guarded on the student still being active and still in
        the source, so the source seat is only released once that has been
        proven. Until then the only step to undo is the target claim, a
        decrement that cannot hit capacity.

        Args:
            student_id: Student being moved, for logs. None while creating.
            from_classroom_id: Current classroom, None if unassigned.
            to_classroom_id: Target classroom, None to unassign.
            school_id: The student's school.
            persist: Writes the student's new classroom_id. Must raise if
                the write did not happen.

        Returns:
            Whatever persist returned.

        Raises:
            NoOpTransferError: If source and target are the same.
            NotFoundError: If the target is absent or inactive.
            CrossSchoolAssignmentError: If the target is in another school.
            CapacityExceededError: If the target is full.
        """
        if from_classroom_id == to_classroom_id:
            raise NoOpTransferError(to_classroom_id)

        if to_classroom_id is not None:
            await self.validate_assignment(school_id, to_classroom_id)

        async with self._locks.hold(from_classroom_id, to_classroom_id):
            claimed = False
            try:
                if to_classroom_id is not None:
                    await self._apply_delta_unlocked(to_classroom_id, 1)
                    claimed = True
                result = await persist()
            except BaseException:
                if claimed:
                    await self._compensate(student_id, to_classroom_id)
                raise

            if from_classroom_id is not None:
                await self._release(student_id, from_classroom_id)

        logger.info(
            "Moved student seat: student=%s, from=%s, to=%s",
            student_id,
            from_classroom_id,
            to_classroom_id,
        )
        return result

    async def _release(self, student_id: str | None, classroom_id: str) -> None:
        """Release the source seat of a student whose move is already stored.

        A failure here leaves the source counting one seat too many, never
        one too few. It is logged and raised.
        """
        try:
            await self._apply_delta_unlocked(classroom_id, -1)
        except Exception:
            logger.exception(
                "Seat release failed after move: student=%s, classroom=%s",
                student_id,
                classroom_id,
            )
            raise

    async def _compensate(self, student_id: str | None, classroom_id: str) -> None:
        """Give back a claimed target seat.

        A failed reversal is logged and does not hide the original error.
        """
        try:
            await self._apply_delta_unlocked(classroom_id, -1)
            logger.warning(
                "Compensated enrollment: student=%s, classroom=%s",
                student_id,
                classroom_id,
            )
        except Exception:
            logger.exception(
                "Enrollment compensation failed: student=%s, classroom=%s",
                student_id,
                classroom_id,
            )
