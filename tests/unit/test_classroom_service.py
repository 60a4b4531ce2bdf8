# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for ClassroomService."""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from schoolhub.core.exceptions import (
    CapacityBelowEnrollmentError,
    DuplicateKeyError,
    DuplicateNameError,
    HasActiveStudentsError,
    NotFoundError,
)
from schoolhub.domains.classroom import ClassroomService
from schoolhub.infrastructure.database.repositories import GuardedUpdate
from schoolhub.models.classroom import ClassroomCreate, ClassroomUpdate


def _classroom(**overrides):
    now = datetime(2025, 1, 1, tzinfo=UTC)
    fields = {
        "id": "c1",
        "school_id": "s1",
        "name": "Room A",
        "capacity": 10,
        "current_enrollment": 4,
        "grade_level": "5",
        "resources": None,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


async def _passthrough(kind, entity_id, schema, load):
    return await load()


@pytest.fixture
def classrooms() -> AsyncMock:
    repo = AsyncMock()
    repo.find_one.return_value = None
    return repo


@pytest.fixture
def schools() -> AsyncMock:
    repo = AsyncMock()
    repo.find_by_id.return_value = SimpleNamespace(id="s1", name="Acme", is_active=True)
    return repo


@pytest.fixture
def students() -> AsyncMock:
    repo = AsyncMock()
    repo.count_active.return_value = 0
    return repo


@pytest.fixture
def invalidator() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(classrooms, schools, students, invalidator) -> ClassroomService:
    cache = MagicMock()
    cache.detail = AsyncMock(side_effect=_passthrough)
    return ClassroomService(classrooms, schools, students, cache, invalidator)


@pytest.mark.unit
class TestClassroomServiceCreate:
    """Tests for create_classroom."""

    async def test_creates_with_zero_enrollment(self, service, classrooms, invalidator):
        def stamp(entity):
            entity.created_at = entity.updated_at = datetime(2025, 1, 1, tzinfo=UTC)
            return entity

        classrooms.save.side_effect = stamp

        result = await service.create_classroom(
            ClassroomCreate(school_id="s1", name=" Room A ", capacity=20)
        )

        assert result.name == "Room A"
        assert result.current_enrollment == 0
        assert result.available_spots == 20
        invalidator.classroom.assert_awaited_once_with(result.id, "s1")

    async def test_missing_school_raises(self, service, schools, classrooms):
        schools.find_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.create_classroom(
                ClassroomCreate(school_id="nope", name="Room", capacity=5)
            )

        classrooms.save.assert_not_awaited()

    async def test_duplicate_name_raises(self, service, classrooms):
        classrooms.find_one.return_value = _classroom()

        with pytest.raises(DuplicateNameError):
            await service.create_classroom(
                ClassroomCreate(school_id="s1", name="Room A", capacity=5)
            )

    async def test_unique_index_race_maps_to_duplicate_name(self, service, classrooms):
        classrooms.save.side_effect = DuplicateKeyError("Classroom")

        with pytest.raises(DuplicateNameError):
            await service.create_classroom(
                ClassroomCreate(school_id="s1", name="Room A", capacity=5)
            )

    @pytest.mark.parametrize("capacity", [0, -1, 1001])
    def test_capacity_out_of_range_is_rejected(self, capacity):
        with pytest.raises(ValueError):
            ClassroomCreate(school_id="s1", name="Room", capacity=capacity)


@pytest.mark.unit
class TestClassroomServiceUpdate:
    """Tests for update_classroom."""

    async def test_capacity_below_enrollment_is_rejected_before_writing(
        self, service, classrooms
    ):
        classrooms.get.return_value = _classroom(current_enrollment=4)

        with pytest.raises(CapacityBelowEnrollmentError) as exc_info:
            await service.update_classroom("c1", ClassroomUpdate(capacity=3))

        assert exc_info.value.current_enrollment == 4
        classrooms.update_fields.assert_not_awaited()

    async def test_capacity_equal_to_enrollment_is_accepted(
        self, service, classrooms, invalidator
    ):
        classrooms.get.return_value = _classroom(current_enrollment=4)
        classrooms.update_fields.return_value = GuardedUpdate(
            True, _classroom(capacity=4, current_enrollment=4)
        )

        result = await service.update_classroom("c1", ClassroomUpdate(capacity=4))

        assert result.available_spots == 0
        classrooms.update_fields.assert_awaited_once_with("c1", {"capacity": 4})
        invalidator.classroom.assert_awaited_once_with("c1", "s1")

    async def test_enrollment_growing_meanwhile_is_reported(self, service, classrooms):
        classrooms.get.return_value = _classroom(current_enrollment=3)
        classrooms.update_fields.return_value = GuardedUpdate(
            False, _classroom(current_enrollment=5)
        )

        with pytest.raises(CapacityBelowEnrollmentError) as exc_info:
            await service.update_classroom("c1", ClassroomUpdate(capacity=4))

        assert exc_info.value.current_enrollment == 5

    async def test_deleted_meanwhile_raises_not_found(self, service, classrooms):
        classrooms.get.return_value = _classroom()
        classrooms.update_fields.return_value = GuardedUpdate(
            False, _classroom(is_active=False)
        )

        with pytest.raises(NotFoundError):
            await service.update_classroom("c1", ClassroomUpdate(name="New"))

    async def test_empty_update_writes_nothing(self, service, classrooms, invalidator):
        classrooms.get.return_value = _classroom()

        result = await service.update_classroom("c1", ClassroomUpdate())

        assert result.id == "c1"
        classrooms.update_fields.assert_not_awaited()
        invalidator.classroom.assert_not_awaited()

    def test_enrollment_and_school_are_not_updatable(self):
        with pytest.raises(ValueError):
            ClassroomUpdate(current_enrollment=3)
        with pytest.raises(ValueError):
            ClassroomUpdate(school_id="s2")

    def test_explicit_null_capacity_is_rejected(self):
        with pytest.raises(ValueError):
            ClassroomUpdate(capacity=None)


@pytest.mark.unit
class TestClassroomServiceDelete:
    """Tests for delete_classroom."""

    async def test_active_students_block_delete(self, service, classrooms, students):
        classrooms.find_by_id.return_value = _classroom()
        students.count_active.return_value = 2

        with pytest.raises(HasActiveStudentsError) as exc_info:
            await service.delete_classroom("c1")

        assert exc_info.value.active_students == 2
        classrooms.deactivate_if_empty.assert_not_awaited()

    async def test_empty_classroom_is_deactivated(self, service, classrooms, invalidator):
        classrooms.find_by_id.return_value = _classroom(current_enrollment=0)
        classrooms.deactivate_if_empty.return_value = GuardedUpdate(
            True, _classroom(current_enrollment=0, is_active=False)
        )

        await service.delete_classroom("c1")

        invalidator.classroom.assert_awaited_once_with("c1", "s1")

    async def test_second_delete_is_a_noop(self, service, classrooms, invalidator):
        classrooms.find_by_id.return_value = _classroom(is_active=False)

        await service.delete_classroom("c1")

        classrooms.deactivate_if_empty.assert_not_awaited()
        invalidator.classroom.assert_not_awaited()

    async def test_unknown_classroom_raises(self, service, classrooms):
        classrooms.find_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.delete_classroom("missing")


@pytest.mark.unit
class TestClassroomServiceGet:
    """Tests for get_classroom."""

    async def test_reads_through_cache(self, service, classrooms):
        classrooms.get.return_value = _classroom()

        result = await service.get_classroom("c1")

        assert result.resources == {}
        assert result.available_spots == 6

    async def test_not_found_propagates(self, service, classrooms):
        classrooms.get.side_effect = NotFoundError("Classroom")

        with pytest.raises(NotFoundError):
            await service.get_classroom("missing")
