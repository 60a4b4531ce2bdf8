# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for SchoolService."""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from schoolhub.core.exceptions import (
    ConcurrentModificationError,
    HasActiveClassroomsError,
    HasActiveStudentsError,
    NotFoundError,
)
from schoolhub.domains.school import SchoolService
from schoolhub.infrastructure.database.repositories import GuardedUpdate
from schoolhub.models.school import SchoolCreate, SchoolUpdate


def _school(**overrides):
    now = datetime(2025, 1, 1, tzinfo=UTC)
    fields = {
        "id": "s1",
        "name": "Acme",
        "address": {"street": "1 Main", "city": "Springfield", "country": "USA"},
        "contact": None,
        "metadata_": None,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


@pytest.fixture
def schools() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def classrooms() -> AsyncMock:
    repo = AsyncMock()
    repo.count_active.return_value = 0
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
def service(schools, classrooms, students, invalidator) -> SchoolService:
    return SchoolService(schools, classrooms, students, MagicMock(), invalidator)


@pytest.mark.unit
class TestSchoolServiceCreate:
    """Tests for create_school."""

    async def test_address_country_defaults_to_usa(self, service, schools, invalidator):
        def stamp(entity):
            entity.id = "s1"
            entity.created_at = entity.updated_at = datetime(2025, 1, 1, tzinfo=UTC)
            return entity

        schools.save.side_effect = stamp

        result = await service.create_school(
            SchoolCreate(name="Acme", address={"city": "Springfield"})
        )

        assert result.address.country == "USA"
        assert result.metadata == {}
        invalidator.school.assert_awaited_once_with("s1")

    def test_blank_name_is_rejected(self):
        with pytest.raises(ValueError):
            SchoolCreate(name="   ")


@pytest.mark.unit
class TestSchoolServiceUpdate:
    """Tests for update_school."""

    async def test_address_is_merged(self, service, schools):
        schools.get.return_value = _school()
        schools.conditional_update.return_value = GuardedUpdate(True, _school(name="Acme 2"))

        result = await service.update_school(
            "s1", SchoolUpdate(name="Acme 2", address={"city": "Shelbyville"})
        )

        values = schools.conditional_update.await_args.args[1]
        assert values["address"] == {
            "street": "1 Main",
            "city": "Shelbyville",
            "country": "USA",
        }
        assert result.name == "Acme 2"

    async def test_deleted_meanwhile_raises(self, service, schools):
        schools.get.return_value = _school()
        schools.conditional_update.return_value = GuardedUpdate(False, _school(is_active=False))

        with pytest.raises(NotFoundError):
            await service.update_school("s1", SchoolUpdate(name="X"))


@pytest.mark.unit
class TestSchoolServiceDelete:
    """Tests for delete_school."""

    async def test_active_classrooms_block_delete(self, service, schools, classrooms):
        schools.find_by_id.return_value = _school()
        schools.deactivate_if_empty.return_value = GuardedUpdate(False, _school())
        classrooms.count_active.return_value = 3

        with pytest.raises(HasActiveClassroomsError) as exc_info:
            await service.delete_school("s1")

        assert exc_info.value.active_classrooms == 3

    async def test_active_students_block_delete(self, service, schools, students):
        schools.find_by_id.return_value = _school()
        schools.deactivate_if_empty.return_value = GuardedUpdate(False, _school())
        students.count_active.return_value = 2

        with pytest.raises(HasActiveStudentsError):
            await service.delete_school("s1")

    async def test_empty_school_is_deleted(self, service, schools, invalidator):
        schools.find_by_id.return_value = _school()
        schools.deactivate_if_empty.return_value = GuardedUpdate(True, _school(is_active=False))

        await service.delete_school("s1")

        invalidator.school.assert_awaited_once_with("s1")

    async def test_dependants_gone_before_count_retries_delete(
        self, service, schools, invalidator
    ):
        schools.find_by_id.return_value = _school()
        schools.deactivate_if_empty.side_effect = [
            GuardedUpdate(False, _school()),
            GuardedUpdate(True, _school(is_active=False)),
        ]

        await service.delete_school("s1")

        assert schools.deactivate_if_empty.await_count == 2
        invalidator.school.assert_awaited_once_with("s1")

    async def test_retry_that_still_fails_raises_concurrent_modification(
        self, service, schools, invalidator
    ):
        schools.find_by_id.return_value = _school()
        schools.deactivate_if_empty.return_value = GuardedUpdate(False, _school())

        with pytest.raises(ConcurrentModificationError):
            await service.delete_school("s1")

        assert schools.deactivate_if_empty.await_count == 2
        invalidator.school.assert_not_awaited()

    async def test_school_deleted_elsewhere_during_retry_is_a_noop(
        self, service, schools, invalidator
    ):
        schools.find_by_id.return_value = _school()
        schools.deactivate_if_empty.side_effect = [
            GuardedUpdate(False, _school()),
            GuardedUpdate(False, _school(is_active=False)),
        ]

        await service.delete_school("s1")

        invalidator.school.assert_not_awaited()

    async def test_second_delete_is_a_noop(self, service, schools):
        schools.find_by_id.return_value = _school(is_active=False)

        await service.delete_school("s1")

        schools.deactivate_if_empty.assert_not_awaited()

    async def test_unknown_school_raises(self, service, schools):
        schools.find_by_id.return_value = None

        with pytest.raises(NotFoundError):
            await service.delete_school("missing")
