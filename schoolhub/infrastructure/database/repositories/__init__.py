# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Entity repositories over the durable store."""

from schoolhub.infrastructure.database.repositories.base import (
    BaseRepository,
    GuardedUpdate,
)
from schoolhub.infrastructure.database.repositories.classroom import ClassroomRepository
from schoolhub.infrastructure.database.repositories.school import SchoolRepository
from schoolhub.infrastructure.database.repositories.student import StudentRepository

__all__ = [
    "BaseRepository",
    "ClassroomRepository",
    "GuardedUpdate",
    "SchoolRepository",
    "StudentRepository",
]
