# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models."""

from schoolhub.infrastructure.database.models.base import Base, generate_id
from schoolhub.infrastructure.database.models.entities import Classroom, School, Student

__all__ = ["Base", "Classroom", "School", "Student", "generate_id"]
