# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School domain package.

This package provides school management functionality including:
- School CRUD operations
- Soft delete guarded by active classrooms and students
"""

from schoolhub.domains.school.service import SchoolService

__all__ = [
    "SchoolService",
]
