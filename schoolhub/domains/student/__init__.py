# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student domain package.

This package provides student management functionality including:
- Student CRUD operations
- Classroom assignment and transfer
- Student number generation
"""

from schoolhub.domains.student.service import StudentService

__all__ = [
    "StudentService",
]
