# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Classroom domain package.

This package provides classroom management functionality including:
- Classroom CRUD operations
- Capacity updates checked against current enrollment
"""

from schoolhub.domains.classroom.service import ClassroomService

__all__ = [
    "ClassroomService",
]
