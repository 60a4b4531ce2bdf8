# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package owns classroom seat accounting:
- Guarded enrollment deltas
- Assignment validation
- Transfers with compensating rollback
"""

from schoolhub.domains.enrollment.service import ClassroomLocks, EnrollmentCoordinator

__all__ = [
    "ClassroomLocks",
    "EnrollmentCoordinator",
]
