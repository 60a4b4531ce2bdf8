# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for SchoolHub.

All timestamps are stored in UTC and all Python datetimes are
timezone-aware (with timezone.utc), so naive/aware values never mix.

Usage:
    from schoolhub.utils.datetime import utc_now

    created_at = mapped_column(DateTime(timezone=True), default=utc_now)
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Get the current UTC calendar date."""
    return utc_now().date()


def age_on(birth_date: date | None, today: date | None = None) -> int | None:
    """Compute age in whole years.

    A birthday later in the year than ``today`` has not yet been reached,
    so it does not count.

    Args:
        birth_date: Date of birth.
        today: Reference date, defaults to today in UTC.

    Returns:
        Age in years, or None when birth_date is unknown.
    """
    if birth_date is None:
        return None

    today = today or utc_today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age
