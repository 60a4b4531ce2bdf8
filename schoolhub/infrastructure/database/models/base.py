# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Declarative base and shared column mixins."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

from schoolhub.utils.datetime import utc_now


def generate_id() -> str:
    """Generate a new primary key."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class IdMixin:
    """String UUID primary key."""

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String(36), primary_key=True, default=generate_id)


class TimestampMixin:
    """created_at and updated_at, set by the application in UTC."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            default=utc_now,
            onupdate=utc_now,
            nullable=False,
        )


class SoftDeleteMixin:
    """is_active flag. Inactive rows are treated as deleted."""

    @declared_attr
    def is_active(cls) -> Mapped[bool]:
        return mapped_column(Boolean, default=True, nullable=False, index=True)


class EntityModel(IdMixin, TimestampMixin, SoftDeleteMixin):
    """Combined mixin: id + timestamps + is_active."""

    __abstract__ = True
