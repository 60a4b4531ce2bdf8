# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School, Classroom and Student ORM models.

Classroom.current_enrollment is only ever written by guarded UPDATE
statements in ClassroomRepository. The check constraints below are the
last line of defence for the capacity invariant.
"""

from datetime import date
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from schoolhub.infrastructure.database.models.base import Base, EntityModel


class School(EntityModel, Base):
    """School. Table: schools."""

    __tablename__ = "schools"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    address: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    contact: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )
    # Last issued student number sequence, incremented atomically.
    student_sequence: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )


class Classroom(EntityModel, Base):
    """Classroom with a seat capacity. Table: classrooms."""

    __tablename__ = "classrooms"

    school_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("schools.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    current_enrollment: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    grade_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    resources: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_classrooms_capacity_positive"),
        CheckConstraint(
            "current_enrollment >= 0", name="ck_classrooms_enrollment_non_negative"
        ),
        CheckConstraint(
            "current_enrollment <= capacity", name="ck_classrooms_enrollment_capacity"
        ),
        Index(
            "uq_classrooms_school_name_active",
            "school_id",
            "name",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )


class Student(EntityModel, Base):
    """Student, optionally seated in one classroom. Table: students."""

    __tablename__ = "students"

    school_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("schools.id"), nullable=False, index=True
    )
    classroom_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("classrooms.id"), nullable=True, index=True
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    student_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    enrollment_date: Mapped[date] = mapped_column(Date, nullable=False)
    contact: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    address: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    metadata_: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )

    __table_args__ = (
        Index("ix_students_school_classroom", "school_id", "classroom_id"),
    )
