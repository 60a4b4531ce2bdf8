# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Durable store: engine lifecycle, ORM models and repositories."""

from schoolhub.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    create_engine,
    create_schema,
    create_sessionmaker,
    get_engine,
    get_sessionmaker,
    init_database,
)
from schoolhub.infrastructure.database.repositories import (
    ClassroomRepository,
    SchoolRepository,
    StudentRepository,
)

__all__ = [
    "ClassroomRepository",
    "DatabaseError",
    "SchoolRepository",
    "StudentRepository",
    "check_database_connection",
    "close_database",
    "create_engine",
    "create_schema",
    "create_sessionmaker",
    "get_engine",
    "get_sessionmaker",
    "init_database",
]
