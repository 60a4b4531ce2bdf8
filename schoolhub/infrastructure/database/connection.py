# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database connection management using SQLAlchemy async.

This module owns the process-wide engine and sessionmaker. Repositories
receive the sessionmaker at construction time and open one short session
per operation. Process startup and shutdown call init_database() and
close_database().

Uses SQLAlchemy 2.0 async API with the asyncpg driver in production. Tests
point DATABASE_URL at a file-backed SQLite database (aiosqlite).

Example:
    from schoolhub.infrastructure.database.connection import (
        init_database,
        get_sessionmaker,
    )

    # Initialize at application startup
    await init_database(settings)

    repository = SchoolRepository(get_sessionmaker(), settings.database.operation_timeout)
"""

from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from schoolhub.infrastructure.database.models import Base

if TYPE_CHECKING:
    from schoolhub.core.config.settings import Settings

# Module-level state for the database connection
_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseError(Exception):
    """Base exception for database lifecycle failures.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def create_engine(settings: "Settings") -> AsyncEngine:
    """Create an async engine for the configured store.

    Pool sizing only applies to server databases; SQLite uses the driver's
    default pool.

    Args:
        settings: Application settings containing database configuration.

    Returns:
        A new AsyncEngine.
    """
    db = settings.database
    engine_args: dict[str, Any] = {"echo": db.echo}
    if not db.is_sqlite:
        engine_args.update(
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
    return create_async_engine(db.url, **engine_args)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the sessionmaker used by repositories."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_database(settings: "Settings", create_tables: bool = False) -> None:
    """Initialize the database connection pool.

    This should be called once at application startup.

    Args:
        settings: Application settings containing database configuration.
        create_tables: Create missing tables from the ORM metadata.

    Raises:
        DatabaseError: If engine creation or schema creation fails.
    """
    global _engine, _sessionmaker

    try:
        _engine = create_engine(settings)
        _sessionmaker = create_sessionmaker(_engine)
        if create_tables:
            await create_schema(_engine)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_database() -> None:
    """Close the database connection pool.

    This should be called at application shutdown.
    """
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_engine() -> AsyncEngine:
    """Get the database async engine.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _engine is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the database sessionmaker.

    Returns:
        The SQLAlchemy async sessionmaker.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _sessionmaker is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _sessionmaker


async def check_database_connection(engine: Optional[AsyncEngine] = None) -> bool:
    """Check if the database is reachable.

    Args:
        engine: Engine to check, defaults to the process-wide one.

    Returns:
        True if the database is reachable, False otherwise.
    """
    engine = engine or _engine
    if engine is None:
        return False

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError):
        return False
