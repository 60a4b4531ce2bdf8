# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base repository: lookups, inserts, counts, paging and guarded updates.

Every public method opens its own short session and transaction, bounded by
the configured operation timeout. Storage errors are translated at this
boundary:

    IntegrityError (unique)      -> DuplicateKeyError
    IntegrityError (other), DataError -> ValidationFailedError
    timeout, OperationalError    -> OperationAbortedError

Task cancellation is not translated and propagates unchanged.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, func, select, update
from sqlalchemy.exc import DataError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolhub.core.exceptions import (
    DuplicateKeyError,
    NotFoundError,
    OperationAbortedError,
    ValidationFailedError,
)
from schoolhub.infrastructure.database.models.base import Base
from schoolhub.utils.datetime import utc_now

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


@dataclass(frozen=True, slots=True)
class GuardedUpdate(Generic[ModelT]):
    """Outcome of a conditional update.

    Attributes:
        applied: True if the row matched every guard and was written.
        entity: Row state after the attempt, None if the row does not exist.
    """

    applied: bool
    entity: ModelT | None


def _is_unique_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "unique" in message or "duplicate key" in message


class BaseRepository(Generic[ModelT]):
    """Generic repository over one ORM model.

    Subclasses set ``model`` and ``entity_name`` (used in error messages).
    """

    model: type[ModelT]
    entity_name: str = "Entity"

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        operation_timeout: float = 10.0,
    ) -> None:
        """Initialize the repository.

        Args:
            sessionmaker: Shared sessionmaker for the durable store.
            operation_timeout: Upper bound in seconds for one call.
        """
        self._sessionmaker = sessionmaker
        self._timeout = operation_timeout

    @asynccontextmanager
    async def transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session with a transaction, committed on success.

        Args:
            operation: Name used in errors and logs.

        Yields:
            AsyncSession inside a transaction.

        Raises:
            DuplicateKeyError: On a uniqueness violation.
            ValidationFailedError: On any other constraint violation.
            OperationAbortedError: On timeout or operational failure.
        """
        try:
            async with asyncio.timeout(self._timeout):
                async with self._sessionmaker() as session:
                    async with session.begin():
                        yield session
        except IntegrityError as e:
            if _is_unique_violation(e):
                raise DuplicateKeyError(self.entity_name, e) from e
            raise ValidationFailedError(self.entity_name, e) from e
        except DataError as e:
            raise ValidationFailedError(self.entity_name, e) from e
        except TimeoutError as e:
            logger.warning("%s.%s timed out after %ss", self.entity_name, operation, self._timeout)
            raise OperationAbortedError(f"{self.entity_name}.{operation}", e) from e
        except (OperationalError, InterfaceError) as e:
            logger.warning("%s.%s failed: %s", self.entity_name, operation, e)
            raise OperationAbortedError(f"{self.entity_name}.{operation}", e) from e

    def _active(self) -> ColumnElement[bool]:
        return self.model.is_active.is_(True)

    async def find_by_id(self, entity_id: str, active_only: bool = True) -> ModelT | None:
        """Return a record by primary key, or None.

        Args:
            entity_id: Primary key.
            active_only: Treat soft-deleted rows as absent.
        """
        stmt = select(self.model).where(self.model.id == entity_id)
        if active_only:
            stmt = stmt.where(self._active())
        async with self.transaction("find_by_id") as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def get(self, entity_id: str) -> ModelT:
        """Return an active record by primary key.

        Raises:
            NotFoundError: If the record is absent or soft-deleted.
        """
        entity = await self.find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name)
        return entity

    async def find_one(self, *conditions: ColumnElement[bool]) -> ModelT | None:
        """Return the first record matching all conditions, or None."""
        stmt = select(self.model).where(*conditions).limit(1)
        async with self.transaction("find_one") as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def save(self, entity: ModelT) -> ModelT:
        """Insert a new record.

        Raises:
            DuplicateKeyError: On a uniqueness violation.
            ValidationFailedError: On any other constraint violation.
        """
        async with self.transaction("save") as session:
            session.add(entity)
            await session.flush()
        return entity

    async def count_active(self, *conditions: ColumnElement[bool]) -> int:
        """Count active records matching all conditions."""
        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(self._active(), *conditions)
        )
        async with self.transaction("count_active") as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def paginate(
        self,
        *conditions: ColumnElement[bool],
        page: int = 1,
        limit: int = 10,
        sort: str = "-created_at",
    ) -> tuple[list[ModelT], int]:
        """Return one page of records and the total count.

        Args:
            conditions: Filters, all must hold.
            page: 1-based page number.
            limit: Page size.
            sort: Column name, prefixed with '-' for descending.

        Returns:
            Tuple of (records, total matching).
        """
        descending = sort.startswith("-")
        column = getattr(self.model, sort.lstrip("-"))
        order = column.desc() if descending else column.asc()

        stmt = (
            select(self.model)
            .where(*conditions)
            .order_by(order, self.model.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(self.model).where(*conditions)

        async with self.transaction("paginate") as session:
            total = int((await session.execute(count_stmt)).scalar_one())
            result = await session.execute(stmt)
            return list(result.scalars().all()), total

    async def conditional_update(
        self,
        entity_id: str,
        values: Mapping[str, Any],
        *guards: ColumnElement[bool],
    ) -> GuardedUpdate[ModelT]:
        """Write columns of one row only if every guard holds.

        The guard check and the write are one UPDATE statement, so no
        concurrent writer can slip in between. Only the given columns are
        written; other columns keep whatever concurrent writers stored.

        Args:
            entity_id: Primary key.
            values: Column values or SQL expressions to set.
            guards: Conditions the row must satisfy.

        Returns:
            Whether the write happened, and the row state afterwards.
        """
        stmt = (
            update(self.model)
            .where(self.model.id == entity_id, *guards)
            .values(**values, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        async with self.transaction("conditional_update") as session:
            result = await session.execute(stmt)
            current = await session.execute(
                select(self.model)
                .where(self.model.id == entity_id)
                .execution_options(populate_existing=True)
            )
            return GuardedUpdate(result.rowcount > 0, current.scalar_one_or_none())
