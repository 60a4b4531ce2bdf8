# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Process lifecycle and dependency wiring.

Every shared resource (engine, Redis client, cache store, coordinator) is
created once here and handed to the services through their constructors.
No component opens its own connections or builds its own collaborators.

Example:
    from schoolhub.container import lifespan

    async with lifespan(settings, create_tables=True) as container:
        school = await container.schools.create_school(SchoolCreate(name="Acme"))
        health = await container.health()
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from redis.exceptions import RedisError as BaseRedisError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from schoolhub.core.config import Settings, get_settings
from schoolhub.domains.classroom import ClassroomService
from schoolhub.domains.enrollment import ClassroomLocks, EnrollmentCoordinator
from schoolhub.domains.school import SchoolService
from schoolhub.domains.student import StudentService
from schoolhub.infrastructure.cache import (
    CacheAside,
    CacheInvalidator,
    CacheStore,
    RedisClient,
    RedisError,
    close_redis,
    get_redis,
    init_redis,
)
from schoolhub.infrastructure.database import (
    ClassroomRepository,
    SchoolRepository,
    StudentRepository,
    check_database_connection,
    close_database,
    get_engine,
    get_sessionmaker,
    init_database,
)
from schoolhub.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Wired components of one process.

    Attributes:
        settings: Settings the container was built from.
        cache: Shared cache store.
        invalidator: Shared cache invalidator.
        coordinator: The single enrollment coordinator.
        schools: School service.
        classrooms: Classroom service.
        students: Student service.
        engine: Database engine, used for health checks.
    """

    settings: Settings
    cache: CacheStore
    invalidator: CacheInvalidator
    coordinator: EnrollmentCoordinator
    schools: SchoolService
    classrooms: ClassroomService
    students: StudentService
    engine: AsyncEngine | None = None

    async def health(self) -> dict[str, bool]:
        """Report whether the database and the cache are reachable.

        An unreachable cache does not make the service unhealthy for
        callers; it only slows reads down.
        """
        return {
            "database": await check_database_connection(self.engine),
            "cache": await self.cache.ping(),
        }


def build_container(
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    redis_client: RedisClient,
    engine: AsyncEngine | None = None,
) -> ServiceContainer:
    """Wire repositories, cache components, coordinator and services.

    Args:
        settings: Application settings.
        sessionmaker: Sessionmaker for the durable store.
        redis_client: Shared Redis client, connected or not.
        engine: Database engine, for health checks.

    Returns:
        The wired container.
    """
    timeout = settings.database.operation_timeout
    schools = SchoolRepository(sessionmaker, timeout)
    classrooms = ClassroomRepository(sessionmaker, timeout)
    students = StudentRepository(sessionmaker, timeout)

    store = CacheStore(
        redis_client,
        operation_timeout=settings.cache.operation_timeout,
        enabled=settings.cache.enabled,
    )
    invalidator = CacheInvalidator(store)
    reader = CacheAside(
        store,
        detail_ttl=settings.cache.ttl_medium,
        list_ttl=settings.cache.ttl_short,
    )
    coordinator = EnrollmentCoordinator(classrooms, invalidator, ClassroomLocks())

    return ServiceContainer(
        settings=settings,
        cache=store,
        invalidator=invalidator,
        coordinator=coordinator,
        schools=SchoolService(schools, classrooms, students, reader, invalidator),
        classrooms=ClassroomService(classrooms, schools, students, reader, invalidator),
        students=StudentService(students, schools, coordinator, reader, invalidator),
        engine=engine,
    )


@asynccontextmanager
async def lifespan(
    settings: Settings | None = None,
    create_tables: bool = False,
) -> AsyncIterator[ServiceContainer]:
    """Start the process resources, yield the container, then release them.

    A Redis failure at startup is logged and the cache runs degraded; a
    database failure is raised.

    Args:
        settings: Application settings, defaults to get_settings().
        create_tables: Create missing tables at startup.

    Yields:
        The wired ServiceContainer.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    logger.info("Starting %s (%s)", settings.service_name, settings.environment)

    await init_database(settings, create_tables=create_tables)

    if settings.cache.enabled:
        try:
            await init_redis(settings)
            logger.info("Redis connection initialized")
        except RedisError as e:
            logger.warning("Failed to initialize Redis, cache degraded: %s", str(e))
        redis_client = get_redis()
    else:
        redis_client = RedisClient(settings)

    container = build_container(
        settings,
        get_sessionmaker(),
        redis_client,
        get_engine(),
    )

    try:
        yield container
    finally:
        try:
            await close_redis()
            logger.info("Redis connection closed")
        except (RedisError, BaseRedisError, OSError) as e:
            logger.warning("Error closing Redis: %s", str(e))

        await close_database()
        logger.info("Shutting down %s", settings.service_name)
