# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Unit tests (mocked repositories, in-process Redis)
- Integration tests (file-backed SQLite and in-process Redis)
"""

from collections.abc import AsyncIterator
from datetime import date
from pathlib import Path
from typing import Any

import fakeredis
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from schoolhub.container import ServiceContainer, build_container
from schoolhub.core.config.settings import (
    CacheSettings,
    DatabaseSettings,
    Settings,
    clear_settings_cache,
)
from schoolhub.infrastructure.cache import CacheStore, RedisClient
from schoolhub.infrastructure.database import (
    create_engine,
    create_schema,
    create_sessionmaker,
)

# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (SQLite + fakeredis)"
    )
    config.addinivalue_line("markers", "slow: mark test as slow running")


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def database_path(tmp_path: Path) -> Path:
    """Provide a per-test SQLite database file."""
    return tmp_path / "schoolhub.db"


@pytest.fixture
def settings(database_path: Path) -> Settings:
    """Provide fresh test settings pointing at a per-test SQLite file."""
    clear_settings_cache()
    return Settings(
        environment="test",
        debug=True,
        log_level="DEBUG",
        database=DatabaseSettings(
            url_override=f"sqlite+aiosqlite:///{database_path}",
            operation_timeout=10.0,
        ),
        cache=CacheSettings(prefix="test:ch", operation_timeout=0.25),
    )


# =============================================================================
# Cache Fixtures
# =============================================================================


@pytest.fixture
def redis_server() -> fakeredis.FakeServer:
    """Provide an in-process Redis server.

    Set ``redis_server.connected = False`` to simulate an outage.
    """
    return fakeredis.FakeServer()


@pytest.fixture
async def redis_client(
    settings: Settings,
    redis_server: fakeredis.FakeServer,
) -> AsyncIterator[RedisClient]:
    """Provide a connected RedisClient over fakeredis."""
    fake = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
    client = RedisClient(settings, redis=fake)
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
def cache_store(settings: Settings, redis_client: RedisClient) -> CacheStore:
    """Provide a CacheStore over the fake Redis."""
    return CacheStore(redis_client, operation_timeout=settings.cache.operation_timeout)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def engine(settings: Settings) -> AsyncIterator[AsyncEngine]:
    """Provide an engine over a fresh schema."""
    engine = create_engine(settings)
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Provide a sessionmaker bound to the test engine."""
    return create_sessionmaker(engine)


@pytest.fixture
def container(
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    redis_client: RedisClient,
    engine: AsyncEngine,
) -> ServiceContainer:
    """Provide fully wired services over SQLite and fakeredis."""
    return build_container(settings, sessionmaker, redis_client, engine)


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def sample_student_data() -> dict[str, Any]:
    """Provide sample student fields for testing."""
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "date_of_birth": date(2012, 12, 10),
        "contact": {"email": "Ada@Example.com", "guardian_name": "Anne"},
    }
