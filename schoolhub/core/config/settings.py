# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for SchoolHub.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from schoolhub.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATABASE_PASSWORD = "schoolhub_password"


class DatabaseSettings(BaseSettings):
    """Durable store configuration.

    Attributes:
        driver: SQLAlchemy async driver name.
        user: Database username.
        password: Database password.
        host: Database host address.
        port: Database port number.
        name: Database name.
        url_override: Full URL, takes precedence over the components.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        operation_timeout: Upper bound in seconds for one repository call.
        echo: Log emitted SQL.
    """

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        extra="ignore",
        populate_by_name=True,
    )

    driver: str = "postgresql+asyncpg"
    user: str = "schoolhub"
    password: SecretStr = SecretStr(DEFAULT_DATABASE_PASSWORD)
    host: str = "localhost"
    port: int = 5432
    name: str = "schoolhub"
    url_override: str | None = Field(
        default=None,
        validation_alias="DATABASE_URL",
    )
    pool_size: int = 10
    max_overflow: int = 20
    operation_timeout: float = 10.0
    echo: bool = False

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.url_override:
            return self.url_override
        pwd = self.password.get_secret_value()
        return f"{self.driver}://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"

    @property
    def is_sqlite(self) -> bool:
        """Check whether the configured store is SQLite."""
        return self.url.startswith("sqlite")


class RedisSettings(BaseSettings):
    """Redis configuration for the read cache.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Optional Redis password.
        database: Redis database number.
        url_override: Full URL, takes precedence over the components.
        max_connections: Maximum connection pool size.
        socket_timeout: Per-command socket timeout in seconds.
        socket_connect_timeout: Connect timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
        populate_by_name=True,
    )

    host: str = "localhost"
    port: int = 6379
    password: SecretStr | None = None
    database: int = 0
    url_override: str | None = Field(
        default=None,
        validation_alias="REDIS_URL",
    )
    max_connections: int = 50
    socket_timeout: float = 0.5
    socket_connect_timeout: float = 1.0

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        if self.url_override:
            return self.url_override
        if self.password is not None:
            pwd = self.password.get_secret_value()
            return f"redis://:{pwd}@{self.host}:{self.port}/{self.database}"
        return f"redis://{self.host}:{self.port}/{self.database}"


class CacheSettings(BaseSettings):
    """Cache-aside behaviour.

    Attributes:
        enabled: When False, reads always go to the repository.
        prefix: Namespace prepended to every cache key.
        operation_timeout: Upper bound in seconds for one cache call.
        ttl_short: TTL for list entries.
        ttl_medium: TTL for entity detail entries.
        ttl_long: TTL for rarely changing entries.
    """

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        extra="ignore",
    )

    enabled: bool = True
    prefix: str | None = None
    operation_timeout: float = 0.25
    ttl_short: int = 60
    ttl_medium: int = 300
    ttl_long: int = 3600


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        service_name: Service name, also the default cache namespace.
        environment: Current environment.
        debug: Enable debug mode.
        log_level: Logging level.
        database: Durable store settings.
        redis: Redis settings.
        cache: Cache-aside settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    service_name: str = "schoolhub"
    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)

    @model_validator(mode="after")
    def validate_timeouts(self) -> Self:
        """Cache calls must give up before the durable path does.

        Raises:
            ValueError: If the cache timeout is not shorter than the
                database timeout.
        """
        if self.cache.operation_timeout >= self.database.operation_timeout:
            raise ValueError(
                "cache.operation_timeout must be shorter than "
                "database.operation_timeout"
            )
        return self

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production" and not self.database.url_override:
            if self.database.password.get_secret_value() == DEFAULT_DATABASE_PASSWORD:
                raise ValueError(
                    "Database password must be changed from default in production. "
                    "Set DATABASE_PASSWORD environment variable."
                )
        return self

    @property
    def cache_prefix(self) -> str:
        """Namespace for cache keys, defaulting to '<service_name>:ch'."""
        return self.cache.prefix or f"{self.service_name}:ch"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
