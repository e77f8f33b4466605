# src/pagecache/config/settings.py
# Copyright (c) Pagecache.
# SPDX-License-Identifier: MIT
"""Pagecache Configuration (Pydantic Settings, v2)

Summary:
    Typed, validated configuration for the page cache and the demo service
    that hosts it. Only adapters and infrastructure read the process
    environment; the application layer receives plain values (the caching
    flag, the store) through constructors.

Design:
    - Pydantic v2 BaseSettings with `extra='forbid'` to catch unknown env.
    - Explicit field declarations with constrained types and ranges.
    - Cross-field validation: the Redis backend requires REDIS_URL.
    - Singleton accessor `get_settings()` with LRU cache.
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Logical deployment environment."""

    DEVELOPMENT = "development"
    TEST = "test"
    CI = "ci"
    STAGING = "staging"
    PRODUCTION = "production"


class CacheBackend(str, Enum):
    """Response store implementation selected at startup."""

    MEMORY = "memory"
    REDIS = "redis"


class Settings(BaseSettings):
    """Typed configuration for the page cache service."""

    # ---------------------------
    # Core environment
    # ---------------------------
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Logical deployment environment.",
        validation_alias="ENVIRONMENT",
    )
    service_name: str = Field(
        default="pagecache",
        min_length=1,
        description="Service name reported in logs and /healthz.",
        validation_alias="SERVICE_NAME",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version reported in /healthz.",
        validation_alias="SERVICE_VERSION",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG shows page_cache.get / page_cache.set).",
        validation_alias="LOG_LEVEL",
    )

    # ---------------------------
    # Page cache
    # ---------------------------
    caching_enabled: bool = Field(
        default=False,
        description="Global caching flag. When false no route reads or writes the store.",
        validation_alias="CACHING_ENABLED",
    )
    cache_backend: CacheBackend = Field(
        default=CacheBackend.MEMORY,
        description="Response store backend: 'memory' (per-process) or 'redis'.",
        validation_alias="CACHE_BACKEND",
    )
    cache_namespace: str = Field(
        default="pagecache:v1",
        min_length=1,
        description="Prefix prepended to every Redis cache key ('<namespace>:<key>').",
        validation_alias="CACHE_NAMESPACE",
    )
    cache_default_expires_s: int | None = Field(
        default=None,
        ge=1,
        description="Retention for entries written without an expiry (memory backend only).",
        validation_alias="CACHE_DEFAULT_EXPIRES_S",
    )

    # ---------------------------
    # Redis
    # ---------------------------
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL. Required when CACHE_BACKEND=redis.",
        validation_alias="REDIS_URL",
    )
    redis_health_check_interval_s: int = Field(
        default=15,
        ge=1,
        le=3600,
        description="Health check interval for Redis clients in seconds.",
        validation_alias="REDIS_HEALTH_CHECK_INTERVAL_S",
    )
    redis_socket_timeout_s: float = Field(
        default=3.0,
        ge=0.1,
        le=60.0,
        description="Socket timeout in seconds for Redis commands.",
        validation_alias="REDIS_SOCKET_TIMEOUT_S",
    )
    redis_socket_connect_timeout_s: float = Field(
        default=3.0,
        ge=0.1,
        le=60.0,
        description="Socket connect timeout in seconds for Redis.",
        validation_alias="REDIS_SOCKET_CONNECT_TIMEOUT_S",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="forbid",
        case_sensitive=False,
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _validate_backend(self) -> Settings:
        """Validate backend-specific requirements.

        Raises:
            ValueError: If the Redis backend is selected without REDIS_URL.
        """
        if self.cache_backend is CacheBackend.REDIS and not (self.redis_url or "").strip():
            raise ValueError("CACHE_BACKEND=redis requires REDIS_URL to be set.")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings singleton.

    Returns:
        Settings: Validated application settings.

    Raises:
        RuntimeError: If configuration is invalid.
    """
    try:
        settings = Settings()
    except ValidationError as exc:
        logger.exception("Invalid application configuration")
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    logger.info(
        "Settings initialized",
        extra={
            "extra": {
                "environment": settings.environment.value,
                "caching_enabled": settings.caching_enabled,
                "cache_backend": settings.cache_backend.value,
                "cache_namespace": settings.cache_namespace,
                "redis_url_set": bool(settings.redis_url),
            }
        },
    )
    return settings
