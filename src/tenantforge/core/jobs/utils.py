"""Shared helpers for the job layer."""

from arq.connections import RedisSettings

from tenantforge.config import Settings, settings


def get_redis_settings(config: Settings | None = None) -> RedisSettings:
    """ARQ connection settings for the configured Redis URL."""
    return RedisSettings.from_dsn(str((config or settings).redis_url))
