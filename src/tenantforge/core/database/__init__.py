"""Database layer - session management, base models, and locks."""

from tenantforge.core.database.base import Base, TenantMixin, TimestampMixin, UUIDMixin
from tenantforge.core.database.locks import acquire_tenant_lock, try_tenant_lock
from tenantforge.core.database.session import (
    async_engine,
    async_session_factory,
    build_engine,
    build_session_factory,
    get_db,
)


__all__ = [
    "Base",
    "TenantMixin",
    "TimestampMixin",
    "UUIDMixin",
    "acquire_tenant_lock",
    "async_engine",
    "async_session_factory",
    "build_engine",
    "build_session_factory",
    "get_db",
    "try_tenant_lock",
]
