"""Per-tenant mutual exclusion using PostgreSQL advisory locks.

Transaction-scoped locks are released automatically on commit or
rollback, so a crashed worker can never leave a tenant locked.
"""

from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


log = structlog.get_logger()


def tenant_lock_key(tenant_id: UUID) -> int:
    """Stable signed 64-bit advisory lock key for a tenant."""
    return int.from_bytes(tenant_id.bytes[:8], "big", signed=True)


async def acquire_tenant_lock(session: AsyncSession, tenant_id: UUID) -> None:
    """Block until this transaction holds the tenant's advisory lock."""
    await session.execute(select(func.pg_advisory_xact_lock(tenant_lock_key(tenant_id))))
    log.debug("tenant_lock_acquired", tenant_id=str(tenant_id))


async def try_tenant_lock(session: AsyncSession, tenant_id: UUID) -> bool:
    """Take the tenant's advisory lock without waiting.

    Returns:
        True if the lock is now held by this transaction
    """
    result = await session.execute(
        select(func.pg_try_advisory_xact_lock(tenant_lock_key(tenant_id)))
    )
    return bool(result.scalar_one())
