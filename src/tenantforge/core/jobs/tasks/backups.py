"""Backup sweep: create due backups and prune expired ones."""

from typing import Any
from uuid import UUID

import structlog

from tenantforge.core.errors import ConflictError
from tenantforge.core.jobs.context import backup_service
from tenantforge.core.jobs.retry import with_bounded_retry
from tenantforge.core.jobs.sweep import run_sweep
from tenantforge.modules.backups.models import BackupType
from tenantforge.modules.tenants.models import TenantStatus
from tenantforge.modules.tenants.repos import TenantRepository


log = structlog.get_logger()


@with_bounded_retry(max_tries=2)
async def backup_sweep(ctx: dict[str, Any]) -> dict[str, Any]:
    """Back up every entitled active tenant whose last full backup is stale.

    Args:
        ctx: Worker context

    Returns:
        Sweep tally plus the number of expired backups pruned
    """
    settings = ctx["settings"]
    session_factory = ctx["db_session_factory"]

    async with session_factory() as session:
        tenant_ids = await TenantRepository(session).ids_by_status([TenantStatus.ACTIVE])

    async def back_up(tenant_id: UUID) -> str | None:
        async with session_factory() as session:
            tenant = await TenantRepository(session).get_by_id(tenant_id)
            if tenant is None:
                return "skipped"
            service = backup_service(ctx, session)
            if not await service.is_due(tenant, BackupType.FULL):
                return "not_due"
            try:
                await service.create_backup(tenant, BackupType.FULL)
            except ConflictError:
                return "skipped"
            await session.commit()
            return "created"

    result = await run_sweep("backups", tenant_ids, back_up, settings.sweep_concurrency)

    async with session_factory() as session:
        pruned = await backup_service(ctx, session).prune_expired()
        await session.commit()

    return {**result.as_dict(), "backups_pruned": pruned}
