"""Expiry sweep: delete tenants whose expiry and grace period have passed.

The sweep also deletes stale suspensions and orphaned tenant directories.
"""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import structlog

from tenantforge.core.constants import ORPHAN_MIN_AGE_SECONDS
from tenantforge.core.jobs.context import lifecycle_service
from tenantforge.core.jobs.retry import with_bounded_retry
from tenantforge.core.jobs.sweep import run_sweep
from tenantforge.core.jobs.tasks.stale import delete_stale_suspensions
from tenantforge.integrations import NotificationKind
from tenantforge.modules.provisioning.filesystem import TenantFilesystem
from tenantforge.modules.tenants.models import Tenant
from tenantforge.modules.tenants.repos import TenantRepository


log = structlog.get_logger()

REASON_EXPIRED = "Tenant expired"


@with_bounded_retry(max_tries=3)
async def expiry_sweep(ctx: dict[str, Any]) -> dict[str, Any]:
    """Delete expired and stale suspended tenants, then remove orphans.

    Tenants without an expiry are never selected. The expiry is checked
    again under the tenant lock, so an extension that lands while the
    sweep runs wins.

    Args:
        ctx: Worker context

    Returns:
        Sweep tally, the stale-suspension tally and the number of
        orphaned directories removed
    """
    settings = ctx["settings"]
    session_factory = ctx["db_session_factory"]
    now = datetime.now(UTC)
    cutoff = now - timedelta(hours=settings.expiry_grace_hours)

    async with session_factory() as session:
        tenant_ids = await TenantRepository(session).expired_ids(cutoff)

    def still_expired(tenant: Tenant) -> bool:
        return tenant.expires_at is not None and tenant.expires_at < cutoff

    async def expire(tenant_id: UUID) -> str | None:
        async with session_factory() as session:
            deleted = await lifecycle_service(ctx, session).delete(
                tenant_id,
                notice=NotificationKind.TENANT_EXPIRED,
                reason=REASON_EXPIRED,
                only_if=still_expired,
            )
        return "deleted" if deleted is not None else "skipped"

    result = await run_sweep("expiry", tenant_ids, expire, settings.sweep_concurrency)
    stale = await delete_stale_suspensions(ctx, now)
    orphans = await cleanup_orphans(ctx)
    return {
        **result.as_dict(),
        "stale_suspensions": stale.as_dict(),
        "orphans_removed": orphans,
    }


async def cleanup_orphans(ctx: dict[str, Any]) -> int:
    """Remove directories under the tenants root that no live tenant uses.

    Returns:
        Number of directories removed
    """
    settings = ctx["settings"]
    filesystem = TenantFilesystem(settings.tenants_root)

    async with ctx["db_session_factory"]() as session:
        known = await TenantRepository(session).known_root_paths()

    orphans = await asyncio.to_thread(filesystem.find_orphans, known, ORPHAN_MIN_AGE_SECONDS)
    removed = 0
    for path in orphans:
        try:
            await asyncio.to_thread(filesystem.remove_tree, path)
        except OSError as exc:
            log.warning("orphan_cleanup_failed", path=str(path), error=str(exc))
            continue
        removed += 1
        log.info("orphan_removed", path=str(path))
    return removed
