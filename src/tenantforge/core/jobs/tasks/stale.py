"""Deletion of tenants left suspended past ``suspended_deletion_days``.

Runs as a pass of both the expiry and the unpaid sweeps. Tenants on the
default plan are never deleted this way.
"""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from tenantforge.core.jobs.context import lifecycle_service
from tenantforge.core.jobs.sweep import SweepResult, run_sweep
from tenantforge.modules.plans.limits import is_default_plan
from tenantforge.modules.tenants.models import Tenant, TenantStatus
from tenantforge.modules.tenants.repos import TenantRepository


REASON_STALE_SUSPENSION = "Suspended too long"


async def delete_stale_suspensions(ctx: dict[str, Any], now: datetime) -> SweepResult:
    """Delete paid-plan tenants suspended before the cutoff.

    The condition is checked again under the tenant lock, so a tenant
    resumed while the pass runs is kept.

    Args:
        ctx: Worker context
        now: Reference time for the cutoff

    Returns:
        Tally with ``deleted`` and ``kept`` actions
    """
    settings = ctx["settings"]
    session_factory = ctx["db_session_factory"]
    cutoff = now - timedelta(days=settings.suspended_deletion_days)

    async with session_factory() as session:
        stale_ids = await TenantRepository(session).suspended_before_ids(cutoff)

    def still_stale(tenant: Tenant) -> bool:
        return (
            tenant.status == TenantStatus.SUSPENDED
            and tenant.suspended_at is not None
            and tenant.suspended_at < cutoff
            and not is_default_plan(tenant.plan, settings.default_plan_slug)
        )

    async def delete_stale(tenant_id: UUID) -> str | None:
        async with session_factory() as session:
            deleted = await lifecycle_service(ctx, session).delete(
                tenant_id,
                reason=REASON_STALE_SUSPENSION,
                only_if=still_stale,
            )
        return "deleted" if deleted is not None else "kept"

    return await run_sweep(
        "stale_suspensions", stale_ids, delete_stale, settings.sweep_concurrency
    )
