"""Usage sweep: sample every live tenant and enforce plan limits."""

from typing import Any
from uuid import UUID

import structlog

from tenantforge.core.errors import InvalidTransitionError
from tenantforge.core.jobs.context import lifecycle_service, notify_once, resource_monitor
from tenantforge.core.jobs.retry import with_bounded_retry
from tenantforge.core.jobs.sweep import run_sweep
from tenantforge.integrations import NotificationKind
from tenantforge.modules.monitoring.evaluation import (
    critical_violations,
    evaluate_limits,
    high_warnings,
)
from tenantforge.modules.plans.limits import resolve_limits
from tenantforge.modules.tenants.lifecycle import LIVE_STATUSES, REASON_RESOURCE_LIMITS
from tenantforge.modules.tenants.models import TenantStatus
from tenantforge.modules.tenants.repos import TenantRepository


log = structlog.get_logger()


@with_bounded_retry(max_tries=2)
async def usage_sweep(ctx: dict[str, Any]) -> dict[str, Any]:
    """Record a usage sample per tenant and act on the limit report.

    Active tenants with a violation above the critical threshold are
    suspended. Warnings above the high threshold notify the owner at most
    once per ``usage_warning_interval_hours``. Old samples are pruned at
    the end.

    Args:
        ctx: Worker context

    Returns:
        Sweep tally plus the number of samples pruned
    """
    settings = ctx["settings"]
    session_factory = ctx["db_session_factory"]

    async with session_factory() as session:
        tenant_ids = await TenantRepository(session).ids_by_status(LIVE_STATUSES)

    async def measure(tenant_id: UUID) -> str | None:
        async with session_factory() as session:
            tenant = await TenantRepository(session).get_by_id(tenant_id)
            if tenant is None or tenant.status not in LIVE_STATUSES:
                return "skipped"
            monitor = resource_monitor(ctx, session)
            snapshot = await monitor.record(tenant)
            await session.commit()

            report = evaluate_limits(snapshot, resolve_limits(tenant.plan))
            lifecycle = lifecycle_service(ctx, session)

            critical = critical_violations(report)
            if critical and tenant.status == TenantStatus.ACTIVE:
                log.warning(
                    "usage_critical",
                    tenant=tenant.slug,
                    resources=[finding.resource for finding in critical],
                )
                try:
                    await lifecycle.suspend(tenant_id, REASON_RESOURCE_LIMITS)
                except InvalidTransitionError:
                    return "skipped"
                return "suspended"

            warnings = high_warnings(report)
            if warnings:
                sent = await notify_once(
                    ctx,
                    lifecycle,
                    tenant,
                    NotificationKind.USAGE_WARNING,
                    {
                        "resources": {
                            finding.resource: finding.percentage for finding in warnings
                        }
                    },
                )
                return "warned" if sent else "recorded"
            return "recorded"

    result = await run_sweep("usage", tenant_ids, measure, settings.sweep_concurrency)

    async with session_factory() as session:
        pruned = await resource_monitor(ctx, session).prune_samples()
        await session.commit()

    return {**result.as_dict(), "samples_pruned": pruned}
