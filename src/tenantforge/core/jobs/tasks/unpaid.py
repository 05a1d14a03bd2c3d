"""Unpaid-suspension sweep.

First pass: suspend active owned tenants whose owner's payment lapsed and
whose grace period has run out, and warn owners whose paid period ends
soon. Second pass: delete stale suspensions
(see :mod:`tenantforge.core.jobs.tasks.stale`).
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog

from tenantforge.core.errors import InvalidTransitionError
from tenantforge.core.jobs.context import lifecycle_service, notify_once
from tenantforge.core.jobs.retry import with_bounded_retry
from tenantforge.core.jobs.sweep import run_sweep
from tenantforge.core.jobs.tasks.stale import delete_stale_suspensions
from tenantforge.integrations import NotificationKind, PaymentSignal
from tenantforge.modules.tenants.models import TenantStatus
from tenantforge.modules.tenants.repos import TenantRepository


log = structlog.get_logger()


@with_bounded_retry(max_tries=3)
async def unpaid_sweep(ctx: dict[str, Any]) -> dict[str, Any]:
    """Suspend unpaid tenants and delete long-suspended paid-plan tenants.

    Args:
        ctx: Worker context

    Returns:
        Tallies of both passes
    """
    settings = ctx["settings"]
    session_factory = ctx["db_session_factory"]
    payment: PaymentSignal | None = ctx["collaborators"].payment
    now = datetime.now(UTC)

    async with session_factory() as session:
        owned_ids = await TenantRepository(session).owned_active_ids()

    async def check_payment(tenant_id: UUID) -> str | None:
        async with session_factory() as session:
            lifecycle = lifecycle_service(ctx, session)
            tenant = await TenantRepository(session).get_by_id(tenant_id)
            if tenant is None or tenant.owner is None or tenant.status != TenantStatus.ACTIVE:
                return "skipped"
            owner = tenant.owner

            if payment.is_payment_current(owner, now):
                if payment.expiring_soon(owner, now):
                    ends_at = owner.subscription_ends_at
                    sent = await notify_once(
                        ctx,
                        lifecycle,
                        tenant,
                        NotificationKind.SUSPENSION_WARNING,
                        {"ends_at": ends_at.isoformat() if ends_at else None},
                    )
                    return "warned" if sent else None
                return None
            if not payment.grace_period_elapsed(owner, now):
                return "in_grace"

            reason = payment.suspension_reason(owner, now) or "Payment required"
            try:
                await lifecycle.suspend(tenant_id, reason)
            except InvalidTransitionError:
                return "skipped"
            return "suspended"

    if payment is None:
        log.warning("payment_signal_unavailable", sweep="unpaid")
        suspended: dict[str, Any] = {}
    else:
        result = await run_sweep(
            "unpaid", owned_ids, check_payment, settings.sweep_concurrency
        )
        suspended = result.as_dict()

    stale = await delete_stale_suspensions(ctx, now)
    return {"unpaid": suspended, "stale_suspensions": stale.as_dict()}
