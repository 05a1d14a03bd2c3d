"""Tenant state machine and expiry policy.

Pure functions only; the orchestration that applies them lives in
``tenantforge.modules.tenants.services``.
"""

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from tenantforge.core.errors import InvalidTransitionError
from tenantforge.modules.tenants.models import TenantStatus


if TYPE_CHECKING:
    from tenantforge.config import Settings
    from tenantforge.modules.plans.models import Plan


# Tenants that still hold resources
LIVE_STATUSES = (TenantStatus.ACTIVE, TenantStatus.SUSPENDED)

# Failed provisioning removes the row instead of transitioning it.
TRANSITIONS: dict[TenantStatus, frozenset[TenantStatus]] = {
    TenantStatus.PROVISIONING: frozenset({TenantStatus.ACTIVE}),
    TenantStatus.ACTIVE: frozenset({TenantStatus.SUSPENDED, TenantStatus.DELETED}),
    TenantStatus.SUSPENDED: frozenset({TenantStatus.ACTIVE, TenantStatus.DELETED}),
    TenantStatus.DELETED: frozenset(),
}

# Suspension reasons surfaced to owners
REASON_PAYMENT_FAILED = "Payment failed"
REASON_SUBSCRIPTION_CANCELLED = "Subscription cancelled"
REASON_SUBSCRIPTION_EXPIRED = "Subscription expired"
REASON_ACCOUNT_SUSPENDED = "Account suspended"
REASON_RESOURCE_LIMITS = "Resource limits exceeded"
REASON_OPERATOR = "Suspended by operator"


def can_transition(current: TenantStatus, target: TenantStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: TenantStatus, target: TenantStatus) -> None:
    """Raise unless ``current -> target`` is a legal move.

    Raises:
        InvalidTransitionError: If the transition is not allowed
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(current=current.value, target=target.value)


def initial_expiry(
    settings: "Settings",
    now: datetime,
    owner_id: object | None,
    plan: "Plan | None",
) -> datetime | None:
    """Expiry assigned when a tenant becomes active.

    Guests get a short trial, registered owners a longer one, and tenants
    on a paid plan do not expire.
    """
    if owner_id is None:
        return now + timedelta(hours=settings.guest_expiry_hours)
    if plan is not None and not plan.is_free:
        return None
    return now + timedelta(days=settings.owner_expiry_days)


def claimed_expiry(
    settings: "Settings",
    now: datetime,
    plan: "Plan | None",
) -> datetime | None:
    """Expiry after a registering user claims a guest tenant.

    The guest clock is discarded and the owner policy starts fresh.
    """
    if plan is not None and not plan.is_free:
        return None
    return now + timedelta(days=settings.owner_expiry_days)


def extended_expiry(
    current: datetime | None,
    now: datetime,
    duration: timedelta,
) -> datetime:
    """New expiry after an extension, counted from now if already past."""
    base = current if current is not None and current > now else now
    return base + duration
