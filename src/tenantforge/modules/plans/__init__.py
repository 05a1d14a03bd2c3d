"""Plans module - quota policies bound to tenants."""

from tenantforge.modules.plans.limits import (
    GUEST_LIMITS,
    PAID_DEFAULTS,
    PlanLimits,
    is_default_plan,
    resolve_limits,
)


__all__ = [
    "GUEST_LIMITS",
    "PAID_DEFAULTS",
    "PlanLimits",
    "is_default_plan",
    "resolve_limits",
]
