"""Resolved resource limits for a tenant.

Plans are referenced, never owned, by tenants. Everything downstream of
the database works with the immutable ``PlanLimits`` record below.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from tenantforge.modules.plans.models import Plan


@dataclass(frozen=True, slots=True)
class PlanLimits:
    """Quota policy applied to one tenant."""

    cpu_percent: float
    memory_mb: float
    storage_mb: float
    bandwidth_mb: float
    page_views: int
    has_backups: bool = False
    backup_frequency_hours: int = 24
    backup_retention_days: int = 30
    plan_slug: str | None = None

    def as_dict(self) -> dict[str, float]:
        """Numeric limits keyed by resource name."""
        return {
            "cpu_percent": self.cpu_percent,
            "memory_mb": self.memory_mb,
            "storage_mb": self.storage_mb,
            "bandwidth_mb": self.bandwidth_mb,
            "page_views": self.page_views,
        }


# Applied to tenants without a plan
GUEST_LIMITS = PlanLimits(
    cpu_percent=10,
    memory_mb=64,
    storage_mb=100,
    bandwidth_mb=1000,
    page_views=1000,
    has_backups=False,
)

# Fallbacks for limit columns a plan leaves empty
PAID_DEFAULTS = PlanLimits(
    cpu_percent=25,
    memory_mb=256,
    storage_mb=1000,
    bandwidth_mb=10000,
    page_views=50000,
    has_backups=True,
    backup_frequency_hours=24,
    backup_retention_days=30,
)


def resolve_limits(plan: "Plan | None") -> PlanLimits:
    """Turn an optional plan row into concrete limits."""
    if plan is None:
        return GUEST_LIMITS

    def pick(value: int | None, default: float) -> float:
        return default if value is None else value

    return PlanLimits(
        cpu_percent=pick(plan.cpu_percent, PAID_DEFAULTS.cpu_percent),
        memory_mb=pick(plan.memory_mb, PAID_DEFAULTS.memory_mb),
        storage_mb=pick(plan.storage_mb, PAID_DEFAULTS.storage_mb),
        bandwidth_mb=pick(plan.bandwidth_mb, PAID_DEFAULTS.bandwidth_mb),
        page_views=int(pick(plan.page_views, PAID_DEFAULTS.page_views)),
        has_backups=plan.has_backups,
        backup_frequency_hours=int(
            pick(plan.backup_frequency_hours, PAID_DEFAULTS.backup_frequency_hours)
        ),
        backup_retention_days=int(
            pick(plan.backup_retention_days, PAID_DEFAULTS.backup_retention_days)
        ),
        plan_slug=plan.slug,
    )


def is_default_plan(plan: "Plan | None", default_slug: str) -> bool:
    """Whether a plan is the zero-cost default policy.

    Tenants on the default plan, or on no plan at all, are never
    auto-deleted after a long suspension.
    """
    if plan is None:
        return True
    return plan.slug == default_slug or plan.is_free
