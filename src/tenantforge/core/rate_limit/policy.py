"""Rate-limit tiers, endpoint overrides and window lengths."""

from dataclasses import dataclass
from enum import StrEnum


class RateTier(StrEnum):
    GUEST = "guest"
    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    BUSINESS = "business"
    ADMIN = "admin"


@dataclass(frozen=True)
class TierLimits:
    per_minute: int
    per_hour: int
    per_day: int
    burst: int

    def window_limits(self) -> dict[str, int]:
        return {"minute": self.per_minute, "hour": self.per_hour, "day": self.per_day}


TIERS: dict[RateTier, TierLimits] = {
    RateTier.GUEST: TierLimits(per_minute=10, per_hour=50, per_day=100, burst=5),
    RateTier.FREE: TierLimits(per_minute=30, per_hour=500, per_day=2000, burst=10),
    RateTier.STARTER: TierLimits(per_minute=60, per_hour=1000, per_day=10000, burst=20),
    RateTier.PRO: TierLimits(per_minute=120, per_hour=3000, per_day=50000, burst=30),
    RateTier.BUSINESS: TierLimits(per_minute=300, per_hour=10000, per_day=200000, burst=50),
    RateTier.ADMIN: TierLimits(per_minute=1000, per_hour=50000, per_day=1000000, burst=100),
}

# Endpoint overrides, keyed by window name
ENDPOINT_LIMITS: dict[str, dict[str, int]] = {
    "tenant.create": {"hour": 5, "day": 10},
    "backup.create": {"hour": 3, "day": 20},
    "password.reset": {"hour": 3, "day": 10},
    "contact.send": {"hour": 5, "day": 20},
    "slug.check": {"minute": 30, "hour": 100},
}

WINDOWS: dict[str, int] = {"minute": 60, "hour": 3600, "day": 86400}

BURST_WINDOW = 10

# Plan slugs that map onto a tier of the same name
_PLAN_TIERS = {
    "free": RateTier.FREE,
    "starter": RateTier.STARTER,
    "pro": RateTier.PRO,
    "business": RateTier.BUSINESS,
}


def resolve_tier(
    authenticated: bool,
    is_admin: bool = False,
    plan_slug: str | None = None,
) -> RateTier:
    """Tier for a caller.

    Unknown or missing plans on an authenticated caller fall back to the
    free tier.
    """
    if not authenticated:
        return RateTier.GUEST
    if is_admin:
        return RateTier.ADMIN
    return _PLAN_TIERS.get(plan_slug or "", RateTier.FREE)
