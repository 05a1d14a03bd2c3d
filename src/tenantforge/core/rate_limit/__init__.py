"""Multi-tier rate limiting on Redis.

Burst caps use a sliding window; minute, hour and day caps use atomic
fixed-window counters.
"""

from tenantforge.core.rate_limit.backend import (
    MultiWindowRateLimiter,
    RateLimitDecision,
    rate_limiter,
)
from tenantforge.core.rate_limit.decorators import rate_limit
from tenantforge.core.rate_limit.middleware import RateLimitMiddleware
from tenantforge.core.rate_limit.policy import (
    ENDPOINT_LIMITS,
    TIERS,
    RateTier,
    TierLimits,
    resolve_tier,
)


__all__ = [
    "ENDPOINT_LIMITS",
    "TIERS",
    "MultiWindowRateLimiter",
    "RateLimitDecision",
    "RateLimitMiddleware",
    "RateTier",
    "TierLimits",
    "rate_limit",
    "rate_limiter",
    "resolve_tier",
]
