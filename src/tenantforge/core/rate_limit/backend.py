"""Multi-window rate limiter backed by Redis.

Each request is checked against, in order:

1. endpoint overrides (fixed windows, separate counters per endpoint)
2. the tier's burst cap, a 10 second sliding window over a sorted set
3. the tier's per-minute, per-hour and per-day fixed windows

Fixed windows are ``INCR`` counters whose TTL is set on first use. The
increment, the expiry and the TTL read go out in one MULTI/EXEC pipeline,
so concurrent requests can never both observe a stale count. Rejected
requests are counted as well.
"""

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

import structlog
from redis.exceptions import RedisError

from tenantforge.core.cache.redis import redis_client
from tenantforge.core.rate_limit.policy import (
    BURST_WINDOW,
    ENDPOINT_LIMITS,
    TIERS,
    WINDOWS,
    RateTier,
)


log = structlog.get_logger()

ANALYTICS_TTL_SECONDS = 2 * 86400


@dataclass
class RateLimitDecision:
    """Outcome of a rate-limit check.

    Attributes:
        allowed: Whether the request may proceed
        window: Name of the deciding window (the violated one on rejection)
        limit: Cap of that window
        remaining: Requests left in that window
        retry_after: Seconds until that window resets, set on rejection
    """

    allowed: bool
    window: str
    limit: int
    remaining: int
    retry_after: int | None = None


class MultiWindowRateLimiter:
    """Checks burst and fixed-window caps for one identity."""

    def __init__(
        self,
        prefix: str = "rate_limit",
        analytics: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.prefix = prefix
        self.analytics = analytics
        self.clock = clock

    def _key(self, window: str, identity: str, endpoint: str | None = None) -> str:
        if endpoint:
            return f"{self.prefix}:endpoint:{endpoint}:{window}:{identity}"
        return f"{self.prefix}:{window}:{identity}"

    async def allow(
        self,
        identity: str,
        tier: RateTier,
        endpoint: str | None = None,
    ) -> RateLimitDecision:
        """Count a request and decide whether it may proceed.

        Args:
            identity: ``user:<id>`` or ``ip:<addr>:<ua-hash>``
            tier: Caller tier
            endpoint: Endpoint key with its own overrides, if any

        Returns:
            The first violated window, or the tightest allowing window
        """
        if endpoint is not None:
            endpoint_decision = await self.check_endpoint(identity, endpoint)
            if endpoint_decision is not None and not endpoint_decision.allowed:
                return endpoint_decision

        limits = TIERS[tier]
        async with redis_client() as client:
            decision = await self._check_burst(client, identity, limits.burst)
            if not decision.allowed:
                return decision

            tightest = decision
            for window, limit in limits.window_limits().items():
                decision = await self._check_window(
                    client, self._key(window, identity), window, limit
                )
                if not decision.allowed:
                    return decision
                if decision.remaining < tightest.remaining:
                    tightest = decision

            if self.analytics:
                await self._track_usage(client, identity, tier)

        return tightest

    async def check_endpoint(self, identity: str, endpoint: str) -> RateLimitDecision | None:
        """Count a request against an endpoint's override windows only.

        Returns:
            None if the endpoint has no overrides
        """
        overrides = ENDPOINT_LIMITS.get(endpoint)
        if not overrides:
            return None

        tightest: RateLimitDecision | None = None
        async with redis_client() as client:
            for window, limit in overrides.items():
                decision = await self._check_window(
                    client, self._key(window, identity, endpoint), window, limit
                )
                if not decision.allowed:
                    log.warning(
                        "endpoint_rate_limit_exceeded",
                        endpoint=endpoint,
                        identity=identity,
                        window=window,
                        limit=limit,
                    )
                    return decision
                if tightest is None or decision.remaining < tightest.remaining:
                    tightest = decision
        return tightest

    async def _check_window(
        self,
        client,  # type: ignore[no-untyped-def]
        key: str,
        window: str,
        limit: int,
    ) -> RateLimitDecision:
        length = WINDOWS[window]
        async with client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, length, nx=True)
            pipe.ttl(key)
            count, _, ttl = await pipe.execute()

        if ttl is None or ttl < 0:
            ttl = length
        if count > limit:
            return RateLimitDecision(
                allowed=False,
                window=window,
                limit=limit,
                remaining=0,
                retry_after=max(1, min(int(ttl), length)),
            )
        return RateLimitDecision(
            allowed=True, window=window, limit=limit, remaining=limit - count
        )

    async def _check_burst(
        self,
        client,  # type: ignore[no-untyped-def]
        identity: str,
        limit: int,
    ) -> RateLimitDecision:
        key = self._key("burst", identity)
        now = self.clock()
        async with client.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(key, 0, now - BURST_WINDOW)
            pipe.zadd(key, {f"{now:.6f}:{uuid4().hex}": now})
            pipe.zcard(key)
            pipe.zrange(key, 0, 0, withscores=True)
            pipe.expire(key, BURST_WINDOW)
            results = await pipe.execute()

        count = results[2]
        if count > limit:
            oldest = results[3][0][1] if results[3] else now
            retry_after = max(1, min(BURST_WINDOW, math.ceil(oldest + BURST_WINDOW - now)))
            return RateLimitDecision(
                allowed=False,
                window="burst",
                limit=limit,
                remaining=0,
                retry_after=retry_after,
            )
        return RateLimitDecision(
            allowed=True, window="burst", limit=limit, remaining=limit - count
        )

    async def _track_usage(
        self,
        client,  # type: ignore[no-untyped-def]
        identity: str,
        tier: RateTier,
    ) -> None:
        """Per-day counters for analytics; failures are only logged."""
        now = datetime.fromtimestamp(self.clock(), tz=UTC)
        date = now.strftime("%Y-%m-%d")
        daily = f"api_usage:{date}:{tier.value}"
        hourly = f"{daily}:{now.strftime('%H')}"
        uniques = f"api_unique:{date}"
        try:
            async with client.pipeline(transaction=False) as pipe:
                pipe.incr(daily)
                pipe.expire(daily, ANALYTICS_TTL_SECONDS)
                pipe.incr(hourly)
                pipe.expire(hourly, ANALYTICS_TTL_SECONDS)
                pipe.pfadd(uniques, identity)
                pipe.expire(uniques, ANALYTICS_TTL_SECONDS)
                await pipe.execute()
        except RedisError as exc:
            log.debug("api_usage_tracking_failed", error=str(exc))

    async def reset(self, identity: str) -> int:
        """Drop every tier counter for an identity.

        Returns:
            Number of keys deleted
        """
        keys = [self._key(window, identity) for window in (*WINDOWS, "burst")]
        async with redis_client() as client:
            return await client.delete(*keys)


rate_limiter = MultiWindowRateLimiter()
