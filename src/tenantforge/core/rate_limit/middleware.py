"""Global per-tier rate limiting."""

from typing import ClassVar

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tenantforge.config import settings
from tenantforge.core.rate_limit.backend import rate_limiter
from tenantforge.core.rate_limit.identity import request_identity, request_tier
from tenantforge.core.rate_limit.responses import rate_limit_headers, rate_limited_response


logger = structlog.get_logger()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies the caller's tier limits to every request.

    Must run inside ``IdentityMiddleware`` so the caller is known. When
    Redis is unreachable the request is let through and a warning logged.
    """

    EXCLUDED_PATHS: ClassVar[set[str]] = {
        "/health/live",
        "/health/ready",
        "/docs",
        "/redoc",
        "/openapi.json",
    }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not settings.rate_limit_enabled or request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        identity = request_identity(request)
        tier = request_tier(request)
        request.state.rate_tier = tier.value

        try:
            decision = await rate_limiter.allow(identity, tier)
        except RedisError as exc:
            logger.warning("rate_limit_unavailable", error=str(exc), path=request.url.path)
            return await call_next(request)

        if not decision.allowed:
            logger.warning(
                "rate_limit_exceeded",
                identity=identity,
                tier=tier.value,
                window=decision.window,
                limit=decision.limit,
            )
            return rate_limited_response(
                decision, trace_id=getattr(request.state, "trace_id", None)
            )

        response = await call_next(request)
        response.headers.update(rate_limit_headers(decision))
        return response
