"""Per-endpoint rate limits for individual routes."""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

import structlog
from fastapi import Request
from redis.exceptions import RedisError
from starlette.responses import Response

from tenantforge.config import settings
from tenantforge.core.rate_limit.backend import rate_limiter
from tenantforge.core.rate_limit.identity import request_identity
from tenantforge.core.rate_limit.policy import ENDPOINT_LIMITS
from tenantforge.core.rate_limit.responses import rate_limited_response


logger = structlog.get_logger()

P = ParamSpec("P")
T = TypeVar("T")


def rate_limit(
    endpoint: str,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T | Response]]]:
    """Apply an endpoint's override windows to a route.

    The route must take a ``request: Request`` parameter.

    Example:
        @router.post("")
        @rate_limit("tenant.create")
        async def create_tenant(request: Request, ...):
            ...
    """
    if endpoint not in ENDPOINT_LIMITS:
        raise ValueError(f"No rate limits defined for endpoint {endpoint!r}")

    def decorator(
        func: Callable[P, Awaitable[T]],
    ) -> Callable[P, Awaitable[T | Response]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T | Response:
            request = kwargs.get("request")
            if not isinstance(request, Request):
                request = next((arg for arg in args if isinstance(arg, Request)), None)
            if request is None or not settings.rate_limit_enabled:
                return await func(*args, **kwargs)

            try:
                decision = await rate_limiter.check_endpoint(request_identity(request), endpoint)
            except RedisError as exc:
                logger.warning("rate_limit_unavailable", error=str(exc), endpoint=endpoint)
                return await func(*args, **kwargs)

            if decision is not None and not decision.allowed:
                return rate_limited_response(
                    decision,
                    endpoint=endpoint,
                    trace_id=getattr(request.state, "trace_id", None),
                )
            return await func(*args, **kwargs)

        return wrapper

    return decorator
