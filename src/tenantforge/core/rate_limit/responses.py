"""429 responses for rejected requests."""

import time

from starlette.responses import JSONResponse

from tenantforge.core.errors.handlers import error_type_uri
from tenantforge.core.rate_limit.backend import RateLimitDecision


def rate_limit_headers(decision: RateLimitDecision) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Window": decision.window,
    }
    if decision.retry_after is not None:
        headers["X-RateLimit-Reset"] = str(int(time.time()) + decision.retry_after)
        headers["Retry-After"] = str(decision.retry_after)
    return headers


def rate_limited_response(
    decision: RateLimitDecision,
    endpoint: str | None = None,
    trace_id: str | None = None,
) -> JSONResponse:
    """RFC 7807 body naming the violated window."""
    detail = f"Rate limit exceeded. Limit: {decision.limit} per {decision.window}"
    if endpoint:
        detail = (
            f"Rate limit exceeded for {endpoint}. "
            f"Limit: {decision.limit} per {decision.window}"
        )
    return JSONResponse(
        status_code=429,
        content={
            "type": error_type_uri("rate_limit_exceeded"),
            "title": "Rate Limit Exceeded",
            "status": 429,
            "detail": detail,
            "window": decision.window,
            "limit": decision.limit,
            "retry_after": decision.retry_after,
            "trace_id": trace_id,
        },
        headers=rate_limit_headers(decision),
        media_type="application/problem+json",
    )
