"""Rate-limit identity and tier of an HTTP caller."""

import hashlib

from starlette.requests import Request

from tenantforge.core.logging import get_client_ip
from tenantforge.core.rate_limit.policy import RateTier, resolve_tier


def request_identity(request: Request) -> str:
    """``user:<id>`` for authenticated callers, else IP plus user-agent hash."""
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"

    client_ip = get_client_ip(request) or "unknown"
    user_agent = request.headers.get("User-Agent") or "no-agent"
    agent_hash = hashlib.md5(user_agent.encode(), usedforsecurity=False).hexdigest()
    return f"ip:{client_ip}:{agent_hash}"


def request_tier(request: Request) -> RateTier:
    user_id = getattr(request.state, "user_id", None)
    return resolve_tier(
        authenticated=bool(user_id),
        is_admin=bool(getattr(request.state, "is_admin", False)),
        plan_slug=getattr(request.state, "plan_slug", None),
    )
