"""Authentication schemas for token handling."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class TokenData(BaseModel):
    """Data extracted from a JWT access token.

    Attributes:
        user_id: The caller's UUID
        is_admin: Operator privileges
        plan_slug: Slug of the caller's plan, used for the rate-limit tier
        exp: Token expiration time
        type: Token type
    """

    user_id: UUID
    is_admin: bool = False
    plan_slug: str | None = None
    exp: datetime
    type: str = "access"
    jti: str | None = None
