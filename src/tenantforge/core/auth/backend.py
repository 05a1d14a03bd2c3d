"""Password hashing and JWT handling.

Tenant administrator passwords are hashed here before seeding, and the
API reads caller identity from access tokens issued by the account
service.
"""

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

from tenantforge.config import settings
from tenantforge.core.auth.schemas import TokenData
from tenantforge.core.constants import ACCESS_TOKEN_JTI_LENGTH, BCRYPT_ROUNDS


pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
)


# ============================================================
# Password Utilities
# ============================================================


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hash of the password
    """
    return pwd_context.hash(password)


# ============================================================
# JWT Token Utilities
# ============================================================


def create_access_token(
    user_id: UUID,
    is_admin: bool = False,
    plan_slug: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a short-lived JWT access token.

    Args:
        user_id: The user's UUID
        is_admin: Whether the user is an operator
        plan_slug: The user's plan, if any
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT access token
    """
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))

    to_encode: dict[str, Any] = {
        "sub": str(user_id),
        "adm": is_admin,
        "plan": plan_slug,
        "exp": expire,
        "type": "access",
        "iat": now,
        "jti": secrets.token_urlsafe(ACCESS_TOKEN_JTI_LENGTH),
    }

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenData | None:
    """Decode and validate a JWT token.

    Returns:
        TokenData if valid, None if invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )

        user_id = payload.get("sub")
        exp = payload.get("exp")
        if not user_id or exp is None:
            return None

        return TokenData(
            user_id=UUID(user_id),
            is_admin=bool(payload.get("adm", False)),
            plan_slug=payload.get("plan"),
            exp=datetime.fromtimestamp(exp, tz=UTC),
            type=payload.get("type", "access"),
            jti=payload.get("jti"),
        )

    except (JWTError, ValueError):
        return None
