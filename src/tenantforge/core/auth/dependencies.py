"""FastAPI dependencies for caller identity."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tenantforge.core.auth.backend import decode_token
from tenantforge.core.auth.schemas import TokenData
from tenantforge.core.errors import ForbiddenError, UnauthorizedError


bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> TokenData | None:
    """Token data if the caller sent a valid access token, None otherwise."""
    if not credentials:
        return None
    token_data = decode_token(credentials.credentials)
    if not token_data or token_data.type != "access":
        return None
    return token_data


async def get_identity(
    identity: Annotated[TokenData | None, Depends(get_optional_identity)],
) -> TokenData:
    """Require an authenticated caller.

    Raises:
        UnauthorizedError: If the token is missing or invalid
    """
    if identity is None:
        raise UnauthorizedError(
            "Missing or invalid authentication token",
            error_code="invalid_token",
        )
    return identity


async def require_admin(
    identity: Annotated[TokenData, Depends(get_identity)],
) -> TokenData:
    """Require an operator.

    Raises:
        ForbiddenError: If the caller is not an admin
    """
    if not identity.is_admin:
        raise ForbiddenError("Operator privileges required", error_code="not_admin")
    return identity


OptionalIdentity = Annotated[TokenData | None, Depends(get_optional_identity)]
CurrentIdentity = Annotated[TokenData, Depends(get_identity)]
AdminIdentity = Annotated[TokenData, Depends(require_admin)]
