"""Caller identity: password hashing, access tokens and middleware."""

from tenantforge.core.auth.backend import (
    create_access_token,
    decode_token,
    hash_password,
)
from tenantforge.core.auth.dependencies import (
    AdminIdentity,
    CurrentIdentity,
    OptionalIdentity,
    get_identity,
    require_admin,
)
from tenantforge.core.auth.middleware import IdentityMiddleware, RequestIdMiddleware
from tenantforge.core.auth.schemas import TokenData


__all__ = [
    "AdminIdentity",
    "CurrentIdentity",
    "IdentityMiddleware",
    "OptionalIdentity",
    "RequestIdMiddleware",
    "TokenData",
    "create_access_token",
    "decode_token",
    "get_identity",
    "hash_password",
    "require_admin",
]
