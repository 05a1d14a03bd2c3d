"""Pydantic schemas for tenant operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from tenantforge.core.constants import (
    MAX_PASSWORD_LENGTH,
    MAX_REASON_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_USERNAME_LENGTH,
    MIN_PASSWORD_LENGTH,
)
from tenantforge.modules.tenants.models import TenantStatus


class TenantCreate(BaseModel):
    """Parameters for provisioning a tenant.

    The slug is validated again by the provisioning workflow, which also
    checks the reserved-word list.
    """

    slug: str = Field(..., min_length=3, max_length=30)
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    admin_username: str = Field(
        ..., min_length=1, max_length=MAX_USERNAME_LENGTH, pattern=r"^[A-Za-z0-9_.@-]+$"
    )
    admin_email: EmailStr
    admin_password: str = Field(
        ..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH
    )
    plan_id: int | None = None
    owner_id: UUID | None = None


class TenantResponse(BaseModel):
    """Public view of a tenant."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slug: str
    title: str
    status: TenantStatus
    namespace: str
    owner_id: UUID | None
    plan_id: int | None
    created_at: datetime
    expires_at: datetime | None
    suspended_at: datetime | None
    suspension_reason: str | None


class SuspendRequest(BaseModel):
    reason: str = Field("Suspended by operator", min_length=1, max_length=MAX_REASON_LENGTH)


class ExtendRequest(BaseModel):
    hours: int = Field(..., gt=0, le=24 * 365)


class ClaimRequest(BaseModel):
    owner_id: UUID


class SlugAvailability(BaseModel):
    slug: str
    available: bool
    reason: str | None = None
