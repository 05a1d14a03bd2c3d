"""Tenant API routes."""

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from tenantforge.api.dependencies import AppSettings, DBSession
from tenantforge.core.auth import AdminIdentity, CurrentIdentity, OptionalIdentity
from tenantforge.core.auth.schemas import TokenData
from tenantforge.core.errors import ForbiddenError, ValidationError
from tenantforge.core.rate_limit import rate_limit
from tenantforge.integrations import get_collaborators
from tenantforge.modules.backups.schemas import BackupCreate, BackupResponse
from tenantforge.modules.backups.service import BackupService
from tenantforge.modules.monitoring.schemas import LimitReportResponse, UsageReport
from tenantforge.modules.monitoring.service import Monitor
from tenantforge.modules.provisioning.namespace import validate_slug
from tenantforge.modules.tenants.models import Tenant
from tenantforge.modules.tenants.repos import TenantRepo
from tenantforge.modules.tenants.schemas import (
    ClaimRequest,
    ExtendRequest,
    SlugAvailability,
    SuspendRequest,
    TenantCreate,
    TenantResponse,
)
from tenantforge.modules.tenants.services import LifecycleSvc, ProvisioningSvc


router = APIRouter(prefix="/tenants", tags=["tenants"])


def get_backup_service(session: DBSession, config: AppSettings) -> BackupService:
    return BackupService(config, session, archive=get_collaborators().archive)


Backups = Annotated[BackupService, Depends(get_backup_service)]


def ensure_access(tenant: Tenant, identity: TokenData) -> None:
    """Owners see their own tenants, operators see all of them.

    Raises:
        ForbiddenError: If the caller neither owns the tenant nor is an admin
    """
    if identity.is_admin:
        return
    if tenant.owner_id is None or tenant.owner_id != identity.user_id:
        raise ForbiddenError("Not the owner of this tenant", error_code="not_owner")


# ============================================================
# Provisioning
# ============================================================


@router.post(
    "",
    response_model=TenantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Provision a tenant",
    description="Create a tenant. Anonymous callers get a guest tenant with a short expiry.",
)
@rate_limit("tenant.create")
async def create_tenant(
    request: Request,
    data: TenantCreate,
    service: ProvisioningSvc,
    identity: OptionalIdentity,
) -> Tenant:
    """Provision a tenant owned by the caller, or a guest tenant."""
    if identity is None or not identity.is_admin:
        data = data.model_copy(
            update={
                "owner_id": identity.user_id if identity else None,
                "plan_id": None,
            }
        )
    return await service.provision(data)


@router.get(
    "/check-slug/{slug}",
    response_model=SlugAvailability,
    summary="Check slug availability",
)
@rate_limit("slug.check")
async def check_slug(
    request: Request,
    slug: str,
    tenants: TenantRepo,
    config: AppSettings,
) -> SlugAvailability:
    """Whether a slug is valid and not used by a live tenant."""
    try:
        validate_slug(slug, config.reserved_slugs)
    except ValidationError as exc:
        return SlugAvailability(slug=slug, available=False, reason=exc.message)
    if await tenants.slug_in_use(slug):
        return SlugAvailability(slug=slug, available=False, reason="Slug is already taken")
    return SlugAvailability(slug=slug, available=True)


@router.get("/{slug}", response_model=TenantResponse, summary="Get a tenant")
async def get_tenant(slug: str, service: LifecycleSvc, identity: CurrentIdentity) -> Tenant:
    tenant = await service.get_by_slug(slug)
    ensure_access(tenant, identity)
    return tenant


@router.delete(
    "/{slug}",
    response_model=TenantResponse,
    summary="Delete a tenant",
    description="Deprovision a tenant. The row is kept as a tombstone.",
)
async def delete_tenant(slug: str, service: LifecycleSvc, identity: CurrentIdentity) -> Tenant:
    tenant = await service.get_by_slug(slug)
    ensure_access(tenant, identity)
    return await service.delete(tenant.id, reason="Deleted on request")


# ============================================================
# Lifecycle
# ============================================================


@router.post("/{slug}/suspend", response_model=TenantResponse, summary="Suspend a tenant")
async def suspend_tenant(
    slug: str,
    data: SuspendRequest,
    service: LifecycleSvc,
    _admin: AdminIdentity,
) -> Tenant:
    tenant = await service.get_by_slug(slug)
    return await service.suspend(tenant.id, data.reason)


@router.post(
    "/{slug}/resume",
    response_model=TenantResponse,
    summary="Resume a tenant",
    description="Resume a suspended tenant. Refused while usage is over the plan limits.",
)
async def resume_tenant(slug: str, service: LifecycleSvc, _admin: AdminIdentity) -> Tenant:
    tenant = await service.get_by_slug(slug)
    return await service.resume(tenant.id)


@router.post("/{slug}/extend", response_model=TenantResponse, summary="Extend tenant expiry")
async def extend_tenant(
    slug: str,
    data: ExtendRequest,
    service: LifecycleSvc,
    _admin: AdminIdentity,
) -> Tenant:
    tenant = await service.get_by_slug(slug)
    return await service.extend_expiry(tenant.id, timedelta(hours=data.hours))


@router.post(
    "/{slug}/claim",
    response_model=TenantResponse,
    summary="Claim a guest tenant",
    description="Attach a guest tenant to the caller, or to any user when called by an admin.",
)
async def claim_tenant(
    slug: str,
    service: LifecycleSvc,
    identity: CurrentIdentity,
    data: ClaimRequest | None = None,
) -> Tenant:
    owner_id = identity.user_id
    if data is not None:
        if not identity.is_admin and data.owner_id != identity.user_id:
            raise ForbiddenError("Cannot claim on behalf of another user", error_code="not_admin")
        owner_id = data.owner_id
    tenant = await service.get_by_slug(slug)
    return await service.claim(tenant.id, owner_id)


# ============================================================
# Usage
# ============================================================


@router.get("/{slug}/usage", response_model=UsageReport, summary="Usage statistics")
async def tenant_usage(
    slug: str,
    service: LifecycleSvc,
    monitor: Monitor,
    identity: CurrentIdentity,
    period: Annotated[str, Query(pattern=r"^(1h|24h|7d|30d)$")] = "24h",
) -> UsageReport:
    tenant = await service.get_by_slug(slug)
    ensure_access(tenant, identity)
    return await monitor.get_usage(tenant, period)


@router.get("/{slug}/limits", response_model=LimitReportResponse, summary="Limit check")
async def tenant_limits(
    slug: str,
    service: LifecycleSvc,
    monitor: Monitor,
    identity: CurrentIdentity,
) -> LimitReportResponse:
    tenant = await service.get_by_slug(slug)
    ensure_access(tenant, identity)
    report = await monitor.check_limits(tenant)
    return LimitReportResponse.model_validate(report.to_dict())


# ============================================================
# Backups
# ============================================================


@router.post(
    "/{slug}/backups",
    response_model=BackupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a backup",
)
@rate_limit("backup.create")
async def create_backup(
    request: Request,
    slug: str,
    service: LifecycleSvc,
    backups: Backups,
    identity: CurrentIdentity,
    data: BackupCreate | None = None,
) -> BackupResponse:
    tenant = await service.get_by_slug(slug)
    ensure_access(tenant, identity)
    backup = await backups.create_backup(tenant, (data or BackupCreate()).backup_type)
    return BackupResponse.model_validate(backup)


@router.get("/{slug}/backups", response_model=list[BackupResponse], summary="List backups")
async def list_backups(
    slug: str,
    service: LifecycleSvc,
    backups: Backups,
    identity: CurrentIdentity,
) -> list[BackupResponse]:
    tenant = await service.get_by_slug(slug)
    ensure_access(tenant, identity)
    return [BackupResponse.model_validate(b) for b in await backups.list_backups(tenant)]
