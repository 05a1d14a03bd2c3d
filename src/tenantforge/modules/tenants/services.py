"""Lifecycle orchestration for tenants.

Every mutating operation runs in its own transaction holding the tenant's
advisory lock, re-reads the tenant after the lock is taken, and commits
before any owner notification is sent.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Annotated, Any
from uuid import UUID

import structlog
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tenantforge.api.dependencies import AppSettings, Cache, DBSession
from tenantforge.config import Settings
from tenantforge.core.database import acquire_tenant_lock, async_session_factory
from tenantforge.core.errors import ConflictError, NotFoundError
from tenantforge.integrations import (
    Collaborators,
    NotificationKind,
    best_effort,
    get_collaborators,
    safe_notify,
)
from tenantforge.modules.monitoring.service import ResourceMonitor
from tenantforge.modules.provisioning.service import ProvisioningService
from tenantforge.modules.tenants.lifecycle import (
    LIVE_STATUSES,
    claimed_expiry,
    ensure_transition,
    extended_expiry,
)
from tenantforge.modules.tenants.models import Tenant, TenantStatus
from tenantforge.modules.tenants.placeholder import install_placeholder, restore_entry_point
from tenantforge.modules.tenants.repos import TenantRepository
from tenantforge.modules.users.repos import UserRepository


log = structlog.get_logger()


class LifecycleService:
    """Suspends, resumes, extends, claims and deletes tenants.

    Args:
        session: Session whose transaction holds the tenant lock
        settings: Application settings
        provisioning: Used for teardown on delete
        monitor: Consulted before a resume
        collaborators: Notifier, proxy and billing adapters
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        provisioning: ProvisioningService,
        monitor: ResourceMonitor,
        collaborators: Collaborators,
    ) -> None:
        self.session = session
        self.settings = settings
        self.provisioning = provisioning
        self.monitor = monitor
        self.collaborators = collaborators
        self.tenants = TenantRepository(session)

    async def get_by_slug(self, slug: str) -> Tenant:
        """Look up a live tenant.

        Raises:
            NotFoundError: If no live tenant has this slug
        """
        tenant = await self.tenants.get_by_slug(slug)
        if tenant is None:
            raise NotFoundError("Tenant not found", resource="tenant", resource_id=slug)
        return tenant

    async def _lock(self, tenant_id: UUID) -> Tenant:
        await acquire_tenant_lock(self.session, tenant_id)
        tenant = await self.tenants.get_by_id(tenant_id, refresh=True)
        if tenant is None:
            raise NotFoundError("Tenant not found", resource="tenant", resource_id=str(tenant_id))
        return tenant

    # ============================================================
    # Transitions
    # ============================================================

    async def suspend(self, tenant_id: UUID, reason: str) -> Tenant:
        """Take a tenant offline and show the placeholder page.

        Raises:
            NotFoundError: If the tenant does not exist
            InvalidTransitionError: If the tenant is not active
        """
        tenant = await self._lock(tenant_id)
        ensure_transition(tenant.status, TenantStatus.SUSPENDED)

        try:
            await asyncio.to_thread(
                install_placeholder, Path(tenant.root_path), tenant.title, reason
            )
        except OSError as exc:
            log.warning("placeholder_install_failed", tenant=tenant.slug, error=str(exc))
        await best_effort(
            "proxy_apply_suspended",
            self.collaborators.proxy.apply_suspended_config(tenant),
            timeout=self.settings.collaborator_timeout_seconds,
            tenant=tenant.slug,
        )

        tenant.status = TenantStatus.SUSPENDED
        tenant.suspended_at = datetime.now(UTC)
        tenant.suspension_reason = reason
        await self.session.commit()

        log.info("tenant_suspended", tenant=tenant.slug, reason=reason)
        await self.notify_owner(tenant, NotificationKind.TENANT_SUSPENDED, {"reason": reason})
        return tenant

    async def resume(self, tenant_id: UUID) -> Tenant:
        """Bring a suspended tenant back online.

        Raises:
            NotFoundError: If the tenant does not exist
            InvalidTransitionError: If the tenant is not suspended
            ConflictError: ``limits_exceeded`` while usage is over the plan limits
        """
        tenant = await self._lock(tenant_id)
        ensure_transition(tenant.status, TenantStatus.ACTIVE)

        report = await self.monitor.check_limits(tenant)
        if not report.within_limits:
            raise ConflictError(
                "Tenant is still over its resource limits",
                error_code="limits_exceeded",
                details={"violations": [finding.resource for finding in report.violations]},
            )

        try:
            await asyncio.to_thread(restore_entry_point, Path(tenant.root_path))
        except OSError as exc:
            log.warning("entry_point_restore_failed", tenant=tenant.slug, error=str(exc))
        await best_effort(
            "proxy_remove_config",
            self.collaborators.proxy.remove_config(tenant),
            timeout=self.settings.collaborator_timeout_seconds,
            tenant=tenant.slug,
        )

        tenant.status = TenantStatus.ACTIVE
        tenant.suspended_at = None
        tenant.suspension_reason = None
        await self.session.commit()

        log.info("tenant_resumed", tenant=tenant.slug)
        await self.notify_owner(tenant, NotificationKind.TENANT_RESUMED, {})
        return tenant

    async def extend_expiry(self, tenant_id: UUID, duration: timedelta) -> Tenant:
        """Push a tenant's expiry out by ``duration``.

        An expiry already in the past is extended from now.

        Raises:
            NotFoundError: If the tenant does not exist
            ConflictError: ``tenant_not_live`` for deleted or provisioning tenants
        """
        if duration <= timedelta(0):
            raise ValueError("duration must be positive")
        tenant = await self._lock(tenant_id)
        self._require_live(tenant)

        now = datetime.now(UTC)
        previous = tenant.expires_at
        tenant.expires_at = extended_expiry(previous, now, duration)
        await self.session.commit()

        log.info(
            "tenant_expiry_extended",
            tenant=tenant.slug,
            previous=previous.isoformat() if previous else None,
            expires_at=tenant.expires_at.isoformat(),
        )
        return tenant

    async def claim(self, tenant_id: UUID, owner_id: UUID) -> Tenant:
        """Attach a guest tenant to a registered owner.

        The guest expiry is replaced by the owner policy, or cleared when
        the owner is on a paid plan.

        Raises:
            NotFoundError: If the tenant or the owner does not exist
            ConflictError: ``already_claimed`` if the tenant has an owner
        """
        tenant = await self._lock(tenant_id)
        self._require_live(tenant)
        if not tenant.is_guest:
            raise ConflictError("Tenant already has an owner", error_code="already_claimed")

        owner = await UserRepository(self.session).get_by_id(owner_id)
        if owner is None or not owner.is_active:
            raise NotFoundError("Owner not found", resource="user", resource_id=str(owner_id))

        tenant.owner_id = owner.id
        if tenant.plan_id is None and owner.plan_id is not None:
            tenant.plan_id = owner.plan_id
        plan = owner.plan if tenant.plan_id == owner.plan_id else tenant.plan
        tenant.expires_at = claimed_expiry(self.settings, datetime.now(UTC), plan)
        await self.session.commit()
        await self.session.refresh(tenant)

        log.info("tenant_claimed", tenant=tenant.slug, owner_id=str(owner.id))
        return tenant

    async def delete(
        self,
        tenant_id: UUID,
        notice: str = NotificationKind.TENANT_DELETED,
        reason: str | None = None,
        only_if: Callable[[Tenant], bool] | None = None,
    ) -> Tenant | None:
        """Tear a tenant down and leave a tombstone row.

        Deleting an already deleted tenant is a no-op.

        Args:
            tenant_id: Tenant to delete
            notice: Notification kind sent to the owner afterwards
            reason: Recorded in the log and the notification
            only_if: Re-checked once the lock is held; the delete is skipped
                and None returned when it no longer holds

        Raises:
            NotFoundError: If the tenant does not exist
            InvalidTransitionError: If the tenant is still provisioning
        """
        tenant = await self._lock(tenant_id)
        if tenant.status == TenantStatus.DELETED:
            await self.session.commit()
            log.info("tenant_delete_skipped", tenant=tenant.slug, reason="already_deleted")
            return tenant
        if only_if is not None and not only_if(tenant):
            await self.session.commit()
            log.info("tenant_delete_skipped", tenant=tenant.slug, reason="condition_changed")
            return None
        ensure_transition(tenant.status, TenantStatus.DELETED)

        if tenant.subscription_ref:
            await best_effort(
                "subscription_cancel",
                self.collaborators.canceller.cancel(tenant.subscription_ref),
                timeout=self.settings.collaborator_timeout_seconds,
                tenant=tenant.slug,
            )

        await self.provisioning.deprovision(tenant, self.session)
        await self.session.commit()

        log.info("tenant_deleted", tenant=tenant.slug, reason=reason, notice=notice)
        await self.notify_owner(tenant, notice, {"reason": reason} if reason else {})
        return tenant

    # ============================================================
    # Helpers
    # ============================================================

    @staticmethod
    def _require_live(tenant: Tenant) -> None:
        if tenant.status not in LIVE_STATUSES:
            raise ConflictError(
                "Tenant is not active or suspended",
                error_code="tenant_not_live",
                details={"status": tenant.status.value},
            )

    async def notify_owner(self, tenant: Tenant, kind: str, data: dict[str, Any]) -> bool:
        """Best-effort notification to the tenant's owner, or its admin for guests."""
        contact = tenant.owner.email if tenant.owner is not None else tenant.admin_email
        payload = {"tenant": tenant.slug, "title": tenant.title, **data}
        return await safe_notify(
            self.collaborators.notifier,
            contact,
            kind,
            payload,
            timeout=self.settings.collaborator_timeout_seconds,
        )


def build_provisioning_service(
    settings: Settings,
    collaborators: Collaborators,
) -> ProvisioningService:
    return ProvisioningService(settings, async_session_factory, proxy=collaborators.proxy)


def get_provisioning_service(config: AppSettings) -> ProvisioningService:
    return build_provisioning_service(config, get_collaborators())


def get_lifecycle_service(
    session: DBSession,
    config: AppSettings,
    cache: Cache,
) -> LifecycleService:
    collaborators = get_collaborators()
    return LifecycleService(
        session,
        config,
        build_provisioning_service(config, collaborators),
        ResourceMonitor(config, session, cache),
        collaborators,
    )


ProvisioningSvc = Annotated[ProvisioningService, Depends(get_provisioning_service)]
LifecycleSvc = Annotated[LifecycleService, Depends(get_lifecycle_service)]
