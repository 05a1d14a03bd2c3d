"""Tenant repository for database operations."""

from collections.abc import Iterable
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import delete, select

from tenantforge.api.dependencies import DBSession
from tenantforge.modules.tenants.lifecycle import LIVE_STATUSES
from tenantforge.modules.tenants.models import NamespaceAllocation, Tenant, TenantStatus


class TenantRepository:
    """Repository for Tenant database operations.

    Lookups by slug only consider live (non-deleted) rows.
    """

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def get_by_id(self, tenant_id: UUID, refresh: bool = False) -> Tenant | None:
        """Get a tenant by ID.

        Args:
            tenant_id: The tenant's UUID
            refresh: Overwrite any copy already in the session, used after
                taking the tenant lock

        Returns:
            Tenant if found, None otherwise
        """
        stmt = select(Tenant).where(Tenant.id == tenant_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Tenant | None:
        result = await self.session.execute(
            select(Tenant).where(
                Tenant.slug == slug,
                Tenant.status != TenantStatus.DELETED,
            )
        )
        return result.scalar_one_or_none()

    async def slug_in_use(self, slug: str) -> bool:
        return await self.get_by_slug(slug) is not None

    async def allocated_namespaces(self, base: str) -> set[str]:
        """Every namespace ever allocated that starts with ``base``."""
        result = await self.session.execute(
            select(NamespaceAllocation.namespace).where(
                NamespaceAllocation.namespace.startswith(base, autoescape=True)
            )
        )
        return set(result.scalars().all())

    async def ids_by_status(self, statuses: Iterable[TenantStatus]) -> list[UUID]:
        result = await self.session.execute(
            select(Tenant.id)
            .where(Tenant.status.in_(list(statuses)))
            .order_by(Tenant.created_at)
        )
        return list(result.scalars().all())

    async def expired_ids(self, cutoff: datetime) -> list[UUID]:
        """Live tenants whose expiry is before ``cutoff``.

        Tenants with no expiry are never selected.
        """
        result = await self.session.execute(
            select(Tenant.id)
            .where(
                Tenant.status.in_(LIVE_STATUSES),
                Tenant.expires_at.is_not(None),
                Tenant.expires_at < cutoff,
            )
            .order_by(Tenant.expires_at)
        )
        return list(result.scalars().all())

    async def suspended_before_ids(self, cutoff: datetime) -> list[UUID]:
        result = await self.session.execute(
            select(Tenant.id).where(
                Tenant.status == TenantStatus.SUSPENDED,
                Tenant.suspended_at.is_not(None),
                Tenant.suspended_at < cutoff,
            )
        )
        return list(result.scalars().all())

    async def owned_active_ids(self) -> list[UUID]:
        result = await self.session.execute(
            select(Tenant.id).where(
                Tenant.status == TenantStatus.ACTIVE,
                Tenant.owner_id.is_not(None),
            )
        )
        return list(result.scalars().all())

    async def known_root_paths(self) -> set[str]:
        """Filesystem roots of every tenant that is not deleted."""
        result = await self.session.execute(
            select(Tenant.root_path).where(Tenant.status != TenantStatus.DELETED)
        )
        return set(result.scalars().all())

    async def delete_row(self, tenant_id: UUID) -> None:
        """Remove a tenant row outright, used only by provisioning rollback."""
        await self.session.execute(delete(Tenant).where(Tenant.id == tenant_id))


TenantRepo = Annotated[TenantRepository, Depends(TenantRepository)]
