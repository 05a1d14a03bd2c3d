"""Backup repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantforge.modules.backups.models import Backup, BackupType


class BackupRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, backup: Backup) -> Backup:
        self.session.add(backup)
        await self.session.flush()
        return backup

    async def list_for_tenant(self, tenant_id: UUID) -> list[Backup]:
        result = await self.session.execute(
            select(Backup)
            .where(Backup.tenant_id == tenant_id)
            .order_by(Backup.created_at.desc())
        )
        return list(result.scalars().all())

    async def last_created_at(self, tenant_id: UUID, backup_type: BackupType) -> datetime | None:
        result = await self.session.execute(
            select(Backup.created_at)
            .where(Backup.tenant_id == tenant_id, Backup.backup_type == backup_type)
            .order_by(Backup.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def expired(self, now: datetime, tenant_id: UUID | None = None) -> list[Backup]:
        stmt = select(Backup).where(Backup.expires_at < now)
        if tenant_id is not None:
            stmt = stmt.where(Backup.tenant_id == tenant_id)
        result = await self.session.execute(stmt.order_by(Backup.expires_at))
        return list(result.scalars().all())

    async def delete(self, backup: Backup) -> None:
        await self.session.delete(backup)
        await self.session.flush()
