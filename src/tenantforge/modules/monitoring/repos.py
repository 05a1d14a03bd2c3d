"""Usage sample repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenantforge.modules.monitoring.models import UsageSample


class UsageSampleRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add(self, sample: UsageSample) -> UsageSample:
        self.session.add(sample)
        await self.session.flush()
        return sample

    async def since(self, tenant_id: UUID, start: datetime) -> list[UsageSample]:
        """Samples of a tenant recorded at or after ``start``, oldest first."""
        result = await self.session.execute(
            select(UsageSample)
            .where(UsageSample.tenant_id == tenant_id, UsageSample.recorded_at >= start)
            .order_by(UsageSample.recorded_at)
        )
        return list(result.scalars().all())

    async def latest(self, tenant_id: UUID) -> UsageSample | None:
        result = await self.session.execute(
            select(UsageSample)
            .where(UsageSample.tenant_id == tenant_id)
            .order_by(UsageSample.recorded_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def prune(self, before: datetime) -> int:
        """Delete samples older than ``before``.

        Returns:
            Number of rows deleted
        """
        result = await self.session.execute(
            delete(UsageSample).where(UsageSample.recorded_at < before)
        )
        return result.rowcount or 0
