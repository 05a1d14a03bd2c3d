"""Plan repository for database operations."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy import select

from tenantforge.api.dependencies import DBSession
from tenantforge.modules.plans.models import Plan


class PlanRepository:
    """Read access to plans."""

    def __init__(self, session: DBSession) -> None:
        self.session = session

    async def get_by_id(self, plan_id: int) -> Plan | None:
        return await self.session.get(Plan, plan_id)

    async def get_by_slug(self, slug: str) -> Plan | None:
        result = await self.session.execute(select(Plan).where(Plan.slug == slug))
        return result.scalar_one_or_none()

    async def list_active(self) -> list[Plan]:
        result = await self.session.execute(
            select(Plan).where(Plan.is_active.is_(True)).order_by(Plan.price)
        )
        return list(result.scalars().all())


PlanRepo = Annotated[PlanRepository, Depends(PlanRepository)]
