"""Usage sample model."""

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, func
from sqlalchemy.orm import Mapped, mapped_column

from tenantforge.core.database.base import Base, TenantMixin, UUIDMixin


class UsageSample(Base, UUIDMixin, TenantMixin):
    """One resource measurement of a tenant. Append-only, pruned by age."""

    __tablename__ = "usage_samples"
    __table_args__ = (Index("ix_usage_samples_tenant_recorded", "tenant_id", "recorded_at"),)

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    cpu_percent: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    memory_mb: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    storage_mb: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    bandwidth_mb: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    page_views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unique_visitors: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
