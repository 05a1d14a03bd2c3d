"""Plan database models."""

from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from tenantforge.core.database.base import Base, TimestampMixin


class Plan(Base, TimestampMixin):
    """A quota policy tenants are bound to.

    Limits live in explicit columns. A null limit falls back to the paid
    defaults in ``tenantforge.modules.plans.limits``.
    """

    __tablename__ = "plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    billing_cycle: Mapped[str] = mapped_column(String(20), nullable=False, default="monthly")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    trial_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    cpu_percent: Mapped[int | None] = mapped_column(Integer, nullable=True)
    memory_mb: Mapped[int | None] = mapped_column(Integer, nullable=True)
    storage_mb: Mapped[int | None] = mapped_column(Integer, nullable=True)
    bandwidth_mb: Mapped[int | None] = mapped_column(Integer, nullable=True)
    page_views: Mapped[int | None] = mapped_column(Integer, nullable=True)
    has_backups: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    backup_frequency_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    backup_retention_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    @property
    def is_free(self) -> bool:
        return self.price is not None and Decimal(self.price) == 0

    def __repr__(self) -> str:
        return f"<Plan(id={self.id}, slug={self.slug})>"
