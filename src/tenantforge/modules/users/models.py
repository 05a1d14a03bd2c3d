"""User database models."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenantforge.core.database.base import Base, TimestampMixin, UUIDMixin


if TYPE_CHECKING:
    from tenantforge.modules.plans.models import Plan


class PaymentStatus:
    """Values of ``User.payment_status``."""

    CURRENT = "current"
    FAILED = "failed"


class User(Base, UUIDMixin, TimestampMixin):
    """A registered account that can own tenants.

    Attributes:
        email: Unique email address
        password_hash: Bcrypt-hashed password
        full_name: User's full name
        is_active: Whether the account is usable
        is_admin: Operators get the admin rate-limit tier
        plan_id: Subscribed plan, inherited by tenants the user creates
        payment_status: Last known state reported by the billing provider
        payment_failed_at: When the last charge failed
        subscription_ends_at: End of the paid period
        subscription_cancelled_at: When the subscription was cancelled
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )
    password_hash: Mapped[str | None] = mapped_column(Text, nullable=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    plan_id: Mapped[int | None] = mapped_column(
        ForeignKey("plans.id", ondelete="SET NULL"),
        nullable=True,
    )
    payment_status: Mapped[str] = mapped_column(
        String(20),
        default=PaymentStatus.CURRENT,
        nullable=False,
    )
    payment_failed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    subscription_ends_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    subscription_cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    plan: Mapped["Plan | None"] = relationship("Plan", lazy="selectin")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
