"""Tenant database models."""

from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, func, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenantforge.core.constants import (
    MAX_NAMESPACE_LENGTH,
    MAX_PATH_LENGTH,
    MAX_REASON_LENGTH,
    MAX_SLUG_LENGTH,
    MAX_TITLE_LENGTH,
    MAX_USERNAME_LENGTH,
)
from tenantforge.core.database.base import Base, TimestampMixin, UUIDMixin


if TYPE_CHECKING:
    from tenantforge.modules.plans.models import Plan
    from tenantforge.modules.users.models import User


class TenantStatus(StrEnum):
    PROVISIONING = "provisioning"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class Tenant(Base, UUIDMixin, TimestampMixin):
    """One isolated application instance.

    Deleted tenants stay in the table as tombstones. The slug is unique only
    among live rows (partial unique index), which lets a slug be reused
    after deletion while the namespace never is.
    """

    __tablename__ = "tenants"
    __table_args__ = (
        Index(
            "uq_tenants_live_slug",
            "slug",
            unique=True,
            postgresql_where=text("status <> 'deleted'"),
        ),
        Index("ix_tenants_status_expires_at", "status", "expires_at"),
    )

    slug: Mapped[str] = mapped_column(String(MAX_SLUG_LENGTH), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH), nullable=False)
    admin_username: Mapped[str] = mapped_column(String(MAX_USERNAME_LENGTH), nullable=False)
    admin_email: Mapped[str] = mapped_column(String(255), nullable=False)

    owner_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    plan_id: Mapped[int | None] = mapped_column(
        ForeignKey("plans.id", ondelete="SET NULL"),
        nullable=True,
    )
    subscription_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Provisioning artifacts
    namespace: Mapped[str] = mapped_column(
        String(MAX_NAMESPACE_LENGTH),
        ForeignKey("namespace_allocations.namespace"),
        nullable=False,
        unique=True,
    )
    root_path: Mapped[str] = mapped_column(String(MAX_PATH_LENGTH), nullable=False)
    config_path: Mapped[str] = mapped_column(String(MAX_PATH_LENGTH), nullable=False)

    # Lifecycle
    status: Mapped[TenantStatus] = mapped_column(
        Enum(
            TenantStatus,
            name="tenant_status",
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        default=TenantStatus.PROVISIONING,
        nullable=False,
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    suspended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    suspension_reason: Mapped[str | None] = mapped_column(
        String(MAX_REASON_LENGTH), nullable=True
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_accessed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Free-form per-tenant settings, string to string
    settings: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        default=dict,
        server_default=text("'{}'::jsonb"),
        nullable=False,
    )

    owner: Mapped["User | None"] = relationship("User", lazy="selectin")
    plan: Mapped["Plan | None"] = relationship("Plan", lazy="selectin")

    @property
    def is_guest(self) -> bool:
        return self.owner_id is None

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, slug={self.slug}, status={self.status})>"


class NamespaceAllocation(Base):
    """Append-only ledger of every namespace ever handed out.

    Rows are never deleted, so a namespace cannot be reused even after the
    tenant that held it is gone or its provisioning was rolled back.
    """

    __tablename__ = "namespace_allocations"

    namespace: Mapped[str] = mapped_column(String(MAX_NAMESPACE_LENGTH), primary_key=True)
    slug: Mapped[str] = mapped_column(String(MAX_SLUG_LENGTH), nullable=False, index=True)
    allocated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
