"""Tenant factories for tests."""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

from polyfactory.factories.pydantic_factory import ModelFactory
from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory

from tenantforge.modules.plans.models import Plan
from tenantforge.modules.tenants.models import Tenant, TenantStatus
from tenantforge.modules.tenants.schemas import TenantCreate


class PlanFactory(SQLAlchemyFactory[Plan]):
    """Factory for paid plans with backups."""

    __model__ = Plan
    __set_relationships__ = False
    __set_primary_key__ = False

    @classmethod
    def name(cls) -> str:
        return "Pro"

    @classmethod
    def slug(cls) -> str:
        """Generate a unique plan slug."""
        return f"pro-{uuid4().hex[:8]}"

    @classmethod
    def price(cls) -> Decimal:
        return Decimal("29.00")

    @classmethod
    def billing_cycle(cls) -> str:
        return "monthly"

    @classmethod
    def is_active(cls) -> bool:
        return True

    @classmethod
    def is_public(cls) -> bool:
        return True

    @classmethod
    def trial_days(cls) -> int:
        return 0

    @classmethod
    def cpu_percent(cls) -> int:
        return 50

    @classmethod
    def memory_mb(cls) -> int:
        return 512

    @classmethod
    def storage_mb(cls) -> int:
        return 5000

    @classmethod
    def bandwidth_mb(cls) -> int:
        return 50000

    @classmethod
    def page_views(cls) -> int:
        return 250000

    @classmethod
    def has_backups(cls) -> bool:
        return True

    @classmethod
    def backup_frequency_hours(cls) -> int:
        return 24

    @classmethod
    def backup_retention_days(cls) -> int:
        return 30

    @classmethod
    def created_at(cls) -> datetime:
        return datetime.now(UTC)

    @classmethod
    def updated_at(cls) -> datetime:
        return datetime.now(UTC)


class TenantFactory(SQLAlchemyFactory[Tenant]):
    """Factory for active guest tenants.

    Paths point nowhere; tests that touch the filesystem override
    ``root_path``.
    """

    __model__ = Tenant
    __set_relationships__ = False

    @classmethod
    def slug(cls) -> str:
        """Generate a unique slug."""
        return f"site-{uuid4().hex[:8]}"

    @classmethod
    def namespace(cls) -> str:
        """Generate a unique namespace."""
        return f"t_site_{uuid4().hex[:8]}"

    @classmethod
    def title(cls) -> str:
        return "Test Site"

    @classmethod
    def admin_username(cls) -> str:
        return "admin"

    @classmethod
    def admin_email(cls) -> str:
        return f"admin-{uuid4().hex[:8]}@example.com"

    @classmethod
    def owner_id(cls) -> None:
        return None

    @classmethod
    def plan_id(cls) -> None:
        return None

    @classmethod
    def subscription_ref(cls) -> None:
        return None

    @classmethod
    def root_path(cls) -> str:
        return f"/nonexistent/{uuid4().hex}"

    @classmethod
    def config_path(cls) -> str:
        return f"/nonexistent/{uuid4().hex}/config.yaml"

    @classmethod
    def status(cls) -> TenantStatus:
        """Default to active."""
        return TenantStatus.ACTIVE

    @classmethod
    def expires_at(cls) -> None:
        return None

    @classmethod
    def suspended_at(cls) -> None:
        return None

    @classmethod
    def suspension_reason(cls) -> None:
        return None

    @classmethod
    def deleted_at(cls) -> None:
        return None

    @classmethod
    def last_accessed_at(cls) -> None:
        return None

    @classmethod
    def settings(cls) -> dict:
        return {}

    @classmethod
    def created_at(cls) -> datetime:
        return datetime.now(UTC)

    @classmethod
    def updated_at(cls) -> datetime:
        return datetime.now(UTC)


class TenantCreateFactory(ModelFactory[TenantCreate]):
    """Factory for creating TenantCreate schemas."""

    __model__ = TenantCreate

    @classmethod
    def slug(cls) -> str:
        """Generate a valid, unreserved slug."""
        return f"site-{uuid4().hex[:8]}"

    @classmethod
    def title(cls) -> str:
        return "My New Site"

    @classmethod
    def admin_username(cls) -> str:
        return "siteadmin"

    @classmethod
    def admin_email(cls) -> str:
        return f"owner-{uuid4().hex[:8]}@example.com"

    @classmethod
    def admin_password(cls) -> str:
        return "testpassword123"

    @classmethod
    def plan_id(cls) -> None:
        return None

    @classmethod
    def owner_id(cls) -> None:
        return None
