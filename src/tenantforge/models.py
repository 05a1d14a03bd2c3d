"""Imports every model so ``Base.metadata`` describes the whole shared schema.

Used by Alembic and by the integration test fixtures.
"""

from tenantforge.core.database.base import Base
from tenantforge.modules.backups.models import Backup
from tenantforge.modules.monitoring.models import UsageSample
from tenantforge.modules.plans.models import Plan
from tenantforge.modules.tenants.models import NamespaceAllocation, Tenant
from tenantforge.modules.users.models import User


__all__ = ["Backup", "Base", "NamespaceAllocation", "Plan", "Tenant", "UsageSample", "User"]
