"""Test factories."""

from tests.factories.tenant import PlanFactory, TenantCreateFactory, TenantFactory
from tests.factories.user import UserFactory, bearer


__all__ = ["PlanFactory", "TenantCreateFactory", "TenantFactory", "UserFactory", "bearer"]
