"""Tests for the tenant state machine and expiry policy."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from tenantforge.core.errors import InvalidTransitionError
from tenantforge.modules.tenants.lifecycle import (
    TRANSITIONS,
    can_transition,
    claimed_expiry,
    ensure_transition,
    extended_expiry,
    initial_expiry,
)
from tenantforge.modules.tenants.models import TenantStatus
from tests.factories import PlanFactory


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class TestTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (TenantStatus.PROVISIONING, TenantStatus.ACTIVE),
            (TenantStatus.ACTIVE, TenantStatus.SUSPENDED),
            (TenantStatus.ACTIVE, TenantStatus.DELETED),
            (TenantStatus.SUSPENDED, TenantStatus.ACTIVE),
            (TenantStatus.SUSPENDED, TenantStatus.DELETED),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)
        ensure_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (TenantStatus.PROVISIONING, TenantStatus.SUSPENDED),
            (TenantStatus.ACTIVE, TenantStatus.PROVISIONING),
            (TenantStatus.DELETED, TenantStatus.ACTIVE),
            (TenantStatus.DELETED, TenantStatus.SUSPENDED),
        ],
    )
    def test_rejected(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(InvalidTransitionError) as exc_info:
            ensure_transition(current, target)
        assert exc_info.value.status_code == 409
        assert exc_info.value.details == {
            "current_status": current.value,
            "target_status": target.value,
        }

    def test_deleted_is_terminal(self):
        assert TRANSITIONS[TenantStatus.DELETED] == frozenset()


class TestInitialExpiry:
    def test_guest_gets_hours(self, test_settings):
        expiry = initial_expiry(test_settings, NOW, owner_id=None, plan=None)
        assert expiry == NOW + timedelta(hours=24)

    def test_owner_without_plan_gets_days(self, test_settings):
        expiry = initial_expiry(test_settings, NOW, owner_id="someone", plan=None)
        assert expiry == NOW + timedelta(days=7)

    def test_owner_on_free_plan_gets_days(self, test_settings):
        plan = PlanFactory.build(price=Decimal("0"))
        expiry = initial_expiry(test_settings, NOW, owner_id="someone", plan=plan)
        assert expiry == NOW + timedelta(days=7)

    def test_paid_plan_never_expires(self, test_settings):
        plan = PlanFactory.build()
        assert initial_expiry(test_settings, NOW, owner_id="someone", plan=plan) is None


class TestClaimedExpiry:
    def test_restarts_owner_clock(self, test_settings):
        assert claimed_expiry(test_settings, NOW, plan=None) == NOW + timedelta(days=7)

    def test_paid_plan_clears_expiry(self, test_settings):
        assert claimed_expiry(test_settings, NOW, plan=PlanFactory.build()) is None


class TestExtendedExpiry:
    def test_extends_from_future_expiry(self):
        current = NOW + timedelta(days=2)
        assert extended_expiry(current, NOW, timedelta(days=7)) == current + timedelta(days=7)

    def test_extends_from_now_when_already_expired(self):
        current = NOW - timedelta(days=2)
        assert extended_expiry(current, NOW, timedelta(days=7)) == NOW + timedelta(days=7)

    def test_extends_from_now_without_expiry(self):
        assert extended_expiry(None, NOW, timedelta(hours=1)) == NOW + timedelta(hours=1)
