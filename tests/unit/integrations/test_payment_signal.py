"""Tests for the owner payment signal."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from tenantforge.integrations.payment import OwnerPaymentSignal
from tenantforge.modules.tenants.lifecycle import (
    REASON_ACCOUNT_SUSPENDED,
    REASON_PAYMENT_FAILED,
    REASON_SUBSCRIPTION_CANCELLED,
    REASON_SUBSCRIPTION_EXPIRED,
)
from tenantforge.modules.users.models import PaymentStatus
from tests.factories import PlanFactory, UserFactory


NOW = datetime(2026, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def signal(test_settings) -> OwnerPaymentSignal:
    return OwnerPaymentSignal(test_settings)


def paid_owner(**overrides):
    owner = UserFactory.build(**overrides)
    owner.plan = PlanFactory.build()
    return owner


def test_paid_up_owner(signal):
    owner = paid_owner()
    assert signal.is_payment_current(owner, NOW)
    assert signal.suspension_reason(owner, NOW) is None
    assert not signal.grace_period_elapsed(owner, NOW)


def test_inactive_account_lapses_immediately(signal):
    owner = paid_owner(is_active=False)
    assert signal.suspension_reason(owner, NOW) == REASON_ACCOUNT_SUSPENDED
    assert signal.grace_period_elapsed(owner, NOW)


def test_expired_paid_subscription_has_no_grace(signal):
    owner = paid_owner(subscription_ends_at=NOW - timedelta(minutes=1))
    assert signal.suspension_reason(owner, NOW) == REASON_SUBSCRIPTION_EXPIRED
    assert signal.grace_period_elapsed(owner, NOW)


def test_expired_subscription_on_free_plan_is_ignored(signal):
    owner = UserFactory.build(subscription_ends_at=NOW - timedelta(days=30))
    owner.plan = PlanFactory.build(price=Decimal("0"))
    assert signal.is_payment_current(owner, NOW)


def test_cancelled_subscription_grace(signal):
    owner = paid_owner(subscription_cancelled_at=NOW - timedelta(days=2))
    assert signal.suspension_reason(owner, NOW) == REASON_SUBSCRIPTION_CANCELLED
    assert not signal.grace_period_elapsed(owner, NOW)
    assert signal.grace_period_elapsed(owner, NOW + timedelta(days=1))


def test_failed_payment_grace(signal):
    owner = paid_owner(
        payment_status=PaymentStatus.FAILED,
        payment_failed_at=NOW - timedelta(days=6),
    )
    assert signal.suspension_reason(owner, NOW) == REASON_PAYMENT_FAILED
    assert not signal.grace_period_elapsed(owner, NOW)
    assert signal.grace_period_elapsed(owner, NOW + timedelta(days=1))


def test_failed_payment_without_timestamp_has_no_grace(signal):
    owner = paid_owner(payment_status=PaymentStatus.FAILED, payment_failed_at=None)
    assert signal.suspension_reason(owner, NOW) == REASON_PAYMENT_FAILED
    assert signal.grace_period_elapsed(owner, NOW)
    # Stays lapsed on later sweeps instead of restarting the clock
    assert signal.grace_period_elapsed(owner, NOW + timedelta(hours=1))


def test_expiring_soon(signal):
    owner = paid_owner(subscription_ends_at=NOW + timedelta(days=2))
    assert signal.expiring_soon(owner, NOW)
    assert not signal.expiring_soon(owner, NOW - timedelta(days=5))
    assert not signal.expiring_soon(owner, NOW + timedelta(days=3))


def test_expiring_soon_ignores_default_plan(signal):
    owner = UserFactory.build(subscription_ends_at=NOW + timedelta(days=1))
    assert not signal.expiring_soon(owner, NOW)
