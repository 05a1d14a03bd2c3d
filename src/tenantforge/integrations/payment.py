"""Payment state as seen by the lifecycle sweeps.

The orchestrator only asks whether an owner is paid up and whether the
grace period for a lapse has run out. Subscription mechanics stay with
the billing provider.
"""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Protocol

import stripe
import structlog

from tenantforge.config import Settings
from tenantforge.core.errors import ExternalCollaboratorError
from tenantforge.modules.plans.limits import is_default_plan
from tenantforge.modules.tenants.lifecycle import (
    REASON_ACCOUNT_SUSPENDED,
    REASON_PAYMENT_FAILED,
    REASON_SUBSCRIPTION_CANCELLED,
    REASON_SUBSCRIPTION_EXPIRED,
)
from tenantforge.modules.users.models import PaymentStatus, User


log = structlog.get_logger()


class PaymentSignal(Protocol):
    def is_payment_current(self, owner: User, now: datetime | None = None) -> bool: ...

    def grace_period_elapsed(self, owner: User, now: datetime | None = None) -> bool: ...

    def suspension_reason(self, owner: User, now: datetime | None = None) -> str | None: ...

    def expiring_soon(self, owner: User, now: datetime | None = None) -> bool: ...


class OwnerPaymentSignal:
    """Payment signal derived from the payment fields on the owner row.

    Lapse rules:
        - subscription ended on a paid plan: expired, no grace
        - subscription cancelled: grace of ``cancelled_grace_days``
        - last charge failed: grace of ``payment_failed_grace_days``
        - deactivated account: suspended immediately
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _lapse(self, owner: User, now: datetime) -> tuple[str, datetime] | None:
        """The reason and the moment grace runs out, for the first lapse found."""
        if not owner.is_active:
            return REASON_ACCOUNT_SUSPENDED, now
        if (
            owner.subscription_ends_at is not None
            and owner.subscription_ends_at < now
            and not is_default_plan(owner.plan, self.settings.default_plan_slug)
        ):
            return REASON_SUBSCRIPTION_EXPIRED, owner.subscription_ends_at
        if owner.subscription_cancelled_at is not None:
            return REASON_SUBSCRIPTION_CANCELLED, owner.subscription_cancelled_at + timedelta(
                days=self.settings.cancelled_grace_days
            )
        if owner.payment_status == PaymentStatus.FAILED:
            if owner.payment_failed_at is None:
                # No start for the grace period; treat it as already over
                log.warning("payment_failed_at_missing", owner_id=str(owner.id))
                return REASON_PAYMENT_FAILED, now
            return REASON_PAYMENT_FAILED, owner.payment_failed_at + timedelta(
                days=self.settings.payment_failed_grace_days
            )
        return None

    def is_payment_current(self, owner: User, now: datetime | None = None) -> bool:
        return self._lapse(owner, now or datetime.now(UTC)) is None

    def grace_period_elapsed(self, owner: User, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        lapse = self._lapse(owner, now)
        return lapse is not None and lapse[1] <= now

    def suspension_reason(self, owner: User, now: datetime | None = None) -> str | None:
        lapse = self._lapse(owner, now or datetime.now(UTC))
        return lapse[0] if lapse else None

    def expiring_soon(self, owner: User, now: datetime | None = None) -> bool:
        """Paid subscription ends within the warning window."""
        now = now or datetime.now(UTC)
        ends_at = owner.subscription_ends_at
        if ends_at is None or ends_at <= now:
            return False
        if is_default_plan(owner.plan, self.settings.default_plan_slug):
            return False
        return ends_at - now <= timedelta(days=self.settings.suspension_warning_days)


class SubscriptionCanceller(Protocol):
    async def cancel(self, subscription_ref: str) -> None: ...


class NullSubscriptionCanceller:
    """Used when no billing provider is configured."""

    async def cancel(self, subscription_ref: str) -> None:
        log.info("subscription_cancel_skipped", subscription_ref=subscription_ref)


class StripeSubscriptionCanceller:
    """Cancels Stripe subscriptions, running the sync SDK in a thread."""

    def __init__(self, api_key: str, timeout: float) -> None:
        stripe.api_key = api_key
        self.timeout = timeout

    async def cancel(self, subscription_ref: str) -> None:
        try:
            async with asyncio.timeout(self.timeout):
                await asyncio.to_thread(stripe.Subscription.cancel, subscription_ref)
        except (stripe.StripeError, TimeoutError) as exc:
            raise ExternalCollaboratorError("stripe", str(exc)) from exc
        log.info("subscription_cancelled", subscription_ref=subscription_ref)
