"""External collaborators consumed by the lifecycle orchestrator.

Each collaborator is a ``Protocol`` with one or more adapters. The adapters
in use are picked once from settings by ``build_collaborators``.
"""

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from functools import lru_cache

import structlog

from tenantforge.config import Settings, get_settings
from tenantforge.integrations.archive import ArchiveStore, S3ArchiveStore
from tenantforge.integrations.notifications import (
    LogNotifier,
    NotificationKind,
    Notifier,
    WebhookNotifier,
    safe_notify,
)
from tenantforge.integrations.payment import (
    NullSubscriptionCanceller,
    OwnerPaymentSignal,
    PaymentSignal,
    StripeSubscriptionCanceller,
    SubscriptionCanceller,
)
from tenantforge.integrations.proxy import (
    FileProxyApplier,
    NullProxyApplier,
    ProxyConfigApplier,
)


log = structlog.get_logger()


@dataclass
class Collaborators:
    notifier: Notifier = field(default_factory=LogNotifier)
    proxy: ProxyConfigApplier = field(default_factory=NullProxyApplier)
    canceller: SubscriptionCanceller = field(default_factory=NullSubscriptionCanceller)
    payment: PaymentSignal | None = None
    archive: ArchiveStore | None = None


def build_collaborators(settings: Settings) -> Collaborators:
    """Choose adapters according to which integrations are configured."""
    timeout = settings.collaborator_timeout_seconds

    notifier: Notifier = LogNotifier()
    if settings.notification_webhook_url:
        notifier = WebhookNotifier(settings.notification_webhook_url, timeout=timeout)

    proxy: ProxyConfigApplier = NullProxyApplier()
    if settings.proxy_config_dir:
        proxy = FileProxyApplier(
            settings.proxy_config_dir,
            base_domain=settings.base_domain,
            reload_command=settings.proxy_reload_command,
            timeout=timeout,
        )

    canceller: SubscriptionCanceller = NullSubscriptionCanceller()
    if settings.stripe_secret_key:
        canceller = StripeSubscriptionCanceller(settings.stripe_secret_key, timeout=timeout)

    archive: ArchiveStore | None = None
    if settings.archive_bucket:
        archive = S3ArchiveStore(
            settings.archive_bucket,
            prefix=settings.archive_prefix,
            region=settings.aws_region,
        )

    return Collaborators(
        notifier=notifier,
        proxy=proxy,
        canceller=canceller,
        payment=OwnerPaymentSignal(settings),
        archive=archive,
    )


@lru_cache
def get_collaborators() -> Collaborators:
    """Process-wide collaborators built from the cached settings."""
    return build_collaborators(get_settings())


async def best_effort(
    action: str,
    awaitable: Awaitable[object],
    timeout: float | None = None,
    **context: object,
) -> bool:
    """Await a side effect whose failure must not abort the caller.

    Returns:
        True if the side effect completed
    """
    try:
        async with asyncio.timeout(timeout):
            await awaitable
    except Exception as exc:
        log.warning(
            "collaborator_failed",
            action=action,
            error=str(exc),
            error_type=type(exc).__name__,
            **context,
        )
        return False
    return True


__all__ = [
    "ArchiveStore",
    "Collaborators",
    "NotificationKind",
    "Notifier",
    "NullProxyApplier",
    "PaymentSignal",
    "ProxyConfigApplier",
    "SubscriptionCanceller",
    "best_effort",
    "build_collaborators",
    "get_collaborators",
    "safe_notify",
]
