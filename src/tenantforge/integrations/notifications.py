"""Owner and operator notifications.

Delivery is fire-and-forget: ``safe_notify`` logs failures and never
raises, so a broken mail relay cannot fail a suspension or a sweep.
"""

import asyncio
from typing import Any, Protocol

import httpx
import structlog

from tenantforge.core.errors import ExternalCollaboratorError


log = structlog.get_logger()


class NotificationKind:
    TENANT_CREATED = "tenant_created"
    TENANT_SUSPENDED = "tenant_suspended"
    TENANT_RESUMED = "tenant_resumed"
    TENANT_DELETED = "tenant_deleted"
    TENANT_EXPIRED = "tenant_expired"
    USAGE_WARNING = "usage_warning"
    SUSPENSION_WARNING = "suspension_warning"
    OPERATOR_ALERT = "operator_alert"


class Notifier(Protocol):
    async def notify(self, contact: str, kind: str, data: dict[str, Any]) -> None: ...


class LogNotifier:
    """Writes notifications to the log instead of delivering them."""

    async def notify(self, contact: str, kind: str, data: dict[str, Any]) -> None:
        log.info("notification", contact=contact, kind=kind, **data)


class WebhookNotifier:
    """POSTs notifications as JSON to a delivery service."""

    def __init__(
        self,
        url: str,
        timeout: float,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    async def notify(self, contact: str, kind: str, data: dict[str, Any]) -> None:
        payload = {"contact": contact, "kind": kind, "data": data}
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ExternalCollaboratorError("notifications", str(exc)) from exc


async def safe_notify(
    notifier: Notifier,
    contact: str | None,
    kind: str,
    data: dict[str, Any],
    timeout: float | None = None,
) -> bool:
    """Deliver a notification, logging instead of raising on failure.

    Returns:
        True if the notifier accepted the message
    """
    if not contact:
        log.debug("notification_skipped", kind=kind, reason="no_contact")
        return False
    try:
        async with asyncio.timeout(timeout):
            await notifier.notify(contact, kind, data)
    except Exception as exc:
        log.warning(
            "notification_failed",
            kind=kind,
            contact=contact,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return False
    return True
