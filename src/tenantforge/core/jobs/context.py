"""Worker context: shared resources and per-session service factories.

The startup hook fills the ARQ context once; tasks build their services
from it for every tenant they touch, each with its own session.
"""

from typing import Any

import structlog
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from tenantforge.config import Settings
from tenantforge.core.cache import RedisCache
from tenantforge.core.database import build_engine, build_session_factory
from tenantforge.integrations import Collaborators, build_collaborators
from tenantforge.modules.backups.service import BackupService
from tenantforge.modules.monitoring.service import ResourceMonitor
from tenantforge.modules.provisioning.service import ProvisioningService
from tenantforge.modules.tenants.models import Tenant
from tenantforge.modules.tenants.services import LifecycleService


log = structlog.get_logger()

WORKER_POOL_SIZE = 5


def build_worker_context(ctx: dict[str, Any], settings: Settings) -> None:
    """Populate an ARQ context with the engine, services and collaborators."""
    engine = build_engine(settings, pool_size=WORKER_POOL_SIZE)
    session_factory = build_session_factory(engine)
    collaborators = build_collaborators(settings)

    ctx["settings"] = settings
    ctx["db_engine"] = engine
    ctx["db_session_factory"] = session_factory
    ctx["cache"] = RedisCache(prefix=settings.cache_prefix)
    ctx["collaborators"] = collaborators
    ctx["provisioning"] = ProvisioningService(
        settings, session_factory, proxy=collaborators.proxy
    )


def resource_monitor(ctx: dict[str, Any], session: AsyncSession) -> ResourceMonitor:
    return ResourceMonitor(ctx["settings"], session, ctx.get("cache"))


def lifecycle_service(ctx: dict[str, Any], session: AsyncSession) -> LifecycleService:
    collaborators: Collaborators = ctx["collaborators"]
    return LifecycleService(
        session,
        ctx["settings"],
        ctx["provisioning"],
        resource_monitor(ctx, session),
        collaborators,
    )


def backup_service(ctx: dict[str, Any], session: AsyncSession) -> BackupService:
    return BackupService(ctx["settings"], session, archive=ctx["collaborators"].archive)


async def notify_once(
    ctx: dict[str, Any],
    lifecycle: LifecycleService,
    tenant: Tenant,
    kind: str,
    data: dict[str, Any],
) -> bool:
    """Send a warning at most once per ``usage_warning_interval_hours``.

    Without Redis the throttle cannot be checked and the warning is
    dropped rather than risk repeating it every sweep.

    Returns:
        True if the notification was sent
    """
    settings: Settings = ctx["settings"]
    cache: RedisCache = ctx["cache"]
    key = f"notice:{kind}:{tenant.id}"
    try:
        first = await cache.set_if_absent(
            key, "1", ttl_seconds=settings.usage_warning_interval_hours * 3600
        )
    except RedisError as exc:
        log.warning("notice_throttle_unavailable", tenant=tenant.slug, kind=kind, error=str(exc))
        return False
    if not first:
        log.debug("notice_throttled", tenant=tenant.slug, kind=kind)
        return False
    return await lifecycle.notify_owner(tenant, kind, data)
