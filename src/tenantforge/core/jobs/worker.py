"""ARQ worker configuration.

Defines the sweeps, their cron schedules and the startup/shutdown hooks.

Run the worker with:
    arq tenantforge.core.jobs.worker.WorkerSettings
"""

from typing import Any, ClassVar

import structlog
from arq import cron

from tenantforge.config import settings
from tenantforge.core.cache import close_redis_pool
from tenantforge.core.constants import (
    BACKUP_JOB_TIMEOUT_SECONDS,
    EXPIRY_JOB_TIMEOUT_SECONDS,
    UNPAID_JOB_TIMEOUT_SECONDS,
    USAGE_JOB_TIMEOUT_SECONDS,
)
from tenantforge.core.jobs.context import build_worker_context
from tenantforge.core.jobs.tasks import backup_sweep, expiry_sweep, unpaid_sweep, usage_sweep
from tenantforge.core.jobs.utils import get_redis_settings
from tenantforge.core.logging import configure_logging
from tenantforge.core.observability import instrument_sqlalchemy, setup_tracing
from tenantforge.core.observability.tracing import shutdown_tracing


log = structlog.get_logger()


async def startup(ctx: dict[str, Any]) -> None:
    """Initialize resources shared by all jobs of this worker."""
    configure_logging(settings)
    log.info("worker_startup", environment=settings.environment)

    build_worker_context(ctx, settings)
    if setup_tracing(config=settings, service_suffix="worker"):
        instrument_sqlalchemy(ctx["db_engine"])

    log.info("worker_startup_complete")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Cleanup resources when the worker stops."""
    log.info("worker_shutdown")

    engine = ctx.get("db_engine")
    if engine:
        await engine.dispose()
        log.info("database_engine_disposed")

    await close_redis_pool()
    shutdown_tracing()
    log.info("worker_shutdown_complete")


class WorkerSettings:
    """ARQ worker settings.

    Every cron job is ``unique`` so a sweep never overlaps with itself,
    and bounded by its own timeout and number of tries.
    """

    functions: ClassVar[list[Any]] = [
        expiry_sweep,
        unpaid_sweep,
        usage_sweep,
        backup_sweep,
    ]

    cron_jobs: ClassVar[list[Any]] = [
        cron(
            expiry_sweep,
            minute=5,
            unique=True,
            timeout=EXPIRY_JOB_TIMEOUT_SECONDS,
            max_tries=3,
        ),
        cron(
            unpaid_sweep,
            minute=20,
            unique=True,
            timeout=UNPAID_JOB_TIMEOUT_SECONDS,
            max_tries=3,
        ),
        cron(
            usage_sweep,
            minute={0, 15, 30, 45},
            unique=True,
            timeout=USAGE_JOB_TIMEOUT_SECONDS,
            max_tries=2,
        ),
        cron(
            backup_sweep,
            minute=40,
            unique=True,
            timeout=BACKUP_JOB_TIMEOUT_SECONDS,
            max_tries=2,
        ),
    ]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = get_redis_settings()

    max_jobs = 10
    job_timeout = BACKUP_JOB_TIMEOUT_SECONDS
    keep_result = 3600
    max_tries = 3
