"""Bounded retries for scheduled jobs.

ARQ only retries a job that raises ``arq.Retry``. The wrapper below turns
an unexpected failure into a delayed retry while tries remain, and into a
dead-lettered failure with an operator alert once they are used up.
"""

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

import structlog
from arq import Retry

from tenantforge.core.errors import JobExecutionError
from tenantforge.integrations import NotificationKind, safe_notify


log = structlog.get_logger()

T = TypeVar("T")

JobFunction = Callable[..., Awaitable[T]]


def with_bounded_retry(
    max_tries: int,
) -> Callable[[JobFunction[T]], JobFunction[T]]:
    """Retry a job with linear backoff, at most ``max_tries`` times in total.

    The job context must carry ``settings`` and ``collaborators`` as set up
    by the worker's startup hook. The backoff step is
    ``settings.job_retry_backoff_seconds``.

    Example:
        @with_bounded_retry(max_tries=3)
        async def expiry_sweep(ctx: dict[str, Any]) -> dict[str, Any]:
            ...
    """
    if max_tries < 1:
        raise ValueError("max_tries must be at least 1")

    def decorator(func: JobFunction[T]) -> JobFunction[T]:
        @wraps(func)
        async def wrapper(ctx: dict[str, Any], *args: Any, **kwargs: Any) -> T:
            job_try = ctx.get("job_try", 1)
            try:
                return await func(ctx, *args, **kwargs)
            except (Retry, asyncio.CancelledError):
                raise
            except Exception as exc:
                settings = ctx["settings"]
                if job_try < max_tries:
                    defer = settings.job_retry_backoff_seconds * job_try
                    log.warning(
                        "job_retry_scheduled",
                        job=func.__name__,
                        job_try=job_try,
                        max_tries=max_tries,
                        defer_seconds=defer,
                        error=repr(exc),
                    )
                    raise Retry(defer=defer) from exc

                log.error(
                    "job_dead_lettered",
                    job=func.__name__,
                    job_try=job_try,
                    error=repr(exc),
                )
                await safe_notify(
                    ctx["collaborators"].notifier,
                    settings.operator_email,
                    NotificationKind.OPERATOR_ALERT,
                    {"job": func.__name__, "tries": job_try, "error": str(exc)},
                    timeout=settings.collaborator_timeout_seconds,
                )
                raise JobExecutionError(job=func.__name__, tries=job_try) from exc

        return wrapper

    return decorator
