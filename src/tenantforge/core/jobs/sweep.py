"""Concurrent per-tenant processing for sweeps."""

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

import structlog

from tenantforge.core.observability import get_tracer


log = structlog.get_logger()
tracer = get_tracer(__name__)

# Returns the action taken for the tenant, or None when nothing was done
TenantHandler = Callable[[UUID], Awaitable[str | None]]


@dataclass
class SweepResult:
    """Per-tenant tally of one sweep run."""

    name: str
    processed: int = 0
    failed: int = 0
    actions: Counter[str] = field(default_factory=Counter)
    cancelled: bool = False

    def record(self, action: str | None) -> None:
        self.processed += 1
        self.actions[action or "unchanged"] += 1

    def record_failure(self) -> None:
        self.processed += 1
        self.failed += 1

    def as_dict(self) -> dict[str, Any]:
        return {
            "sweep": self.name,
            "processed": self.processed,
            "failed": self.failed,
            "cancelled": self.cancelled,
            **dict(self.actions),
        }


async def run_sweep(
    name: str,
    tenant_ids: Iterable[UUID],
    handler: TenantHandler,
    concurrency: int,
) -> SweepResult:
    """Run ``handler`` for each tenant with at most ``concurrency`` in flight.

    A failing tenant is logged and counted, never propagated. If the sweep
    is cancelled no further tenant is started, the tenants already in
    flight are allowed to finish and the cancellation is re-raised.
    """
    result = SweepResult(name=name)
    semaphore = asyncio.Semaphore(max(1, concurrency))
    in_flight: set[asyncio.Task[None]] = set()

    async def process(tenant_id: UUID) -> None:
        try:
            action = await handler(tenant_id)
        except Exception as exc:
            result.record_failure()
            log.error(
                "sweep_tenant_failed",
                sweep=name,
                tenant_id=str(tenant_id),
                error=repr(exc),
            )
        else:
            result.record(action)
        finally:
            semaphore.release()

    with tracer.start_as_current_span(f"sweep.{name}") as span:
        try:
            for tenant_id in tenant_ids:
                await semaphore.acquire()
                task = asyncio.create_task(process(tenant_id))
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)
            if in_flight:
                await asyncio.wait(set(in_flight))
        except asyncio.CancelledError:
            result.cancelled = True
            log.warning("sweep_cancelled", sweep=name, in_flight=len(in_flight))
            if in_flight:
                # asyncio.wait does not cancel the tasks it waits on
                await asyncio.wait(set(in_flight))
            raise
        finally:
            span.set_attribute("sweep.processed", result.processed)
            span.set_attribute("sweep.failed", result.failed)

    log.info("sweep_completed", **result.as_dict())
    return result
