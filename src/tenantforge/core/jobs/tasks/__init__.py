"""Scheduled sweeps.

Each sweep is an ARQ job function taking the worker context.
"""

from tenantforge.core.jobs.tasks.backups import backup_sweep
from tenantforge.core.jobs.tasks.expiry import cleanup_orphans, expiry_sweep
from tenantforge.core.jobs.tasks.stale import delete_stale_suspensions
from tenantforge.core.jobs.tasks.unpaid import unpaid_sweep
from tenantforge.core.jobs.tasks.usage import usage_sweep


SWEEPS = {
    "expiry": expiry_sweep,
    "unpaid": unpaid_sweep,
    "usage": usage_sweep,
    "backups": backup_sweep,
}


__all__ = [
    "SWEEPS",
    "backup_sweep",
    "cleanup_orphans",
    "delete_stale_suspensions",
    "expiry_sweep",
    "unpaid_sweep",
    "usage_sweep",
]
