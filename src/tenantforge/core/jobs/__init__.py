"""Background job processing with ARQ.

Hosts the lifecycle sweeps:
- expiry: delete expired tenants and orphaned directories
- unpaid: suspend unpaid tenants, delete long suspensions
- usage: sample usage and enforce limits
- backups: create due backups and prune expired ones
"""

from tenantforge.core.jobs.registry import close_arq_pool, enqueue, get_arq_pool, init_arq_pool
from tenantforge.core.jobs.retry import with_bounded_retry
from tenantforge.core.jobs.sweep import SweepResult, run_sweep


__all__ = [
    "SweepResult",
    "close_arq_pool",
    "enqueue",
    "get_arq_pool",
    "init_arq_pool",
    "run_sweep",
    "with_bounded_retry",
]
