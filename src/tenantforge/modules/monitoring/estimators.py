"""CPU and memory estimation strategies.

Tenants share one host, so per-tenant CPU and memory cannot be read
directly. An estimator turns whatever signal is available into numbers
the limit evaluation can compare against plan limits.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from tenantforge.core.constants import ACTIVITY_WINDOW_SECONDS


@dataclass(frozen=True)
class ResourceEstimate:
    cpu_percent: float
    memory_mb: float


class UsageEstimator(Protocol):
    def estimate(self, root: Path) -> ResourceEstimate:
        """Estimate current CPU and memory use of the tenant rooted at ``root``.

        Blocking; called from a worker thread.
        """
        ...


class FileActivityEstimator:
    """Estimates load from cache files written in the last few minutes.

    Each recently touched cache file stands for roughly 2 % CPU and 4 MB
    of memory on top of a 32 MB baseline.
    """

    base_memory_mb = 32.0
    cpu_per_file = 2.0
    memory_per_file = 4.0

    def __init__(
        self,
        window_seconds: int = ACTIVITY_WINDOW_SECONDS,
        cache_dir: str = "cache",
    ) -> None:
        self.window_seconds = window_seconds
        self.cache_dir = cache_dir

    def recent_files(self, root: Path) -> int:
        cache = Path(root) / self.cache_dir
        if not cache.is_dir():
            return 0
        cutoff = time.time() - self.window_seconds
        count = 0
        for entry in cache.iterdir():
            try:
                if entry.stat().st_mtime > cutoff:
                    count += 1
            except FileNotFoundError:
                continue
        return count

    def estimate(self, root: Path) -> ResourceEstimate:
        activity = self.recent_files(root)
        return ResourceEstimate(
            cpu_percent=round(min(100.0, activity * self.cpu_per_file), 2),
            memory_mb=round(self.base_memory_mb + activity * self.memory_per_file, 2),
        )
