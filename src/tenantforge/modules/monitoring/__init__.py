"""Resource monitoring and quota evaluation."""

from tenantforge.modules.monitoring.estimators import (
    FileActivityEstimator,
    ResourceEstimate,
    UsageEstimator,
)
from tenantforge.modules.monitoring.evaluation import (
    LimitFinding,
    LimitReport,
    UsageSnapshot,
    critical_violations,
    evaluate_limits,
    high_warnings,
)
from tenantforge.modules.monitoring.service import ResourceMonitor


__all__ = [
    "FileActivityEstimator",
    "LimitFinding",
    "LimitReport",
    "ResourceEstimate",
    "ResourceMonitor",
    "UsageEstimator",
    "UsageSnapshot",
    "critical_violations",
    "evaluate_limits",
    "high_warnings",
]
