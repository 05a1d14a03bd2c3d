"""Pure limit evaluation.

Nothing here touches the database, Redis or the filesystem, so the
thresholds can be tested directly.
"""

from dataclasses import asdict, dataclass, field
from typing import Any

from tenantforge.core.constants import (
    CRITICAL_THRESHOLD_PERCENT,
    HIGH_WARNING_THRESHOLD_PERCENT,
    VIOLATION_THRESHOLD_PERCENT,
    WARNING_THRESHOLD_PERCENT,
)
from tenantforge.modules.plans.limits import PlanLimits


# Violations of these resources can get a tenant suspended
ENFORCED_RESOURCES = frozenset({"cpu_percent", "memory_mb", "bandwidth_mb"})


@dataclass(frozen=True)
class UsageSnapshot:
    cpu_percent: float = 0.0
    memory_mb: float = 0.0
    storage_mb: float = 0.0
    bandwidth_mb: float = 0.0
    page_views: int = 0
    unique_visitors: int = 0

    def as_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UsageSnapshot":
        return cls(
            cpu_percent=float(data.get("cpu_percent", 0.0)),
            memory_mb=float(data.get("memory_mb", 0.0)),
            storage_mb=float(data.get("storage_mb", 0.0)),
            bandwidth_mb=float(data.get("bandwidth_mb", 0.0)),
            page_views=int(data.get("page_views", 0)),
            unique_visitors=int(data.get("unique_visitors", 0)),
        )


@dataclass(frozen=True)
class LimitFinding:
    resource: str
    current: float
    limit: float
    percentage: float

    @property
    def exact_percentage(self) -> float:
        """Unrounded share of the limit; ``percentage`` is for display."""
        return self.current / self.limit * 100


@dataclass
class LimitReport:
    within_limits: bool
    has_warnings: bool
    violations: list[LimitFinding] = field(default_factory=list)
    warnings: list[LimitFinding] = field(default_factory=list)
    usage: UsageSnapshot = field(default_factory=UsageSnapshot)
    limits: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def evaluate_limits(snapshot: UsageSnapshot, limits: PlanLimits) -> LimitReport:
    """Compare usage against limits.

    Above 100 % of a limit is a violation; above 80 % and up to 100 % is a
    warning. Resources with a limit of zero are not evaluated.
    """
    usage = snapshot.as_dict()
    violations: list[LimitFinding] = []
    warnings: list[LimitFinding] = []

    for resource, limit in limits.as_dict().items():
        if not limit or limit <= 0:
            continue
        current = usage.get(resource, 0.0)
        percentage = current / limit * 100
        if percentage > VIOLATION_THRESHOLD_PERCENT:
            violations.append(LimitFinding(resource, current, limit, round(percentage, 2)))
        elif percentage > WARNING_THRESHOLD_PERCENT:
            warnings.append(LimitFinding(resource, current, limit, round(percentage, 2)))

    return LimitReport(
        within_limits=not violations,
        has_warnings=bool(warnings),
        violations=violations,
        warnings=warnings,
        usage=snapshot,
        limits=limits.as_dict(),
    )


def critical_violations(report: LimitReport) -> list[LimitFinding]:
    """Violations severe enough to suspend a tenant automatically."""
    return [
        finding
        for finding in report.violations
        if finding.resource in ENFORCED_RESOURCES
        and finding.exact_percentage > CRITICAL_THRESHOLD_PERCENT
    ]


def high_warnings(report: LimitReport) -> list[LimitFinding]:
    return [
        finding
        for finding in report.warnings
        if finding.exact_percentage > HIGH_WARNING_THRESHOLD_PERCENT
    ]
