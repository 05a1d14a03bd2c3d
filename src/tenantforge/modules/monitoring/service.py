"""Resource monitor: measures tenants and evaluates them against plan limits."""

import asyncio
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Annotated

import structlog
from fastapi import Depends
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from tenantforge.api.dependencies import AppSettings, Cache, DBSession
from tenantforge.config import Settings
from tenantforge.core.cache import RedisCache
from tenantforge.core.constants import ACCESS_LOG_NAME, TRAFFIC_WINDOW_SECONDS
from tenantforge.core.errors import ValidationError
from tenantforge.modules.monitoring.access_log import summarize_access_log
from tenantforge.modules.monitoring.estimators import FileActivityEstimator, UsageEstimator
from tenantforge.modules.monitoring.evaluation import (
    LimitReport,
    UsageSnapshot,
    evaluate_limits,
)
from tenantforge.modules.monitoring.models import UsageSample
from tenantforge.modules.monitoring.repos import UsageSampleRepository
from tenantforge.modules.monitoring.schemas import (
    BandwidthStats,
    MetricStats,
    StorageStats,
    TimelinePoint,
    TrafficStats,
    UsageReport,
)
from tenantforge.modules.plans.limits import resolve_limits
from tenantforge.modules.provisioning.filesystem import directory_size_bytes
from tenantforge.modules.tenants.models import Tenant


log = structlog.get_logger()

BYTES_PER_MB = 1024 * 1024

# Period name -> (look-back, days used for daily averages)
PERIODS: dict[str, tuple[timedelta, int]] = {
    "1h": (timedelta(hours=1), 1),
    "24h": (timedelta(days=1), 1),
    "7d": (timedelta(days=7), 7),
    "30d": (timedelta(days=30), 30),
}

TREND_TOLERANCE = 0.1


def storage_trend(values: Sequence[float]) -> str:
    """Compare the last value to the first with a 10 % tolerance band."""
    if len(values) < 2:
        return "stable"
    first, last = values[0], values[-1]
    if last > first * (1 + TREND_TOLERANCE):
        return "increasing"
    if last < first * (1 - TREND_TOLERANCE):
        return "decreasing"
    return "stable"


class ResourceMonitor:
    """Samples tenant usage and checks it against the tenant's plan.

    Storage sizes and the latest snapshot are cached in Redis for
    ``usage_cache_ttl_seconds``. A Redis outage only costs a fresh
    measurement. Reads never change tenant state.
    """

    def __init__(
        self,
        settings: Settings,
        session: AsyncSession,
        cache: RedisCache | None = None,
        estimator: UsageEstimator | None = None,
    ) -> None:
        self.settings = settings
        self.session = session
        self.cache = cache
        self.estimator = estimator or FileActivityEstimator()
        self.samples = UsageSampleRepository(session)

    # ============================================================
    # Measurement
    # ============================================================

    async def sample(self, tenant: Tenant, now: datetime | None = None) -> UsageSnapshot:
        """Measure a tenant's current usage without recording it."""
        now = now or datetime.now(UTC)
        root = Path(tenant.root_path)

        storage_mb = await self._storage_mb(tenant)
        estimate = await asyncio.to_thread(self.estimator.estimate, root)
        traffic = await asyncio.to_thread(
            summarize_access_log,
            root / "logs" / ACCESS_LOG_NAME,
            now,
            timedelta(seconds=TRAFFIC_WINDOW_SECONDS),
        )
        return UsageSnapshot(
            cpu_percent=estimate.cpu_percent,
            memory_mb=estimate.memory_mb,
            storage_mb=storage_mb,
            bandwidth_mb=traffic.bandwidth_mb,
            page_views=traffic.page_views,
            unique_visitors=traffic.unique_visitors,
        )

    async def record(self, tenant: Tenant) -> UsageSnapshot:
        """Sample a tenant, persist the sample and cache it as the latest usage.

        The caller commits the session.
        """
        snapshot = await self.sample(tenant)
        await self.samples.add(
            UsageSample(
                tenant_id=tenant.id,
                cpu_percent=snapshot.cpu_percent,
                memory_mb=snapshot.memory_mb,
                storage_mb=snapshot.storage_mb,
                bandwidth_mb=snapshot.bandwidth_mb,
                page_views=snapshot.page_views,
                unique_visitors=snapshot.unique_visitors,
            )
        )
        await self._cache_set(self._usage_key(tenant), snapshot.as_dict())
        log.debug("usage_recorded", tenant=tenant.slug, **snapshot.as_dict())
        return snapshot

    async def current_usage(self, tenant: Tenant) -> UsageSnapshot:
        """The cached snapshot if fresh, otherwise a new measurement."""
        cached = await self._cache_get(self._usage_key(tenant))
        if cached is not None:
            return UsageSnapshot.from_dict(cached)
        return await self.sample(tenant)

    async def check_limits(self, tenant: Tenant) -> LimitReport:
        """Evaluate current usage against the tenant's plan limits."""
        usage = await self.current_usage(tenant)
        return evaluate_limits(usage, resolve_limits(tenant.plan))

    # ============================================================
    # Reporting
    # ============================================================

    async def get_usage(
        self,
        tenant: Tenant,
        period: str = "24h",
        now: datetime | None = None,
    ) -> UsageReport:
        """Aggregate recorded samples over a period.

        Raises:
            ValidationError: If the period is not one of 1h, 24h, 7d, 30d
        """
        if period not in PERIODS:
            raise ValidationError(
                f"Unknown period {period!r}",
                error_code="invalid_period",
                errors=[{"field": "period", "message": f"Must be one of {', '.join(PERIODS)}"}],
            )
        lookback, days = PERIODS[period]
        now = now or datetime.now(UTC)
        samples = await self.samples.since(tenant.id, now - lookback)
        return build_usage_report(period, days, samples)

    async def prune_samples(self, before: datetime | None = None) -> int:
        """Delete samples older than the retention window.

        Returns:
            Number of samples deleted
        """
        before = before or datetime.now(UTC) - timedelta(
            days=self.settings.usage_sample_retention_days
        )
        deleted = await self.samples.prune(before)
        log.info("usage_samples_pruned", deleted=deleted, before=before.isoformat())
        return deleted

    # ============================================================
    # Helpers
    # ============================================================

    async def _storage_mb(self, tenant: Tenant) -> float:
        key = f"storage:{tenant.id}"
        cached = await self._cache_get(key)
        if cached is not None:
            return float(cached["storage_mb"])
        size = await asyncio.to_thread(directory_size_bytes, Path(tenant.root_path))
        storage_mb = round(size / BYTES_PER_MB, 2)
        await self._cache_set(key, {"storage_mb": storage_mb})
        return storage_mb

    @staticmethod
    def _usage_key(tenant: Tenant) -> str:
        return f"usage:{tenant.id}"

    async def _cache_get(self, key: str) -> dict | None:
        if self.cache is None:
            return None
        try:
            return await self.cache.get_json(key)
        except RedisError as exc:
            log.warning("usage_cache_unavailable", key=key, error=str(exc))
            return None

    async def _cache_set(self, key: str, value: dict) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set_json(key, value, self.settings.usage_cache_ttl_seconds)
        except RedisError as exc:
            log.warning("usage_cache_unavailable", key=key, error=str(exc))


def build_usage_report(period: str, days: int, samples: Sequence[UsageSample]) -> UsageReport:
    """Summary statistics and timeline for a list of samples, oldest first."""
    if not samples:
        return UsageReport(period=period)

    def stats(values: list[float]) -> MetricStats:
        return MetricStats(
            avg=round(sum(values) / len(values), 2),
            max=max(values),
            min=min(values),
        )

    bandwidth_total = round(sum(s.bandwidth_mb for s in samples), 2)
    views_total = sum(s.page_views for s in samples)
    days = max(1, days)

    return UsageReport(
        period=period,
        data_points=len(samples),
        cpu=stats([s.cpu_percent for s in samples]),
        memory=stats([s.memory_mb for s in samples]),
        storage=StorageStats(
            current=samples[-1].storage_mb,
            trend=storage_trend([s.storage_mb for s in samples]),
        ),
        bandwidth=BandwidthStats(total=bandwidth_total, avg_daily=round(bandwidth_total / days, 2)),
        traffic=TrafficStats(
            total_views=views_total,
            unique_visitors=sum(s.unique_visitors for s in samples),
            avg_daily_views=round(views_total / days, 2),
        ),
        timeline=[
            TimelinePoint(
                timestamp=s.recorded_at,
                cpu=s.cpu_percent,
                memory=s.memory_mb,
                storage=s.storage_mb,
                bandwidth=s.bandwidth_mb,
                views=s.page_views,
            )
            for s in samples
        ],
    )


def get_resource_monitor(
    config: AppSettings,
    session: DBSession,
    cache: Cache,
) -> ResourceMonitor:
    return ResourceMonitor(config, session, cache)


Monitor = Annotated[ResourceMonitor, Depends(get_resource_monitor)]
