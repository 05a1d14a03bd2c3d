"""Response schemas for usage and limit endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class MetricStats(BaseModel):
    avg: float = 0.0
    max: float = 0.0
    min: float = 0.0


class StorageStats(BaseModel):
    current: float = 0.0
    trend: str = "stable"


class BandwidthStats(BaseModel):
    total: float = 0.0
    avg_daily: float = 0.0


class TrafficStats(BaseModel):
    total_views: int = 0
    unique_visitors: int = 0
    avg_daily_views: float = 0.0


class TimelinePoint(BaseModel):
    timestamp: datetime
    cpu: float
    memory: float
    storage: float
    bandwidth: float
    views: int


class UsageReport(BaseModel):
    """Usage statistics of one tenant over a period."""

    period: str
    data_points: int = 0
    cpu: MetricStats = Field(default_factory=MetricStats)
    memory: MetricStats = Field(default_factory=MetricStats)
    storage: StorageStats = Field(default_factory=StorageStats)
    bandwidth: BandwidthStats = Field(default_factory=BandwidthStats)
    traffic: TrafficStats = Field(default_factory=TrafficStats)
    timeline: list[TimelinePoint] = Field(default_factory=list)


class LimitFindingResponse(BaseModel):
    resource: str
    current: float
    limit: float
    percentage: float


class LimitReportResponse(BaseModel):
    within_limits: bool
    has_warnings: bool
    violations: list[LimitFindingResponse]
    warnings: list[LimitFindingResponse]
    usage: dict[str, float]
    limits: dict[str, float]
