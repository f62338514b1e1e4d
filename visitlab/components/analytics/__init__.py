"""
Analytics component - aggregation engine and dashboard composer.
"""

from ._aggregate import (
    StatsService,
    bucket_key,
    day_start,
    exclusive_end,
    hour_floor,
    iter_days,
    iter_hours,
)
from .component import run_daily_trend, run_dashboard
from .models import (
    ALL_TIME,
    DEFAULT_CONFIG,
    CountryStat,
    DailyStats,
    DashboardConfig,
    DashboardSnapshot,
    DateRange,
    DeviceStat,
    PageStat,
    RegionStat,
    TrendPoint,
    VisitorListing,
)
from .ports import StatsRepoPort

__all__ = [
    # Service
    "StatsService",
    "bucket_key",
    "day_start",
    "exclusive_end",
    "hour_floor",
    "iter_days",
    "iter_hours",
    # Entry points
    "run_daily_trend",
    "run_dashboard",
    # Models
    "ALL_TIME",
    "CountryStat",
    "DEFAULT_CONFIG",
    "DailyStats",
    "DashboardConfig",
    "DashboardSnapshot",
    "DateRange",
    "DeviceStat",
    "PageStat",
    "RegionStat",
    "TrendPoint",
    "VisitorListing",
    # Ports
    "StatsRepoPort",
]
