"""
Analytics component input/output models.

Every metric object has a zero form so that empty ranges never produce
null or missing values.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from visitlab.core.entities import VisitRecord

# --- Configuration ---


@dataclass(frozen=True)
class DashboardConfig:
    """Dashboard composition settings."""

    trend_days: int = 7
    window_days: int = 30
    top_limit: int = 10
    visitors_page_size: int = 100
    realtime_minutes: int = 60


DEFAULT_CONFIG = DashboardConfig()


# --- Inputs ---


@dataclass(frozen=True)
class DateRange:
    """Time range; both ends inclusive, either may be open."""

    start: datetime | None = None
    end: datetime | None = None


ALL_TIME = DateRange()


# --- Outputs ---


@dataclass(frozen=True)
class DailyStats:
    """Totals for one UTC calendar day."""

    date: date
    total_visitors: int = 0
    unique_visitors: int = 0
    total_page_views: int = 0
    avg_visit_duration: float = 0.0
    new_visitors: int = 0
    returning_visitors: int = 0

    @classmethod
    def zero(cls, day: date) -> DailyStats:
        return cls(date=day)


@dataclass(frozen=True)
class TrendPoint:
    """Totals for one day or hour bucket."""

    bucket: str
    bucket_start: datetime
    total_visitors: int = 0
    unique_visitors: int = 0
    total_page_views: int = 0
    avg_visit_duration: float = 0.0
    new_visitors: int = 0
    returning_visitors: int = 0


@dataclass(frozen=True)
class RegionStat:
    country: str
    region: str
    visitors: int
    unique_visitors: int
    page_views: int
    avg_duration: float


@dataclass(frozen=True)
class DeviceStat:
    device: str
    browser: str
    os: str
    visitors: int
    unique_visitors: int


@dataclass(frozen=True)
class PageStat:
    page: str
    visitors: int
    unique_visitors: int
    page_views: int


@dataclass(frozen=True)
class CountryStat:
    country: str
    visitors: int
    unique_visitors: int
    page_views: int


@dataclass(frozen=True)
class VisitorListing:
    """Raw records, newest first, with the total number of matches."""

    visitors: tuple[VisitRecord, ...]
    total: int
    limit: int

    @property
    def has_more(self) -> bool:
        return self.total > len(self.visitors)


@dataclass(frozen=True)
class DashboardSnapshot:
    """Everything the dashboard shows, computed at one instant."""

    generated_at: datetime
    today: DailyStats
    yesterday: DailyStats
    weekly_stats: tuple[TrendPoint, ...]
    top_countries: tuple[CountryStat, ...]
    device_stats: tuple[DeviceStat, ...]
    top_pages: tuple[PageStat, ...]
