"""
StatsService - grouped and time-bucketed statistics over visit records.

Key behaviors:
- Bots never count (the store filters is_bot)
- Unique visitors = distinct session_id per query, never a stored counter
- Days are UTC calendar days, queried half-open [00:00, next 00:00)
- Inclusive range ends are widened by one microsecond before querying
- Trend and realtime series have one row per bucket, empty ones zeroed
- Average durations are rounded to 2 decimals
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from visitlab.core.ports.db import BucketUnit, VisitFilter

from .models import (
    ALL_TIME,
    CountryStat,
    DailyStats,
    DateRange,
    DeviceStat,
    PageStat,
    RegionStat,
    TrendPoint,
    VisitorListing,
)
from .ports import StatsRepoPort

RESOLUTION = timedelta(microseconds=1)

# --- Time helpers ---


def day_start(day: date) -> datetime:
    """Midnight UTC at the start of a calendar day."""
    return datetime.combine(day, time.min, tzinfo=UTC)


def hour_floor(dt: datetime) -> datetime:
    return dt.astimezone(UTC).replace(minute=0, second=0, microsecond=0)


def exclusive_end(end: datetime | None) -> datetime | None:
    """Turn an inclusive end into the exclusive bound the store expects.

    An end at the last representable instant leaves the range unbounded.
    """
    if end is None:
        return None
    try:
        return end + RESOLUTION
    except OverflowError:
        return None


def iter_days(start: date, end: date) -> Iterator[date]:
    """Calendar days from start to end, inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def iter_hours(start: datetime, end: datetime) -> Iterator[datetime]:
    """Hour buckets from floor(start) to floor(end), inclusive."""
    current = hour_floor(start)
    last = hour_floor(end)
    while current <= last:
        yield current
        current += timedelta(hours=1)


def bucket_key(unit: BucketUnit, bucket_start: datetime) -> str:
    """Key the store uses for a bucket (prefix of the stored ISO timestamp)."""
    if unit == "day":
        return bucket_start.strftime("%Y-%m-%d")
    return bucket_start.strftime("%Y-%m-%dT%H")


def bucket_label(unit: BucketUnit, bucket_start: datetime) -> str:
    if unit == "day":
        return bucket_start.strftime("%Y-%m-%d")
    return bucket_start.strftime("%Y-%m-%dT%H:00")


# --- Row mapping ---


def _avg(value: Any) -> float:
    return round(float(value), 2) if value is not None else 0.0


def _int(value: Any) -> int:
    return int(value) if value is not None else 0


def _totals(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "total_visitors": _int(row.get("total_visitors")),
        "unique_visitors": _int(row.get("unique_visitors")),
        "total_page_views": _int(row.get("total_page_views")),
        "avg_visit_duration": _avg(row.get("avg_visit_duration")),
        "new_visitors": _int(row.get("new_visitors")),
        "returning_visitors": _int(row.get("returning_visitors")),
    }


# --- Service ---


class StatsService:
    """Aggregation engine over a StatsRepoPort."""

    def __init__(self, repo: StatsRepoPort) -> None:
        self._repo = repo

    # --- Totals ---

    def daily_stats(self, day: date) -> DailyStats:
        """Totals for one UTC day; zero-valued when nothing matched."""
        start = day_start(day)
        row = self._repo.summarize(start, start + timedelta(days=1))
        if not row or not row.get("total_visitors"):
            return DailyStats.zero(day)
        return DailyStats(date=day, **_totals(row))

    def trend_stats(self, start: date, end: date) -> list[TrendPoint]:
        """Daily totals for each day in [start, end], ascending."""
        if end < start:
            return []
        buckets = [day_start(d) for d in iter_days(start, end)]
        rows = self._repo.summarize_by_bucket(
            "day", day_start(start), day_start(end) + timedelta(days=1)
        )
        return self._fill("day", buckets, rows)

    def realtime_stats(self, now: datetime, minutes: int = 60) -> list[TrendPoint]:
        """Hourly totals over the trailing window ending at now."""
        start = now - timedelta(minutes=minutes)
        rows = self._repo.summarize_by_bucket("hour", start, now + RESOLUTION)
        return self._fill("hour", list(iter_hours(start, now)), rows)

    def _fill(
        self,
        unit: BucketUnit,
        buckets: list[datetime],
        rows: list[dict[str, Any]],
    ) -> list[TrendPoint]:
        by_key = {row["bucket"]: row for row in rows}
        points = []
        for bucket_start in buckets:
            row = by_key.get(bucket_key(unit, bucket_start), {})
            points.append(
                TrendPoint(
                    bucket=bucket_label(unit, bucket_start),
                    bucket_start=bucket_start,
                    **_totals(row),
                )
            )
        return points

    # --- Groupings ---

    def _group(
        self,
        dimensions: tuple[str, ...],
        date_range: DateRange,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        return self._repo.group_counts(
            dimensions,
            start=date_range.start,
            end=exclusive_end(date_range.end),
            limit=limit,
        )

    def region_stats(self, date_range: DateRange = ALL_TIME) -> list[RegionStat]:
        """Visitors by (country, region), most visitors first."""
        return [
            RegionStat(
                country=row["country"],
                region=row["region"],
                visitors=_int(row["visitors"]),
                unique_visitors=_int(row["unique_visitors"]),
                page_views=_int(row["page_views"]),
                avg_duration=_avg(row["avg_duration"]),
            )
            for row in self._group(("country", "region"), date_range)
        ]

    def device_stats(
        self, date_range: DateRange = ALL_TIME, limit: int | None = None
    ) -> list[DeviceStat]:
        """Visitors by (device class, browser, os), most visitors first."""
        return [
            DeviceStat(
                device=row["device"],
                browser=row["browser"],
                os=row["os"],
                visitors=_int(row["visitors"]),
                unique_visitors=_int(row["unique_visitors"]),
            )
            for row in self._group(("device", "browser", "os"), date_range, limit)
        ]

    def top_pages(self, date_range: DateRange = ALL_TIME, limit: int = 10) -> list[PageStat]:
        return [
            PageStat(
                page=row["page"],
                visitors=_int(row["visitors"]),
                unique_visitors=_int(row["unique_visitors"]),
                page_views=_int(row["page_views"]),
            )
            for row in self._group(("page",), date_range, limit)
        ]

    def top_countries(
        self, date_range: DateRange = ALL_TIME, limit: int = 10
    ) -> list[CountryStat]:
        return [
            CountryStat(
                country=row["country"],
                visitors=_int(row["visitors"]),
                unique_visitors=_int(row["unique_visitors"]),
                page_views=_int(row["page_views"]),
            )
            for row in self._group(("country",), date_range, limit)
        ]

    # --- Raw listing ---

    def list_visitors(
        self,
        date_range: DateRange = ALL_TIME,
        country: str | None = None,
        region: str | None = None,
        device: str | None = None,
        browser: str | None = None,
        limit: int = 100,
    ) -> VisitorListing:
        """Raw records (bots included), newest first, with total count."""
        filters = VisitFilter(
            start=date_range.start,
            end=exclusive_end(date_range.end),
            country=country,
            region=region,
            device_class=device,
            browser=browser,
        )
        records, total = self._repo.list_visits(filters, limit=limit)
        return VisitorListing(visitors=tuple(records), total=total, limit=limit)
