"""
Analytics API routes.

Read endpoints for the analytics dashboard.

Key behaviors:
- Bot records never contribute to aggregates (raw listings include them)
- startDate / endDate are ISO dates or datetimes, both inclusive;
  a date-only endDate covers the whole day
- Store failures surface as 500 with a generic message
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from visitlab.api.deps import get_clock, get_dashboard_config, get_rules, get_stats_service
from visitlab.api.schemas import (
    CountryStatResponse,
    DashboardResponse,
    DeviceStatResponse,
    PageStatResponse,
    RegionStatResponse,
    TrendPointResponse,
    VisitorListResponse,
    VisitorResponse,
)
from visitlab.components.analytics import (
    DashboardConfig,
    DateRange,
    StatsService,
    run_dashboard,
)
from visitlab.core.ports import TimePort, VisitStoreError
from visitlab.rules.models import Rules

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Helpers ---


def parse_bound(value: str, *, end: bool = False) -> datetime:
    """Parse a date or datetime query value (UTC when no offset is given)."""
    raw = value.strip()
    try:
        if len(raw) == 10:
            day = date.fromisoformat(raw)
            if end:
                return datetime.combine(day, time.max, tzinfo=UTC)
            return datetime.combine(day, time.min, tzinfo=UTC)

        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        dt = datetime.fromisoformat(raw)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC)
    except (ValueError, OverflowError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid date format: {value}",
        ) from e


def parse_range(start_date: str | None, end_date: str | None) -> DateRange:
    start = parse_bound(start_date) if start_date else None
    end = parse_bound(end_date, end=True) if end_date else None
    if start and end and start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="startDate must not be after endDate",
        )
    return DateRange(start=start, end=end)


def load_failure(e: VisitStoreError) -> HTTPException:
    logger.error("Analytics query failed: %s", e)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to load analytics",
    )


# --- Routes ---


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    stats: StatsService = Depends(get_stats_service),
    clock: TimePort = Depends(get_clock),
    config: DashboardConfig = Depends(get_dashboard_config),
) -> Any:
    """Today, yesterday, weekly trend and 30-day top lists in one response."""
    try:
        snapshot = run_dashboard(stats, clock.now_utc(), config)
    except VisitStoreError as e:
        raise load_failure(e) from e
    return DashboardResponse.model_validate(snapshot)


@router.get("/daily", response_model=list[TrendPointResponse])
def get_daily(
    days: int | None = Query(None, ge=1, le=365),
    stats: StatsService = Depends(get_stats_service),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> Any:
    """Daily totals for the last N calendar days (ending today)."""
    days = days or rules.dashboard.default_daily_days
    today = clock.now_utc().astimezone(UTC).date()
    try:
        points = stats.trend_stats(today - timedelta(days=days - 1), today)
    except VisitStoreError as e:
        raise load_failure(e) from e
    return [TrendPointResponse.model_validate(p) for p in points]


@router.get("/realtime", response_model=list[TrendPointResponse])
def get_realtime(
    stats: StatsService = Depends(get_stats_service),
    clock: TimePort = Depends(get_clock),
    config: DashboardConfig = Depends(get_dashboard_config),
) -> Any:
    """Hourly totals over the trailing hour."""
    try:
        points = stats.realtime_stats(clock.now_utc(), minutes=config.realtime_minutes)
    except VisitStoreError as e:
        raise load_failure(e) from e
    return [TrendPointResponse.model_validate(p) for p in points]


@router.get("/regions", response_model=list[RegionStatResponse])
def get_regions(
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    stats: StatsService = Depends(get_stats_service),
) -> Any:
    """Visitors by (country, region); all history when no range is given."""
    date_range = parse_range(start_date, end_date)
    try:
        regions = stats.region_stats(date_range)
    except VisitStoreError as e:
        raise load_failure(e) from e
    return [RegionStatResponse.model_validate(r) for r in regions]


@router.get("/devices", response_model=list[DeviceStatResponse])
def get_devices(
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    stats: StatsService = Depends(get_stats_service),
) -> Any:
    date_range = parse_range(start_date, end_date)
    try:
        devices = stats.device_stats(date_range)
    except VisitStoreError as e:
        raise load_failure(e) from e
    return [DeviceStatResponse.model_validate(d) for d in devices]


@router.get("/pages", response_model=list[PageStatResponse])
def get_pages(
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    limit: int = Query(10, ge=1, le=100),
    stats: StatsService = Depends(get_stats_service),
) -> Any:
    date_range = parse_range(start_date, end_date)
    try:
        pages = stats.top_pages(date_range, limit=limit)
    except VisitStoreError as e:
        raise load_failure(e) from e
    return [PageStatResponse.model_validate(p) for p in pages]


@router.get("/countries", response_model=list[CountryStatResponse])
def get_countries(
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    limit: int = Query(10, ge=1, le=100),
    stats: StatsService = Depends(get_stats_service),
) -> Any:
    date_range = parse_range(start_date, end_date)
    try:
        countries = stats.top_countries(date_range, limit=limit)
    except VisitStoreError as e:
        raise load_failure(e) from e
    return [CountryStatResponse.model_validate(c) for c in countries]


@router.get("/visitors", response_model=VisitorListResponse)
def get_visitors(
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    country: str | None = Query(None),
    region: str | None = Query(None),
    device: str | None = Query(None),
    browser: str | None = Query(None),
    stats: StatsService = Depends(get_stats_service),
    config: DashboardConfig = Depends(get_dashboard_config),
) -> Any:
    """
    Raw visit records, newest first.

    Bots are included. IP address and user agent are never returned.
    """
    date_range = parse_range(start_date, end_date)
    try:
        listing = stats.list_visitors(
            date_range,
            country=country,
            region=region,
            device=device,
            browser=browser,
            limit=config.visitors_page_size,
        )
    except VisitStoreError as e:
        raise load_failure(e) from e

    return VisitorListResponse(
        visitors=[VisitorResponse.model_validate(v) for v in listing.visitors],
        total=listing.total,
        limit=listing.limit,
        has_more=listing.has_more,
    )
