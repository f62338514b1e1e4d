"""
API response schemas.

JSON keys are camelCase; Python attributes stay snake_case.
"""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- Tracking ---


class TrackResponse(CamelModel):
    success: bool


class ConversionResponse(CamelModel):
    success: bool
    updated: int


# --- Aggregates ---


class DailyStatsResponse(CamelModel):
    date: dt.date
    total_visitors: int
    unique_visitors: int
    total_page_views: int
    avg_visit_duration: float
    new_visitors: int
    returning_visitors: int


class TrendPointResponse(CamelModel):
    bucket: str
    bucket_start: dt.datetime
    total_visitors: int
    unique_visitors: int
    total_page_views: int
    avg_visit_duration: float
    new_visitors: int
    returning_visitors: int


class RegionStatResponse(CamelModel):
    country: str
    region: str
    visitors: int
    unique_visitors: int
    page_views: int
    avg_duration: float


class DeviceStatResponse(CamelModel):
    device: str
    browser: str
    os: str
    visitors: int
    unique_visitors: int


class PageStatResponse(CamelModel):
    page: str
    visitors: int
    unique_visitors: int
    page_views: int


class CountryStatResponse(CamelModel):
    country: str
    visitors: int
    unique_visitors: int
    page_views: int


class DashboardResponse(CamelModel):
    generated_at: dt.datetime
    today: DailyStatsResponse
    yesterday: DailyStatsResponse
    weekly_stats: list[TrendPointResponse]
    top_countries: list[CountryStatResponse]
    device_stats: list[DeviceStatResponse]
    top_pages: list[PageStatResponse]


# --- Raw visitors ---


class VisitorResponse(CamelModel):
    """Visit record as exposed to the dashboard (no IP, no user agent)."""

    id: UUID
    session_id: str
    country: str
    region: str
    city: str
    timezone: str
    latitude: float | None
    longitude: float | None
    browser: str
    browser_version: str
    os: str
    os_version: str
    device_class: str
    screen_resolution: str | None
    language: str | None
    client_timezone: str | None
    referrer: str | None
    utm_source: str | None
    utm_medium: str | None
    utm_campaign: str | None
    utm_term: str | None
    utm_content: str | None
    page: str
    page_title: str | None
    article_id: str | None
    visit_duration: int
    page_views: int
    is_new_visitor: bool
    is_returning_visitor: bool
    is_bot: bool
    first_visit: dt.datetime
    last_visit: dt.datetime
    visit_date: dt.datetime
    conversion: str | None
    conversion_value: str | None


class VisitorListResponse(CamelModel):
    visitors: list[VisitorResponse]
    total: int
    limit: int
    has_more: bool
