"""
Domain entities for visitlab.

- VisitRecord: one enriched, persisted observation of a page interaction
- GeoLocation: resolved location of a client IP (or the Unknown sentinel)

Invariants:
- session_id and visit_date are always set
- is_new_visitor and is_returning_visitor are never both true
- visit_duration / page_views only grow (accumulated per session_id + page)
- records are never deleted
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

UNKNOWN = "Unknown"

DeviceClass = Literal["mobile", "tablet", "desktop"]


def utc_now() -> datetime:
    return datetime.now(UTC)


# --- Geo ---


@dataclass(frozen=True)
class GeoLocation:
    """Location data resolved from an IP address."""

    country: str = UNKNOWN
    region: str = UNKNOWN
    city: str = UNKNOWN
    timezone: str = UNKNOWN
    latitude: float | None = None
    longitude: float | None = None

    @classmethod
    def unknown(cls) -> GeoLocation:
        """Sentinel used whenever a lookup is skipped or fails."""
        return cls()

    @property
    def is_unknown(self) -> bool:
        return self == GeoLocation.unknown()


# --- Visit Record ---


class VisitRecord(BaseModel):
    """
    Persisted visit record.

    Created once per tracked event; mutated only by the completion hook
    (page_views / visit_duration / last_visit) and by conversion updates.
    """

    id: UUID = Field(default_factory=uuid4)
    session_id: str = Field(min_length=1)
    ip: str = Field(min_length=1)
    user_agent: str = ""

    # Geo
    country: str = UNKNOWN
    region: str = UNKNOWN
    city: str = UNKNOWN
    timezone: str = UNKNOWN
    latitude: float | None = None
    longitude: float | None = None

    # Device
    browser: str = UNKNOWN
    browser_version: str = ""
    os: str = UNKNOWN
    os_version: str = ""
    device_class: DeviceClass = "desktop"
    screen_resolution: str | None = None
    language: str | None = None
    client_timezone: str | None = None

    # Attribution
    referrer: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    utm_term: str | None = None
    utm_content: str | None = None

    # Page
    page: str = Field(min_length=1)
    page_title: str | None = None
    article_id: str | None = None

    # Accumulators
    visit_duration: int = Field(default=0, ge=0)
    page_views: int = Field(default=0, ge=0)

    # Classification
    is_new_visitor: bool = True
    is_returning_visitor: bool = False
    is_bot: bool = False

    # Timestamps (UTC)
    first_visit: datetime = Field(default_factory=utc_now)
    last_visit: datetime = Field(default_factory=utc_now)
    visit_date: datetime = Field(default_factory=utc_now)
    client_timestamp: datetime | None = None

    # Conversion
    conversion: str | None = None
    conversion_value: str | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _check_visitor_flags(self) -> VisitRecord:
        if self.is_new_visitor and self.is_returning_visitor:
            raise ValueError("A visit cannot be both new and returning")
        return self

    def with_geo(self, geo: GeoLocation) -> VisitRecord:
        """Return a copy carrying the given location fields."""
        return self.model_copy(
            update={
                "country": geo.country,
                "region": geo.region,
                "city": geo.city,
                "timezone": geo.timezone,
                "latitude": geo.latitude,
                "longitude": geo.longitude,
            }
        )
