"""
Visit store interfaces.

Protocol-based interface for the visit record repository.
Implementation: SQLite (visitlab.adapters.sqlite_db).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, Protocol

from visitlab.core.entities import VisitRecord

BucketUnit = Literal["day", "hour"]


class VisitStoreError(RuntimeError):
    """Raised when the visit store cannot read or write."""


@dataclass(frozen=True)
class VisitFilter:
    """Filters for raw visitor listings."""

    start: datetime | None = None
    end: datetime | None = None
    country: str | None = None
    region: str | None = None
    device_class: str | None = None
    browser: str | None = None


class VisitRepoPort(Protocol):
    """
    Repository for visit records.

    Write side is append/accumulate only; there is no delete.
    All aggregate reads exclude bot records.
    """

    # --- Write side ---

    def add(self, record: VisitRecord) -> VisitRecord:
        """Insert a new visit record."""
        ...

    def latest_for_session(self, session_id: str, ip: str) -> VisitRecord | None:
        """Most recent record for (session_id, ip) by visit_date."""
        ...

    def accumulate(
        self,
        session_id: str,
        page: str,
        page_views: int,
        duration_seconds: int,
        seen_at: datetime,
    ) -> bool:
        """Increment accumulators of the latest (session_id, page) record."""
        ...

    def set_conversion(
        self,
        session_id: str,
        conversion: str,
        conversion_value: str | None,
        updated_at: datetime,
    ) -> int:
        """Set conversion on the latest record of a session. Returns rows updated."""
        ...

    # --- Read side ---

    def summarize(self, start: datetime, end: datetime) -> dict[str, Any]:
        """Totals for visit_date in [start, end)."""
        ...

    def summarize_by_bucket(
        self, unit: BucketUnit, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        """Totals grouped by day/hour bucket for visit_date in [start, end)."""
        ...

    def group_counts(
        self,
        dimensions: tuple[str, ...],
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Group non-bot records by dimensions, most visitors first."""
        ...

    def list_visits(
        self, filters: VisitFilter, limit: int = 100
    ) -> tuple[list[VisitRecord], int]:
        """Raw records (bots included), newest first, plus total match count."""
        ...
