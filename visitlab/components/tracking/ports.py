"""
Tracking component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from visitlab.core.entities import VisitRecord
from visitlab.core.ports.geo import GeoLookupPort
from visitlab.core.ports.time import TimePort


class VisitWriterPort(Protocol):
    """Write side of the visit store used by ingestion."""

    def add(self, record: VisitRecord) -> VisitRecord: ...

    def latest_for_session(self, session_id: str, ip: str) -> VisitRecord | None: ...

    def accumulate(
        self,
        session_id: str,
        page: str,
        page_views: int,
        duration_seconds: int,
        seen_at: datetime,
    ) -> bool: ...

    def set_conversion(
        self,
        session_id: str,
        conversion: str,
        conversion_value: str | None,
        updated_at: datetime,
    ) -> int: ...


__all__ = ["GeoLookupPort", "TimePort", "VisitWriterPort"]
