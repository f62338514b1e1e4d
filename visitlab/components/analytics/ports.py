"""
Analytics component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from visitlab.core.entities import VisitRecord
from visitlab.core.ports.db import BucketUnit, VisitFilter


class StatsRepoPort(Protocol):
    """Read side of the visit store. All aggregates exclude bots."""

    def summarize(self, start: datetime, end: datetime) -> dict[str, Any]:
        """Totals for visit_date in [start, end)."""
        ...

    def summarize_by_bucket(
        self, unit: BucketUnit, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        """Totals per bucket for visit_date in [start, end), ascending."""
        ...

    def group_counts(
        self,
        dimensions: tuple[str, ...],
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Grouped counts, most visitors first."""
        ...

    def list_visits(
        self, filters: VisitFilter, limit: int = 100
    ) -> tuple[list[VisitRecord], int]:
        """Raw records, newest first, plus total match count."""
        ...
