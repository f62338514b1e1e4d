"""
Visitor classification ports.
"""

from __future__ import annotations

from typing import Protocol

from visitlab.core.entities import VisitRecord


class PriorVisitPort(Protocol):
    """Read access to the latest prior record of a session."""

    def latest_for_session(self, session_id: str, ip: str) -> VisitRecord | None:
        """Most recent record for (session_id, ip) by visit_date."""
        ...
