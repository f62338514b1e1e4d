"""
Visitor classification models.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

DEFAULT_RETURNING_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class VisitClassification:
    """New / returning / continuing status of a tracked event."""

    is_new_visitor: bool
    is_returning_visitor: bool
    first_visit: datetime

    @property
    def is_continuing(self) -> bool:
        return not self.is_new_visitor and not self.is_returning_visitor
