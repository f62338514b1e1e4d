"""
Visitor classification - session continuity and new/returning status.

Key behaviors:
- No prior record for (session_id, ip): new visitor, first_visit = now
- Prior record, gap since its last_visit > window: returning visitor
- Prior record, gap <= window: continuing visit, both flags false
- first_visit is carried forward whenever a prior record exists

Classification is a read-then-write step: two concurrent events of the
same session can both be classified as new. That gap is accepted.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from visitlab.core.entities import VisitRecord

from .models import DEFAULT_RETURNING_WINDOW, VisitClassification
from .ports import PriorVisitPort


def classify_visit(
    prior: VisitRecord | None,
    now: datetime,
    window: timedelta = DEFAULT_RETURNING_WINDOW,
) -> VisitClassification:
    """Classify an event against the most recent prior record."""
    if prior is None:
        return VisitClassification(
            is_new_visitor=True,
            is_returning_visitor=False,
            first_visit=now,
        )

    gap = now - prior.last_visit
    return VisitClassification(
        is_new_visitor=False,
        is_returning_visitor=gap > window,
        first_visit=prior.first_visit,
    )


def run_classify(
    session_id: str,
    ip: str,
    now: datetime,
    *,
    repo: PriorVisitPort,
    window: timedelta = DEFAULT_RETURNING_WINDOW,
) -> VisitClassification:
    """Look up the prior record of the session and classify the event."""
    prior = repo.latest_for_session(session_id, ip)
    return classify_visit(prior, now, window)
