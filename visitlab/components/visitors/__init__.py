"""
Visitors component - session and new/returning classification.
"""

from .component import classify_visit, run_classify
from .models import DEFAULT_RETURNING_WINDOW, VisitClassification
from .ports import PriorVisitPort

__all__ = [
    "DEFAULT_RETURNING_WINDOW",
    "PriorVisitPort",
    "VisitClassification",
    "classify_visit",
    "run_classify",
]
