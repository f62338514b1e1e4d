"""
Tracking component - event ingestion, enrichment and completion hook.
"""

from ._impl import TrackingService, parse_conversion, parse_track_payload
from .component import run_conversion, run_ingest, run_parse
from .models import (
    DEFAULT_CONFIG,
    ConversionInput,
    IngestOutput,
    ParseOutput,
    TrackingConfig,
    TrackingValidationError,
    TrackPayload,
)
from .ports import VisitWriterPort

__all__ = [
    # Service
    "TrackingService",
    "parse_conversion",
    "parse_track_payload",
    # Entry points
    "run_conversion",
    "run_ingest",
    "run_parse",
    # Models
    "ConversionInput",
    "DEFAULT_CONFIG",
    "IngestOutput",
    "ParseOutput",
    "TrackPayload",
    "TrackingConfig",
    "TrackingValidationError",
    # Ports
    "VisitWriterPort",
]
