"""
Tracking component - ingestion of client page-view events.

Validates payloads, enriches events (bot, device, UTM, geo, visitor
status) and appends visit records.

Invariants:
- No record is written for an invalid payload
- Store failures during ingestion are logged and never surfaced
- Accumulators only grow
"""

from __future__ import annotations

from typing import Any

from ._impl import TrackingService, parse_conversion, parse_track_payload
from .models import (
    DEFAULT_CONFIG,
    ConversionInput,
    IngestOutput,
    ParseOutput,
    TrackingConfig,
    TrackPayload,
)
from .ports import GeoLookupPort, TimePort, VisitWriterPort

# --- Component Entry Points ---


def run_parse(data: Any) -> ParseOutput:
    """Validate a decoded tracking body."""
    return parse_track_payload(data)


def run_ingest(
    payload: TrackPayload,
    ip: str,
    header_user_agent: str | None = None,
    *,
    repo: VisitWriterPort,
    geo: GeoLookupPort,
    clock: TimePort,
    config: TrackingConfig | None = None,
) -> IngestOutput:
    """
    Enrich and store one tracked event.

    Args:
        payload: Validated tracking payload.
        ip: Client IP address.
        header_user_agent: User-Agent header, used when the payload has none.
        repo: Visit store.
        geo: Geo lookup port.
        clock: Time port.
        config: Optional ingestion configuration.

    Returns:
        IngestOutput with the stored record, or stored=False on store failure.
    """
    service = TrackingService(repo=repo, geo=geo, clock=clock, config=config)
    return service.ingest(payload, ip, header_user_agent)


def run_conversion(
    data: Any,
    *,
    repo: VisitWriterPort,
    geo: GeoLookupPort,
    clock: TimePort,
    config: TrackingConfig | None = None,
) -> tuple[ParseOutput, int]:
    """Validate a conversion body and apply it. Returns (parse result, rows updated)."""
    service = TrackingService(repo=repo, geo=geo, clock=clock, config=config)
    parsed = parse_conversion(data, config or DEFAULT_CONFIG)
    if not parsed.ok or not isinstance(parsed.payload, ConversionInput):
        return parsed, 0
    return parsed, service.record_conversion(parsed.payload)
