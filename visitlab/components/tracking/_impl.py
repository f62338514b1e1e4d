"""
TrackingService - event ingestion with enrichment.

Key behaviors:
- sessionId and page are required; everything else is optional
- userAgent falls back to the request header
- Each accepted event appends one record (accumulators start at zero)
- Bot, device, UTM, geo and visitor classification run per event
- Store failures are logged and never reach the client
- Completion hook increments page_views / visit_duration on the latest
  (session_id, page) record; last write wins
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from visitlab.components.enrichment import extract_utm_params, is_bot, parse_user_agent
from visitlab.components.visitors import run_classify
from visitlab.core.entities import VisitRecord
from visitlab.core.ports.db import VisitStoreError

from .models import (
    DEFAULT_CONFIG,
    ConversionInput,
    IngestOutput,
    ParseOutput,
    TrackingConfig,
    TrackingValidationError,
    TrackPayload,
)
from .ports import GeoLookupPort, TimePort, VisitWriterPort

logger = logging.getLogger(__name__)

# Counters are added to SQLite INTEGER columns; keep sums well inside 64 bits.
MAX_COUNT = 2**31 - 1


# --- Field Validation ---


def _required_str(
    data: Mapping[str, Any], key: str, errors: list[TrackingValidationError]
) -> str | None:
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        errors.append(TrackingValidationError("missing_field", f"{key} is required", key))
        return None
    if not isinstance(value, str):
        errors.append(TrackingValidationError("invalid_field", f"{key} must be a string", key))
        return None
    return value


def _optional_str(
    data: Mapping[str, Any],
    key: str,
    errors: list[TrackingValidationError],
    max_length: int | None = None,
) -> str | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        errors.append(TrackingValidationError("invalid_field", f"{key} must be a string", key))
        return None
    if max_length is not None and len(value) > max_length:
        errors.append(
            TrackingValidationError(
                "invalid_field", f"{key} must be at most {max_length} characters", key
            )
        )
        return None
    return value


def _optional_count(
    data: Mapping[str, Any], key: str, errors: list[TrackingValidationError]
) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if (
        isinstance(value, bool)
        or not isinstance(value, int | float)
        or (isinstance(value, float) and not math.isfinite(value))
        or value < 0
    ):
        errors.append(
            TrackingValidationError("invalid_field", f"{key} must be a non-negative number", key)
        )
        return None
    if value > MAX_COUNT:
        errors.append(
            TrackingValidationError("invalid_field", f"{key} must be at most {MAX_COUNT}", key)
        )
        return None
    return round(value)


def _optional_timestamp(
    data: Mapping[str, Any], key: str, errors: list[TrackingValidationError]
) -> datetime | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        errors.append(TrackingValidationError("invalid_field", f"{key} must be an ISO timestamp", key))
        return None
    try:
        ts = datetime.fromisoformat(value)
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=UTC)
        return ts.astimezone(UTC)
    except (ValueError, OverflowError):
        errors.append(TrackingValidationError("invalid_field", f"{key} must be an ISO timestamp", key))
        return None


def _require_object(data: Any) -> list[TrackingValidationError]:
    if isinstance(data, Mapping):
        return []
    return [TrackingValidationError("invalid_field", "Request body must be a JSON object", "body")]


def parse_track_payload(data: Any) -> ParseOutput:
    """Validate a decoded /track body."""
    errors = _require_object(data)
    if errors:
        return ParseOutput(payload=None, errors=errors)

    session_id = _required_str(data, "sessionId", errors)
    page = _required_str(data, "page", errors)

    payload_fields = {
        "user_agent": _optional_str(data, "userAgent", errors),
        "referrer": _optional_str(data, "referrer", errors),
        "page_title": _optional_str(data, "pageTitle", errors),
        "article_id": _optional_str(data, "articleId", errors),
        "duration": _optional_count(data, "duration", errors),
        "page_views": _optional_count(data, "pageViews", errors),
        "timestamp": _optional_timestamp(data, "timestamp", errors),
        "screen_resolution": _optional_str(data, "screenResolution", errors),
        "language": _optional_str(data, "language", errors),
        "timezone": _optional_str(data, "timezone", errors),
    }

    if errors or session_id is None or page is None:
        return ParseOutput(payload=None, errors=errors)

    return ParseOutput(payload=TrackPayload(session_id=session_id, page=page, **payload_fields))


def parse_conversion(data: Any, config: TrackingConfig = DEFAULT_CONFIG) -> ParseOutput:
    """Validate a decoded /track/conversion body."""
    errors = _require_object(data)
    if errors:
        return ParseOutput(payload=None, errors=errors)

    session_id = _required_str(data, "sessionId", errors)
    conversion = _required_str(data, "conversion", errors)
    if conversion is not None and len(conversion) > config.max_conversion_length:
        errors.append(
            TrackingValidationError(
                "invalid_field",
                f"conversion must be at most {config.max_conversion_length} characters",
                "conversion",
            )
        )

    raw_value = data.get("conversionValue")
    if isinstance(raw_value, int | float) and not isinstance(raw_value, bool):
        raw_value = str(raw_value)
    conversion_value = _optional_str(
        {"conversionValue": raw_value},
        "conversionValue",
        errors,
        max_length=config.max_conversion_value_length,
    )

    if errors or session_id is None or conversion is None:
        return ParseOutput(payload=None, errors=errors)

    return ParseOutput(
        payload=ConversionInput(
            session_id=session_id,
            conversion=conversion,
            conversion_value=conversion_value,
        )
    )


# --- Service ---


class TrackingService:
    """Enrich tracked events and write them to the visit store."""

    def __init__(
        self,
        repo: VisitWriterPort,
        geo: GeoLookupPort,
        clock: TimePort,
        config: TrackingConfig | None = None,
    ) -> None:
        self._repo = repo
        self._geo = geo
        self._clock = clock
        self._config = config or DEFAULT_CONFIG

    @property
    def config(self) -> TrackingConfig:
        return self._config

    def build_record(
        self,
        payload: TrackPayload,
        ip: str,
        header_user_agent: str | None = None,
    ) -> VisitRecord:
        """Run every enrichment stage and classify the event (no write)."""
        now = self._clock.now_utc()
        user_agent = payload.user_agent or header_user_agent or ""

        device = parse_user_agent(user_agent)
        utm = extract_utm_params(payload.referrer)
        geo = self._geo.lookup(ip)
        visit = run_classify(
            payload.session_id,
            ip,
            now,
            repo=self._repo,
            window=self._config.returning_window,
        )

        record = VisitRecord(
            session_id=payload.session_id,
            ip=ip,
            user_agent=user_agent,
            browser=device.browser,
            browser_version=device.browser_version,
            os=device.os,
            os_version=device.os_version,
            device_class=device.device_class,
            screen_resolution=payload.screen_resolution,
            language=payload.language,
            client_timezone=payload.timezone,
            referrer=payload.referrer,
            utm_source=utm.source,
            utm_medium=utm.medium,
            utm_campaign=utm.campaign,
            utm_term=utm.term,
            utm_content=utm.content,
            page=payload.page,
            page_title=payload.page_title,
            article_id=payload.article_id,
            is_new_visitor=visit.is_new_visitor,
            is_returning_visitor=visit.is_returning_visitor,
            is_bot=is_bot(user_agent, self._config.bot_config),
            first_visit=visit.first_visit,
            last_visit=now,
            visit_date=now,
            client_timestamp=payload.timestamp,
            created_at=now,
            updated_at=now,
        )
        return record.with_geo(geo)

    def ingest(
        self,
        payload: TrackPayload,
        ip: str,
        header_user_agent: str | None = None,
    ) -> IngestOutput:
        """Build and store a record. Store failures are logged, not raised."""
        try:
            record = self.build_record(payload, ip, header_user_agent)
            self._repo.add(record)
        except VisitStoreError:
            logger.exception("Failed to store visit for page %s", payload.page)
            return IngestOutput(record=None, stored=False)

        if record.is_bot:
            logger.debug("Stored bot visit for page %s", record.page)
        return IngestOutput(record=record, stored=True)

    def complete_exchange(self, session_id: str, page: str, duration_seconds: int) -> bool:
        """
        Completion hook for a finished exchange.

        Adds one page view and the given duration to the latest record of
        (session_id, page). Failures are logged, never raised.
        """
        try:
            updated = self._repo.accumulate(
                session_id,
                page,
                page_views=1,
                duration_seconds=max(0, duration_seconds),
                seen_at=self._clock.now_utc(),
            )
        except VisitStoreError:
            logger.exception("Failed to update page view counters for page %s", page)
            return False

        if not updated:
            logger.debug("No visit record to update for page %s", page)
        return updated

    def record_conversion(self, inp: ConversionInput) -> int:
        """Set the conversion on the latest record of the session (last value wins)."""
        return self._repo.set_conversion(
            inp.session_id,
            inp.conversion,
            inp.conversion_value,
            updated_at=self._clock.now_utc(),
        )
