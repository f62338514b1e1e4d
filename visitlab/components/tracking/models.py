"""
Tracking component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from visitlab.components.enrichment import DEFAULT_BOT_CONFIG, BotConfig
from visitlab.components.visitors import DEFAULT_RETURNING_WINDOW
from visitlab.core.entities import VisitRecord

# --- Validation Error ---


@dataclass(frozen=True)
class TrackingValidationError:
    """Tracking payload validation error."""

    code: str
    message: str
    field_name: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {"code": self.code, "message": self.message, "field": self.field_name}


# --- Configuration ---


@dataclass(frozen=True)
class TrackingConfig:
    """Ingestion configuration."""

    returning_window: timedelta = DEFAULT_RETURNING_WINDOW
    bot_config: BotConfig = DEFAULT_BOT_CONFIG
    max_conversion_length: int = 64
    max_conversion_value_length: int = 512


DEFAULT_CONFIG = TrackingConfig()


# --- Input Models ---


@dataclass(frozen=True)
class TrackPayload:
    """Validated tracking payload as sent by the client."""

    session_id: str
    page: str
    user_agent: str | None = None
    referrer: str | None = None
    page_title: str | None = None
    article_id: str | None = None
    duration: int | None = None
    page_views: int | None = None
    timestamp: datetime | None = None
    screen_resolution: str | None = None
    language: str | None = None
    timezone: str | None = None


@dataclass(frozen=True)
class ConversionInput:
    """Validated conversion event."""

    session_id: str
    conversion: str
    conversion_value: str | None = None


# --- Output Models ---


@dataclass(frozen=True)
class ParseOutput:
    """Result of validating a raw payload."""

    payload: TrackPayload | ConversionInput | None
    errors: list[TrackingValidationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.payload is not None and not self.errors


@dataclass(frozen=True)
class IngestOutput:
    """Result of writing one tracked event."""

    record: VisitRecord | None
    stored: bool
