"""
Tracking API routes.

Public endpoints for page-view and conversion events.

Key behaviors:
- The record write and the completion hook run as background tasks,
  after the response has been sent
- Enriched fields are never echoed back
- Unparsable JSON: 500 {"success": false}
- Missing or invalid fields: 400 with the offending field named
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from visitlab.api.deps import get_tracking_service
from visitlab.api.schemas import ConversionResponse, TrackResponse
from visitlab.components.tracking import (
    ConversionInput,
    TrackingService,
    TrackingValidationError,
    TrackPayload,
    parse_conversion,
    run_parse,
)
from visitlab.core.ports.db import VisitStoreError

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Helpers ---


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def read_json(request: Request) -> Any:
    """Decode the request body; raises ValueError when it is not JSON."""
    body = await request.body()
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError("Request body is not valid JSON") from e


def parse_failure() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False},
    )


def validation_failure(errors: list[TrackingValidationError]) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"ok": False, "errors": [e.to_dict() for e in errors]},
    )


def complete_exchange(service: TrackingService, payload: TrackPayload, started: float) -> None:
    """Completion hook: client-reported duration, else the measured exchange time."""
    if payload.duration is not None:
        duration = payload.duration
    else:
        duration = round(time.monotonic() - started)
    service.complete_exchange(payload.session_id, payload.page, duration)


# --- Routes ---


@router.post("/track", response_model=TrackResponse)
async def track(
    request: Request,
    background_tasks: BackgroundTasks,
    service: TrackingService = Depends(get_tracking_service),
) -> Any:
    """
    Accept a page-view event.

    Returns {success: true} once the event is accepted for processing.
    """
    started = time.monotonic()
    try:
        data = await read_json(request)
    except ValueError:
        logger.warning("Rejected tracking request with unparsable body")
        return parse_failure()

    parsed = run_parse(data)
    if not parsed.ok or not isinstance(parsed.payload, TrackPayload):
        raise validation_failure(parsed.errors)

    payload = parsed.payload
    background_tasks.add_task(
        service.ingest,
        payload,
        client_ip(request),
        request.headers.get("user-agent"),
    )
    background_tasks.add_task(complete_exchange, service, payload, started)

    return TrackResponse(success=True)


@router.post("/track/conversion", response_model=ConversionResponse)
async def track_conversion(
    request: Request,
    service: TrackingService = Depends(get_tracking_service),
) -> Any:
    """Record a conversion label on the latest visit of a session."""
    try:
        data = await read_json(request)
    except ValueError:
        return parse_failure()

    parsed = parse_conversion(data, service.config)
    if not parsed.ok or not isinstance(parsed.payload, ConversionInput):
        raise validation_failure(parsed.errors)

    try:
        updated = service.record_conversion(parsed.payload)
    except VisitStoreError as e:
        logger.exception("Failed to record conversion")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record conversion",
        ) from e

    return ConversionResponse(success=True, updated=updated)
