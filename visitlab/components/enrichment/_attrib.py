"""
Referrer attribution - UTM extraction.

Key behaviors:
- Only absolute URLs (scheme + host) are considered
- Each utm_* parameter is absent unless present with a value
- Values are kept verbatim
- Malformed referrers yield an empty result and are not logged
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from .models import UTMParams

UTM_KEYS = ("source", "medium", "campaign", "term", "content")


def parse_referrer_query(referrer: str | None) -> dict[str, list[str]] | None:
    """Return the referrer's query parameters, or None when it is not a usable URL."""
    if not referrer:
        return None

    try:
        parsed = urlparse(referrer.strip())
    except ValueError:
        return None

    if not parsed.scheme or not parsed.netloc:
        return None

    return parse_qs(parsed.query)


def extract_utm_params(referrer: str | None) -> UTMParams:
    """Extract utm_source/medium/campaign/term/content from a referrer URL."""
    query = parse_referrer_query(referrer)
    if not query:
        return UTMParams()

    def get_param(key: str) -> str | None:
        values = query.get(f"utm_{key}")
        return values[0] if values else None

    return UTMParams(**{key: get_param(key) for key in UTM_KEYS})

