"""
Geo enrichment interface.

Implementations must never raise: any failure resolves to
GeoLocation.unknown().
"""

from __future__ import annotations

from typing import Protocol

from visitlab.core.entities import GeoLocation


class GeoLookupPort(Protocol):
    """Resolve an IP address to a location."""

    def lookup(self, ip: str) -> GeoLocation:
        """Return location data, or the Unknown sentinel on any failure."""
        ...
