"""
IP geolocation adapter (GeoLookupPort).

Resolves client IPs through an HTTP lookup service (ip-api.com JSON
format by default).

Key behaviors:
- One outbound request per uncached public IP
- Private, loopback, link-local and unparsable addresses are not looked up
- Any failure (transport error, timeout, non-200, malformed body,
  status != "success") degrades to GeoLocation.unknown() and is logged
- Successful lookups are kept in a bounded LRU cache
"""

from __future__ import annotations

import ipaddress
import logging
import threading
from collections import OrderedDict
from typing import Any

import httpx

from visitlab.core.entities import UNKNOWN, GeoLocation

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://ip-api.com/json/{ip}"


def is_private_ip(ip: str | None) -> bool:
    """True when the address cannot be geolocated (private, local or invalid)."""
    if not ip:
        return True
    try:
        addr = ipaddress.ip_address(ip.strip())
    except ValueError:
        return True
    return (
        addr.is_private
        or addr.is_loopback
        or addr.is_link_local
        or addr.is_multicast
        or addr.is_reserved
        or addr.is_unspecified
    )


def _norm(value: Any) -> str:
    if value is None:
        return UNKNOWN
    s = str(value).strip()
    return s if s else UNKNOWN


def _coord(value: Any) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


def parse_location(data: Any) -> GeoLocation | None:
    """Map an ip-api.com style body to a GeoLocation, or None if it is not a success."""
    if not isinstance(data, dict) or data.get("status") != "success":
        return None
    return GeoLocation(
        country=_norm(data.get("country")),
        region=_norm(data.get("regionName")),
        city=_norm(data.get("city")),
        timezone=_norm(data.get("timezone")),
        latitude=_coord(data.get("lat")),
        longitude=_coord(data.get("lon")),
    )


class GeoIPClient:
    """HTTP geolocation client that never raises."""

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout_seconds: float = 3.0,
        cache_size: int = 10_000,
        client: httpx.Client | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._client = client or httpx.Client(timeout=timeout_seconds)
        self._cache_size = cache_size
        self._cache: OrderedDict[str, GeoLocation] = OrderedDict()
        self._lock = threading.Lock()

    def lookup(self, ip: str) -> GeoLocation:
        if is_private_ip(ip):
            logger.debug("Skipping geolocation for non-public address")
            return GeoLocation.unknown()

        ip = ip.strip()
        cached = self._cache_get(ip)
        if cached is not None:
            return cached

        try:
            response = self._client.get(self._endpoint.format(ip=ip))
        except httpx.HTTPError as e:
            logger.warning("Geo lookup failed: %s", type(e).__name__)
            return GeoLocation.unknown()

        if response.status_code != 200:
            logger.warning("Geo lookup returned HTTP %s", response.status_code)
            return GeoLocation.unknown()

        try:
            location = parse_location(response.json())
        except (ValueError, TypeError):
            logger.warning("Geo lookup returned a malformed body")
            return GeoLocation.unknown()

        if location is None:
            logger.warning("Geo lookup did not succeed for a public address")
            return GeoLocation.unknown()

        self._cache_put(ip, location)
        return location

    def close(self) -> None:
        self._client.close()

    # --- Cache ---

    def _cache_get(self, ip: str) -> GeoLocation | None:
        with self._lock:
            location = self._cache.get(ip)
            if location is not None:
                self._cache.move_to_end(ip)
            return location

    def _cache_put(self, ip: str, location: GeoLocation) -> None:
        if self._cache_size <= 0:
            return
        with self._lock:
            self._cache[ip] = location
            self._cache.move_to_end(ip)
            while len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)

    def cache_clear(self) -> None:
        with self._lock:
            self._cache.clear()
