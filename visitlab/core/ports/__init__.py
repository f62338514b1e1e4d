# visitlab - Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from visitlab.core.ports.db import VisitRepoPort, VisitStoreError
from visitlab.core.ports.geo import GeoLookupPort
from visitlab.core.ports.time import TimePort

__all__ = [
    "GeoLookupPort",
    "TimePort",
    "VisitRepoPort",
    "VisitStoreError",
]
