"""
Enrichment component - pure classifiers for tracked events.

Bot detection, user agent parsing and referrer UTM extraction.
Geo enrichment lives behind visitlab.core.ports.GeoLookupPort.
"""

from ._attrib import UTM_KEYS, extract_utm_params, parse_referrer_query
from ._bots import DEFAULT_CONFIG as DEFAULT_BOT_CONFIG
from ._bots import BotConfig, is_bot, matched_signature
from ._user_agent import (
    BROWSER_RULES,
    DEVICE_RULES,
    OS_RULES,
    contains,
    parse_user_agent,
)
from .models import DeviceInfo, Rule, UTMParams, first_match

__all__ = [
    # Bots
    "BotConfig",
    "DEFAULT_BOT_CONFIG",
    "is_bot",
    "matched_signature",
    # User agent
    "BROWSER_RULES",
    "DEVICE_RULES",
    "DeviceInfo",
    "OS_RULES",
    "Rule",
    "contains",
    "first_match",
    "parse_user_agent",
    # Attribution
    "UTMParams",
    "UTM_KEYS",
    "extract_utm_params",
    "parse_referrer_query",
]
