"""
Enrichment component models.

Value objects produced by the pure classifiers.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


# --- Rules ---


@dataclass(frozen=True)
class Rule(Generic[T]):
    """One (predicate, result) pair in an ordered, first-match-wins rule list."""

    predicate: Callable[[str], bool]
    result: Callable[[str], T]


def first_match(rules: Iterable[Rule[T]], value: str, default: T) -> T:
    """Evaluate rules in order; the first matching predicate decides."""
    for rule in rules:
        if rule.predicate(value):
            return rule.result(value)
    return default


# --- User Agent ---


@dataclass(frozen=True)
class DeviceInfo:
    """Browser / OS / device derived from a user agent."""

    browser: str = "Unknown"
    browser_version: str = ""
    os: str = "Unknown"
    os_version: str = ""
    device_class: str = "desktop"


# --- Attribution ---


@dataclass(frozen=True)
class UTMParams:
    """Campaign parameters taken from a referrer query string."""

    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    term: str | None = None
    content: str | None = None
