"""
User agent parsing.

Browser, OS and device class are each decided by an ordered list of
(predicate, result) rules; the first rule that matches wins.

Rule order:
- Browser: Chrome, Firefox, Safari (without Chrome), Edge, else Unknown
- OS: Windows (NT 10.0 / 6.3 / 6.1 / other), macOS, Linux, Android, iOS, else Unknown
- Device: mobile tokens, then tablet tokens, else desktop

Overlapping tokens are settled by this order only. An Edge user agent
that also carries "Chrome/" is reported as Chrome, and an Android user
agent (which carries "Linux") is reported as Linux.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from .models import DeviceInfo, Rule, first_match

Release = tuple[str, str]


# --- Rule helpers ---


def contains(*tokens: str) -> Callable[[str], bool]:
    """Predicate: any token occurs in the user agent (case-sensitive)."""
    return lambda ua: any(token in ua for token in tokens)


def _release(name: str, pattern: str | None = None, underscores: bool = False) -> Callable[[str], Release]:
    regex = re.compile(pattern) if pattern else None

    def result(ua: str) -> Release:
        if regex is None:
            return name, ""
        match = regex.search(ua)
        if not match:
            return name, ""
        version = match.group(1)
        return name, version.replace("_", ".", 1) if underscores else version

    return result


def _fixed(name: str, version: str) -> Callable[[str], Release]:
    return lambda ua: (name, version)


# --- Rules ---


BROWSER_RULES: tuple[Rule[Release], ...] = (
    Rule(contains("Chrome"), _release("Chrome", r"Chrome/(\d+)")),
    Rule(contains("Firefox"), _release("Firefox", r"Firefox/(\d+)")),
    Rule(
        lambda ua: "Safari" in ua and "Chrome" not in ua,
        _release("Safari", r"Version/(\d+)"),
    ),
    Rule(contains("Edge"), _release("Edge", r"Edge/(\d+)")),
)

OS_RULES: tuple[Rule[Release], ...] = (
    Rule(contains("Windows NT 10.0"), _fixed("Windows", "10")),
    Rule(contains("Windows NT 6.3"), _fixed("Windows", "8.1")),
    Rule(contains("Windows NT 6.1"), _fixed("Windows", "7")),
    Rule(contains("Windows"), _fixed("Windows", "")),
    Rule(contains("Mac OS X"), _release("macOS", r"Mac OS X (\d+_\d+)", underscores=True)),
    Rule(contains("Linux"), _release("Linux")),
    Rule(contains("Android"), _release("Android", r"Android (\d+\.\d+)")),
    Rule(contains("iPhone", "iPad"), _release("iOS", r"OS (\d+_\d+)", underscores=True)),
)

DEVICE_RULES: tuple[Rule[str], ...] = (
    Rule(contains("Mobile", "Android", "iPhone"), lambda ua: "mobile"),
    Rule(contains("iPad", "Tablet"), lambda ua: "tablet"),
)

UNKNOWN_RELEASE: Release = ("Unknown", "")


# --- Parsing ---


def parse_user_agent(user_agent: str | None) -> DeviceInfo:
    """Derive browser, OS and device class from a raw user agent."""
    ua = user_agent or ""

    browser, browser_version = first_match(BROWSER_RULES, ua, UNKNOWN_RELEASE)
    os_name, os_version = first_match(OS_RULES, ua, UNKNOWN_RELEASE)
    device_class = first_match(DEVICE_RULES, ua, "desktop")

    return DeviceInfo(
        browser=browser,
        browser_version=browser_version,
        os=os_name,
        os_version=os_version,
        device_class=device_class,
    )
