"""
Bot classification by user agent.

Case-insensitive substring match against a fixed signature list.
Pure and deterministic. Bots whose user agent carries none of the
signatures are not detected.
"""

from __future__ import annotations

from dataclasses import dataclass

# --- Configuration ---


@dataclass(frozen=True)
class BotConfig:
    """Bot classification configuration."""

    signatures: tuple[str, ...] = (
        "bot",
        "crawler",
        "spider",
        "scraper",
        "facebookexternalhit",
        "twitterbot",
        "linkedinbot",
        "whatsapp",
        "telegrambot",
        "googlebot",
        "bingbot",
        "yandexbot",
        "baiduspider",
    )

    @classmethod
    def from_signatures(cls, signatures: list[str] | tuple[str, ...]) -> BotConfig:
        """Build a config from configured signatures (normalised to lowercase)."""
        cleaned = tuple(s.strip().lower() for s in signatures if s and s.strip())
        return cls(signatures=cleaned) if cleaned else cls()


DEFAULT_CONFIG = BotConfig()


# --- Classification ---


def matched_signature(user_agent: str | None, config: BotConfig = DEFAULT_CONFIG) -> str | None:
    """Return the first signature found in the user agent, if any."""
    if not user_agent:
        return None

    ua_lower = user_agent.lower()
    for signature in config.signatures:
        if signature in ua_lower:
            return signature
    return None


def is_bot(user_agent: str | None, config: BotConfig = DEFAULT_CONFIG) -> bool:
    """Check if a user agent belongs to automated traffic."""
    return matched_signature(user_agent, config) is not None
