"""
Tests for bot classification by user agent.
"""

from __future__ import annotations

import pytest

from visitlab.components.enrichment import (
    DEFAULT_BOT_CONFIG,
    BotConfig,
    is_bot,
    matched_signature,
)

CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class TestIsBot:
    """Test signature matching."""

    @pytest.mark.parametrize(
        "ua",
        [
            "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
            "Mozilla/5.0 (compatible; bingbot/2.0; +http://www.bing.com/bingbot.htm)",
            "facebookexternalhit/1.1 (+http://www.facebook.com/externalhit_uatext.php)",
            "Twitterbot/1.0",
            "WhatsApp/2.23.20.0",
            "Mozilla/5.0 (compatible; Baiduspider/2.0)",
            "SiteCrawler/3.1",
            "my-scraper/0.1",
        ],
    )
    def test_known_bots_detected(self, ua: str) -> None:
        """User agents carrying a signature are bots."""
        assert is_bot(ua) is True

    def test_browser_is_not_bot(self) -> None:
        """Regular browser user agent is not a bot."""
        assert is_bot(CHROME_UA) is False

    def test_match_is_case_insensitive(self) -> None:
        """Signature match ignores case."""
        assert is_bot("GOOGLEBOT") is True
        assert is_bot("YandexBot/3.0") is True

    @pytest.mark.parametrize("ua", [None, ""])
    def test_empty_user_agent_is_not_bot(self, ua: str | None) -> None:
        """Missing user agent is treated as human."""
        assert is_bot(ua) is False

    def test_unlisted_bot_not_detected(self) -> None:
        """Bots without a known signature are false negatives."""
        assert is_bot("curl/8.4.0") is False


class TestMatchedSignature:
    """Test signature reporting."""

    def test_returns_first_signature_in_list_order(self) -> None:
        """Generic signatures are checked before named ones."""
        assert matched_signature("Googlebot/2.1") == "bot"

    def test_no_match_returns_none(self) -> None:
        assert matched_signature(CHROME_UA) is None


class TestBotConfig:
    """Test configured signature lists."""

    def test_default_signatures(self) -> None:
        """Default list has the generic and named signatures."""
        assert "crawler" in DEFAULT_BOT_CONFIG.signatures
        assert "telegrambot" in DEFAULT_BOT_CONFIG.signatures
        assert len(DEFAULT_BOT_CONFIG.signatures) == 13

    def test_custom_signatures_replace_defaults(self) -> None:
        """Configured signatures are used instead of the defaults."""
        config = BotConfig.from_signatures(["  Curl ", "wget"])
        assert config.signatures == ("curl", "wget")
        assert is_bot("curl/8.4.0", config) is True
        assert is_bot("Googlebot/2.1", config) is False

    def test_empty_signatures_fall_back_to_defaults(self) -> None:
        """Empty configured list keeps the default signatures."""
        assert BotConfig.from_signatures([]) == BotConfig()
        assert BotConfig.from_signatures(["", "  "]) == BotConfig()
