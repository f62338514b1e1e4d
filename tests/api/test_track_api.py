"""
Tests for the tracking API (POST /track, POST /track/conversion).

Background tasks run before TestClient returns, so records are visible
right after each request.
"""

from __future__ import annotations

from datetime import date

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from visitlab.adapters.sqlite_db import SQLiteVisitRepo
from visitlab.api.deps import get_clock, get_geo_client, get_rules, get_visit_repo
from visitlab.api.routes.track import router
from visitlab.components.analytics import StatsService
from visitlab.core.ports.db import VisitFilter, VisitStoreError

GOOGLEBOT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
CHROME = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@pytest.fixture
def app(repo, geo, clock, rules) -> FastAPI:
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_visit_repo] = lambda: repo
    app.dependency_overrides[get_geo_client] = lambda: geo
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_rules] = lambda: rules
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def all_records(repo: SQLiteVisitRepo):
    records, _ = repo.list_visits(VisitFilter())
    return list(reversed(records))


class TestTrack:
    """Test page-view ingestion."""

    def test_accepts_event(self, client, repo) -> None:
        response = client.post(
            "/track",
            json={"sessionId": "s1", "page": "/", "userAgent": CHROME, "duration": 4},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True}

        (record,) = all_records(repo)
        assert record.session_id == "s1"
        assert record.browser == "Chrome"
        assert record.country == "Kenya"
        assert record.page_views == 1
        assert record.visit_duration == 4

    def test_response_never_echoes_enrichment(self, client) -> None:
        response = client.post("/track", json={"sessionId": "s1", "page": "/"})
        assert set(response.json()) == {"success"}

    def test_client_ip_from_forwarded_header(self, client, repo, geo) -> None:
        client.post(
            "/track",
            json={"sessionId": "s1", "page": "/"},
            headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.1"},
        )
        assert geo.calls == ["203.0.113.5"]
        assert all_records(repo)[0].ip == "203.0.113.5"

    def test_header_user_agent_used_when_missing(self, client, repo) -> None:
        client.post("/track", json={"sessionId": "s1", "page": "/"}, headers={"User-Agent": CHROME})
        assert all_records(repo)[0].user_agent == CHROME

    def test_bot_stored_but_not_counted(self, client, repo, clock) -> None:
        """Googlebot payload is stored with isBot and absent from daily totals."""
        client.post("/track", json={"sessionId": "g1", "page": "/", "userAgent": GOOGLEBOT})

        (record,) = all_records(repo)
        assert record.is_bot is True
        daily = StatsService(repo).daily_stats(clock.now_utc().date())
        assert daily.total_visitors == 0

    def test_session_classification_over_time(self, client, repo, clock) -> None:
        """Event 1 new; +1h continuing; +30h returning."""
        payload = {"sessionId": "s9", "page": "/"}
        client.post("/track", json=payload)
        clock.advance(hours=1)
        client.post("/track", json=payload)
        clock.advance(hours=30)
        client.post("/track", json=payload)

        flags = [(r.is_new_visitor, r.is_returning_visitor) for r in all_records(repo)]
        assert flags == [(True, False), (False, False), (False, True)]

    def test_malformed_referrer_still_stored(self, client, repo) -> None:
        response = client.post(
            "/track", json={"sessionId": "s1", "page": "/", "referrer": "not-a-url"}
        )
        assert response.status_code == 200

        (record,) = all_records(repo)
        assert record.referrer == "not-a-url"
        assert record.utm_source is None
        assert record.utm_medium is None
        assert record.utm_campaign is None
        assert record.utm_term is None
        assert record.utm_content is None

    def test_missing_page_rejected(self, client, repo) -> None:
        response = client.post("/track", json={"sessionId": "s1"})
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["ok"] is False
        assert detail["errors"][0]["code"] == "missing_field"
        assert detail["errors"][0]["field"] == "page"
        assert all_records(repo) == []

    @pytest.mark.parametrize(
        "body",
        [
            b'{"sessionId": "s1", "page": "/", "duration": NaN}',
            b'{"sessionId": "s1", "page": "/", "duration": Infinity}',
            b'{"sessionId": "s1", "page": "/", "duration": 100000000000000000000}',
            b'{"sessionId": "s1", "page": "/", "timestamp": "0001-01-01T00:00:00+01:00"}',
        ],
    )
    def test_out_of_range_values_rejected(self, client, repo, body: bytes) -> None:
        response = client.post(
            "/track", content=body, headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["detail"]["errors"][0]["code"] == "invalid_field"
        assert all_records(repo) == []

    def test_unparsable_body_is_500(self, client, repo) -> None:
        response = client.post(
            "/track", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 500
        assert response.json() == {"success": False}
        assert all_records(repo) == []

    def test_store_failure_still_succeeds(self, app, geo, clock, tmp_path) -> None:
        class BrokenRepo(SQLiteVisitRepo):
            def add(self, record):
                raise VisitStoreError("disk full")

        app.dependency_overrides[get_visit_repo] = lambda: BrokenRepo(str(tmp_path / "x.db"))
        response = TestClient(app).post("/track", json={"sessionId": "s1", "page": "/"})
        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_client_context_stored(self, client, repo) -> None:
        client.post(
            "/track",
            json={
                "sessionId": "s1",
                "page": "/article/9",
                "pageTitle": "Rains",
                "articleId": "9",
                "screenResolution": "1920x1080",
                "language": "sw-KE",
                "timezone": "Africa/Nairobi",
                "timestamp": "2023-12-31T23:00:00Z",
            },
        )
        record = all_records(repo)[0]
        assert record.article_id == "9"
        assert record.screen_resolution == "1920x1080"
        assert record.language == "sw-KE"
        assert record.client_timezone == "Africa/Nairobi"
        assert record.client_timestamp.date() == date(2023, 12, 31)


class TestConversion:
    """Test conversion updates."""

    def test_updates_latest_record(self, client, repo) -> None:
        client.post("/track", json={"sessionId": "s1", "page": "/"})
        response = client.post(
            "/track/conversion",
            json={"sessionId": "s1", "conversion": "scroll_50", "timestamp": "2024-01-01T12:00:00Z"},
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "updated": 1}
        assert all_records(repo)[0].conversion == "scroll_50"

    def test_idempotent_last_value_wins(self, client, repo) -> None:
        client.post("/track", json={"sessionId": "s1", "page": "/"})
        for value in ("10", "95"):
            client.post(
                "/track/conversion",
                json={"sessionId": "s1", "conversion": "time_total", "conversionValue": value},
            )
        record = all_records(repo)[0]
        assert (record.conversion, record.conversion_value) == ("time_total", "95")

    def test_unknown_session(self, client) -> None:
        response = client.post("/track/conversion", json={"sessionId": "zz", "conversion": "x"})
        assert response.json() == {"success": True, "updated": 0}

    def test_missing_session_rejected(self, client) -> None:
        response = client.post("/track/conversion", json={"conversion": "link_click"})
        assert response.status_code == 400
        assert response.json()["detail"]["errors"][0]["field"] == "sessionId"

    def test_unparsable_body_is_500(self, client) -> None:
        response = client.post(
            "/track/conversion", content=b"nope", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 500
        assert response.json() == {"success": False}
