"""
Tests for the analytics read API.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from tests.conftest import NOW
from visitlab.adapters.sqlite_db import SQLiteVisitRepo
from visitlab.api.deps import get_clock, get_rules, get_visit_repo
from visitlab.api.main import app as main_app
from visitlab.api.routes.analytics import router
from visitlab.rules.models import VisitorsRules


@pytest.fixture
def app(repo, clock, rules) -> FastAPI:
    app = FastAPI()
    app.include_router(router, prefix="/analytics")
    app.dependency_overrides[get_visit_repo] = lambda: repo
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_rules] = lambda: rules
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


class TestDashboard:
    """Test GET /analytics/dashboard."""

    def test_empty_store_zero_objects(self, client) -> None:
        response = client.get("/analytics/dashboard")
        assert response.status_code == 200
        data = response.json()

        assert data["today"] == {
            "date": "2024-01-01",
            "totalVisitors": 0,
            "uniqueVisitors": 0,
            "totalPageViews": 0,
            "avgVisitDuration": 0.0,
            "newVisitors": 0,
            "returningVisitors": 0,
        }
        assert data["yesterday"]["date"] == "2023-12-31"
        assert len(data["weeklyStats"]) == 7
        assert data["topCountries"] == []
        assert data["deviceStats"] == []
        assert data["topPages"] == []

    def test_populated(self, client, repo, make_record) -> None:
        repo.add(make_record(session_id="a", country="Kenya", page="/a"))
        repo.add(make_record(session_id="b", country="Kenya", page="/a", device_class="mobile"))

        data = client.get("/analytics/dashboard").json()
        assert data["today"]["totalVisitors"] == 2
        assert data["topCountries"][0] == {
            "country": "Kenya",
            "visitors": 2,
            "uniqueVisitors": 2,
            "pageViews": 2,
        }
        assert data["topPages"][0]["page"] == "/a"
        assert {d["device"] for d in data["deviceStats"]} == {"desktop", "mobile"}


class TestDaily:
    """Test GET /analytics/daily."""

    def test_default_days(self, client) -> None:
        data = client.get("/analytics/daily").json()
        assert len(data) == 30
        assert data[-1]["bucket"] == "2024-01-01"

    def test_days_param(self, client, repo, make_record) -> None:
        repo.add(make_record(session_id="a", at=NOW - timedelta(days=1)))
        data = client.get("/analytics/daily", params={"days": 3}).json()
        assert [p["bucket"] for p in data] == ["2023-12-30", "2023-12-31", "2024-01-01"]
        assert [p["totalVisitors"] for p in data] == [0, 1, 0]

    @pytest.mark.parametrize("days", [0, 366, "abc"])
    def test_days_bounds(self, client, days) -> None:
        assert client.get("/analytics/daily", params={"days": days}).status_code == 422


class TestRealtime:
    """Test GET /analytics/realtime."""

    def test_trailing_hour(self, client, repo, make_record) -> None:
        repo.add(make_record(session_id="a", at=NOW - timedelta(minutes=10)))
        data = client.get("/analytics/realtime").json()
        assert [p["bucket"] for p in data] == ["2024-01-01T11:00", "2024-01-01T12:00"]
        assert sum(p["totalVisitors"] for p in data) == 1


class TestRegions:
    """Test GET /analytics/regions."""

    def test_all_history(self, client, repo, make_record) -> None:
        repo.add(make_record(session_id="a", country="Kenya", region="Nairobi", at=NOW - timedelta(days=900)))
        data = client.get("/analytics/regions").json()
        assert data == [
            {
                "country": "Kenya",
                "region": "Nairobi",
                "visitors": 1,
                "uniqueVisitors": 1,
                "pageViews": 1,
                "avgDuration": 10.0,
            }
        ]

    def test_range_excluding_all_records(self, client, repo, make_record) -> None:
        repo.add(make_record(session_id="a"))
        response = client.get(
            "/analytics/regions", params={"startDate": "2023-01-01", "endDate": "2023-01-31"}
        )
        assert response.status_code == 200
        assert response.json() == []

    def test_date_only_end_covers_whole_day(self, client, repo, make_record) -> None:
        repo.add(make_record(session_id="a", at=NOW.replace(hour=23, minute=59)))
        data = client.get(
            "/analytics/regions", params={"startDate": "2024-01-01", "endDate": "2024-01-01"}
        ).json()
        assert len(data) == 1

    def test_bad_date(self, client) -> None:
        response = client.get("/analytics/regions", params={"startDate": "01/02/2024"})
        assert response.status_code == 400

    def test_last_representable_end_date(self, client, repo, make_record) -> None:
        repo.add(make_record(session_id="a"))
        for path in ("/analytics/regions", "/analytics/visitors"):
            response = client.get(path, params={"endDate": "9999-12-31"})
            assert response.status_code == 200

        data = client.get("/analytics/regions", params={"endDate": "9999-12-31"}).json()
        assert len(data) == 1

    def test_unrepresentable_start_is_400(self, client) -> None:
        response = client.get(
            "/analytics/regions", params={"startDate": "0001-01-01T00:00:00+01:00"}
        )
        assert response.status_code == 400

    def test_start_after_end(self, client) -> None:
        response = client.get(
            "/analytics/regions", params={"startDate": "2024-02-01", "endDate": "2024-01-01"}
        )
        assert response.status_code == 400


class TestOtherGroupings:
    """Test devices, pages and countries endpoints."""

    def test_devices(self, client, repo, make_record) -> None:
        repo.add(make_record(session_id="a"))
        data = client.get("/analytics/devices").json()
        assert data == [
            {"device": "desktop", "browser": "Chrome", "os": "Windows", "visitors": 1, "uniqueVisitors": 1}
        ]

    def test_pages_limit(self, client, repo, make_record) -> None:
        for i in range(3):
            repo.add(make_record(session_id=f"s{i}", page=f"/p{i}"))
        assert len(client.get("/analytics/pages", params={"limit": 2}).json()) == 2
        assert client.get("/analytics/pages", params={"limit": 101}).status_code == 422

    def test_countries(self, client, repo, make_record) -> None:
        repo.add(make_record(session_id="a", country="Peru"))
        data = client.get("/analytics/countries", params={"startDate": "2024-01-01T00:00:00Z"}).json()
        assert [c["country"] for c in data] == ["Peru"]


class TestVisitors:
    """Test GET /analytics/visitors."""

    def test_excludes_ip_and_user_agent(self, client, repo, make_record) -> None:
        repo.add(make_record(session_id="a"))
        data = client.get("/analytics/visitors").json()
        visitor = data["visitors"][0]
        assert "ip" not in visitor
        assert "userAgent" not in visitor
        assert visitor["sessionId"] == "a"
        assert visitor["deviceClass"] == "desktop"

    def test_includes_bots_newest_first(self, client, repo, make_record) -> None:
        repo.add(make_record(session_id="human", at=NOW - timedelta(minutes=1)))
        repo.add(make_record(session_id="crawler", is_bot=True))
        data = client.get("/analytics/visitors").json()
        assert [v["sessionId"] for v in data["visitors"]] == ["crawler", "human"]
        assert data["total"] == 2
        assert data["hasMore"] is False

    def test_filters(self, client, repo, make_record) -> None:
        repo.add(make_record(session_id="a", country="Kenya", region="Nairobi", browser="Firefox"))
        repo.add(make_record(session_id="b", country="Kenya", region="Kisumu", device_class="mobile"))
        repo.add(make_record(session_id="c", country="Ghana"))

        def sessions(**params) -> list[str]:
            body = client.get("/analytics/visitors", params=params).json()
            return sorted(v["sessionId"] for v in body["visitors"])

        assert sessions(country="Kenya") == ["a", "b"]
        assert sessions(region="Kisumu") == ["b"]
        assert sessions(device="mobile") == ["b"]
        assert sessions(browser="Firefox") == ["a"]

    def test_has_more(self, app, repo, make_record, rules) -> None:
        limited = rules.model_copy(update={"visitors": VisitorsRules(page_size=2)})
        app.dependency_overrides[get_rules] = lambda: limited
        for i in range(3):
            repo.add(make_record(session_id=f"v{i}"))

        data = TestClient(app).get("/analytics/visitors").json()
        assert len(data["visitors"]) == 2
        assert data["total"] == 3
        assert data["limit"] == 2
        assert data["hasMore"] is True


class TestStoreFailure:
    """Read failures surface as 500."""

    @pytest.mark.parametrize(
        "path",
        ["/analytics/dashboard", "/analytics/daily", "/analytics/realtime", "/analytics/regions", "/analytics/visitors"],
    )
    def test_generic_500(self, app, tmp_path, path) -> None:
        app.dependency_overrides[get_visit_repo] = lambda: SQLiteVisitRepo(str(tmp_path / "unmigrated.db"))
        response = TestClient(app).get(path)
        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to load analytics"}


def test_health() -> None:
    response = TestClient(main_app).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "api"}
