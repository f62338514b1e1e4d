from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from visitlab.adapters.clock import FixedClock
from visitlab.adapters.sqlite.migrator import SQLiteMigrator
from visitlab.adapters.sqlite_db import SQLiteVisitRepo
from visitlab.core.entities import GeoLocation, VisitRecord
from visitlab.rules.models import ProjectRules, Rules

MIGRATIONS_DIR = str(Path(__file__).resolve().parents[1] / "migrations")

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class StubGeo:
    """GeoLookupPort that records the IPs it was asked about."""

    def __init__(self, location: GeoLocation | None = None) -> None:
        self.location = location or GeoLocation.unknown()
        self.calls: list[str] = []

    def lookup(self, ip: str) -> GeoLocation:
        self.calls.append(ip)
        return self.location


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "visitlab.db")


@pytest.fixture
def repo(db_path) -> SQLiteVisitRepo:
    SQLiteMigrator(db_path, MIGRATIONS_DIR).run_migrations()
    return SQLiteVisitRepo(db_path)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def geo() -> StubGeo:
    return StubGeo(
        GeoLocation(
            country="Kenya",
            region="Nairobi",
            city="Nairobi",
            timezone="Africa/Nairobi",
            latitude=-1.2864,
            longitude=36.8172,
        )
    )


@pytest.fixture
def rules() -> Rules:
    return Rules(project=ProjectRules(slug="visitlab", rules_version="test"))


@pytest.fixture
def make_record() -> Callable[..., VisitRecord]:
    """Factory for human (non-bot) records; keyword arguments override fields."""

    def _make(**overrides: Any) -> VisitRecord:
        at = overrides.pop("at", NOW)
        fields: dict[str, Any] = {
            "session_id": "s1",
            "ip": "203.0.113.10",
            "user_agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0 Safari/537.36",
            "browser": "Chrome",
            "browser_version": "120",
            "os": "Windows",
            "os_version": "10",
            "device_class": "desktop",
            "page": "/",
            "page_views": 1,
            "visit_duration": 10,
            "first_visit": at,
            "last_visit": at,
            "visit_date": at,
            "created_at": at,
            "updated_at": at,
        }
        fields.update(overrides)
        return VisitRecord(**fields)

    return _make
