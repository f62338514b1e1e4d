import os
from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from visitlab.adapters.clock import SystemClock
from visitlab.adapters.geo_ip import GeoIPClient
from visitlab.adapters.sqlite_db import SQLiteVisitRepo
from visitlab.components.analytics import DashboardConfig, StatsService
from visitlab.components.enrichment import BotConfig
from visitlab.components.tracking import TrackingConfig, TrackingService
from visitlab.core.ports import TimePort
from visitlab.rules.loader import load_rules
from visitlab.rules.models import Rules

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("VISITLAB_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "visitlab.db")
        self.rules_path = Path(
            os.environ.get("VISITLAB_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.migrations_dir = Path(
            os.environ.get("VISITLAB_MIGRATIONS_DIR", str(self.base_dir / "migrations"))
        )
        self.geo_endpoint = os.environ.get("VISITLAB_GEO_ENDPOINT") or None

        origins = os.environ.get("VISITLAB_ALLOWED_ORIGINS", "")
        self.allowed_origins = [o.strip() for o in origins.split(",") if o.strip()] or list(
            DEFAULT_ORIGINS
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


def tracking_config(rules: Rules) -> TrackingConfig:
    tracking = rules.tracking
    return TrackingConfig(
        returning_window=timedelta(hours=tracking.returning_visitor_hours),
        bot_config=BotConfig.from_signatures(tracking.bot_signatures),
        max_conversion_length=tracking.max_conversion_length,
        max_conversion_value_length=tracking.max_conversion_value_length,
    )


def dashboard_config(rules: Rules) -> DashboardConfig:
    return DashboardConfig(
        trend_days=rules.dashboard.trend_days,
        window_days=rules.dashboard.window_days,
        top_limit=rules.dashboard.top_limit,
        visitors_page_size=rules.visitors.page_size,
        realtime_minutes=rules.dashboard.realtime_minutes,
    )


# --- Adapters ---
def get_visit_repo(settings: Settings = Depends(get_settings)) -> SQLiteVisitRepo:
    return SQLiteVisitRepo(settings.db_path)


@lru_cache
def get_geo_client() -> GeoIPClient:
    """Process-wide client so the lookup cache is shared between requests."""
    settings = get_settings()
    geo = get_rules().geo
    return GeoIPClient(
        endpoint=settings.geo_endpoint or geo.endpoint,
        timeout_seconds=geo.timeout_seconds,
        cache_size=geo.cache_size,
    )


def get_clock() -> TimePort:
    return SystemClock()


# --- Services ---
def get_tracking_service(
    repo: SQLiteVisitRepo = Depends(get_visit_repo),
    geo: GeoIPClient = Depends(get_geo_client),
    clock: TimePort = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> TrackingService:
    return TrackingService(repo=repo, geo=geo, clock=clock, config=tracking_config(rules))


def get_stats_service(repo: SQLiteVisitRepo = Depends(get_visit_repo)) -> StatsService:
    return StatsService(repo)


def get_dashboard_config(rules: Rules = Depends(get_rules)) -> DashboardConfig:
    return dashboard_config(rules)
