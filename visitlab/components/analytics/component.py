"""
Analytics component - dashboard composition.

Combines several aggregation calls, all evaluated against one "now":
- today and yesterday totals
- daily trend for the trailing week (ending today)
- top countries, devices and pages over the trailing 30 days

Invariants:
- Bot records never contribute
- Missing data resolves to zero-valued objects or empty lists, never None
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from ._aggregate import StatsService
from .models import DEFAULT_CONFIG, DashboardConfig, DashboardSnapshot, DateRange, TrendPoint
from .ports import StatsRepoPort

# --- Component Entry Points ---


def run_dashboard(
    stats: StatsService,
    now: datetime,
    config: DashboardConfig = DEFAULT_CONFIG,
) -> DashboardSnapshot:
    """
    Compose the dashboard snapshot.

    Args:
        stats: Aggregation service.
        now: Current time (UTC); defines "today" and the trailing windows.
        config: Window sizes and list limits.

    Returns:
        DashboardSnapshot with every section populated.
    """
    now = now.astimezone(UTC)
    today = now.date()
    window = DateRange(start=now - timedelta(days=config.window_days), end=now)

    return DashboardSnapshot(
        generated_at=now,
        today=stats.daily_stats(today),
        yesterday=stats.daily_stats(today - timedelta(days=1)),
        weekly_stats=tuple(
            stats.trend_stats(today - timedelta(days=config.trend_days - 1), today)
        ),
        top_countries=tuple(stats.top_countries(window, limit=config.top_limit)),
        device_stats=tuple(stats.device_stats(window, limit=config.top_limit)),
        top_pages=tuple(stats.top_pages(window, limit=config.top_limit)),
    )


def run_daily_trend(
    days: int,
    now: datetime,
    *,
    repo: StatsRepoPort,
) -> list[TrendPoint]:
    """Daily totals for the last `days` calendar days ending today."""
    today = now.astimezone(UTC).date()
    return StatsService(repo).trend_stats(today - timedelta(days=days - 1), today)
