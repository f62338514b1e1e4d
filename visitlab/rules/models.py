from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class TrackingRules(BaseModel):
    returning_visitor_hours: int = Field(default=24, ge=1)
    bot_signatures: list[str] = Field(default_factory=list)
    max_conversion_length: int = Field(default=64, ge=1)
    max_conversion_value_length: int = Field(default=512, ge=1)


class GeoRules(BaseModel):
    endpoint: str = "http://ip-api.com/json/{ip}"
    timeout_seconds: float = Field(default=3.0, gt=0)
    cache_size: int = Field(default=10_000, ge=0)


class DashboardRules(BaseModel):
    trend_days: int = Field(default=7, ge=1, le=365)
    window_days: int = Field(default=30, ge=1, le=365)
    top_limit: int = Field(default=10, ge=1, le=100)
    default_daily_days: int = Field(default=30, ge=1, le=365)
    realtime_minutes: int = Field(default=60, ge=1, le=1440)


class VisitorsRules(BaseModel):
    page_size: int = Field(default=100, ge=1, le=100)


class OpsRules(BaseModel):
    data_dir_required: bool = True
    required_env: list[str] = Field(default_factory=list)


class Rules(BaseModel):
    project: ProjectRules
    tracking: TrackingRules = Field(default_factory=TrackingRules)
    geo: GeoRules = Field(default_factory=GeoRules)
    dashboard: DashboardRules = Field(default_factory=DashboardRules)
    visitors: VisitorsRules = Field(default_factory=VisitorsRules)
    ops: OpsRules = Field(default_factory=OpsRules)
