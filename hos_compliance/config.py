"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "hos-compliance"
    debug: bool = False
    log_level: str = "INFO"

    # IANA zone used for midnight / Monday boundaries
    timezone: str = "UTC"

    # Timeline cache
    cache_ttl_minutes: int = 5
    feed_lookback_days: int = 14

    # Upstream driver-event history
    feed_url: str = "http://localhost:3000/dashboard/drivers/history"
    feed_timeout_seconds: float = 15.0

    # Driving limits
    base_daily_driving_hours: float = 9.0
    extended_daily_driving_hours: float = 10.0
    weekly_driving_hours: float = 56.0
    fortnightly_driving_hours: float = 90.0
    weekly_extension_allowance: int = 2

    # Work limits (driving + other work)
    base_daily_work_hours: float = 13.0
    extra_daily_work_hours: float = 2.0

    # Continuous driving and breaks
    continuous_driving_hours: float = 4.5
    single_break_minutes: float = 45.0
    split_break_first_minutes: float = 15.0
    split_break_second_minutes: float = 30.0

    # Rest
    daily_rest_hours: float = 11.0
    session_lookback_hours: float = 48.0

    # Presentation
    countdown_tick_seconds: float = 1.0

    model_config = {"env_prefix": "HOS_"}


settings = Settings()
