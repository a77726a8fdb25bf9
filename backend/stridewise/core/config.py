"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Stridewise Planner"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite:///./stridewise.db"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "stridewise"

    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    autopilot_job_hour: int = 21
    autopilot_job_minute: int = 0
    streak_job_hour: int = 23
    streak_job_minute: int = 55
    patterns_job_hour: int = 3
    patterns_job_minute: int = 30
    plan_sync_job_hour: int = 20
    plan_sync_job_minute: int = 0
    jobs_run_on_startup: bool = False

    notifications_enabled: bool = False
    notifications_provider: str = "noop"
    approval_prompt_hour: int = 20
    summary_hour: int = 21

    calendar_provider: str = "noop"
    activity_provider: str = "noop"
    store_backend: str = "sql"
    plan_sync_enabled: bool = False

    min_slot_minutes: int = 5
    day_end_ceiling_hour: int = 21
    history_days: int = 30
    streak_lookback_days: int = 365
    autopilot_retention_days: int = 7
    plan_sync_retention_days: int = 7


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
