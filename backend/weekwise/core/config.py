"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Weekwise Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://weekwise@localhost:5432/weekwise"
    db_statement_timeout_ms: int = 10_000

    openai_api_key: str | None = None
    openai_plan_model: str = "gpt-4o"
    openai_agent_model: str = "gpt-4o"
    generation_timeout_s: float = 45.0
    agent_timeout_s: float = 55.0
    agent_max_steps: int = 5
    agent_history_limit: int = 30

    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "weekwise"

    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    weekly_job_day: int = 6
    weekly_job_hour: int = 18
    weekly_job_minute: int = 0
    nudge_job_hour: int = 17
    jobs_run_on_startup: bool = False

    notifications_enabled: bool = False
    notifications_provider: str = "noop"

    telegram_webhook_secret: str | None = None


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
