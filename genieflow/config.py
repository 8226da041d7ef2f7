"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # OpenRouter
    OPENROUTER_API_KEY: str
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    SITE_URL: str = ""
    SITE_NAME: str = "GenieFlow"
    GRANT_WRITING_MODEL: str = "openai/gpt-4-turbo"

    # Cron trigger (Authorization: Bearer <CRON_SECRET>)
    CRON_SECRET: str = ""

    # Worker
    RUN_WORKER: bool = True  # Start the worker thread inside the API process
    SCHEDULE_DAILY_CHECK: bool = True
    WORKER_POLL_INTERVAL: int = 5
    MAX_RUN_RETRIES: int = 3
    WORKFLOW_LEASE_SECONDS: int = 600

    # Step retries
    STEP_MAX_ATTEMPTS: int = 3
    STEP_BACKOFF_STRATEGY: str = "exponential"  # 'none', 'fixed', 'exponential'
    STEP_BACKOFF_BASE_SECONDS: int = 30

    # Compliance reminders
    DAILY_CHECK_HOUR_UTC: int = 8
    REMINDER_LOOKAHEAD_DAYS: int = 7

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


# Global settings instance
settings = Settings()
