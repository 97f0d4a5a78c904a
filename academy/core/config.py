from datetime import timedelta
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    DATABASE_URL: str = f"sqlite:///{BASE_DIR}/academy.db"
    LOG_LEVEL: str = "INFO"

    # DEV ONLY: shared secret for scheduler/admin endpoints
    ADMIN_TOKEN: str = "change-me-in-production"

    # Reminder policy
    REMINDER_HORIZON_HOURS: int = 48
    REMINDER_DEDUP_WINDOW_HOURS: int = 24
    URGENT_REMINDER_HOURS: int = 6

    # Scheduling
    # daily run times are wall-clock times in SCHEDULER_TIMEZONE
    RECONCILE_TIMES: list[str] = ["06:00", "14:00", "22:00"]
    SCHEDULER_TIMEZONE: str = "UTC"
    REMINDER_INTERVAL_MINUTES: int = 60
    BATCH_TIME_LIMIT_SECONDS: int = 300

    # Mail
    SENDGRID_API_KEY: str | None = None
    MAIL_FROM: str = "no-reply@academy.local"
    PORTAL_BASE_URL: str = "http://localhost:8000/"
    ACADEMY_NAME: str = "Academy"

    @field_validator("RECONCILE_TIMES", mode="before")
    @classmethod
    def _split_times(cls, v):
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @property
    def reminder_horizon(self) -> timedelta:
        return timedelta(hours=self.REMINDER_HORIZON_HOURS)

    @property
    def dedup_window(self) -> timedelta:
        return timedelta(hours=self.REMINDER_DEDUP_WINDOW_HOURS)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
