"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Cadence configuration. All values come from environment variables."""

    # Database
    database_path: Path = Field(default=Path("data/cadence.db"))
    database_busy_timeout_ms: int = Field(default=5000)

    # Periodic jobs
    due_frequency_seconds: int = Field(default=300, ge=1)
    overdue_frequency_seconds: int = Field(default=86400, ge=1)
    notification_cleanup_seconds: int = Field(default=600, ge=1)

    # Notifications
    notification_retention_hours: int = Field(default=24, ge=0)
    planning_timeout_seconds: float = Field(default=10.0, gt=0)
    default_notification_channel: str = Field(default="")

    # Webhook delivery channel (disabled when the URL is empty)
    notification_webhook_url: str = Field(default="")
    notification_webhook_secret: str = Field(default="")
    notification_webhook_timeout_seconds: float = Field(default=10.0, gt=0)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()
