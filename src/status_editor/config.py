"""Configuration for the status editing service."""

from __future__ import annotations

import os
from datetime import timedelta

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

# Load .env automatically on import (local dev)
load_dotenv()


class Settings(BaseModel):
    """Limits and policies applied while editing statuses."""

    database_url: str = "sqlite:///status_editor.db"

    max_media_attachments: int = 4
    max_status_characters: int = 500

    max_poll_options: int = 4
    max_poll_option_chars: int = 50
    min_poll_expiration: int = 300  # 5 minutes
    max_poll_expiration: int = 2629746  # 1 month

    # Expiration notifications go out this long after the poll closes
    poll_notification_delay_seconds: int = 300

    # Whether attaching a poll to a status that had none flags the edit
    poll_creation_is_change: bool = True

    job_poll_interval_seconds: int = 60
    # RUNNING jobs older than this are assumed lost and handed out again
    job_stale_after_seconds: int = 900

    @property
    def poll_notification_delay(self) -> timedelta:
        return timedelta(seconds=self.poll_notification_delay_seconds)

    @property
    def job_stale_after(self) -> timedelta:
        return timedelta(seconds=self.job_stale_after_seconds)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() == "true"


def load_settings() -> Settings:
    """Build Settings from environment variables (.env for local dev)."""
    try:
        return Settings(
            database_url=os.getenv("DATABASE_URL", "sqlite:///status_editor.db"),
            max_media_attachments=_env_int("MAX_MEDIA_ATTACHMENTS", 4),
            max_status_characters=_env_int("MAX_STATUS_CHARACTERS", 500),
            max_poll_options=_env_int("MAX_POLL_OPTIONS", 4),
            max_poll_option_chars=_env_int("MAX_POLL_OPTION_CHARS", 50),
            min_poll_expiration=_env_int("MIN_POLL_EXPIRATION", 300),
            max_poll_expiration=_env_int("MAX_POLL_EXPIRATION", 2629746),
            poll_notification_delay_seconds=_env_int("POLL_NOTIFICATION_DELAY_SECONDS", 300),
            poll_creation_is_change=_env_bool("POLL_CREATION_IS_CHANGE", default=True),
            job_poll_interval_seconds=_env_int("JOB_POLL_INTERVAL_SECONDS", 60),
            job_stale_after_seconds=_env_int("JOB_STALE_AFTER_SECONDS", 900),
        )
    except (ValidationError, ValueError) as e:
        raise RuntimeError(f"Invalid settings: {e}") from e
