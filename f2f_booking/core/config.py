# f2f_booking/core/config.py
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = _PROJECT_ROOT / ".env"
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    # Database
    database_url: str = Field(
        default="sqlite:///./f2f_booking.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL for the course/session store",
    )
    database_echo: bool = Field(default=False, alias="DATABASE_ECHO")

    # Email settings
    resend_api_key: Optional[str] = Field(
        default=None,
        alias="RESEND_API_KEY",
        description="API key for the Resend provider (emails are logged only when unset)",
    )
    from_email: str = "Face-to-face bookings <noreply@example.com>"

    # Booking upload defaults
    default_case_insensitive: bool = Field(
        default=False,
        description="Match uploaded emails ignoring case unless a batch overrides it",
    )
    suppress_notifications: bool = Field(
        default=False,
        description="Disable confirmation/cancellation emails for every batch",
    )

    # Observability
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    slow_operation_threshold: float = Field(
        default=1.0,
        description="Seconds after which a measured service operation is logged as slow",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        level = (v or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def email_enabled(self) -> bool:
        return bool(self.resend_api_key)


settings = Settings()
