# backend/clinicops/core/config.py
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    """Runtime configuration for the clinic operations backend."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(default="development", description="Deployment environment name")
    log_level: str = Field(default="INFO")

    database_url: str = Field(
        default="sqlite:///./clinicops.db",
        validation_alias=AliasChoices("database_url", "DATABASE_URL"),
        description="SQLAlchemy URL for the scheduling store",
    )
    database_echo: bool = False

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias=AliasChoices("redis_url", "REDIS_URL"),
    )
    lock_namespace: str = "clinicops"

    # Engine fallbacks used when a clinic carries no hold settings at all
    hold_fallback_ttl_minutes: int = Field(default=30, ge=1)
    hold_fallback_min_advance_minutes: int = Field(default=60, ge=0)
    hold_fallback_max_advance_days: int = Field(default=90, ge=1)
    hold_fallback_buffer_minutes: int = Field(default=15, ge=0)

    booking_late_tolerance_minutes: int = Field(default=15, ge=0)

    # Calendar mutex around scan-then-insert
    calendar_lock_enabled: bool = True
    calendar_lock_ttl_seconds: int = Field(default=30, ge=1)

    # Background work
    hold_expiry_sweep_seconds: int = Field(default=60, ge=5)
    hold_expiry_batch_size: int = Field(default=500, ge=1)
    outbox_relay_batch_size: int = Field(default=200, ge=1)
    outbox_relay_seconds: int = Field(default=15, ge=1)
    outbox_max_attempts: int = Field(default=8, ge=1)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = (value or "INFO").strip().upper()
        if normalized not in logging.getLevelNamesMapping():
            logger.warning("Invalid LOG_LEVEL=%s; defaulting to INFO", value)
            return "INFO"
        return normalized

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, value: str) -> str:
        return (value or "development").strip().lower()

    @property
    def is_production(self) -> bool:
        return self.environment in {"prod", "production"}

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def celery_broker_url(self) -> Optional[str]:
        return os.getenv("CELERY_BROKER_URL") or self.redis_url


settings = Settings()
