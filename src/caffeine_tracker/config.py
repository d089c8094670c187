"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    data_path: Path = Path.home() / ".caffeine_tracker" / "doses.plist"
    half_life_hours: float = 5.0
    retention_hours: float = 24.0
    reference_serving_mg: float = 95.0
    level_moderate_mg: float = 200.0
    level_high_mg: float = 400.0
    cups_moderate: float = 3.0
    cups_high: float = 5.0
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_prefix="CAFFEINE_",
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def health_records_enabled(self) -> bool:
        """Return True when a health-record service is configured."""
        return bool(self.supabase_url and self.supabase_service_key)
