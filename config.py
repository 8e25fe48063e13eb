"""
Configuration module for the clinic agenda engine.
Loads environment variables and provides typed configuration.
"""

from datetime import time
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase (backing store)
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    # Telegram Bot (notification delivery)
    bot_token: Optional[str] = None

    # Clinic calendar
    timezone: str = "Europe/Prague"
    working_day_start: time = time(8, 0)
    working_day_end: time = time(17, 0)

    # Store access
    store_timeout_seconds: float = 5.0
    lock_timeout_seconds: float = 5.0

    # Reminders: hour of day (local) when next-day reminders are sent
    reminder_hour: int = 18

    # Redis Configuration (for APScheduler cluster support)
    redis_url: Optional[str] = None

    # Server (realtime WebSocket endpoint)
    host: str = "0.0.0.0"
    port: int = 8080
    environment: str = "development"  # development, staging, production
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("reminder_hour")
    @classmethod
    def validate_reminder_hour(cls, v: int) -> int:
        """Reminder hour must be a valid hour of day."""
        if not 0 <= v <= 23:
            raise ValueError("reminder_hour must be between 0 and 23")
        return v

    @model_validator(mode="after")
    def validate_working_day(self) -> "Settings":
        """Working day must start before it ends."""
        if self.working_day_start >= self.working_day_end:
            raise ValueError("working_day_start must be earlier than working_day_end")
        return self

    def validate_all_required(self) -> None:
        """
        Validate that all required settings are present.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        required_fields = [
            "supabase_url",
            "supabase_key",
        ]

        missing = []
        for field in required_fields:
            value = getattr(self, field, None)

            # Check if value is missing or placeholder
            if not value:
                missing.append(field)
                continue

            value_str = str(value).lower()
            if value_str.startswith("your_"):
                missing.append(field)

        if missing:
            raise ValueError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )


# Global settings instance
settings = Settings()
