"""Configuration management for Open Killer."""

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_PLATFORMS = ("windows", "macos", "linux")


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="OPENKILLER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    debug: bool = False
    json_logs: bool = False

    # Host platform override (windows, macos, linux). None = detect.
    platform: str | None = None

    # Seconds to wait for an external command. None = wait indefinitely.
    command_timeout: float | None = None

    # Delay before re-listing after a kill (CLI only)
    refresh_delay: float = 1.0

    @field_validator("platform", mode="before")
    @classmethod
    def validate_platform(cls, v: Any) -> str | None:
        """Normalize the platform override.

        Unknown tags are kept; ``Platform.from_tag`` maps them to linux.
        """
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return str(v).strip().lower()

    @field_validator("command_timeout")
    @classmethod
    def validate_command_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("Command timeout must be positive")
        return v

    @field_validator("refresh_delay")
    @classmethod
    def validate_refresh_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Refresh delay cannot be negative")
        return v


settings = Settings()
