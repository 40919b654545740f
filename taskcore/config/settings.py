"""Application settings using Pydantic."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Persistence backend configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TASKCORE_STORE_",
        extra="ignore",
    )

    # "memory" keeps everything in-process, "sqlite" writes to ``path``
    backend: Literal["memory", "sqlite"] = Field(default="sqlite")
    path: str = Field(default="taskcore.db")


class DispatchSettings(BaseSettings):
    """Event dispatch configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TASKCORE_DISPATCH_",
        extra="ignore",
    )

    # 1 means fire-and-forget: a failed handler is not retried
    max_attempts: int = Field(default=1, ge=1)
    retry_delay_seconds: float = Field(default=0.0, ge=0.0)


class DiscordSettings(BaseSettings):
    """Discord webhook configuration."""

    model_config = SettingsConfigDict(env_prefix="DISCORD_", extra="ignore")

    webhook_url: Optional[SecretStr] = Field(default=None)
    username: str = Field(default="TaskBot")


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TASKCORE_",
        extra="ignore",
    )

    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    # Nested settings - manually create to avoid env prefix issues
    @property
    def store(self) -> StoreSettings:
        return StoreSettings()

    @property
    def dispatch(self) -> DispatchSettings:
        return DispatchSettings()

    @property
    def discord(self) -> DiscordSettings:
        return DiscordSettings()


@lru_cache
def get_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
