"""Configuration module."""

from .settings import (
    AppSettings,
    StoreSettings,
    DispatchSettings,
    DiscordSettings,
    get_settings,
    clear_settings_cache,
)

__all__ = [
    "AppSettings",
    "StoreSettings",
    "DispatchSettings",
    "DiscordSettings",
    "get_settings",
    "clear_settings_cache",
]
