"""Tests for configuration settings."""

import os
import pytest
from unittest.mock import patch
from pydantic import ValidationError

from taskcore.config.settings import (
    AppSettings,
    DiscordSettings,
    DispatchSettings,
    StoreSettings,
    get_settings,
    clear_settings_cache,
)


def _without(prefix: str) -> dict[str, str]:
    return {k: v for k, v in os.environ.items() if not k.startswith(prefix)}


class TestStoreSettings:
    """Tests for StoreSettings."""

    def test_defaults(self):
        with patch.dict(os.environ, _without("TASKCORE_"), clear=True):
            settings = StoreSettings(_env_file=None)
            assert settings.backend == "sqlite"
            assert settings.path == "taskcore.db"

    def test_loads_from_env(self):
        env_vars = {
            "TASKCORE_STORE_BACKEND": "memory",
            "TASKCORE_STORE_PATH": "/tmp/tasks.db",
        }
        with patch.dict(os.environ, env_vars, clear=False):
            settings = StoreSettings(_env_file=None)
            assert settings.backend == "memory"
            assert settings.path == "/tmp/tasks.db"

    def test_rejects_unknown_backend(self):
        with patch.dict(os.environ, {"TASKCORE_STORE_BACKEND": "postgres"}, clear=False):
            with pytest.raises(ValidationError):
                StoreSettings(_env_file=None)


class TestDispatchSettings:
    """Tests for DispatchSettings."""

    def test_defaults_to_single_attempt(self):
        with patch.dict(os.environ, _without("TASKCORE_"), clear=True):
            settings = DispatchSettings(_env_file=None)
            assert settings.max_attempts == 1
            assert settings.retry_delay_seconds == 0.0

    def test_custom_values(self):
        env_vars = {
            "TASKCORE_DISPATCH_MAX_ATTEMPTS": "3",
            "TASKCORE_DISPATCH_RETRY_DELAY_SECONDS": "0.5",
        }
        with patch.dict(os.environ, env_vars, clear=False):
            settings = DispatchSettings(_env_file=None)
            assert settings.max_attempts == 3
            assert settings.retry_delay_seconds == 0.5

    def test_zero_attempts_rejected(self):
        with patch.dict(os.environ, {"TASKCORE_DISPATCH_MAX_ATTEMPTS": "0"}, clear=False):
            with pytest.raises(ValidationError):
                DispatchSettings(_env_file=None)


class TestDiscordSettings:
    """Tests for DiscordSettings."""

    def test_loads_webhook_url(self):
        """Should load webhook URL from environment."""
        env_vars = {"DISCORD_WEBHOOK_URL": "https://discord.com/webhook/test"}
        with patch.dict(os.environ, env_vars, clear=False):
            settings = DiscordSettings()
            assert (
                settings.webhook_url.get_secret_value()
                == "https://discord.com/webhook/test"
            )

    def test_defaults(self):
        with patch.dict(os.environ, _without("DISCORD_"), clear=True):
            settings = DiscordSettings()
            assert settings.webhook_url is None
            assert settings.username == "TaskBot"


class TestAppSettings:
    """Tests for AppSettings."""

    def test_default_values(self):
        with patch.dict(os.environ, _without("TASKCORE_"), clear=True):
            settings = AppSettings(_env_file=None)
            assert settings.debug is False
            assert settings.log_level == "INFO"

    def test_log_level_is_normalized(self):
        env_vars = {"TASKCORE_LOG_LEVEL": "debug", "TASKCORE_DEBUG": "true"}
        with patch.dict(os.environ, env_vars, clear=False):
            settings = AppSettings(_env_file=None)
            assert settings.log_level == "DEBUG"
            assert settings.debug is True

    def test_unknown_log_level_rejected(self):
        with patch.dict(os.environ, {"TASKCORE_LOG_LEVEL": "chatty"}, clear=False):
            with pytest.raises(ValidationError):
                AppSettings(_env_file=None)

    def test_nested_settings(self):
        """Should have nested settings accessible."""
        settings = AppSettings(_env_file=None)
        assert isinstance(settings.store, StoreSettings)
        assert isinstance(settings.dispatch, DispatchSettings)
        assert isinstance(settings.discord, DiscordSettings)


class TestGetSettings:
    """Tests for get_settings function."""

    def setup_method(self):
        """Clear cache before each test."""
        clear_settings_cache()

    def teardown_method(self):
        clear_settings_cache()

    def test_returns_app_settings(self):
        assert isinstance(get_settings(), AppSettings)

    def test_caches_result(self):
        assert get_settings() is get_settings()

    def test_clear_cache(self):
        settings1 = get_settings()
        clear_settings_cache()
        settings2 = get_settings()
        assert settings1 is not settings2
