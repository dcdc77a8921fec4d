"""Tests for configuration module."""

import pytest
from pydantic import ValidationError


class TestSettings:
    """Tests for Settings class."""

    def test_settings_loads_from_env(self, mock_env_vars):
        """Test that settings loads from environment variables."""
        from browser_recorder.config import LogFormat, Settings

        settings = Settings(_env_file=None)
        assert settings.log_level == "DEBUG"
        assert settings.log_format == LogFormat.JSON
        assert settings.debounce_ms == 250
        assert settings.default_framework == "cypress"
        assert settings.default_language == "javascript"
        assert settings.base_url == "https://app.example.com"

    def test_settings_default_values(self):
        """Test default values are set correctly."""
        from browser_recorder.config import LogFormat, Settings

        settings = Settings(_env_file=None)
        assert settings.log_level == "INFO"
        assert settings.log_format == LogFormat.CONSOLE
        assert settings.debounce_ms == 300
        assert settings.max_events == 1000
        assert settings.selector_retries == 3
        assert settings.low_reliability_threshold == 0.5
        assert settings.default_framework == "playwright"
        assert settings.default_language == "typescript"
        assert settings.viewport_width == 1280
        assert settings.viewport_height == 720
        assert settings.action_timeout_ms == 30000
        assert settings.base_url is None

    def test_capture_flags_default_off(self):
        """Test optional capture channels are disabled by default."""
        from browser_recorder.config import Settings

        settings = Settings(_env_file=None)
        assert not settings.capture_screenshots
        assert not settings.capture_console
        assert not settings.capture_network
        assert not settings.capture_performance

    def test_boolean_from_env(self, monkeypatch):
        """Test boolean settings parse from environment strings."""
        from browser_recorder.config import Settings

        monkeypatch.setenv("RECORDER_PAGE_OBJECT_MODEL", "true")
        monkeypatch.setenv("RECORDER_HEADLESS", "false")

        settings = Settings(_env_file=None)
        assert settings.page_object_model is True
        assert settings.headless is False

    def test_unknown_variables_ignored(self, monkeypatch):
        """Test unrelated prefixed variables do not fail loading."""
        from browser_recorder.config import Settings

        monkeypatch.setenv("RECORDER_SOMETHING_ELSE", "1")

        assert Settings(_env_file=None).debounce_ms == 300

    def test_negative_debounce_rejected(self, monkeypatch):
        """Test the debounce window cannot be negative."""
        from browser_recorder.config import Settings

        monkeypatch.setenv("RECORDER_DEBOUNCE_MS", "-1")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_threshold_bounds(self):
        """Test the reliability threshold must lie in [0, 1]."""
        from browser_recorder.config import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, low_reliability_threshold=1.5)

    def test_invalid_log_format(self):
        """Test unknown log formats are rejected."""
        from browser_recorder.config import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_format="xml")


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_returns_settings(self, mock_env_vars):
        """Test get_settings returns a Settings instance."""
        from browser_recorder.config import Settings, get_settings

        settings = get_settings()
        assert isinstance(settings, Settings)
        assert settings.debounce_ms == 250

    def test_get_settings_reads_current_env(self, monkeypatch):
        """Test each call reflects the current environment."""
        from browser_recorder.config import get_settings

        monkeypatch.setenv("RECORDER_MAX_EVENTS", "10")
        assert get_settings().max_events == 10

        monkeypatch.setenv("RECORDER_MAX_EVENTS", "20")
        assert get_settings().max_events == 20
