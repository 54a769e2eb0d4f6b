"""Tests for configuration management module.

Tests cover:
- Settings defaults
- Environment variable overrides
- Field validators (log_level, log_format)
- Settings caching (lru_cache)
"""

from __future__ import annotations

import os
import pytest

from pydantic import ValidationError

from reflib_common.config import Settings, get_settings

pytestmark = pytest.mark.unit


# =============================================================================
# Fixtures
# =============================================================================


ENV_VARS = [
    "LIBRARY_PATH",
    "CROSSREF_MAILTO",
    "PUBMED_EMAIL",
    "PUBMED_API_KEY",
    "HTTP_TIMEOUT",
    "CHECK_SKIP_DAYS",
    "CHECK_METADATA",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Provide a clean environment without config-related vars or .env file."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def clear_settings_cache():
    """Clear the settings cache before and after each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Test Default Values
# =============================================================================


class TestSettingsDefaults:
    """Test Settings has correct default values."""

    def test_library_path_default(self, clean_env):
        """Test library_path defaults to the user data directory."""
        settings = Settings()
        assert settings.library_path == "~/.local/share/reflib/library.json"

    def test_remote_credentials_default_to_none(self, clean_env):
        """Test provider contact details are unset by default."""
        settings = Settings()
        assert settings.crossref_mailto is None
        assert settings.pubmed_email is None
        assert settings.pubmed_api_key is None

    def test_check_defaults(self, clean_env):
        """Test the check defaults."""
        settings = Settings()
        assert settings.check_skip_days == 7
        assert settings.check_metadata is True

    def test_http_timeout_default(self, clean_env):
        """Test the HTTP timeout default."""
        settings = Settings()
        assert settings.http_timeout == 30.0

    def test_log_defaults(self, clean_env):
        """Test the logging defaults."""
        settings = Settings()
        assert settings.log_level == "INFO"
        assert settings.log_format == "console"


# =============================================================================
# Test Environment Overrides
# =============================================================================


class TestEnvironmentOverrides:
    """Test environment variables override defaults."""

    def test_library_path_override(self, clean_env, monkeypatch):
        """Test LIBRARY_PATH overrides the default."""
        monkeypatch.setenv("LIBRARY_PATH", "/data/refs.json")
        assert Settings().library_path == "/data/refs.json"

    def test_pubmed_api_key_override(self, clean_env, monkeypatch):
        """Test PUBMED_API_KEY is read."""
        monkeypatch.setenv("PUBMED_API_KEY", "secret-key-123")
        assert Settings().pubmed_api_key == "secret-key-123"

    def test_skip_days_override(self, clean_env, monkeypatch):
        """Test CHECK_SKIP_DAYS overrides the default."""
        monkeypatch.setenv("CHECK_SKIP_DAYS", "0")
        assert Settings().check_skip_days == 0

    def test_check_metadata_override(self, clean_env, monkeypatch):
        """Test CHECK_METADATA parses booleans."""
        monkeypatch.setenv("CHECK_METADATA", "false")
        assert Settings().check_metadata is False

    def test_case_insensitive_env_vars(self, clean_env, monkeypatch):
        """Test lowercase variable names are accepted."""
        monkeypatch.setenv("crossref_mailto", "me@example.org")
        assert Settings().crossref_mailto == "me@example.org"


# =============================================================================
# Test Validators
# =============================================================================


class TestLogLevelValidator:
    """Test log_level validator."""

    @pytest.mark.parametrize("value", ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    def test_valid_levels(self, clean_env, value):
        """Test every standard level is accepted."""
        assert Settings(log_level=value).log_level == value

    def test_log_level_lowercase_converted(self, clean_env):
        """Test lowercase levels are upper-cased."""
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_log_level_invalid_raises(self, clean_env):
        """Test an unknown level raises ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            Settings(log_level="INVALID")

        errors = exc_info.value.errors()
        assert any("log_level" in str(e) for e in errors)

    def test_log_level_invalid_via_env(self, clean_env, monkeypatch):
        """Test an unknown level from the environment raises."""
        monkeypatch.setenv("LOG_LEVEL", "TRACE")

        with pytest.raises(ValidationError):
            Settings()


class TestLogFormatValidator:
    """Test log_format validator."""

    def test_log_format_json(self, clean_env):
        """Test the json format is accepted."""
        assert Settings(log_format="json").log_format == "json"

    def test_log_format_uppercase_converted(self, clean_env):
        """Test formats are lower-cased."""
        assert Settings(log_format="JSON").log_format == "json"

    def test_log_format_invalid_raises(self, clean_env):
        """Test an unknown format raises ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            Settings(log_format="xml")

        errors = exc_info.value.errors()
        assert any("log_format" in str(e) for e in errors)


# =============================================================================
# Test Settings Caching
# =============================================================================


class TestGetSettings:
    """Test get_settings function and caching."""

    def test_get_settings_returns_settings(self, clean_env, clear_settings_cache):
        """Test get_settings returns a Settings instance."""
        assert isinstance(get_settings(), Settings)

    def test_get_settings_cached(self, clean_env, clear_settings_cache):
        """Test get_settings returns the cached instance."""
        assert get_settings() is get_settings()

    def test_cache_clear_reloads_settings(self, clean_env, clear_settings_cache, monkeypatch):
        """Test cache_clear picks up environment changes."""
        settings1 = get_settings()

        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        assert get_settings() is settings1

        get_settings.cache_clear()

        settings3 = get_settings()
        assert settings3 is not settings1
        assert settings3.log_level == "DEBUG"

    def test_extra_env_ignored(self, clean_env, monkeypatch):
        """Test unknown variables are ignored."""
        monkeypatch.setenv("UNKNOWN_SETTING", "value")

        settings = Settings()

        assert not hasattr(settings, "unknown_setting")
