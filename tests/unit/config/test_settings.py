"""
Unit tests for configuration management.
"""

import os
from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from billing_engine.config.settings import (
    BillingSystemConfig,
    get_config,
    load_config,
    reload_config,
)


class TestBillingSystemConfig:
    """Test cases for BillingSystemConfig."""

    def test_config_with_valid_env_vars(self, test_config):
        """Test configuration loads correctly with valid environment variables."""
        assert test_config.database_url == "sqlite://"
        assert test_config.timezone == "Pacific/Auckland"
        assert test_config.environment == "testing"
        assert test_config.debug is True
        assert test_config.log_level == "DEBUG"

    def test_default_values(self, mock_env):
        """Test default configuration values."""
        with patch.dict(os.environ, mock_env):
            config = BillingSystemConfig(_env_file=None)

        assert config.environment == "testing"  # From mock_env
        assert config.timer_clock_skew_seconds == 120
        assert config.invoice_number_prefix == "INV-"
        assert config.invoice_number_width == 4
        assert config.due_day_of_month == 20
        assert config.sql_echo is False

    def test_tzinfo_property(self, test_config):
        """Test the configured zone is exposed as a tzinfo object."""
        assert test_config.tzinfo == ZoneInfo("Pacific/Auckland")

    @pytest.mark.parametrize("invalid_timezone", ["Mars/Olympus", "NZST+13"])
    def test_invalid_timezone_validation(self, mock_env, invalid_timezone):
        """Test unknown timezone names are rejected."""
        test_env = mock_env.copy()
        test_env["TIMEZONE"] = invalid_timezone

        with patch.dict(os.environ, test_env):
            with pytest.raises(ValidationError) as exc_info:
                BillingSystemConfig(_env_file=None)

        assert "Unknown timezone" in str(exc_info.value)

    @pytest.mark.parametrize("due_day", ["0", "29", "31"])
    def test_due_day_must_exist_in_every_month(self, mock_env, due_day):
        """Test due day is limited to days every month has."""
        test_env = mock_env.copy()
        test_env["DUE_DAY_OF_MONTH"] = due_day

        with patch.dict(os.environ, test_env):
            with pytest.raises(ValidationError):
                BillingSystemConfig(_env_file=None)

    def test_negative_clock_skew_rejected(self, mock_env):
        """Test the timer skew tolerance cannot be negative."""
        with patch.dict(os.environ, {"TIMER_CLOCK_SKEW_SECONDS": "-1"}):
            with pytest.raises(ValidationError):
                BillingSystemConfig(_env_file=None)

    @pytest.mark.parametrize(
        "invalid_log_level", ["TRACE", "VERBOSE", "invalid", "123"]
    )
    def test_invalid_log_level_validation(self, mock_env, invalid_log_level):
        """Test log level validation with invalid values."""
        test_env = mock_env.copy()
        test_env["LOG_LEVEL"] = invalid_log_level

        with patch.dict(os.environ, test_env):
            with pytest.raises(ValidationError) as exc_info:
                BillingSystemConfig(_env_file=None)

        assert "Log level must be one of" in str(exc_info.value)

    @pytest.mark.parametrize(
        "valid_log_level,expected",
        [
            ("debug", "DEBUG"),
            ("info", "INFO"),
            ("WARNING", "WARNING"),
            ("Error", "ERROR"),
            ("CRITICAL", "CRITICAL"),
        ],
    )
    def test_valid_log_level_normalization(self, mock_env, valid_log_level, expected):
        """Test log level validation with valid values."""
        test_env = mock_env.copy()
        test_env["LOG_LEVEL"] = valid_log_level

        with patch.dict(os.environ, test_env):
            config = BillingSystemConfig(_env_file=None)

        assert config.log_level == expected

    @pytest.mark.parametrize("invalid_environment", ["staging", "prod", "dev", "test"])
    def test_invalid_environment_validation(self, mock_env, invalid_environment):
        """Test environment validation with invalid values."""
        test_env = mock_env.copy()
        test_env["ENVIRONMENT"] = invalid_environment

        with patch.dict(os.environ, test_env):
            with pytest.raises(ValidationError) as exc_info:
                BillingSystemConfig(_env_file=None)

        assert "Environment must be one of" in str(exc_info.value)

    @pytest.mark.parametrize(
        "valid_environment,expected",
        [
            ("DEVELOPMENT", "development"),
            ("Testing", "testing"),
            ("PRODUCTION", "production"),
        ],
    )
    def test_valid_environment_normalization(
        self, mock_env, valid_environment, expected
    ):
        """Test environment validation with valid values."""
        test_env = mock_env.copy()
        test_env["ENVIRONMENT"] = valid_environment

        with patch.dict(os.environ, test_env):
            config = BillingSystemConfig(_env_file=None)

        assert config.environment == expected


class TestConfigurationFunctions:
    """Test configuration loading functions."""

    def test_load_config_with_env_file(self, tmp_path, mock_env, monkeypatch):
        """Test loading configuration from specific env file."""
        monkeypatch.delenv("DATABASE_URL")
        env_file = tmp_path / ".env.test"
        env_file.write_text("DATABASE_URL=sqlite:///from-file.db\n")

        config = load_config(str(env_file))

        assert config.database_url == "sqlite:///from-file.db"
        assert config.environment == "testing"

    def test_get_config_singleton(self, mock_env):
        """Test that get_config returns singleton instance."""
        config1 = get_config()
        config2 = get_config()

        assert config1 is config2
        assert config1.timezone == "Pacific/Auckland"

    def test_reload_config(self, mock_env, monkeypatch):
        """Test configuration reload functionality."""
        config1 = get_config()
        assert config1.due_day_of_month == 20

        monkeypatch.setenv("DUE_DAY_OF_MONTH", "15")
        config2 = reload_config()

        assert config2.due_day_of_month == 15
        assert config1 is not config2
