"""
Configuration management for the billing engine.
"""

from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BillingSystemConfig(BaseSettings):
    """Configuration settings for the billing engine."""

    # Storage Configuration
    database_url: str = Field(default="sqlite:///billing.db", alias="DATABASE_URL")
    sql_echo: bool = Field(default=False, alias="SQL_ECHO")

    # Calendar Configuration
    timezone: str = Field(default="Pacific/Auckland", alias="TIMEZONE")

    # Timer Configuration
    timer_clock_skew_seconds: int = Field(
        default=120, ge=0, alias="TIMER_CLOCK_SKEW_SECONDS"
    )

    # Invoice Configuration
    invoice_number_prefix: str = Field(default="INV-", alias="INVOICE_NUMBER_PREFIX")
    invoice_number_width: int = Field(
        default=4, ge=1, le=12, alias="INVOICE_NUMBER_WIDTH"
    )
    due_day_of_month: int = Field(default=20, ge=1, le=28, alias="DUE_DAY_OF_MONTH")

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        populate_by_name=True,
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        """Ensure timezone is a known IANA zone name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Ensure environment is valid."""
        valid_envs = ["development", "testing", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Environment must be one of: {valid_envs}")
        return v.lower()

    @property
    def tzinfo(self) -> ZoneInfo:
        """Configured timezone as a tzinfo object."""
        return ZoneInfo(self.timezone)


def load_config(env_file: Optional[str] = None) -> BillingSystemConfig:
    """Load configuration from environment variables and .env file."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    return BillingSystemConfig()


# Global configuration instance
_config: Optional[BillingSystemConfig] = None


def get_config() -> BillingSystemConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(env_file: Optional[str] = None) -> BillingSystemConfig:
    """Reload configuration (useful for testing)."""
    global _config
    _config = load_config(env_file)
    return _config
