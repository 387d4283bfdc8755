"""Shared CLI state: configuration, logging and the engine instance."""

import datetime as dt
from typing import Optional

import click
from pydantic import ValidationError

from billing_engine.cli.error_handlers import ConfigurationError
from billing_engine.config.logging_config import LoggingConfig, configure_logging
from billing_engine.config.settings import get_config, reload_config
from billing_engine.engine import BillingEngine


def get_engine(ctx: click.Context) -> BillingEngine:
    """Engine for this invocation, created on first use.

    Tests inject a ready engine with ``obj={"engine": engine}``.
    """
    obj = ctx.ensure_object(dict)
    engine = obj.get("engine")
    if engine is not None:
        return engine

    try:
        env_file = obj.get("env_file")
        settings = reload_config(env_file) if env_file else get_config()
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid settings: {e.error_count()} problem(s)\n{e}",
            recovery_hint="Check your environment variables and .env file",
        ) from e

    configure_logging(LoggingConfig.from_settings(settings))
    engine = BillingEngine.from_settings(settings)
    obj["engine"] = engine
    return engine


def is_debug(ctx: click.Context) -> bool:
    return bool(ctx.ensure_object(dict).get("debug", False))


def parse_date_input(date_str: Optional[str]) -> Optional[dt.date]:
    """Parse a date in YYYY-MM-DD format.

    Raises:
        click.BadParameter: If the format is invalid
    """
    if date_str is None:
        return None
    try:
        return dt.datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(f"Invalid date format: {date_str}. Expected YYYY-MM-DD")


def parse_timestamp_input(value: Optional[str]) -> Optional[dt.datetime]:
    """Parse an ISO 8601 timestamp that carries a UTC offset.

    Raises:
        click.BadParameter: If the value is malformed or has no offset
    """
    if value is None:
        return None
    try:
        parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise click.BadParameter(f"Invalid timestamp: {value}. Expected ISO 8601")
    if parsed.tzinfo is None:
        raise click.BadParameter(f"Timestamp {value} must include a UTC offset")
    return parsed
