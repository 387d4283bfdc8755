"""Error handling for CLI commands."""

import logging
import sys
import traceback
from typing import Optional

import click
from pydantic import ValidationError

from billing_engine.cli.utils.formatters import format_error, format_warning
from billing_engine.errors import (
    BillingError,
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

EXIT_CONFIGURATION = 1
EXIT_BILLING = 2
EXIT_INVALID_INPUT = 3
EXIT_NOT_FOUND = 4
EXIT_CONFLICT = 5
EXIT_INTERNAL = 6
EXIT_CANCELLED = 130
EXIT_UNEXPECTED = 255


class CLIError(Exception):
    """Base exception for CLI errors with user-friendly messages."""

    def __init__(self, message: str, recovery_hint: Optional[str] = None):
        """
        Initialize CLI error.

        Args:
            message: Error message to display
            recovery_hint: Optional hint for recovering from the error
        """
        self.message = message
        self.recovery_hint = recovery_hint
        super().__init__(message)


class ConfigurationError(CLIError):
    """Error related to configuration issues."""

    pass


def _echo_hint(hint: Optional[str]) -> None:
    if hint:
        click.echo(format_warning(f"Hint: {hint}"))


def handle_cli_error(error: Exception, debug: bool = False) -> int:
    """
    Handle CLI errors with user-friendly messages.

    Args:
        error: The exception that occurred
        debug: Whether to show full stack trace

    Returns:
        Exit code, distinct per error class
    """
    if isinstance(error, ConfigurationError):
        click.echo(format_error(f"Configuration Error: {error.message}"))
        _echo_hint(error.recovery_hint)
        return EXIT_CONFIGURATION

    elif isinstance(error, InvalidInputError):
        click.echo(format_error(f"Invalid Input: {error.message}"))
        if error.fields:
            _echo_hint(f"Check {', '.join(error.fields)}")
        return EXIT_INVALID_INPUT

    elif isinstance(error, NotFoundError):
        click.echo(format_error(f"Not Found: {error.message}"))
        return EXIT_NOT_FOUND

    elif isinstance(error, ConflictError):
        click.echo(format_error(f"Conflict: {error.message}"))
        conflicting = error.to_dict().get("conflicting")
        if conflicting:
            click.echo(format_warning(f"Conflicting record: {conflicting}"))
        return EXIT_CONFLICT

    elif isinstance(error, InternalError):
        # Details were logged where the failure happened
        click.echo(format_error(f"Internal Error: {error.message}"))
        if debug:
            click.echo(traceback.format_exc())
        return EXIT_INTERNAL

    elif isinstance(error, BillingError):
        click.echo(format_error(f"Billing Error: {error.message}"))
        return EXIT_BILLING

    elif isinstance(error, ValidationError):
        click.echo(format_error(f"Configuration Error: {error}"))
        _echo_hint("Check your environment variables and .env file")
        return EXIT_CONFIGURATION

    # Handle click.Abort (user cancellation)
    elif isinstance(error, click.Abort):
        click.echo(format_warning("\nOperation cancelled by user"))
        return EXIT_CANCELLED

    # Handle generic exceptions
    else:
        logger.exception("Unexpected error in CLI command")
        click.echo(format_error(f"Unexpected Error: {type(error).__name__}"))
        click.echo(str(error))

        if debug:
            click.echo("\nFull stack trace:")
            click.echo(traceback.format_exc())
        else:
            click.echo(format_warning("\nRun with --debug flag for full stack trace"))

        return EXIT_UNEXPECTED


def with_error_handling(debug: bool = False):
    """
    Context manager adding standardized error handling to CLI commands.

    Args:
        debug: Whether to show full stack traces

    Example:
        @click.command()
        @click.pass_context
        def my_command(ctx):
            with with_error_handling(ctx.obj["debug"]):
                # Command implementation
                pass
    """

    class ErrorHandler:
        """Context manager for error handling."""

        def __init__(self, show_debug: bool):
            self.show_debug = show_debug

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if isinstance(exc_val, click.ClickException):
                # Usage errors keep click's own reporting
                return False
            if exc_val is not None and isinstance(exc_val, Exception):
                exit_code = handle_cli_error(exc_val, self.show_debug)
                sys.exit(exit_code)
            return False  # Don't suppress exceptions

    return ErrorHandler(debug)
