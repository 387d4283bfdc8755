"""Structured logging utilities with context support."""

import functools
import logging
import threading
import uuid
from typing import Any, Callable, Dict, Optional

# Thread-local storage for log context
_thread_local = threading.local()


def generate_correlation_id() -> str:
    """
    Generate a unique correlation ID for tracking one engine operation.

    Returns:
        UUID string to use as correlation ID
    """
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """
    Get the current correlation ID from thread-local context.

    Returns:
        Current correlation ID or None if not set
    """
    context = getattr(_thread_local, "context", None)
    if context:
        return context.get("correlation_id")
    return None


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields currently attached to log records."""
    return dict(getattr(_thread_local, "context", {}))


class LogContext:
    """
    Context manager for adding structured fields to log records.

    Fields are stored in thread-local storage and added to every record
    emitted inside the block by ``_ContextFilter``. Nested contexts merge
    with their parent and restore it on exit.

    Example:
        with LogContext(invoice_id=12, operation="add_line"):
            logger.info("Recalculating totals")
            # Log will include invoice_id and operation fields
    """

    def __init__(self, **kwargs):
        self.fields = kwargs
        self.previous_context: Optional[Dict[str, Any]] = None

    def __enter__(self):
        if not hasattr(_thread_local, "context"):
            _thread_local.context = {}

        self.previous_context = _thread_local.context.copy()
        _thread_local.context.update(self.fields)

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.previous_context is not None:
            _thread_local.context = self.previous_context
        else:
            _thread_local.context = {}


class _ContextFilter(logging.Filter):
    """Logging filter that adds context fields to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if hasattr(_thread_local, "context"):
            for key, value in _thread_local.context.items():
                setattr(record, key, value)
        return True


def log_operation(
    func: Optional[Callable] = None, *, name: Optional[str] = None, level: str = "DEBUG"
) -> Callable:
    """
    Decorator that runs an engine operation inside its own log context.

    Each call gets a fresh correlation ID (unless one is already active, in
    which case nested operations share it) and an ``operation`` field. Entry
    and exit are logged at ``level``; exceptions are logged at WARNING for
    expected billing errors and propagated unchanged.

    Args:
        func: Function to decorate (when used without arguments)
        name: Operation name (defaults to the function name)
        level: Log level for entry/exit messages

    Example:
        @log_operation
        def start(self, project_id):
            ...

        @log_operation(name="invoice.build", level="INFO")
        def build(self, scope, ...):
            ...
    """

    def decorator(f: Callable) -> Callable:
        operation = name or f.__name__

        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(f.__module__)
            log_level = getattr(logging, level.upper())
            correlation_id = get_correlation_id() or generate_correlation_id()

            with LogContext(operation=operation, correlation_id=correlation_id):
                logger.log(log_level, f"Entering {operation}")
                try:
                    result = f(*args, **kwargs)
                except Exception as e:
                    logger.warning(
                        f"{operation} failed: {type(e).__name__}: {e}",
                    )
                    raise
                logger.log(log_level, f"Exiting {operation}")
                return result

        return wrapper

    if func is None:
        return decorator
    return decorator(func)
