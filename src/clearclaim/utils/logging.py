"""Structured logging setup for ClearClaim."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(claim_id)s] %(message)s"

# Fields every record carries, so formats may reference them unconditionally
DEFAULT_FIELDS: dict[str, Any] = {"claim_id": "-"}

# Third-party loggers that are clamped to WARNING
NOISY_LOGGERS = ("openai", "httpx", "aiohttp.access")

_log_context: ContextVar[dict[str, Any]] = ContextVar("clearclaim_log_context", default={})


class ContextFilter(logging.Filter):
    """Add context information to log records.

    Context lives in a ContextVar, so concurrent background tasks each see
    their own fields.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in DEFAULT_FIELDS.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        for key, value in _log_context.get().items():
            setattr(record, key, value)
        return True


# Global context filter instance
_context_filter = ContextFilter()


def setup_logging(
    level: str = "INFO",
    log_format: str = DEFAULT_FORMAT,
    log_file: str | None = None,
) -> logging.Logger:
    """
    Set up structured logging with optional file output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format string for log messages
        log_file: Optional path to log file

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(_context_filter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(_context_filter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def set_context(**kwargs: Any) -> None:
    """
    Set context fields for subsequent log messages in the current task.

    Example:
        set_context(claim_id="3f2a...")
        logger.info("Digitizing")  # record carries claim_id
    """
    _log_context.set({**_log_context.get(), **kwargs})


def clear_context() -> None:
    """Clear all context fields."""
    _log_context.set({})


def get_context() -> dict[str, Any]:
    return dict(_log_context.get())


@contextmanager
def claim_context(**kwargs: Any) -> Iterator[None]:
    """Scope context fields to a block, restoring the previous context on exit."""
    token = _log_context.set({**_log_context.get(), **kwargs})
    try:
        yield
    finally:
        _log_context.reset(token)
