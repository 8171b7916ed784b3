"""Logging utilities.

All package loggers hang off a single ``masterflasher_core`` root logger that
owns the stdout handler, so module loggers only need ``get_logger(__name__)``.
"""

import inspect
import logging
import os
import sys
from functools import wraps
from typing import Any, Callable, TypeVar

_ROOT_LOGGER_NAME = "masterflasher_core"
_LOG_LEVEL = os.environ.get("MASTERFLASHER_LOG_LEVEL", "INFO").upper()
_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

F = TypeVar("F", bound=Callable[..., Any])


def _configure_root() -> logging.Logger:
    """Attach the stdout handler to the package root logger once."""
    root = logging.getLogger(_ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)
        root.setLevel(getattr(logging, _LOG_LEVEL, logging.INFO))
    return root


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """Get a logger that reports through the package root handler.

    Args:
        name: Logger name (typically __name__)
        level: Optional log level override for this logger only

    Returns:
        Configured logger
    """
    root = _configure_root()
    logger = root if name == _ROOT_LOGGER_NAME else logging.getLogger(name)

    if not name.startswith(_ROOT_LOGGER_NAME) and not logger.handlers:
        # Loggers outside the package tree get their own handler.
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)

    if level is not None:
        logger.setLevel(level)

    return logger


def log_exceptions(
    logger: logging.Logger, operation: str | None = None
) -> Callable[[F], F]:
    """Decorator that logs an exception with traceback, then re-raises it.

    Args:
        logger: Logger to use for exception logging
        operation: Label for the log line; defaults to the function name

    Returns:
        Decorator that wraps sync or async callables
    """

    def decorator(func: F) -> F:
        label = operation or func.__name__

        def _log(e: Exception) -> None:
            logger.exception(f"{label} failed with {type(e).__name__}: {e}")

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    _log(e)
                    raise

            return async_wrapper  # type: ignore

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _log(e)
                raise

        return sync_wrapper  # type: ignore

    return decorator
