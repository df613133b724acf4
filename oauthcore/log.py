"""Logging utilities for oauthcore.

Components log through child loggers of ``oauthcore`` (``oauthcore.core``,
``oauthcore.flows``, ...). This module owns the parent logger's handler and
the redaction used whenever callback parameters reach a log line.
"""

from __future__ import annotations

import logging
import sys

from typing import Any


class _LoggerHolder:
    """Holder for the global logger instance."""

    instance: logging.Logger | None = None


def get_logger() -> logging.Logger:
    """Get the oauthcore logger instance.

    The level and format come from ``OAuthCoreSettings.log`` the first time
    the logger is created.

    Returns
    -------
    logging.Logger
        The oauthcore logger configured with a stream handler.
    """
    if _LoggerHolder.instance is None:
        from .config import get_settings

        log_settings = get_settings().log
        logger = logging.getLogger("oauthcore")
        logger.setLevel(log_settings.level)

        # Only add handler if none exists
        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(logging.Formatter(log_settings.format))
            logger.addHandler(handler)

        _LoggerHolder.instance = logger

    return _LoggerHolder.instance


def debug(msg: str) -> None:
    """Log a debug message."""
    get_logger().debug(msg)


def info(msg: str) -> None:
    """Log an info message."""
    get_logger().info(msg)


def warn(msg: str) -> None:
    """Log a warning message. Never raises exceptions.

    Parameters
    ----------
    msg : str
        The warning message to log.
    """
    get_logger().warning(msg)


def error(msg: str) -> None:
    """Log an error message. Never raises exceptions.

    Parameters
    ----------
    msg : str
        The error message to log.
    """
    get_logger().error(msg)


def exception(msg: str) -> None:
    """Log an exception with full traceback.

    Call this from within an except block.

    Parameters
    ----------
    msg : str
        The error message to log alongside the traceback.
    """
    get_logger().exception(msg)


def set_level(level: int | str) -> None:
    """Set the logging level.

    Parameters
    ----------
    level : int or str
        The logging level (e.g., logging.DEBUG, "DEBUG").
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    get_logger().setLevel(level)


def enable_debug() -> None:
    """Enable debug logging for every oauthcore component."""
    set_level(logging.DEBUG)


# Keys whose values must never reach a log line
_SENSITIVE_KEYS = frozenset(
    {
        "code",
        "token",
        "secret",
        "password",
        "verifier",
        "credential",
        "assertion",
    }
)

REDACTED = "[REDACTED]"


def is_sensitive_key(key: str) -> bool:
    """Return whether ``key`` names a secret-bearing field."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


def redact_sensitive_data(
    data: dict[str, Any] | list[Any] | str | None, max_depth: int = 5
) -> dict[str, Any] | list[Any] | str | None:
    """Redact sensitive values from data for safe logging.

    Recursively traverses dicts/lists and replaces values for keys that
    contain a sensitive pattern (``code``, ``token``, ``verifier``, ...)
    with ``"[REDACTED]"``.

    Parameters
    ----------
    data : dict or list or str or None
        The data to redact.
    max_depth : int, optional
        Maximum recursion depth (default: 5).

    Returns
    -------
    dict or list or str or None
        A copy of the data with sensitive values redacted.
    """
    if max_depth <= 0:
        return "[MAX_DEPTH]"

    if data is None:
        return None

    if isinstance(data, dict):
        result: dict[str, Any] = {}
        for k, v in data.items():
            if is_sensitive_key(k if isinstance(k, str) else str(k)):
                result[k] = REDACTED
            else:
                result[k] = redact_sensitive_data(v, max_depth - 1)
        return result

    if isinstance(data, list):
        return [redact_sensitive_data(item, max_depth - 1) for item in data]

    return data
