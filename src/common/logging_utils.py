"""Centralized logging helpers.

Provides the handler setup used by the CLI plus the small utilities the
library modules use to attach structured context to log records.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from constants import Constants

_SENSITIVE_QUERY_KEYS = {"token", "access_token", "auth", "key", "signature", "x-amz-signature"}
_HANDLER_MARKER = "_plugin_updater_handler"


def configure_logging() -> None:
    """Install the project stream handler on the root logger.

    The level comes from the PLUGIN_UPDATER_LOG_LEVEL environment variable
    (default INFO). Calling this more than once does not add handlers.
    """
    root = logging.getLogger()
    level_name = os.environ.get(Constants.ENV_LOG_LEVEL, "INFO").upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for handler in root.handlers:
        if getattr(handler, _HANDLER_MARKER, False):
            return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
    setattr(handler, _HANDLER_MARKER, True)
    root.addHandler(handler)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by logger."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**kwargs: Any) -> Dict[str, Any]:
    """Build an ``extra=`` mapping for structured log records.

    None values are dropped so records only carry meaningful fields.
    """
    return {k: v for k, v in kwargs.items() if v is not None}


def safe_url(url: str) -> str:
    """Return url with credentials and sensitive query values masked."""
    if not url:
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid-url>"

    netloc = parts.netloc
    if "@" in netloc:
        netloc = "***@" + netloc.rsplit("@", 1)[1]

    query = parts.query
    if query:
        pairs = [
            (k, "***" if k.lower() in _SENSITIVE_QUERY_KEYS else v)
            for k, v in parse_qsl(query, keep_blank_values=True)
        ]
        query = urlencode(pairs)

    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


class Timer:
    """Context manager measuring elapsed wall time."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *exc: Any) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> int:
        """Elapsed milliseconds, measured up to now while still inside the block."""
        end = self._end if self._end is not None else time.perf_counter()
        return int((end - self._start) * 1000)
