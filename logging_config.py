"""Process logging: UTC timestamps and sensor/retry context on every line."""

from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Sequence

CONTEXT_KEYS = (
    "sensor_mac",
    "sensor_name",
    "table",
    "attempt",
    "samples",
    "payload_length",
    "data_format",
    "wait_s",
    "reason",
)

# BLE backends and the database driver are chatty below WARNING.
LIBRARY_LOGGERS = ("bleak", "asyncpg")

_configured = False


class ContextualFormatter(logging.Formatter):
    """Appends ``extra=`` context as ``key=value`` pairs.

    Retry progress is folded into one field, ``attempt=3/100``, when the
    record carries ``max_attempts`` as well.
    """

    converter = time.gmtime

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self._extra_keys: Sequence[str] = tuple(extra_keys or CONTEXT_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={value}" for key, value in self._context(record) if value is not None
        )
        return f"{message} | {context}" if context else message

    def _context(self, record: logging.LogRecord):
        for key in self._extra_keys:
            value = getattr(record, key, None)
            if key == "attempt" and value is not None:
                limit = getattr(record, "max_attempts", None)
                if limit is not None:
                    value = f"{value}/{limit}"
            yield key, value


def build_logging_config(level: str | int = "INFO") -> Dict[str, Any]:
    library_level = "DEBUG" if level in (logging.DEBUG, "DEBUG") else "WARNING"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": "logging_config.ContextualFormatter",
                "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            }
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "contextual",
            }
        },
        "loggers": {name: {"level": library_level} for name in LIBRARY_LOGGERS},
        "root": {"handlers": ["stderr"], "level": level},
    }


def configure_logging(level: str | int = "INFO") -> None:
    """Install the process-wide logging setup once; later calls are ignored."""
    global _configured
    if _configured:
        return
    dictConfig(build_logging_config(level))
    _configured = True
