from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_ENV_FILE_ENV = "RUUVI_ENV_FILE"
_DATABASE_URL_ENV = "DATABASE_URL"
_TAGS_ENV = "RUUVI_TAGS"
_TAG_PREFIX = "RUUVI_TAG_"
_WINDOW_ENV = "COLLECTION_WINDOW_SECONDS"
_POLL_INTERVAL_ENV = "POLL_INTERVAL_SECONDS"
_SCAN_DURATION_ENV = "SCAN_DURATION_SECONDS"
_MAX_ATTEMPTS_ENV = "DB_MAX_ATTEMPTS"
_RETRY_DELAY_ENV = "DB_RETRY_DELAY_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


class ConfigurationError(RuntimeError):
    """Raised when the service cannot start with the current environment."""


@dataclass(frozen=True)
class Settings:
    tags: Mapping[str, str]
    database_url: str
    window_seconds: float = 1800.0
    poll_interval_seconds: float = 30.0
    scan_duration_seconds: float = 20.0
    db_max_attempts: int = 100
    db_retry_delay_seconds: float = 5.0
    log_level: str = "INFO"

    def sensor_name(self, sensor_mac: str) -> Optional[str]:
        return self.tags.get(sensor_mac.upper())


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    return _read_str_env(_LOG_LEVEL_ENV, default).upper()


def parse_tag_pairs(raw: str) -> Dict[str, str]:
    """Parse ``MAC=Name,MAC=Name`` into a registry keyed by uppercase MAC."""
    tags: Dict[str, str] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        mac, sep, name = pair.partition("=")
        mac, name = mac.strip(), name.strip()
        if not sep or not mac or not name:
            logger.warning("Ignoring malformed tag entry %r", pair)
            continue
        tags[mac.upper()] = name
    return tags


def _read_legacy_tags() -> Dict[str, str]:
    # RUUVI_TAG_<N>_MAC / RUUVI_TAG_<N>_NAME
    tags: Dict[str, str] = {}
    for key, value in os.environ.items():
        if not (key.startswith(_TAG_PREFIX) and key.endswith("_MAC")):
            continue
        index = key[len(_TAG_PREFIX):-len("_MAC")]
        name = os.getenv(f"{_TAG_PREFIX}{index}_NAME", "").strip()
        mac = value.strip()
        if mac and name:
            tags[mac.upper()] = name
    return tags


def _read_tags() -> Dict[str, str]:
    raw = os.getenv(_TAGS_ENV)
    if raw is not None:
        return parse_tag_pairs(raw)
    return _read_legacy_tags()


def _load_env_file() -> None:
    env_file = os.getenv(_ENV_FILE_ENV, ".env")
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)


@lru_cache
def get_settings() -> Settings:
    _load_env_file()

    database_url = _read_str_env(_DATABASE_URL_ENV, "")
    if not database_url:
        raise ConfigurationError(f"{_DATABASE_URL_ENV} environment variable not set")

    tags = _read_tags()
    if not tags:
        raise ConfigurationError(
            "No RuuviTag sensors configured. Set RUUVI_TAGS or "
            "RUUVI_TAG_<N>_MAC/RUUVI_TAG_<N>_NAME environment variables."
        )

    return Settings(
        tags=tags,
        database_url=database_url,
        window_seconds=_read_positive_float(_WINDOW_ENV, 1800.0),
        poll_interval_seconds=_read_positive_float(_POLL_INTERVAL_ENV, 30.0),
        scan_duration_seconds=_read_positive_float(_SCAN_DURATION_ENV, 20.0),
        db_max_attempts=_read_positive_int(_MAX_ATTEMPTS_ENV, 100),
        db_retry_delay_seconds=_read_positive_float(_RETRY_DELAY_ENV, 5.0),
        log_level=_read_log_level("INFO"),
    )
