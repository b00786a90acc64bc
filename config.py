"""
config.py  —  Runtime configuration for the playlog dashboard

All environment parsing lives here; the pipeline, feed and dashboard take a
DashboardConfig instead of reading os.environ themselves.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_PRIMARY_STATION = "Metropolitana FM"
DEFAULT_UTC_OFFSET_HOURS = 3
DEFAULT_REFRESH_SECONDS = 30
DEFAULT_PAGE_SIZE = 15
DEFAULT_REQUEST_TIMEOUT = 10.0


class ConfigError(ValueError):
    """Raised for invalid runtime configuration."""


@dataclass(frozen=True)
class DashboardConfig:
    """
    Validated runtime configuration.

    feed_url          published CSV export of the playlog sheet; None runs on SAMPLE_FEED
    primary_station   station used when a row has no station cell
    utc_station       station whose feed reports UTC instead of local time
    utc_offset_hours  hours subtracted from utc_station timestamps
    refresh_seconds   background refresh interval
    page_size         initial visible rows and "load more" increment
    request_timeout   HTTP timeout for feed and cover-art requests
    delimiter         cell separator of the feed
    """

    feed_url: Optional[str] = None
    primary_station: str = DEFAULT_PRIMARY_STATION
    utc_station: Optional[str] = None
    utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS
    refresh_seconds: int = DEFAULT_REFRESH_SECONDS
    page_size: int = DEFAULT_PAGE_SIZE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    delimiter: str = ","

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "DashboardConfig":
        """
        Build config from PLAYLOG_* environment variables.
        Raises ConfigError when a value cannot be used.
        """
        env = os.environ if environ is None else environ

        delimiter = env.get("PLAYLOG_DELIMITER", ",")
        if len(delimiter) != 1:
            raise ConfigError(
                f"Invalid PLAYLOG_DELIMITER value: expected a single character, "
                f"got '{delimiter}'. Use ',' or ';'."
            )

        return cls(
            feed_url=_optional(env.get("PLAYLOG_FEED_URL")),
            primary_station=(env.get("PLAYLOG_PRIMARY_STATION") or "").strip()
            or DEFAULT_PRIMARY_STATION,
            utc_station=_optional(env.get("PLAYLOG_UTC_STATION")),
            utc_offset_hours=_parse_int(
                env, "PLAYLOG_UTC_OFFSET_HOURS", DEFAULT_UTC_OFFSET_HOURS, minimum=0
            ),
            refresh_seconds=_parse_int(
                env, "PLAYLOG_REFRESH_SECONDS", DEFAULT_REFRESH_SECONDS, minimum=1
            ),
            page_size=_parse_int(env, "PLAYLOG_PAGE_SIZE", DEFAULT_PAGE_SIZE, minimum=1),
            request_timeout=_parse_float(
                env, "PLAYLOG_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT
            ),
            delimiter=delimiter,
        )


def _optional(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value.strip()


def _parse_int(env, name: str, default: int, minimum: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as error:
        raise ConfigError(
            f"Invalid {name} value: expected integer, got '{raw}'. "
            f"Set {name} to a whole number or unset it to use {default}."
        ) from error
    if value < minimum:
        raise ConfigError(f"Invalid {name} value: must be >= {minimum}, got {value}.")
    return value


def _parse_float(env, name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as error:
        raise ConfigError(
            f"Invalid {name} value: expected a number of seconds, got '{raw}'."
        ) from error
    if value <= 0:
        raise ConfigError(f"Invalid {name} value: must be positive, got {value}.")
    return value
