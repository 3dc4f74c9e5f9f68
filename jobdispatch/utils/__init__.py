"""Utility functions for time handling."""

from .timestamps import (
    ensure_utc,
    format_timestamp,
    minutes_between,
    parse_iso_datetime,
    resolve_timezone,
    utc_now,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "parse_iso_datetime",
    "format_timestamp",
    "minutes_between",
    "resolve_timezone",
]
