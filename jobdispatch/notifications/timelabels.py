"""Human-readable time labels for reminder and escalation messages.

Two rules on purpose:

- ``format_time_label`` (time *until* a job) is coarse: the remainder below
  the largest unit is dropped, so 75 minutes reads "1 hour".
- ``format_pending_label`` (time a job has been *waiting*) keeps the
  remainder, so 75 minutes reads "1 hour 15 minutes".
"""

from typing import Dict, Tuple

from jobdispatch.domain.exceptions import ValidationError

SUPPORTED_LOCALES = ("th", "en", "cn")
DEFAULT_LOCALE = "en"

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 1440

# (singular, plural) per unit
_UNITS: Dict[str, Dict[str, Tuple[str, str]]] = {
    "en": {
        "minute": ("minute", "minutes"),
        "hour": ("hour", "hours"),
        "day": ("day", "days"),
    },
    "th": {
        "minute": ("นาที", "นาที"),
        "hour": ("ชั่วโมง", "ชั่วโมง"),
        "day": ("วัน", "วัน"),
    },
    "cn": {
        "minute": ("分钟", "分钟"),
        "hour": ("小时", "小时"),
        "day": ("天", "天"),
    },
}

# Chinese labels are written without spaces
_SEPARATOR = {"en": " ", "th": " ", "cn": ""}


def resolve_locale(locale) -> str:
    """Normalize a locale value; anything unrecognized falls back to English.

    Example:
        >>> resolve_locale("TH")
        'th'
        >>> resolve_locale("fr")
        'en'
    """
    value = getattr(locale, "value", locale)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in SUPPORTED_LOCALES:
            return normalized
    return DEFAULT_LOCALE


def format_quantity(value: int, unit: str, locale="en") -> str:
    """Format a count with its unit, e.g. ``1 hour`` / ``2 hours`` / ``2小时``."""
    locale = resolve_locale(locale)
    singular, plural = _UNITS[locale][unit]
    word = singular if value == 1 else plural
    return f"{value}{_SEPARATOR[locale]}{word}"


def format_minutes(minutes: int, locale="en") -> str:
    """Format a duration as plain minutes (``90 minutes``)."""
    return format_quantity(minutes, "minute", locale)


def format_time_label(minutes_before: int, locale="en") -> str:
    """Label for how long until something happens, truncated to one unit.

    Args:
        minutes_before: Whole minutes until the event (>= 0)
        locale: th, en or cn (unrecognized values use en)

    Returns:
        ``"{m} minutes"`` below one hour, ``"{h} hour(s)"`` below one day,
        otherwise ``"{d} day(s)"``

    Raises:
        ValidationError: If minutes_before is negative

    Example:
        >>> format_time_label(120)
        '2 hours'
        >>> format_time_label(75)
        '1 hour'
    """
    _check_non_negative(minutes_before)
    if minutes_before < MINUTES_PER_HOUR:
        return format_quantity(minutes_before, "minute", locale)
    if minutes_before < MINUTES_PER_DAY:
        return format_quantity(minutes_before // MINUTES_PER_HOUR, "hour", locale)
    return format_quantity(minutes_before // MINUTES_PER_DAY, "day", locale)


def format_pending_label(minutes_pending: int, locale="en") -> str:
    """Label for how long a job has been waiting, carrying leftover minutes.

    Example:
        >>> format_pending_label(75)
        '1 hour 15 minutes'
        >>> format_pending_label(45)
        '45 minutes'
    """
    _check_non_negative(minutes_pending)
    if minutes_pending < MINUTES_PER_HOUR:
        return format_quantity(minutes_pending, "minute", locale)

    locale = resolve_locale(locale)
    hours, minutes = divmod(minutes_pending, MINUTES_PER_HOUR)
    return (
        f"{format_quantity(hours, 'hour', locale)}"
        f"{_SEPARATOR[locale]}"
        f"{format_quantity(minutes, 'minute', locale)}"
    )


def _check_non_negative(minutes: int) -> None:
    if minutes < 0:
        raise ValidationError(f"Minute count must not be negative, got: {minutes}")
