"""Soft configuration checks that warn instead of failing."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check a raw configuration for settings that are valid but suspicious.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    delivery = config_dict.get("delivery", {})
    if isinstance(delivery, dict):
        workers = delivery.get("max_concurrent_sends", 20)
        if isinstance(workers, int) and workers > 50:
            warning_messages.append(
                f"High max_concurrent_sends ({workers}) may hit messaging provider rate limits"
            )

    escalation = config_dict.get("escalation", {})
    if isinstance(escalation, dict):
        if escalation.get("enabled", True) is False:
            warning_messages.append(
                "Escalation is disabled; unclaimed offers will not be re-notified"
            )

        thresholds = escalation.get("thresholds_minutes", [])
        if isinstance(thresholds, list) and thresholds:
            first = thresholds[0]
            if isinstance(first, int) and 0 < first < 5:
                warning_messages.append(
                    f"First escalation threshold ({first}m) is shorter than a typical poll interval"
                )

        poll_interval = escalation.get("poll_interval", "5m")
        if isinstance(poll_interval, str) and poll_interval.strip().lower() in ("1m", "pt1m"):
            warning_messages.append(
                f"Short poll_interval ({poll_interval}) queries open offers every minute"
            )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages using Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
