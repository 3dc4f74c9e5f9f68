"""Environment variable loading and validation."""

import os
from typing import List, Optional

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/job_dispatch.db"


class EnvironmentConfig:
    """Environment variable configuration holder.

    The channel access token is deliberately optional: without it the
    delivery client reports every send as failed instead of the service
    refusing to start.
    """

    def __init__(
        self,
        channel_access_token: Optional[str] = None,
        staff_app_base_url: Optional[str] = None,
        operator_recipient_ids: Optional[List[str]] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
    ):
        self.channel_access_token = channel_access_token or None
        self.staff_app_base_url = (
            staff_app_base_url.rstrip("/") if staff_app_base_url else None
        )
        self.operator_recipient_ids = list(operator_recipient_ids or [])
        self.log_level = log_level
        self.database_url = database_url or DEFAULT_DATABASE_URL

    @property
    def channel_configured(self) -> bool:
        return bool(self.channel_access_token)


def parse_recipient_ids(raw: Optional[str]) -> List[str]:
    """Split a comma-separated recipient list, dropping blanks and duplicates."""
    if not raw:
        return []
    result = []
    for part in raw.split(","):
        recipient = part.strip()
        if recipient and recipient not in result:
            result.append(recipient)
    return result


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Optional environment variables:
    - CHANNEL_ACCESS_TOKEN: Messaging API bearer token (sending disabled if unset)
    - STAFF_APP_BASE_URL: Base URL of the staff app for job deep links
    - OPERATOR_RECIPIENT_IDS: Comma-separated operator recipient ids
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - DATABASE_URL: Database URL (default: sqlite:///./data/job_dispatch.db)

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If a variable is present but invalid
    """
    errors = []

    channel_access_token = (os.getenv("CHANNEL_ACCESS_TOKEN") or "").strip()
    staff_app_base_url = (os.getenv("STAFF_APP_BASE_URL") or "").strip()
    operator_recipient_ids = parse_recipient_ids(os.getenv("OPERATOR_RECIPIENT_IDS"))
    log_level = os.getenv("LOG_LEVEL")
    database_url = os.getenv("DATABASE_URL")

    if staff_app_base_url and not staff_app_base_url.startswith(("http://", "https://")):
        errors.append(
            f"Invalid STAFF_APP_BASE_URL: '{staff_app_base_url}'. Must start with http:// or https://"
        )

    if log_level:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if log_level.upper() not in valid_levels:
            errors.append(
                f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(valid_levels)}"
            )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your values",
                "STAFF_APP_BASE_URL should be the public URL of the staff app",
            ],
        )

    return EnvironmentConfig(
        channel_access_token=channel_access_token,
        staff_app_base_url=staff_app_base_url,
        operator_recipient_ids=operator_recipient_ids,
        log_level=log_level.upper() if log_level else None,
        database_url=database_url,
    )
