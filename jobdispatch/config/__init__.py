"""Configuration management for the job dispatch engine."""

from .environment import EnvironmentConfig, load_environment_config, parse_recipient_ids
from .exceptions import ConfigurationError
from .loader import load_config, parse_app_config
from .models import (
    MAX_MULTICAST_BATCH,
    AppConfig,
    DeliveryConfig,
    EscalationConfig,
    Locale,
    LogFormat,
    LoggingConfig,
    LogLevel,
    NotificationsConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "parse_app_config",
    "load_environment_config",
    "parse_recipient_ids",
    # Configuration models
    "AppConfig",
    "DeliveryConfig",
    "EscalationConfig",
    "NotificationsConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "MAX_MULTICAST_BATCH",
    # Enums
    "Locale",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
