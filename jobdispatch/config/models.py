"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from jobdispatch.utils.timestamps import resolve_timezone

from .duration import DurationParseError, parse_duration, validate_duration_range

# Messaging API hard limit on recipients per multicast call
MAX_MULTICAST_BATCH = 500


class Locale(str, Enum):
    """Languages the notification composer can render."""

    TH = "th"
    EN = "en"
    CN = "cn"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class DeliveryConfig(BaseModel):
    """Messaging channel settings."""

    api_base_url: str = Field(
        "https://api.line.me/v2/bot/message",
        min_length=1,
        description="Base URL of the messaging API (push and multicast endpoints)",
    )
    batch_size: int = Field(
        MAX_MULTICAST_BATCH,
        ge=1,
        le=MAX_MULTICAST_BATCH,
        description="Maximum recipients per multicast call",
    )
    max_concurrent_sends: int = Field(
        20, ge=1, le=100, description="Upper bound on in-flight channel calls"
    )
    request_timeout: int = Field(
        10, ge=1, le=120, description="Timeout for a single channel call (seconds)"
    )

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        stripped = v.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("api_base_url must start with http:// or https://")
        return stripped


class EscalationConfig(BaseModel):
    """Thresholds and cadence for re-notifying unclaimed offers."""

    enabled: bool = Field(True, description="Whether the periodic escalation pass runs")
    poll_interval: str = Field("5m", description="How often to look for unclaimed offers")
    thresholds_minutes: List[int] = Field(
        default_factory=lambda: [15, 30, 60],
        min_length=1,
        description="Minutes pending at which each escalation level fires",
    )
    urgent_level: int = Field(
        2, ge=1, description="First level whose message is worded as urgent"
    )
    lease_seconds: int = Field(
        120, ge=10, le=3600, description="How long a pass may hold an offer's escalation lease"
    )

    # Computed field
    poll_interval_seconds: Optional[int] = None

    @field_validator("poll_interval")
    @classmethod
    def validate_poll_interval(cls, v: str) -> str:
        try:
            seconds = parse_duration(v)
            validate_duration_range(seconds, min_seconds=60, max_seconds=86400)
            return v
        except DurationParseError as e:
            raise ValueError(str(e)) from e

    @field_validator("thresholds_minutes")
    @classmethod
    def validate_thresholds(cls, v: List[int]) -> List[int]:
        if any(minutes <= 0 for minutes in v):
            raise ValueError("Escalation thresholds must be positive minute counts")
        if any(later <= earlier for earlier, later in zip(v, v[1:])):
            raise ValueError("Escalation thresholds must be strictly increasing")
        return v

    @model_validator(mode="after")
    def validate_levels_and_compute_fields(self):
        if self.urgent_level > len(self.thresholds_minutes):
            raise ValueError(
                f"urgent_level {self.urgent_level} exceeds the "
                f"{len(self.thresholds_minutes)} configured thresholds"
            )
        self.poll_interval_seconds = parse_duration(self.poll_interval)
        return self

    @property
    def max_level(self) -> int:
        return len(self.thresholds_minutes)

    def level_for(self, minutes_pending: int) -> int:
        """Escalation level reached after the given minutes pending."""
        return sum(1 for threshold in self.thresholds_minutes if minutes_pending >= threshold)


class NotificationsConfig(BaseModel):
    """Message rendering settings."""

    default_locale: Locale = Field(Locale.EN, description="Locale for staff messages")
    operator_locale: Locale = Field(Locale.EN, description="Locale for operator messages")
    display_timezone: str = Field(
        "UTC", description="IANA timezone used for dates and times shown in messages"
    )

    model_config = {"use_enum_values": True}

    @field_validator("display_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        resolve_timezone(v)
        return v.strip() or "UTC"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for the job dispatch engine."""

    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    escalation: EscalationConfig = Field(default_factory=EscalationConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
