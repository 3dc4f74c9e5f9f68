"""Integration tests for configuration module."""

import warnings
from pathlib import Path

import pytest

from jobdispatch.config import (
    ConfigurationError,
    EscalationConfig,
    Locale,
    load_config,
    parse_recipient_ids,
)
from jobdispatch.config.duration import DurationParseError, parse_duration, validate_duration_range
from jobdispatch.config.environment import DEFAULT_DATABASE_URL, load_environment_config
from jobdispatch.config.exceptions import missing_channel_token
from jobdispatch.config.validators import check_for_warnings


# Test fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"


class TestConfigurationLoading:
    """Test configuration loading from YAML files."""

    def test_load_valid_config(self, mock_env_vars):
        """Test loading a valid configuration file."""
        config_path = FIXTURES_DIR / "valid_config.yaml"
        app_config, env_config = load_config(config_path)

        # Verify delivery settings
        assert app_config.delivery.api_base_url == "https://api.example.com/v2/bot/message"
        assert app_config.delivery.batch_size == 200
        assert app_config.delivery.max_concurrent_sends == 8
        assert app_config.delivery.request_timeout == 15

        # Verify escalation
        assert app_config.escalation.poll_interval == "10m"
        assert app_config.escalation.poll_interval_seconds == 600
        assert app_config.escalation.thresholds_minutes == [20, 45, 90]
        assert app_config.escalation.lease_seconds == 180

        # Verify notifications
        assert app_config.notifications.default_locale == "th"
        assert app_config.notifications.operator_locale == "en"
        assert app_config.notifications.display_timezone == "Asia/Bangkok"

        # Verify logging config
        assert app_config.logging.level == "INFO"
        assert app_config.logging.format == "key-value"

        # Verify environment
        assert env_config.channel_access_token == "test-token"
        assert env_config.operator_recipient_ids == ["op-1", "op-2"]

    def test_load_minimal_config(self, mock_env_vars):
        """Test loading a minimal configuration with defaults."""
        config_path = FIXTURES_DIR / "minimal_config.yaml"
        app_config, _ = load_config(config_path)

        assert app_config.delivery.batch_size == 500
        assert app_config.escalation.poll_interval == "5m"
        assert app_config.escalation.poll_interval_seconds == 300
        assert app_config.escalation.thresholds_minutes == [15, 30, 60]
        assert app_config.notifications.default_locale == Locale.EN
        assert app_config.notifications.display_timezone == "UTC"
        assert app_config.logging.level == "INFO"

    def test_load_empty_config(self, tmp_path, mock_env_vars):
        """Test an empty file yields the defaults for every section."""
        empty = tmp_path / "empty.yaml"
        empty.write_text("")

        app_config, _ = load_config(empty)

        assert app_config.escalation.enabled is True
        assert app_config.escalation.max_level == 3

    def test_load_iso8601_duration_config(self, mock_env_vars):
        """Test loading config with ISO-8601 duration format."""
        config_path = FIXTURES_DIR / "iso8601_duration_config.yaml"
        app_config, _ = load_config(config_path)

        assert app_config.escalation.poll_interval == "PT15M"
        assert app_config.escalation.poll_interval_seconds == 900

    def test_config_file_not_found(self, mock_env_vars):
        """Test error when config file doesn't exist."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(Path("nonexistent.yaml"))

        assert "not found" in str(exc_info.value).lower()
        assert "config.example.yaml" in str(exc_info.value)

    def test_invalid_yaml_syntax(self, tmp_path, mock_env_vars):
        """Test error when YAML syntax is invalid."""
        invalid_yaml = tmp_path / "invalid.yaml"
        invalid_yaml.write_text("escalation:\n  poll_interval: '5m\n    invalid yaml")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(invalid_yaml)

        assert "parse" in str(exc_info.value).lower()

    def test_top_level_must_be_mapping(self, tmp_path, mock_env_vars):
        """Test a YAML list at the top level is rejected."""
        listing = tmp_path / "list.yaml"
        listing.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(listing)


class TestConfigurationValidation:
    """Test configuration validation rules."""

    def test_thresholds_must_increase(self, mock_env_vars):
        """Test error when escalation thresholds are out of order."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(FIXTURES_DIR / "invalid_thresholds.yaml")

        assert "strictly increasing" in str(exc_info.value)

    def test_urgent_level_within_thresholds(self, mock_env_vars):
        """Test error when urgent_level exceeds the number of levels."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(FIXTURES_DIR / "invalid_urgent_level.yaml")

        assert "urgent_level" in str(exc_info.value)

    def test_batch_size_above_provider_limit(self, mock_env_vars):
        """Test error when the multicast batch exceeds 500."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(FIXTURES_DIR / "invalid_batch_size.yaml")

        assert "batch_size" in str(exc_info.value)

    def test_unknown_locale(self, mock_env_vars):
        """Test error when a locale is not supported."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(FIXTURES_DIR / "invalid_locale.yaml")

        assert "default_locale" in str(exc_info.value)

    def test_poll_interval_too_short(self, mock_env_vars):
        """Test error when the poll interval is below one minute."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(FIXTURES_DIR / "invalid_poll_interval.yaml")

        error_msg = str(exc_info.value)
        assert "short" in error_msg.lower() or "minimum" in error_msg.lower()

    def test_unknown_timezone(self, mock_env_vars):
        """Test error when the display timezone does not exist."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(FIXTURES_DIR / "invalid_timezone.yaml")

        assert "Unknown timezone" in str(exc_info.value)


class TestEscalationConfig:
    """Test escalation level computation."""

    @pytest.mark.parametrize("minutes,level", [
        (0, 0),
        (14, 0),
        (15, 1),
        (29, 1),
        (30, 2),
        (59, 2),
        (60, 3),
        (600, 3),
    ])
    def test_level_for(self, minutes, level):
        """Test the level is the number of thresholds reached."""
        assert EscalationConfig().level_for(minutes) == level

    def test_max_level(self):
        """Test the last level equals the number of thresholds."""
        assert EscalationConfig(thresholds_minutes=[10, 20]).max_level == 2


class TestConfigurationWarnings:
    """Test soft configuration warnings."""

    def test_disabled_escalation_warns(self):
        """Test disabling escalation produces a warning."""
        messages = check_for_warnings({"escalation": {"enabled": False}})

        assert any("disabled" in message for message in messages)

    def test_high_concurrency_warns(self):
        """Test a very large worker pool produces a warning."""
        messages = check_for_warnings({"delivery": {"max_concurrent_sends": 80}})

        assert any("max_concurrent_sends" in message for message in messages)

    def test_clean_config_has_no_warnings(self):
        """Test defaults produce no warnings."""
        assert check_for_warnings({}) == []

    def test_warnings_emitted_on_load(self, tmp_path, mock_env_vars):
        """Test load_config emits warnings through the warnings module."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("escalation:\n  enabled: false\n")

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            load_config(config_file)

        assert any("disabled" in str(w.message) for w in caught)


class TestDurationParsing:
    """Test duration parsing utilities."""

    def test_parse_human_readable_minutes(self):
        """Test parsing minutes in human-readable format."""
        assert parse_duration("5m") == 300
        assert parse_duration("15m") == 900
        assert parse_duration("60m") == 3600

    def test_parse_human_readable_hours(self):
        """Test parsing hours in human-readable format."""
        assert parse_duration("1h") == 3600
        assert parse_duration("24h") == 86400

    def test_parse_human_readable_seconds(self):
        """Test parsing seconds in human-readable format."""
        assert parse_duration("30s") == 30
        assert parse_duration("300s") == 300

    def test_parse_human_readable_days(self):
        """Test parsing days in human-readable format."""
        assert parse_duration("1d") == 86400
        assert parse_duration("2d") == 172800

    def test_parse_human_readable_combined(self):
        """Test parsing combined units."""
        assert parse_duration("1h30m") == 5400
        assert parse_duration("2h15m") == 8100

    def test_parse_iso8601(self):
        """Test parsing ISO-8601 durations."""
        assert parse_duration("PT5M") == 300
        assert parse_duration("PT1H") == 3600
        assert parse_duration("PT1H30M") == 5400
        assert parse_duration("P1D") == 86400

    def test_parse_invalid_format(self):
        """Test error on invalid duration format."""
        with pytest.raises(DurationParseError):
            parse_duration("invalid")

        with pytest.raises(DurationParseError):
            parse_duration("15x")

    def test_parse_empty_and_zero(self):
        """Test error on empty and zero durations."""
        with pytest.raises(DurationParseError):
            parse_duration("")

        with pytest.raises(DurationParseError):
            parse_duration("0m")

    def test_validate_duration_range_too_short(self):
        """Test validation error when duration is too short."""
        with pytest.raises(DurationParseError) as exc_info:
            validate_duration_range(30, min_seconds=60)

        assert "short" in str(exc_info.value).lower()

    def test_validate_duration_range_too_long(self):
        """Test validation error when duration is too long."""
        with pytest.raises(DurationParseError) as exc_info:
            validate_duration_range(172800, max_seconds=86400)

        assert "long" in str(exc_info.value).lower()

    def test_validate_duration_range_valid(self):
        """Test validation passes for valid duration."""
        validate_duration_range(300, min_seconds=60, max_seconds=86400)


class TestEnvironmentVariables:
    """Test environment variable loading and validation."""

    def test_load_valid_environment_config(self, mock_env_vars):
        """Test loading valid environment configuration."""
        env_config = load_environment_config()

        assert env_config.channel_access_token == "test-token"
        assert env_config.channel_configured
        assert env_config.staff_app_base_url == "https://staff.example.com"
        assert env_config.operator_recipient_ids == ["op-1", "op-2"]

    def test_missing_optional_env_vars(self, monkeypatch):
        """Test that every variable is optional."""
        for name in (
            "CHANNEL_ACCESS_TOKEN",
            "STAFF_APP_BASE_URL",
            "OPERATOR_RECIPIENT_IDS",
            "LOG_LEVEL",
            "DATABASE_URL",
        ):
            monkeypatch.delenv(name, raising=False)

        env_config = load_environment_config()

        assert not env_config.channel_configured
        assert env_config.staff_app_base_url is None
        assert env_config.operator_recipient_ids == []
        assert env_config.log_level is None
        assert env_config.database_url == DEFAULT_DATABASE_URL

    def test_invalid_base_url(self, monkeypatch):
        """Test error when STAFF_APP_BASE_URL is not http(s)."""
        monkeypatch.setenv("STAFF_APP_BASE_URL", "staff.example.com")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "STAFF_APP_BASE_URL" in str(exc_info.value)

    def test_invalid_log_level(self, monkeypatch):
        """Test error when LOG_LEVEL is unknown."""
        monkeypatch.delenv("STAFF_APP_BASE_URL", raising=False)
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "LOG_LEVEL" in str(exc_info.value)

    def test_optional_env_vars(self, mock_env_vars, monkeypatch):
        """Test that optional environment variables are normalized."""
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")

        env_config = load_environment_config()

        assert env_config.log_level == "DEBUG"
        assert env_config.database_url == "sqlite:///:memory:"

    def test_parse_recipient_ids(self):
        """Test splitting, trimming and de-duplicating recipient ids."""
        assert parse_recipient_ids(" op-1, op-2,,op-1 ") == ["op-1", "op-2"]
        assert parse_recipient_ids(None) == []


# Pytest fixtures
@pytest.fixture
def mock_env_vars(monkeypatch):
    """Mock environment variables for testing."""
    monkeypatch.setenv("CHANNEL_ACCESS_TOKEN", "test-token")
    monkeypatch.setenv("STAFF_APP_BASE_URL", "https://staff.example.com/")
    monkeypatch.setenv("OPERATOR_RECIPIENT_IDS", "op-1,op-2")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)


class TestConfigurationError:
    """Test ConfigurationError rendering."""

    def test_message_only(self):
        """Test an error without details renders as its message."""
        error = ConfigurationError("Config file not found")

        assert str(error) == "Config file not found"
        assert error.errors == []
        assert error.suggestions == []

    def test_errors_numbered_and_suggestions_listed(self):
        """Test errors are numbered and suggestions bulleted after them."""
        error = ConfigurationError(
            "Configuration validation failed",
            errors=["escalation -> urgent_level: too high", "delivery -> batch_size: too big"],
            suggestions=["Lower urgent_level"],
        )

        text = str(error)
        assert "  1. escalation -> urgent_level: too high" in text
        assert "  2. delivery -> batch_size: too big" in text
        assert text.index("Validation Errors:") < text.index("Suggestions:")
        assert "  - Lower urgent_level" in text

    def test_missing_channel_token(self):
        """Test the missing token error names the variable to set."""
        error = missing_channel_token()

        assert "CHANNEL_ACCESS_TOKEN is empty or unset" in error.errors
        assert any("CHANNEL_ACCESS_TOKEN" in s for s in error.suggestions)
