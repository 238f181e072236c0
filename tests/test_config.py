"""Tests for influxreporter configuration system."""

import os
from unittest.mock import patch

from pydantic import ValidationError
import pytest

from influxreporter.config import (
    DEFAULT_CONFIG,
    BackoffConfig,
    ReporterConfig,
    build_config,
    deep_merge,
    expand_env_vars,
)
from influxreporter.errors import ConfigValidationError


class TestExpandEnvVars:
    """Tests for environment variable expansion."""

    def test_expand_simple_var(self) -> None:
        """Test expanding a simple environment variable."""
        with patch.dict(os.environ, {"TEST_VAR": "hello"}):
            assert expand_env_vars("${TEST_VAR}") == "hello"

    def test_expand_var_in_string(self) -> None:
        """Test expanding env var within a string."""
        with patch.dict(os.environ, {"INFLUX_HOST": "db.local"}):
            assert expand_env_vars("http://${INFLUX_HOST}:8086") == "http://db.local:8086"

    def test_expand_with_default(self) -> None:
        """Test ${VAR:-default} syntax."""
        env = os.environ.copy()
        env.pop("UNSET_VAR", None)
        with patch.dict(os.environ, env, clear=True):
            assert expand_env_vars("${UNSET_VAR:-default_value}") == "default_value"

    def test_expand_unset_var_no_default(self) -> None:
        """Test that unset vars without default are kept."""
        env = os.environ.copy()
        env.pop("UNSET_VAR", None)
        with patch.dict(os.environ, env, clear=True):
            assert expand_env_vars("${UNSET_VAR}") == "${UNSET_VAR}"

    def test_expand_nested(self) -> None:
        """Test expansion in nested dicts and lists."""
        with patch.dict(os.environ, {"REGION": "eu"}):
            result = expand_env_vars({"tags": {"region": "${REGION}"}, "list": ["${REGION}"]})

        assert result == {"tags": {"region": "eu"}, "list": ["eu"]}

    def test_expand_non_string(self) -> None:
        """Test that non-strings pass through."""
        assert expand_env_vars(42) == 42
        assert expand_env_vars(None) is None


class TestDeepMerge:
    """Tests for deep merge."""

    def test_nested_merge(self) -> None:
        """Test merging nested dicts."""
        base = {"health_check": {"base_delay": 5.0, "max_delay": 60.0}}
        override = {"health_check": {"max_delay": 30.0}}

        result = deep_merge(base, override)

        assert result == {"health_check": {"base_delay": 5.0, "max_delay": 30.0}}

    def test_base_unchanged(self) -> None:
        """Test that the base dict is not modified."""
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})

        assert base == {"a": {"b": 1}}


class TestBackoffConfig:
    """Tests for BackoffConfig."""

    def test_defaults(self) -> None:
        """Test default values."""
        config = BackoffConfig()

        assert config.base_delay == 5.0
        assert config.max_delay == 60.0
        assert config.multiplier == 2.0
        assert config.jitter == 0.1

    def test_max_below_base(self) -> None:
        """Test that max_delay must not be below base_delay."""
        with pytest.raises(ValidationError, match="max_delay"):
            BackoffConfig(base_delay=10, max_delay=5)

    def test_jitter_bounds(self) -> None:
        """Test that jitter is a fraction."""
        with pytest.raises(ValidationError):
            BackoffConfig(jitter=1.5)

    def test_extra_forbidden(self) -> None:
        """Test that unknown keys are rejected."""
        with pytest.raises(ValidationError):
            BackoffConfig(retries=3)  # type: ignore[call-arg]


class TestReporterConfig:
    """Tests for ReporterConfig."""

    def test_defaults(self) -> None:
        """Test defaults with only an address."""
        config = ReporterConfig(address="http://localhost:8086")

        assert config.database == ""
        assert config.interval == 10.0
        assert config.precision == "ns"
        assert config.udp_payload_size == 1024
        assert config.ping_timeout == 1.0
        assert config.write_timeout == 5.0
        assert config.tags == {}

    def test_address_required(self) -> None:
        """Test that the address is required."""
        with pytest.raises(ValidationError):
            ReporterConfig()  # type: ignore[call-arg]

    def test_password_hidden_in_repr(self) -> None:
        """Test that the password is not shown in repr."""
        config = ReporterConfig(address="http://localhost:8086", password="hunter2")

        assert "hunter2" not in repr(config)

    def test_frozen(self) -> None:
        """Test that configs are immutable."""
        config = ReporterConfig(address="http://localhost:8086")

        with pytest.raises(ValidationError):
            config.interval = 1.0  # type: ignore[misc]


class TestBuildConfig:
    """Tests for build_config."""

    def test_defaults_match(self) -> None:
        """Test that defaults come from DEFAULT_CONFIG."""
        config = build_config(address="udp://localhost:8089")

        assert config.interval == DEFAULT_CONFIG["interval"]
        assert config.health_check.base_delay == DEFAULT_CONFIG["health_check"]["base_delay"]

    def test_settings_and_overrides(self) -> None:
        """Test that overrides win over settings."""
        config = build_config(
            {"address": "http://a:8086", "interval": 30, "health_check": {"max_delay": 120}},
            interval=15,
        )

        assert config.address == "http://a:8086"
        assert config.interval == 15.0
        assert config.health_check.max_delay == 120.0
        assert config.health_check.base_delay == 5.0

    def test_none_overrides_ignored(self) -> None:
        """Test that None overrides keep the settings value."""
        config = build_config({"address": "http://a:8086", "database": "db"}, database=None)

        assert config.database == "db"

    def test_env_expansion(self) -> None:
        """Test that env references are expanded."""
        with patch.dict(os.environ, {"INFLUX_PASSWORD": "s3cret"}):
            config = build_config(address="http://a:8086", password="${INFLUX_PASSWORD}")

        assert config.password == "s3cret"

    def test_missing_address(self) -> None:
        """Test the error for a missing address."""
        with pytest.raises(ConfigValidationError, match="address") as exc_info:
            build_config()

        assert exc_info.value.suggestion is not None

    def test_unknown_key_suggestion(self) -> None:
        """Test that unknown keys get a close-match suggestion."""
        with pytest.raises(ConfigValidationError) as exc_info:
            build_config({"address": "http://a:8086", "intervl": 5})

        assert "intervl" in exc_info.value.message
        assert exc_info.value.suggestion == "Did you mean 'interval'?"

    def test_unknown_nested_key_suggestion(self) -> None:
        """Test suggestions for health_check keys."""
        with pytest.raises(ConfigValidationError) as exc_info:
            build_config({"address": "http://a:8086", "health_check": {"base_dely": 1}})

        assert exc_info.value.suggestion == "Did you mean 'base_delay'?"

    def test_invalid_precision(self) -> None:
        """Test the error for an unknown precision."""
        with pytest.raises(ConfigValidationError, match="precision") as exc_info:
            build_config(address="http://a:8086", precision="m")

        assert exc_info.value.suggestion is not None
        assert "ns" in exc_info.value.suggestion

    def test_out_of_range(self) -> None:
        """Test the error for a non-positive interval."""
        with pytest.raises(ConfigValidationError, match="out of range") as exc_info:
            build_config(address="http://a:8086", interval=0)

        assert exc_info.value.suggestion == "Value must be greater than 0"

    def test_lower_bound_suggestion(self) -> None:
        """Test the suggestion for a value below a minimum."""
        with pytest.raises(ConfigValidationError, match="out of range") as exc_info:
            build_config(address="udp://a:8089", udp_payload_size=10)

        assert exc_info.value.suggestion == "Value must be at least 64"

    def test_upper_bound_suggestion(self) -> None:
        """Test the suggestion for a float above a maximum."""
        with pytest.raises(ConfigValidationError) as exc_info:
            build_config(address="http://a:8086", write_timeout=301)

        assert exc_info.value.suggestion == "Value must be at most 300"

    def test_invalid_number(self) -> None:
        """Test the error for a non-numeric value."""
        with pytest.raises(ConfigValidationError, match="Invalid number"):
            build_config(address="http://a:8086", write_timeout="soon")
