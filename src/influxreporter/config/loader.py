"""Configuration building and validation for influxreporter.

This module provides:
- Pydantic models for reporter configuration
- Merging of caller settings with defaults
- Environment variable expansion in config values
- Clear, user-friendly error messages for config issues
"""

from collections.abc import Mapping
from difflib import get_close_matches
import os
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from influxreporter.config.defaults import DEFAULT_CONFIG
from influxreporter.errors import ConfigValidationError

# Known valid configuration keys at each level for suggestions
VALID_TOP_LEVEL_KEYS = {
    "address",
    "database",
    "username",
    "password",
    "interval",
    "tags",
    "precision",
    "retention_policy",
    "udp_payload_size",
    "ping_timeout",
    "write_timeout",
    "health_check",
}

VALID_HEALTH_CHECK_KEYS = {
    "base_delay",
    "max_delay",
    "multiplier",
    "jitter",
}

# Environment variable pattern: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def _suggest_key(unknown_key: str, valid_keys: set[str]) -> str | None:
    """Suggest a similar valid key for an unknown key.

    Args:
        unknown_key: The key that was not recognized
        valid_keys: Set of valid key names

    Returns:
        A suggestion message, or None if no good match found
    """
    matches = get_close_matches(unknown_key, sorted(valid_keys), n=1, cutoff=0.6)
    if matches:
        return f"Did you mean '{matches[0]}'?"
    return None


def _get_type_description(value: Any) -> str:
    """Get a human-readable type description for a value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return f'string "{value}"'
    if isinstance(value, list):
        return "list"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _format_pydantic_error(
    error: ValidationError,
    config_data: dict[str, Any],
) -> ConfigValidationError:
    """Convert a Pydantic ValidationError to a user-friendly ConfigValidationError.

    Args:
        error: The Pydantic validation error
        config_data: The merged config data for context

    Returns:
        A ConfigValidationError with helpful message and suggestions
    """
    errors = error.errors()
    if not errors:
        return ConfigValidationError("Configuration validation failed")

    first_error = errors[0]
    loc = first_error.get("loc", ())
    msg = first_error.get("msg", "Invalid value")
    error_type = first_error.get("type", "")
    ctx = first_error.get("ctx", {})

    path = ".".join(str(part) for part in loc)

    actual_value: Any = config_data
    for key in loc:
        if isinstance(actual_value, dict):
            actual_value = actual_value.get(key)
        else:
            break

    suggestion = None

    if error_type == "missing":
        message = f"Missing required setting '{path}'"
        if path == "address":
            suggestion = "Provide a destination such as 'http://localhost:8086'"

    elif error_type == "literal_error":
        expected = ctx.get("expected", "")
        message = f"Invalid value for '{path}': got {_get_type_description(actual_value)}"
        suggestion = f"Expected one of: {expected}"

    elif error_type in ("greater_than", "greater_than_equal", "less_than_equal"):
        message = f"Value for '{path}' is out of range: {actual_value}"
        if error_type == "greater_than":
            suggestion = f"Value must be greater than {ctx.get('gt'):g}"
        elif error_type == "greater_than_equal":
            suggestion = f"Value must be at least {ctx.get('ge'):g}"
        else:
            suggestion = f"Value must be at most {ctx.get('le'):g}"

    elif error_type in ("int_parsing", "float_parsing", "int_from_float"):
        message = f"Invalid number for '{path}': got {_get_type_description(actual_value)}"
        suggestion = "Please provide a valid number"

    elif error_type == "string_type":
        message = f"Expected string for '{path}': got {_get_type_description(actual_value)}"
        suggestion = "Please provide a text value"

    elif "extra_forbidden" in error_type:
        unknown_key = str(loc[-1]) if loc else "unknown"
        message = f"Unknown configuration key '{path}'"
        parent_path = loc[:-1] if len(loc) > 1 else ()
        if not parent_path:
            suggestion = _suggest_key(unknown_key, VALID_TOP_LEVEL_KEYS)
        elif parent_path == ("health_check",):
            suggestion = _suggest_key(unknown_key, VALID_HEALTH_CHECK_KEYS)

        if not suggestion:
            suggestion = "Check the documentation for valid configuration options"

    else:
        message = f"Invalid value for '{path or 'config'}': {msg}"

    return ConfigValidationError(message, suggestion=suggestion)


def expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in config values.

    Supports ${VAR} and ${VAR:-default} syntax.

    Args:
        value: The value to expand (string, dict, list, or other)

    Returns:
        The value with environment variables expanded
    """
    if isinstance(value, str):

        def replace_env_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default_value = match.group(2)
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default_value is not None:
                return default_value
            return match.group(0)  # Keep original if not found and no default

        return ENV_VAR_PATTERN.sub(replace_env_var, value)
    if isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence.

    Args:
        base: Base dictionary with defaults
        override: Dictionary with overriding values

    Returns:
        Merged dictionary
    """
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


# Pydantic Configuration Models


class BackoffConfig(BaseModel):
    """Health-check schedule and reconnect backoff.

    While the destination is healthy, checks run every ``base_delay``
    seconds. After N consecutive failures the delay grows to
    ``base_delay * multiplier**N``, capped at ``max_delay``, then randomised
    by +/- ``jitter`` of itself.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    base_delay: float = Field(default=5.0, gt=0, le=3600)
    max_delay: float = Field(default=60.0, gt=0, le=86400)
    multiplier: float = Field(default=2.0, ge=1.0, le=10.0)
    jitter: float = Field(default=0.1, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_bounds(self) -> "BackoffConfig":
        """Ensure the cap is not below the base delay."""
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be greater than or equal to base_delay")
        return self


class ReporterConfig(BaseModel):
    """Main configuration model for a reporter.

    Attributes:
        address: Destination URL; its scheme selects the transport
        database: Target database (HTTP only)
        username: Basic auth user (HTTP only)
        password: Basic auth password (HTTP only)
        interval: Seconds between flushes
        tags: Tags attached to every point
        precision: Timestamp precision on the wire
        retention_policy: Optional retention policy (HTTP only)
        udp_payload_size: Maximum datagram size in bytes (UDP only)
        ping_timeout: Seconds allowed for a health-check probe
        write_timeout: Seconds allowed for one batch write
        health_check: Health-check schedule and reconnect backoff
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    address: str = Field(..., min_length=1)
    database: str = ""
    username: str = ""
    password: str = Field(default="", repr=False)
    interval: float = Field(default=10.0, gt=0, le=86400)
    tags: dict[str, str] = Field(default_factory=dict)
    precision: Literal["ns", "us", "ms", "s"] = "ns"
    retention_policy: str = ""
    udp_payload_size: int = Field(default=1024, ge=64, le=65507)
    ping_timeout: float = Field(default=1.0, gt=0, le=300)
    write_timeout: float = Field(default=5.0, gt=0, le=300)
    health_check: BackoffConfig = Field(default_factory=BackoffConfig)


def build_config(
    settings: Mapping[str, Any] | None = None,
    **overrides: Any,
) -> ReporterConfig:
    """Build and validate a reporter configuration.

    Configuration is merged in this order (later overrides earlier):
    1. Default configuration
    2. Settings mapping (if provided)
    3. Keyword overrides (None values are ignored)

    Environment variables in config values are expanded using ${VAR} syntax.

    Args:
        settings: Optional mapping of settings
        **overrides: Individual setting overrides

    Returns:
        Validated ReporterConfig object

    Raises:
        ConfigValidationError: If config values are invalid

    Example:
        >>> build_config({"address": "udp://localhost:8089"}, interval=5).interval
        5.0
    """
    config_data = deep_merge(DEFAULT_CONFIG, settings or {})
    explicit = {key: value for key, value in overrides.items() if value is not None}
    if explicit:
        config_data = deep_merge(config_data, explicit)

    config_data = expand_env_vars(config_data)

    try:
        return ReporterConfig(**config_data)
    except ValidationError as e:
        raise _format_pydantic_error(e, config_data) from e
