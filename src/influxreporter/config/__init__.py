"""Configuration module for influxreporter.

This module provides:
- Pydantic models for configuration validation
- Default configuration values
- Environment variable expansion
- Clear error messages for config issues
"""

from influxreporter.config.defaults import DEFAULT_CONFIG
from influxreporter.config.loader import (
    BackoffConfig,
    ReporterConfig,
    build_config,
    deep_merge,
    expand_env_vars,
)

__all__ = [
    "BackoffConfig",
    "ReporterConfig",
    "DEFAULT_CONFIG",
    "build_config",
    "deep_merge",
    "expand_env_vars",
]
