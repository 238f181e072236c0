"""influxreporter - Forward an in-process metrics registry to InfluxDB."""

__version__ = "0.1.0"

from influxreporter.config import BackoffConfig, ReporterConfig, build_config
from influxreporter.errors import (
    ConfigValidationError,
    ConnectError,
    HealthCheckError,
    InvalidSchemeError,
    MalformedTagError,
    NothingToSendError,
    ReporterError,
    WriteError,
)
from influxreporter.reporter import (
    OneShotSender,
    Reporter,
    ReporterThread,
    send_once,
    start_reporter,
)

__all__ = [
    "__version__",
    # Reporters
    "Reporter",
    "ReporterThread",
    "OneShotSender",
    "start_reporter",
    "send_once",
    # Configuration
    "BackoffConfig",
    "ReporterConfig",
    "build_config",
    # Errors
    "ReporterError",
    "InvalidSchemeError",
    "ConnectError",
    "WriteError",
    "HealthCheckError",
    "MalformedTagError",
    "NothingToSendError",
    "ConfigValidationError",
]
