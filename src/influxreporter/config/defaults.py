"""Default configuration values for influxreporter.

This module defines the defaults used for any reporter setting the caller
does not provide. All options are documented here for reference.

Environment Variables:
    Any string value can reference environment variables using ${VAR} or
    ${VAR:-default} syntax, e.g. ``"password": "${INFLUX_PASSWORD}"``.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    # Destination: http(s)://host:port or udp://host:port. No default.
    "database": "",  # Target database (HTTP only)
    "username": "",  # HTTP basic auth user
    "password": "",  # HTTP basic auth password
    "interval": 10.0,  # Seconds between flushes
    "tags": {},  # Tags attached to every point
    "precision": "ns",  # Timestamp precision: ns, us, ms, s
    "retention_policy": "",  # Optional retention policy (HTTP only)
    "udp_payload_size": 1024,  # Max bytes per datagram
    "ping_timeout": 1.0,  # Seconds allowed for a health-check probe
    "write_timeout": 5.0,  # Seconds allowed for one batch write
    # Health-check schedule and reconnect backoff
    "health_check": {
        "base_delay": 5.0,  # Seconds between checks while healthy
        "max_delay": 60.0,  # Cap on the delay after repeated failures
        "multiplier": 2.0,  # Growth factor per consecutive failure
        "jitter": 0.1,  # Random +/- fraction applied to each delay
    },
}
