"""Reporters for influxreporter.

This package drives the registry -> InfluxDB pipeline:

- Reporter: Async loop with periodic flushes and health checks
- start_reporter: Build, connect and start a Reporter in one call
- ReporterThread: Reporter on a private loop in a daemon thread
- OneShotSender / send_once: Single write of the current float gauges
- Backoff: Capped exponential delay between failing health checks
"""

from influxreporter.reporter.backoff import Backoff
from influxreporter.reporter.loop import (
    FlushResult,
    Reporter,
    ReporterState,
    ReporterStats,
    start_reporter,
)
from influxreporter.reporter.oneshot import START_TIME_TAG, OneShotSender, send_once
from influxreporter.reporter.thread import ReporterThread

__all__ = [
    "Backoff",
    "FlushResult",
    "Reporter",
    "ReporterState",
    "ReporterStats",
    "start_reporter",
    "ReporterThread",
    "OneShotSender",
    "START_TIME_TAG",
    "send_once",
]
