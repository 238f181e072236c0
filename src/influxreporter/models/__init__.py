"""Data models for influxreporter.

This module provides the core types used throughout the reporter:
- MetricKind: Closed set of metric kinds (plus UNSUPPORTED)
- Counter, Gauge, FloatGauge, Histogram, Meter, Timer: Abstract metric bases
- Snapshot protocols consumed by the point encoder
- Point, Batch: The uniform time-series representation
"""

from influxreporter.models.base import (
    Batch,
    Counter,
    CounterSnapshot,
    FieldValue,
    FloatGauge,
    Gauge,
    GaugeSnapshot,
    Histogram,
    HistogramSnapshot,
    Meter,
    MeterSnapshot,
    Metric,
    MetricKind,
    Point,
    Precision,
    Timer,
    TimerSnapshot,
    classify_metric,
)

__all__ = [
    # Metric kinds
    "MetricKind",
    "Metric",
    "Counter",
    "Gauge",
    "FloatGauge",
    "Histogram",
    "Meter",
    "Timer",
    "classify_metric",
    # Snapshot protocols
    "CounterSnapshot",
    "GaugeSnapshot",
    "HistogramSnapshot",
    "MeterSnapshot",
    "TimerSnapshot",
    # Time-series types
    "Point",
    "Batch",
    "FieldValue",
    "Precision",
]
