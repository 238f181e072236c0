"""Point encoder: converts one registry entry into a time-series point.

Each supported MetricKind maps to exactly one measurement suffix and one
field set. Unsupported kinds produce no point. Snapshot values are passed
through untouched.
"""

from collections.abc import Callable, Mapping
from datetime import datetime
import logging
from typing import Any

from influxreporter.models.base import (
    CounterSnapshot,
    FieldValue,
    GaugeSnapshot,
    HistogramSnapshot,
    MeterSnapshot,
    MetricKind,
    Point,
    TimerSnapshot,
    classify_metric,
)

logger = logging.getLogger(__name__)

# Cut points requested from every histogram and timer snapshot, in order.
QUANTILES: tuple[float, ...] = (0.5, 0.75, 0.95, 0.99, 0.999, 0.9999)
QUANTILE_FIELDS: tuple[str, ...] = ("p50", "p75", "p95", "p99", "p999", "p9999")

MEASUREMENT_SUFFIXES: dict[MetricKind, str] = {
    MetricKind.COUNTER: "count",
    MetricKind.GAUGE: "gauge",
    MetricKind.FLOAT_GAUGE: "gauge",
    MetricKind.HISTOGRAM: "histogram",
    MetricKind.METER: "meter",
    MetricKind.TIMER: "timer",
}


def _counter_fields(snapshot: CounterSnapshot) -> dict[str, FieldValue]:
    return {"value": snapshot.count()}


def _gauge_fields(snapshot: GaugeSnapshot) -> dict[str, FieldValue]:
    return {"value": snapshot.value()}


def _distribution_fields(snapshot: HistogramSnapshot) -> dict[str, FieldValue]:
    fields: dict[str, FieldValue] = {
        "count": snapshot.count(),
        "max": snapshot.max(),
        "mean": snapshot.mean(),
        "min": snapshot.min(),
        "stddev": snapshot.stddev(),
        "variance": snapshot.variance(),
    }
    values = snapshot.percentiles(list(QUANTILES))
    for field_name, value in zip(QUANTILE_FIELDS, values):
        fields[field_name] = value
    return fields


def _meter_fields(snapshot: MeterSnapshot) -> dict[str, FieldValue]:
    return {
        "count": snapshot.count(),
        "m1": snapshot.rate1(),
        "m5": snapshot.rate5(),
        "m15": snapshot.rate15(),
        "mean": snapshot.rate_mean(),
    }


def _timer_fields(snapshot: TimerSnapshot) -> dict[str, FieldValue]:
    fields = _distribution_fields(snapshot)
    fields["m1"] = snapshot.rate1()
    fields["m5"] = snapshot.rate5()
    fields["m15"] = snapshot.rate15()
    fields["meanrate"] = snapshot.rate_mean()
    return fields


FIELD_ENCODERS: dict[MetricKind, Callable[[Any], dict[str, FieldValue]]] = {
    MetricKind.COUNTER: _counter_fields,
    MetricKind.GAUGE: _gauge_fields,
    MetricKind.FLOAT_GAUGE: _gauge_fields,
    MetricKind.HISTOGRAM: _distribution_fields,
    MetricKind.METER: _meter_fields,
    MetricKind.TIMER: _timer_fields,
}


def encode_metric(
    name: str,
    metric: Any,
    tags: Mapping[str, str],
    timestamp: datetime,
) -> Point | None:
    """Encode one registry entry as a Point.

    Args:
        name: Registry name of the metric
        metric: The metric object
        tags: Tags attached to the point
        timestamp: Timestamp of the point

    Returns:
        The encoded Point, or None if the metric kind is unsupported

    Example:
        >>> encode_metric("requests", counter, {}, now).measurement
        'requests.count'
    """
    kind = classify_metric(metric)
    if kind is MetricKind.UNSUPPORTED:
        logger.debug(
            "Skipping metric '%s' of unsupported type %s",
            name,
            type(metric).__name__,
        )
        return None

    fields = FIELD_ENCODERS[kind](metric.snapshot())
    return Point(
        measurement=f"{name}.{MEASUREMENT_SUFFIXES[kind]}",
        tags=dict(tags),
        fields=fields,
        timestamp=timestamp,
    )
