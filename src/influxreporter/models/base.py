"""Base data models for influxreporter.

This module defines the types shared by every reporter component:
- MetricKind: Closed set of metric kinds the encoder understands
- Counter, Gauge, FloatGauge, Histogram, Meter, Timer: Abstract metric bases
- *Snapshot protocols: Read-only views the encoder consumes
- Point: One immutable time-series datum
- Batch: Ordered points destined for a single write call
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

Precision = Literal["ns", "us", "ms", "s"]

FieldValue = bool | int | float | str


class MetricKind(str, Enum):
    """Kinds of metrics the reporter can encode.

    Attributes:
        COUNTER: Monotonic event count.
        GAUGE: Instantaneous integer value.
        FLOAT_GAUGE: Instantaneous float value.
        HISTOGRAM: Distribution of recorded values with quantiles.
        METER: Event count with 1/5/15-minute and mean rates.
        TIMER: Histogram of durations combined with a meter.
        UNSUPPORTED: Anything else found in a registry. Skipped on encode.
    """

    COUNTER = "counter"
    GAUGE = "gauge"
    FLOAT_GAUGE = "float_gauge"
    HISTOGRAM = "histogram"
    METER = "meter"
    TIMER = "timer"
    UNSUPPORTED = "unsupported"


@runtime_checkable
class CounterSnapshot(Protocol):
    """Point-in-time view of a counter."""

    def count(self) -> int: ...


@runtime_checkable
class GaugeSnapshot(Protocol):
    """Point-in-time view of an integer or float gauge."""

    def value(self) -> int | float: ...


@runtime_checkable
class HistogramSnapshot(Protocol):
    """Point-in-time view of a histogram's statistical state."""

    def count(self) -> int: ...

    def min(self) -> int | float: ...

    def max(self) -> int | float: ...

    def mean(self) -> float: ...

    def stddev(self) -> float: ...

    def variance(self) -> float: ...

    def percentiles(self, ps: Sequence[float]) -> Sequence[float]: ...


@runtime_checkable
class MeterSnapshot(Protocol):
    """Point-in-time view of a meter's rates."""

    def count(self) -> int: ...

    def rate1(self) -> float: ...

    def rate5(self) -> float: ...

    def rate15(self) -> float: ...

    def rate_mean(self) -> float: ...


@runtime_checkable
class TimerSnapshot(HistogramSnapshot, MeterSnapshot, Protocol):
    """Point-in-time view of a timer: histogram statistics plus meter rates."""


class Metric(ABC):
    """Base class for metrics held in a registry.

    Subclasses set ``metric_kind`` and return the matching snapshot protocol
    from ``snapshot()``. Taking a snapshot must not reset or mutate the metric.
    """

    metric_kind: ClassVar[MetricKind] = MetricKind.UNSUPPORTED

    @abstractmethod
    def snapshot(self) -> Any:
        """Return an immutable view of the metric's current state."""
        ...


class Counter(Metric):
    """Monotonic count."""

    metric_kind = MetricKind.COUNTER

    @abstractmethod
    def snapshot(self) -> CounterSnapshot: ...


class Gauge(Metric):
    """Integer gauge."""

    metric_kind = MetricKind.GAUGE

    @abstractmethod
    def snapshot(self) -> GaugeSnapshot: ...


class FloatGauge(Metric):
    """Float gauge."""

    metric_kind = MetricKind.FLOAT_GAUGE

    @abstractmethod
    def snapshot(self) -> GaugeSnapshot: ...


class Histogram(Metric):
    """Distribution of recorded values."""

    metric_kind = MetricKind.HISTOGRAM

    @abstractmethod
    def snapshot(self) -> HistogramSnapshot: ...


class Meter(Metric):
    """Event rate meter."""

    metric_kind = MetricKind.METER

    @abstractmethod
    def snapshot(self) -> MeterSnapshot: ...


class Timer(Metric):
    """Duration histogram plus rate meter."""

    metric_kind = MetricKind.TIMER

    @abstractmethod
    def snapshot(self) -> TimerSnapshot: ...


def classify_metric(metric: Any) -> MetricKind:
    """Determine the kind of a registry entry.

    The kind comes from the entry's ``metric_kind`` tag, which may be a
    MetricKind or its string value. Entries without a recognised tag or
    without a callable ``snapshot`` are UNSUPPORTED.

    Args:
        metric: Any object found in a registry

    Returns:
        The MetricKind for the entry

    Example:
        >>> class Requests(Counter):
        ...     def snapshot(self): ...
        >>> classify_metric(Requests())
        <MetricKind.COUNTER: 'counter'>
    """
    if not callable(getattr(metric, "snapshot", None)):
        return MetricKind.UNSUPPORTED

    tag = getattr(metric, "metric_kind", None)
    if isinstance(tag, MetricKind):
        return tag
    if isinstance(tag, str):
        try:
            return MetricKind(tag)
        except ValueError:
            return MetricKind.UNSUPPORTED
    return MetricKind.UNSUPPORTED


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


class Point(BaseModel):
    """A single time-series datum.

    Attributes:
        measurement: Measurement name (e.g. ``requests.count``)
        tags: Tag key/value pairs, keys unique
        fields: Field key/value pairs, never empty
        timestamp: When the value was read (UTC)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    measurement: str = Field(..., min_length=1)
    tags: dict[str, str] = Field(default_factory=dict)
    fields: dict[str, FieldValue]
    timestamp: datetime = Field(default_factory=_utcnow)

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v: dict[str, FieldValue]) -> dict[str, FieldValue]:
        """Reject points without fields."""
        if not v:
            raise ValueError("Point must have at least one field")
        return v

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


@dataclass
class Batch:
    """Ordered points sent in one transport write.

    Batches are never persisted. A failed write drops the whole batch.

    Attributes:
        database: Target database name
        precision: Timestamp precision used on the wire
        retention_policy: Optional retention policy name
        points: Points in insertion order
    """

    database: str = ""
    precision: Precision = "ns"
    retention_policy: str = ""
    points: list[Point] = field(default_factory=list)

    def add(self, point: Point) -> None:
        """Append a point to the batch."""
        self.points.append(point)

    def is_empty(self) -> bool:
        """Return True if the batch holds no points."""
        return not self.points

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self.points)
