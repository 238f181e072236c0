"""InfluxDB line protocol codec.

Serialises Points into the text format accepted by the InfluxDB 1.x HTTP
``/write`` endpoint and the UDP listener:

    measurement,tag1=v1,tag2=v2 field1=1i,field2=0.5 1700000000000000000

Format specification: https://docs.influxdata.com/influxdb/v1/write_protocols/line_protocol_reference/
"""

from collections.abc import Iterable, Iterator
from datetime import UTC, datetime
import logging
import math

from influxreporter.models.base import Batch, FieldValue, Point, Precision

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Nanoseconds per unit for each supported precision
PRECISION_NANOS: dict[str, int] = {
    "ns": 1,
    "us": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
}

_MEASUREMENT_ESCAPES = str.maketrans({",": r"\,", " ": r"\ ", "\n": r"\n"})
_KEY_ESCAPES = str.maketrans({",": r"\,", "=": r"\=", " ": r"\ ", "\n": r"\n"})


def escape_measurement(name: str) -> str:
    """Escape commas and spaces in a measurement name."""
    return name.replace("\\", "\\\\").translate(_MEASUREMENT_ESCAPES)


def escape_key(key: str) -> str:
    """Escape commas, equals signs and spaces in a tag key, tag value or field key."""
    return key.replace("\\", "\\\\").translate(_KEY_ESCAPES)


def format_field_value(value: FieldValue) -> str | None:
    """Format a single field value.

    Args:
        value: Field value (bool, int, float or str)

    Returns:
        The line protocol representation, or None for NaN and infinities
        which InfluxDB cannot store
    """
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return repr(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def to_epoch(timestamp: datetime, precision: Precision = "ns") -> int:
    """Convert a timestamp to integer units since the Unix epoch.

    Args:
        timestamp: Timezone-aware timestamp
        precision: Target unit (ns, us, ms or s)

    Returns:
        Integer timestamp in the requested precision
    """
    delta = timestamp - EPOCH
    nanos = (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000
    return nanos // PRECISION_NANOS[precision]


def encode_point(point: Point, precision: Precision = "ns") -> str | None:
    """Encode one Point as a line.

    Tags are sorted by key and tags with empty values are omitted. Non-finite
    float fields are dropped.

    Args:
        point: The point to encode
        precision: Timestamp precision

    Returns:
        The encoded line without trailing newline, or None if no field
        survived encoding
    """
    parts = [escape_measurement(point.measurement)]
    for key in sorted(point.tags):
        value = point.tags[key]
        if value == "":
            continue
        parts.append(f"{escape_key(key)}={escape_key(value)}")
    series = ",".join(parts)

    field_parts: list[str] = []
    for key, value in point.fields.items():
        formatted = format_field_value(value)
        if formatted is None:
            logger.debug(
                "Dropping non-finite field '%s' from '%s'",
                key,
                point.measurement,
            )
            continue
        field_parts.append(f"{escape_key(key)}={formatted}")

    if not field_parts:
        return None

    return f"{series} {','.join(field_parts)} {to_epoch(point.timestamp, precision)}"


def iter_lines(points: Iterable[Point], precision: Precision = "ns") -> Iterator[str]:
    """Yield encoded lines for points, skipping those with no encodable field."""
    for point in points:
        line = encode_point(point, precision)
        if line is not None:
            yield line


def encode_batch(batch: Batch) -> bytes:
    """Encode a whole batch as a newline-separated UTF-8 payload.

    Args:
        batch: The batch to encode

    Returns:
        The request body for an HTTP write
    """
    return "\n".join(iter_lines(batch.points, batch.precision)).encode("utf-8")
