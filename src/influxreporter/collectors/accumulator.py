"""Batch accumulator: walks a registry once and collects encoded points.

Registries are external. Two shapes are accepted:

- Objects with an ``each(visitor)`` method that calls ``visitor(name, metric)``
  for every entry (the registry guarantees thread-safe iteration)
- Plain mappings from name to metric
"""

from collections.abc import Callable, Iterator, Mapping
from datetime import UTC, datetime
import logging
from typing import Any, Protocol, runtime_checkable

from influxreporter.formatters.points import encode_metric
from influxreporter.models.base import Batch, Point, Precision

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


@runtime_checkable
class Registry(Protocol):
    """A metrics registry that can be visited entry by entry."""

    def each(self, visitor: Callable[[str, Any], None]) -> None: ...


def is_registry(obj: Any) -> bool:
    """Return True if obj can be walked by iter_registry."""
    return isinstance(obj, (Registry, Mapping))


def iter_registry(registry: Registry | Mapping[str, Any]) -> Iterator[tuple[str, Any]]:
    """Iterate over (name, metric) pairs of a registry.

    The visitor form is drained into a list first so that registry locks
    are never held while points are being encoded.

    Args:
        registry: Registry with ``each`` or a mapping

    Returns:
        Iterator of (name, metric) pairs in registry order

    Raises:
        TypeError: If the object is neither a Registry nor a Mapping
    """
    if isinstance(registry, Registry):
        entries: list[tuple[str, Any]] = []
        registry.each(lambda name, metric: entries.append((name, metric)))
        return iter(entries)
    if isinstance(registry, Mapping):
        return iter(list(registry.items()))
    raise TypeError(
        f"Registry must provide each(visitor) or be a mapping, got {type(registry).__name__}"
    )


def collect_batch(
    registry: Registry | Mapping[str, Any],
    tags: Mapping[str, str] | None = None,
    *,
    database: str = "",
    precision: Precision = "ns",
    retention_policy: str = "",
    clock: Clock = _utcnow,
) -> Batch:
    """Walk the registry once and encode every entry.

    Each entry is timestamped when it is visited. Entries of unsupported kinds
    are skipped. No size limit is applied.

    Args:
        registry: The metrics registry
        tags: Tags attached to every point
        database: Target database name
        precision: Timestamp precision for the batch
        retention_policy: Optional retention policy
        clock: Source of point timestamps

    Returns:
        A Batch containing zero or more points
    """
    batch = Batch(database=database, precision=precision, retention_policy=retention_policy)
    point_tags = dict(tags or {})

    for name, metric in iter_registry(registry):
        point: Point | None = encode_metric(name, metric, point_tags, clock())
        if point is not None:
            batch.add(point)

    logger.debug("Collected %d points from registry", len(batch))
    return batch
