"""One-shot sender: push the current float gauges once and report errors.

Unlike the looping reporter, every failure here is raised to the caller.
"""

import asyncio
from collections.abc import Mapping
from datetime import UTC, datetime
import logging
import re
from typing import Any

from influxreporter.collectors.accumulator import Clock, Registry, iter_registry
from influxreporter.config.loader import ReporterConfig, build_config
from influxreporter.errors import MalformedTagError, NothingToSendError, WriteError
from influxreporter.formatters.points import encode_metric
from influxreporter.models.base import Batch, MetricKind, classify_metric
from influxreporter.transports.base import Transport
from influxreporter.transports.factory import create_transport

logger = logging.getLogger(__name__)

# Reserved tag promoted to an integer field on every one-shot point
START_TIME_TAG = "start_time"

# Optional sign followed by ASCII digits
DECIMAL_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def promote_start_time(tags: Mapping[str, str] | None) -> tuple[dict[str, str], dict[str, int]]:
    """Split the reserved start_time tag out of a tag set.

    The caller's mapping is never modified.

    Args:
        tags: Caller-supplied tags

    Returns:
        Tuple of (remaining tags, extra integer fields)

    Raises:
        MalformedTagError: If start_time is present but not an integer
    """
    point_tags = dict(tags or {})
    raw = point_tags.pop(START_TIME_TAG, None)
    if raw is None:
        return point_tags, {}

    if not isinstance(raw, str) or not DECIMAL_INTEGER_PATTERN.fullmatch(raw):
        raise MalformedTagError(START_TIME_TAG, raw)
    return point_tags, {START_TIME_TAG: int(raw)}


class OneShotSender:
    """Sends float gauges from a registry in a single write.

    Example:
        async with OneShotSender("http://localhost:8086", "jobs") as sender:
            await sender.send(registry, {"start_time": "1700000000"}, "batch_job")
    """

    def __init__(
        self,
        address: str,
        database: str = "",
        username: str = "",
        password: str = "",
        *,
        transport: Transport | None = None,
        clock: Clock | None = None,
        **options: Any,
    ) -> None:
        """Initialize the sender. Nothing is connected until the first send.

        Args:
            address: Destination URL (http://, https:// or udp://)
            database: Target database
            username: Basic auth user
            password: Basic auth password
            transport: Transport to use instead of one built from address
            clock: Source of point timestamps
            **options: Any other ReporterConfig setting

        Raises:
            InvalidSchemeError: If the address selects no transport
            ConfigValidationError: If the settings are invalid
        """
        self._config = build_config(
            options,
            address=address,
            database=database,
            username=username,
            password=password,
        )
        self._transport = transport if transport is not None else create_transport(self._config)
        self._clock: Clock = clock or _utcnow

    @property
    def config(self) -> ReporterConfig:
        """Get the sender configuration."""
        return self._config

    @property
    def transport(self) -> Transport:
        """Get the transport owned by this sender."""
        return self._transport

    async def send(
        self,
        registry: Registry | Mapping[str, Any],
        tags: Mapping[str, str] | None,
        measurement_name: str,
    ) -> int:
        """Encode every float gauge and write them in one batch.

        Each point is named ``<measurement_name>.gauge``. A ``start_time`` tag
        becomes an integer field on every point.

        Args:
            registry: Registry with each(visitor), or a name -> metric mapping
            tags: Tags attached to every point, merged over config.tags
            measurement_name: Measurement prefix shared by all points

        Returns:
            Number of points written

        Raises:
            MalformedTagError: If start_time is not an integer
            NothingToSendError: If the registry holds no float gauges
            ConnectError: If the lazy connect fails
            WriteError: If the write fails or times out
        """
        point_tags, extra_fields = promote_start_time({**self._config.tags, **(tags or {})})
        batch = Batch(
            database=self._config.database,
            precision=self._config.precision,
            retention_policy=self._config.retention_policy,
        )

        for name, metric in iter_registry(registry):
            if classify_metric(metric) is not MetricKind.FLOAT_GAUGE:
                logger.debug("Skipping non-float-gauge metric '%s'", name)
                continue
            point = encode_metric(measurement_name, metric, point_tags, self._clock())
            if point is None:
                continue
            if extra_fields:
                point = point.model_copy(update={"fields": {**point.fields, **extra_fields}})
            batch.add(point)

        if batch.is_empty():
            raise NothingToSendError(measurement_name)

        if not self._transport.connected:
            await self._transport.connect()

        try:
            await asyncio.wait_for(
                self._transport.write(batch),
                timeout=self._config.write_timeout,
            )
        except TimeoutError as e:
            raise WriteError(
                f"Write timed out after {self._config.write_timeout}s",
                address=self._transport.address,
            ) from e

        logger.debug("Sent %d points for '%s'", len(batch), measurement_name)
        return len(batch)

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()

    async def __aenter__(self) -> "OneShotSender":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


async def send_once(
    registry: Registry | Mapping[str, Any],
    tags: Mapping[str, str] | None,
    measurement_name: str,
    *,
    address: str,
    database: str = "",
    username: str = "",
    password: str = "",
    **options: Any,
) -> int:
    """Connect, send the registry's float gauges once, and close.

    Args:
        registry: Registry with each(visitor), or a name -> metric mapping
        tags: Tags attached to every point
        measurement_name: Measurement prefix shared by all points
        address: Destination URL
        database: Target database
        username: Basic auth user
        password: Basic auth password
        **options: Any other ReporterConfig setting

    Returns:
        Number of points written
    """
    async with OneShotSender(address, database, username, password, **options) as sender:
        return await sender.send(registry, tags, measurement_name)
