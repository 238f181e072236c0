"""Reporter loop: periodic flushes and health checks for one destination.

This module provides the asyncio reporter that drives
snapshot -> encode -> batch -> write on a fixed interval, probes the
destination on a backoff schedule, and recreates the transport when a probe
fails.

Key features:
- One asyncio task per reporter, flushes and checks never overlap
- Failed batches are dropped, never buffered or retried
- Capped exponential backoff with jitter between failing health checks
- Explicit stop() for clean shutdown
- No runtime failure ever escapes the task
"""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
import logging
import random
import time
from typing import Any

from influxreporter.collectors.accumulator import Clock, Registry, collect_batch, is_registry
from influxreporter.config.loader import ReporterConfig, build_config
from influxreporter.errors import ReporterError
from influxreporter.reporter.backoff import Backoff
from influxreporter.transports.base import Transport
from influxreporter.transports.factory import create_transport

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


class ReporterState(str, Enum):
    """Lifecycle states of a reporter.

    Attributes:
        INITIALIZING: Transport built, initial connect not done yet
        CONNECTED: Idle between ticks with a live transport
        FLUSHING: Writing a batch
        HEALTH_CHECKING: Probing the destination
        RECONNECTING: Recreating the transport after a failed probe
        DEGRADED: Last reconnect failed; checks keep retrying
        TERMINATED: Stopped; the task is gone and the transport closed
    """

    INITIALIZING = "initializing"
    CONNECTED = "connected"
    FLUSHING = "flushing"
    HEALTH_CHECKING = "health_checking"
    RECONNECTING = "reconnecting"
    DEGRADED = "degraded"
    TERMINATED = "terminated"


@dataclass
class FlushResult:
    """Result of one flush cycle.

    Attributes:
        success: Whether the flush completed without error
        point_count: Number of points written
        skipped: True if the registry produced no points and nothing was sent
        error: Error message if the flush failed
        duration_ms: How long the flush took in milliseconds
        timestamp: When the flush started
    """

    success: bool
    point_count: int = 0
    skipped: bool = False
    error: str | None = None
    duration_ms: float = 0.0
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        """Validate result consistency."""
        if not self.success and self.error is None:
            raise ValueError("Failed flush must include error message")
        if self.skipped and self.point_count:
            raise ValueError("Skipped flush cannot carry points")


@dataclass
class ReporterStats:
    """Statistics about a reporter's state and performance.

    Attributes:
        state: Current lifecycle state
        running: Whether the reporter task is alive
        total_flushes: Flush cycles attempted
        total_failures: Flush cycles that failed
        total_skipped: Flush cycles with nothing to send
        points_written: Points accepted by the transport
        health_checks: Health checks performed
        health_failures: Health checks that failed
        reconnects: Successful transport recreations
        consecutive_health_failures: Failed checks since the last healthy one
        average_flush_ms: Average flush duration in milliseconds
        last_flush: Most recent flush result
    """

    state: ReporterState = ReporterState.INITIALIZING
    running: bool = False
    total_flushes: int = 0
    total_failures: int = 0
    total_skipped: int = 0
    points_written: int = 0
    health_checks: int = 0
    health_failures: int = 0
    reconnects: int = 0
    consecutive_health_failures: int = 0
    average_flush_ms: float = 0.0
    last_flush: FlushResult | None = None


class Reporter:
    """Periodically forwards a metrics registry to InfluxDB.

    Example:
        config = build_config(address="http://localhost:8086", database="app")
        reporter = Reporter(registry, config, tags={"host": "web-1"})

        await reporter.start()
        # ... later ...
        await reporter.stop()

        # or
        async with Reporter(registry, config):
            ...
    """

    def __init__(
        self,
        registry: Registry | Mapping[str, Any],
        config: ReporterConfig,
        *,
        tags: Mapping[str, str] | None = None,
        transport: Transport | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the reporter and build its transport.

        Args:
            registry: Registry with each(visitor), or a name -> metric mapping
            config: Validated reporter configuration
            tags: Extra tags merged over config.tags for every point
            transport: Transport to use instead of one built from config.address
            clock: Source of point timestamps
            rng: Random source for backoff jitter

        Raises:
            TypeError: If registry cannot be walked
            InvalidSchemeError: If config.address selects no transport
            ConfigValidationError: If config.address is malformed
        """
        if not is_registry(registry):
            raise TypeError(
                f"Registry must provide each(visitor) or be a mapping, got {type(registry).__name__}"
            )

        self._registry = registry
        self._config = config
        self._tags: dict[str, str] = {**config.tags, **(tags or {})}
        self._transport = transport if transport is not None else create_transport(config)
        self._clock: Clock = clock or _utcnow
        self._backoff = Backoff(config.health_check, rng)

        self._state = ReporterState.INITIALIZING
        self._task: asyncio.Task[None] | None = None
        self._cycle_lock = asyncio.Lock()

        self._total_flushes = 0
        self._total_failures = 0
        self._total_skipped = 0
        self._points_written = 0
        self._health_checks = 0
        self._health_failures = 0
        self._reconnects = 0
        self._last_flush: FlushResult | None = None

        # Latency tracking
        self._latencies: list[float] = []
        self._max_latency_samples = 1000

    @property
    def config(self) -> ReporterConfig:
        """Get the reporter configuration."""
        return self._config

    @property
    def transport(self) -> Transport:
        """Get the transport owned by this reporter."""
        return self._transport

    @property
    def tags(self) -> dict[str, str]:
        """Get a copy of the tags attached to every point."""
        return dict(self._tags)

    @property
    def state(self) -> ReporterState:
        """Get the current lifecycle state."""
        return self._state

    @property
    def running(self) -> bool:
        """Check if the reporter task is alive."""
        return self._task is not None and not self._task.done()

    def get_stats(self) -> ReporterStats:
        """Get reporter statistics.

        Returns:
            ReporterStats with current state and counters
        """
        avg_latency = sum(self._latencies) / len(self._latencies) if self._latencies else 0.0
        return ReporterStats(
            state=self._state,
            running=self.running,
            total_flushes=self._total_flushes,
            total_failures=self._total_failures,
            total_skipped=self._total_skipped,
            points_written=self._points_written,
            health_checks=self._health_checks,
            health_failures=self._health_failures,
            reconnects=self._reconnects,
            consecutive_health_failures=self._backoff.failures,
            average_flush_ms=avg_latency,
            last_flush=self._last_flush,
        )

    async def start(self) -> None:
        """Connect the transport and start the reporter task.

        The initial connect is not retried. Does nothing if already running.

        Raises:
            ConnectError: If the initial connect fails
        """
        if self.running:
            return

        self._state = ReporterState.INITIALIZING
        await self._transport.connect()
        self._state = ReporterState.CONNECTED

        self._task = asyncio.create_task(
            self._run(),
            name=f"influxreporter-{self._transport.address}",
        )
        self._task.add_done_callback(self._on_task_done)
        logger.info(
            "Reporting to %s every %.1fs",
            self._transport.address,
            self._config.interval,
        )

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop the reporter task and close the transport.

        Args:
            timeout: Maximum seconds to wait for the task to finish
        """
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task], timeout=timeout)

        await self._transport.close()
        self._state = ReporterState.TERMINATED

    async def __aenter__(self) -> "Reporter":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def flush(self) -> FlushResult:
        """Perform one flush: walk the registry and write the batch.

        Never raises. Failures are logged and reported in the result; the
        batch is dropped and the transport is left untouched.

        Returns:
            FlushResult for this flush
        """
        async with self._cycle_lock:
            return await self._do_flush()

    async def health_check(self) -> bool:
        """Probe the destination and recreate the transport if the probe fails.

        Never raises.

        Returns:
            True if the probe succeeded
        """
        async with self._cycle_lock:
            return await self._do_health_check()

    async def _run(self) -> None:
        """Drive flushes and health checks until cancelled.

        Both triggers share this task, so they never run concurrently. Missed
        flush ticks are dropped rather than replayed.
        """
        loop = asyncio.get_running_loop()
        interval = self._config.interval
        next_flush = loop.time() + interval
        next_check = loop.time() + self._backoff.next_delay()

        while True:
            delay = min(next_flush, next_check) - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)

            now = loop.time()
            if now >= next_flush:
                await self.flush()
                next_flush += interval
                if next_flush <= loop.time():
                    next_flush = loop.time() + interval

            if now >= next_check:
                await self.health_check()
                next_check = loop.time() + self._backoff.next_delay()

    async def _do_flush(self) -> FlushResult:
        """Perform one flush while holding the cycle lock."""
        resting_state = self._state
        self._state = ReporterState.FLUSHING
        start = _utcnow()
        started = time.monotonic()
        self._total_flushes += 1

        try:
            batch = collect_batch(
                self._registry,
                self._tags,
                database=self._config.database,
                precision=self._config.precision,
                retention_policy=self._config.retention_policy,
                clock=self._clock,
            )
            if batch.is_empty():
                logger.debug("Nothing to send to %s", self._transport.address)
                self._total_skipped += 1
                result = FlushResult(success=True, skipped=True, timestamp=start)
            else:
                await asyncio.wait_for(
                    self._transport.write(batch),
                    timeout=self._config.write_timeout,
                )
                self._points_written += len(batch)
                result = FlushResult(success=True, point_count=len(batch), timestamp=start)

        except TimeoutError:
            self._total_failures += 1
            error = f"WriteError: write timed out after {self._config.write_timeout}s"
            logger.warning("Unable to send metrics to %s: %s", self._transport.address, error)
            result = FlushResult(success=False, error=error, timestamp=start)

        except Exception as e:
            self._total_failures += 1
            logger.warning("Unable to send metrics to %s: %s", self._transport.address, e)
            result = FlushResult(
                success=False,
                error=f"{type(e).__name__}: {e!s}",
                timestamp=start,
            )

        finally:
            self._state = resting_state

        result.duration_ms = (time.monotonic() - started) * 1000
        self._latencies.append(result.duration_ms)
        if len(self._latencies) > self._max_latency_samples:
            self._latencies = self._latencies[-self._max_latency_samples :]
        self._last_flush = result
        return result

    async def _do_health_check(self) -> bool:
        """Probe the destination while holding the cycle lock."""
        self._health_checks += 1
        self._state = ReporterState.HEALTH_CHECKING
        timeout = self._config.ping_timeout

        try:
            await asyncio.wait_for(self._transport.ping(timeout), timeout=timeout)
        except Exception as e:
            self._health_failures += 1
            logger.warning(
                "Health check against %s failed, recreating transport: %s",
                self._transport.address,
                e if str(e) else type(e).__name__,
            )
            await self._reconnect()
            return False

        if self._backoff.failures:
            logger.info(
                "Destination %s healthy again after %d failed checks",
                self._transport.address,
                self._backoff.failures,
            )
        self._backoff.reset()
        self._state = ReporterState.CONNECTED
        return True

    async def _reconnect(self) -> bool:
        """Tear down the transport handle and create a new one.

        Returns:
            True if the new handle was created
        """
        self._state = ReporterState.RECONNECTING
        self._backoff.record_failure()

        try:
            await self._transport.close()
        except Exception as e:
            logger.debug("Error closing transport for %s: %s", self._transport.address, e)

        try:
            await self._transport.connect()
        except Exception as e:
            self._state = ReporterState.DEGRADED
            logger.warning(
                "Unable to recreate transport for %s, next attempt in %.1fs: %s",
                self._transport.address,
                self._backoff.base_delay(),
                e,
            )
            return False

        self._reconnects += 1
        self._state = ReporterState.CONNECTED
        logger.info("Recreated transport for %s", self._transport.address)
        return True

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        """Log an unexpected end of the reporter task."""
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Reporter task for %s ended unexpectedly: %s",
                self._transport.address,
                exc,
            )
            self._state = ReporterState.TERMINATED


async def start_reporter(
    registry: Registry | Mapping[str, Any],
    interval: float | timedelta,
    address: str,
    database: str = "",
    username: str = "",
    password: str = "",
    tags: Mapping[str, str] | None = None,
    **options: Any,
) -> Reporter | None:
    """Build, connect and start a reporter.

    Initialization failures are logged and reported as None; they never
    raise. Must be called from a running event loop.

    Args:
        registry: Registry with each(visitor), or a name -> metric mapping
        interval: Flush interval in seconds or as a timedelta
        address: Destination URL (http://, https:// or udp://)
        database: Target database
        username: Basic auth user
        password: Basic auth password
        tags: Tags attached to every point
        **options: Any other ReporterConfig setting

    Returns:
        The running Reporter, or None if it could not start

    Example:
        reporter = await start_reporter(
            registry, 10, "http://localhost:8086", "metrics", "admin", "secret"
        )
    """
    if isinstance(interval, timedelta):
        interval = interval.total_seconds()

    try:
        config = build_config(
            options,
            address=address,
            interval=interval,
            database=database,
            username=username,
            password=password,
        )
        reporter = Reporter(registry, config, tags=tags)
        await reporter.start()
    except ReporterError as e:
        logger.error("Unable to start InfluxDB reporter: %s", e)
        return None

    return reporter
