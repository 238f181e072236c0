"""Run a Reporter on a private event loop for hosts without asyncio."""

import asyncio
from collections.abc import Mapping
import logging
import threading
from typing import Any

from influxreporter.collectors.accumulator import Registry
from influxreporter.config.loader import ReporterConfig
from influxreporter.reporter.loop import Reporter

logger = logging.getLogger(__name__)


class ReporterThread:
    """Daemon thread owning one Reporter and its event loop.

    Example:
        worker = ReporterThread(registry, build_config(address="udp://localhost:8089"))
        worker.start()
        ...
        worker.stop()
    """

    def __init__(
        self,
        registry: Registry | Mapping[str, Any],
        config: ReporterConfig,
        tags: Mapping[str, str] | None = None,
        **reporter_options: Any,
    ) -> None:
        """Build the reporter. No thread is started yet.

        Args:
            registry: Registry with each(visitor), or a name -> metric mapping
            config: Validated reporter configuration
            tags: Extra tags for every point
            **reporter_options: Passed to Reporter (transport, clock, rng)

        Raises:
            InvalidSchemeError: If config.address selects no transport
        """
        self._reporter = Reporter(registry, config, tags=tags, **reporter_options)
        self._thread: threading.Thread | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None
        self._ready = threading.Event()
        self._error: BaseException | None = None

    @property
    def reporter(self) -> Reporter:
        """Get the wrapped reporter."""
        return self._reporter

    @property
    def alive(self) -> bool:
        """Check if the worker thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self, timeout: float = 30.0) -> None:
        """Start the thread and wait for the initial connect.

        Args:
            timeout: Maximum seconds to wait for the initial connect

        Raises:
            ConnectError: If the initial connect fails
            TimeoutError: If the thread did not report readiness in time
        """
        if self.alive:
            return

        self._ready.clear()
        self._error = None
        self._thread = threading.Thread(
            target=self._thread_main,
            name=f"influxreporter-{self._reporter.transport.address}",
            daemon=True,
        )
        self._thread.start()

        if not self._ready.wait(timeout):
            raise TimeoutError(f"Reporter did not start within {timeout}s")
        if self._error is not None:
            raise self._error

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the reporter and join the thread. Safe to call from any thread.

        Args:
            timeout: Maximum seconds to wait for the thread to exit
        """
        loop, stop_event = self._loop, self._stop_event
        if loop is not None and stop_event is not None and not loop.is_closed():
            try:
                loop.call_soon_threadsafe(stop_event.set)
            except RuntimeError:
                # Loop closed between the check and the call
                pass

        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Reporter thread did not exit within %.1fs", timeout)

    def _thread_main(self) -> None:
        asyncio.run(self._main())

    async def _main(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()

        try:
            await self._reporter.start()
        except Exception as e:
            self._error = e
            self._ready.set()
            return

        self._ready.set()
        try:
            await self._stop_event.wait()
        finally:
            await self._reporter.stop()
