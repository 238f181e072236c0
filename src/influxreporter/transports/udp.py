"""UDP transport for the InfluxDB line protocol listener.

Fire-and-forget: there is no delivery acknowledgement. Each write is split
on line boundaries into datagrams of at most ``payload_size`` bytes.
"""

import asyncio
from collections.abc import Iterable, Iterator
import logging
from typing import ClassVar

from influxreporter.errors import ConnectError, HealthCheckError, WriteError
from influxreporter.formatters.line_protocol import iter_lines
from influxreporter.models.base import Batch
from influxreporter.transports.base import Transport

logger = logging.getLogger(__name__)

DEFAULT_PAYLOAD_SIZE = 1024


def chunk_lines(lines: Iterable[str], payload_size: int) -> Iterator[bytes]:
    """Pack newline-terminated lines into payloads of at most payload_size bytes.

    A single line longer than payload_size is yielded on its own.

    Args:
        lines: Encoded lines without trailing newlines
        payload_size: Maximum payload size in bytes

    Returns:
        Iterator of datagram payloads
    """
    buffer = bytearray()
    for line in lines:
        data = line.encode("utf-8") + b"\n"
        if buffer and len(buffer) + len(data) > payload_size:
            yield bytes(buffer)
            buffer.clear()
        if len(data) > payload_size:
            logger.warning(
                "Line of %d bytes exceeds UDP payload size %d, sending alone",
                len(data),
                payload_size,
            )
            yield data
            continue
        buffer += data
    if buffer:
        yield bytes(buffer)


class _DatagramProtocol(asyncio.DatagramProtocol):
    """Records asynchronous socket errors (e.g. ICMP port unreachable)."""

    def __init__(self) -> None:
        self.error: Exception | None = None
        self.lost = False

    def error_received(self, exc: Exception) -> None:
        self.error = exc

    def connection_lost(self, exc: Exception | None) -> None:
        self.lost = True


class UdpTransport(Transport):
    """Connectionless transport over UDP.

    Example:
        transport = UdpTransport("udp://localhost:8089", "localhost", 8089)
        await transport.connect()
        await transport.write(batch)
    """

    schemes: ClassVar[frozenset[str]] = frozenset({"udp"})

    def __init__(
        self,
        address: str,
        host: str,
        port: int,
        *,
        payload_size: int = DEFAULT_PAYLOAD_SIZE,
    ) -> None:
        """Initialize the UDP transport.

        Args:
            address: Destination address as given by the caller
            host: Destination host
            port: Destination port
            payload_size: Maximum bytes per datagram

        Raises:
            ValueError: If payload_size is not positive
        """
        super().__init__(address)
        if payload_size <= 0:
            raise ValueError("Payload size must be positive")
        self._host = host
        self._port = port
        self._payload_size = payload_size
        self._transport: asyncio.DatagramTransport | None = None
        self._protocol: _DatagramProtocol | None = None

    @property
    def payload_size(self) -> int:
        """Get the maximum datagram size in bytes."""
        return self._payload_size

    @property
    def connected(self) -> bool:
        """Check if an open datagram endpoint is held."""
        return (
            self._transport is not None
            and self._protocol is not None
            and not self._protocol.lost
            and not self._transport.is_closing()
        )

    async def connect(self) -> None:
        """Replace the datagram endpoint with a fresh one.

        Raises:
            ConnectError: If the host cannot be resolved or the socket fails
        """
        loop = asyncio.get_running_loop()
        try:
            transport, protocol = await loop.create_datagram_endpoint(
                _DatagramProtocol,
                remote_addr=(self._host, self._port),
            )
        except OSError as e:
            raise ConnectError(
                f"Unable to open UDP socket: {e}",
                address=self.address,
            ) from e

        previous = self._transport
        self._transport, self._protocol = transport, protocol
        if previous is not None:
            previous.close()

    async def write(self, batch: Batch) -> None:
        """Send the batch as one or more datagrams.

        Args:
            batch: The batch to send

        Raises:
            WriteError: If the endpoint is closed or sending fails
        """
        if not self.connected or self._transport is None:
            raise WriteError("Transport is not connected", address=self.address)

        datagrams = 0
        for payload in chunk_lines(iter_lines(batch.points, batch.precision), self._payload_size):
            try:
                self._transport.sendto(payload)
            except OSError as e:
                raise WriteError(
                    f"UDP send failed after {datagrams} datagrams: {e}",
                    address=self.address,
                ) from e
            datagrams += 1

        logger.debug("Sent %d points in %d datagrams", len(batch), datagrams)

    async def ping(self, timeout: float) -> float:
        """Report socket health.

        UDP has no liveness probe. The check fails if the endpoint is closed
        or an asynchronous socket error was reported since the last check.

        Args:
            timeout: Unused, accepted for interface compatibility

        Returns:
            Always 0.0 on success

        Raises:
            HealthCheckError: If the endpoint is unhealthy
        """
        if not self.connected or self._protocol is None:
            raise HealthCheckError("Transport is not connected", address=self.address)

        error, self._protocol.error = self._protocol.error, None
        if error is not None:
            raise HealthCheckError(
                f"UDP socket reported an error: {error}",
                address=self.address,
            )
        return 0.0

    async def close(self) -> None:
        """Close the datagram endpoint if one is held."""
        transport, self._transport = self._transport, None
        self._protocol = None
        if transport is not None:
            transport.close()
