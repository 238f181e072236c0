"""Abstract base class for transports.

A transport is an opaque sink for batches. It owns exactly one live handle
(an HTTP client or a datagram endpoint) which ``connect()`` replaces
wholesale. Only the reporter that created a transport ever touches it, so
transports do no locking of their own.
"""

from abc import ABC, abstractmethod
from typing import ClassVar

from influxreporter.models.base import Batch


class Transport(ABC):
    """Abstract base class for transports.

    Class Attributes:
        schemes: URL schemes that select this transport

    Example:
        transport = HttpTransport("http://localhost:8086")
        await transport.connect()
        await transport.write(batch)
        await transport.ping(timeout=1.0)
        await transport.close()
    """

    schemes: ClassVar[frozenset[str]] = frozenset()

    def __init__(self, address: str) -> None:
        """Initialize the transport.

        Args:
            address: Destination address as given by the caller
        """
        self._address = address

    @property
    def address(self) -> str:
        """Get the destination address."""
        return self._address

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Check if the transport currently holds a live handle."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Create a fresh handle, closing any previous one.

        Safe to call repeatedly; used for reconnects.

        Raises:
            ConnectError: If the handle cannot be created
        """
        ...

    @abstractmethod
    async def write(self, batch: Batch) -> None:
        """Send a whole batch.

        Either the destination accepts the call or this raises. Partial
        delivery is never retried here.

        Args:
            batch: The batch to send

        Raises:
            WriteError: If the batch could not be delivered
        """
        ...

    @abstractmethod
    async def ping(self, timeout: float) -> float:
        """Probe the destination for liveness.

        Args:
            timeout: Maximum seconds to wait for the probe

        Returns:
            Round-trip time of the probe in seconds

        Raises:
            HealthCheckError: If the destination is not healthy
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the current handle. Safe to call when not connected."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(address={self._address!r}, connected={self.connected})"
