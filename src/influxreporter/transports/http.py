"""HTTP transport for the InfluxDB 1.x write API.

Batches are POSTed as line protocol to ``{address}/write`` and liveness is
probed with ``GET {address}/ping``. Credentials travel as HTTP basic auth.
"""

import logging
import time
from typing import ClassVar

import httpx

from influxreporter import __version__
from influxreporter.errors import ConnectError, HealthCheckError, WriteError
from influxreporter.formatters.line_protocol import encode_batch
from influxreporter.models.base import Batch
from influxreporter.transports.base import Transport

logger = logging.getLogger(__name__)

# Status codes InfluxDB returns for an accepted write
WRITE_OK_STATUSES = frozenset({200, 204})


class HttpTransport(Transport):
    """Connection-oriented transport over HTTP.

    Each ``connect()`` builds a new ``httpx.AsyncClient``. The previous
    client, if any, is closed afterwards.

    Example:
        transport = HttpTransport(
            "http://localhost:8086",
            username="admin",
            password="secret",
        )
        await transport.connect()
        await transport.write(batch)
    """

    schemes: ClassVar[frozenset[str]] = frozenset({"http", "https"})

    def __init__(
        self,
        address: str,
        *,
        username: str = "",
        password: str = "",
        timeout: float = 5.0,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP transport.

        Args:
            address: Base URL of the InfluxDB server
            username: Basic auth user (auth is skipped when empty)
            password: Basic auth password
            timeout: Default request timeout in seconds
            http_transport: Optional httpx transport, e.g. httpx.MockTransport
        """
        super().__init__(address)
        self._base_url = address.rstrip("/")
        self._auth = httpx.BasicAuth(username, password) if username else None
        self._timeout = timeout
        self._http_transport = http_transport
        self._client: httpx.AsyncClient | None = None

    @property
    def connected(self) -> bool:
        """Check if an open HTTP client is held."""
        return self._client is not None and not self._client.is_closed

    async def connect(self) -> None:
        """Replace the HTTP client with a fresh one.

        Raises:
            ConnectError: If the client cannot be created
        """
        try:
            client = httpx.AsyncClient(
                base_url=self._base_url,
                auth=self._auth,
                timeout=httpx.Timeout(self._timeout),
                headers={"User-Agent": f"influxreporter/{__version__}"},
                transport=self._http_transport,
            )
        except (httpx.InvalidURL, ValueError, TypeError) as e:
            raise ConnectError(
                f"Unable to create HTTP client: {e}",
                address=self.address,
            ) from e

        previous, self._client = self._client, client
        if previous is not None:
            await previous.aclose()

    async def write(self, batch: Batch) -> None:
        """POST the batch to the write endpoint.

        Args:
            batch: The batch to send

        Raises:
            WriteError: On transport errors or a non-2xx response
        """
        client = self._require_client(WriteError)

        params = {"db": batch.database, "precision": batch.precision}
        if batch.retention_policy:
            params["rp"] = batch.retention_policy

        try:
            response = await client.post(
                "/write",
                params=params,
                content=encode_batch(batch),
                headers={"Content-Type": "text/plain; charset=utf-8"},
            )
        except httpx.HTTPError as e:
            raise WriteError(
                f"Write failed: {type(e).__name__}: {e}",
                address=self.address,
            ) from e

        if response.status_code not in WRITE_OK_STATUSES:
            raise WriteError(
                f"Write rejected with HTTP {response.status_code}: {response.text.strip()}",
                address=self.address,
            )

    async def ping(self, timeout: float) -> float:
        """Probe ``/ping``, which answers 204 when the server is up.

        Args:
            timeout: Maximum seconds to wait

        Returns:
            Round-trip time in seconds

        Raises:
            HealthCheckError: On transport errors or any status but 204
        """
        client = self._require_client(HealthCheckError)

        start = time.monotonic()
        try:
            response = await client.get("/ping", timeout=timeout)
        except httpx.HTTPError as e:
            raise HealthCheckError(
                f"Ping failed: {type(e).__name__}: {e}",
                address=self.address,
            ) from e
        elapsed = time.monotonic() - start

        if response.status_code != 204:
            raise HealthCheckError(
                f"Ping returned HTTP {response.status_code}",
                address=self.address,
            )

        logger.debug(
            "Ping to %s ok in %.1fms (version %s)",
            self.address,
            elapsed * 1000,
            response.headers.get("X-Influxdb-Version", "unknown"),
        )
        return elapsed

    async def close(self) -> None:
        """Close the HTTP client if one is held."""
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    def _require_client(
        self,
        error_type: type[WriteError] | type[HealthCheckError],
    ) -> httpx.AsyncClient:
        """Return the live client or raise error_type."""
        if self._client is None or self._client.is_closed:
            raise error_type("Transport is not connected", address=self.address)
        return self._client
