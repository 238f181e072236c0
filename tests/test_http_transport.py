"""Tests for the HTTP transport."""

import base64
from datetime import UTC, datetime

import httpx
import pytest

from influxreporter.errors import HealthCheckError, WriteError
from influxreporter.models import Batch, Point
from influxreporter.transports import HttpTransport

TS = datetime(2024, 1, 1, tzinfo=UTC)


def _batch(**options: str) -> Batch:
    batch = Batch(**options)  # type: ignore[arg-type]
    batch.add(
        Point(measurement="requests.count", tags={"host": "a"}, fields={"value": 1}, timestamp=TS)
    )
    batch.add(Point(measurement="load.gauge", fields={"value": 0.5}, timestamp=TS))
    return batch


class RecordingHandler:
    """httpx.MockTransport handler that records requests."""

    def __init__(self, status: int = 204, text: str = "", ping_status: int = 204) -> None:
        self.status = status
        self.text = text
        self.ping_status = ping_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/ping"):
            return httpx.Response(self.ping_status, headers={"X-Influxdb-Version": "1.8.10"})
        return httpx.Response(self.status, text=self.text)


def _transport(handler: RecordingHandler, **kwargs: str) -> HttpTransport:
    return HttpTransport(
        "http://influx.local:8086",
        http_transport=httpx.MockTransport(handler),
        **kwargs,  # type: ignore[arg-type]
    )


class TestHttpConnect:
    """Tests for client lifecycle."""

    @pytest.mark.asyncio
    async def test_not_connected_initially(self) -> None:
        """Test that nothing is connected before connect()."""
        transport = _transport(RecordingHandler())

        assert transport.connected is False

    @pytest.mark.asyncio
    async def test_connect_and_close(self) -> None:
        """Test connect then close."""
        transport = _transport(RecordingHandler())

        await transport.connect()
        assert transport.connected is True

        await transport.close()
        assert transport.connected is False

    @pytest.mark.asyncio
    async def test_reconnect_replaces_client(self) -> None:
        """Test that connect() replaces the previous client."""
        transport = _transport(RecordingHandler())
        await transport.connect()
        first = transport._client

        await transport.connect()

        assert transport._client is not first
        assert first is not None and first.is_closed
        assert transport.connected is True
        await transport.close()

    @pytest.mark.asyncio
    async def test_close_when_not_connected(self) -> None:
        """Test that close() is safe without a client."""
        transport = _transport(RecordingHandler())

        await transport.close()

        assert transport.connected is False


class TestHttpWrite:
    """Tests for batch writes."""

    @pytest.mark.asyncio
    async def test_write_request(self) -> None:
        """Test the write request shape."""
        handler = RecordingHandler()
        transport = _transport(handler)
        await transport.connect()

        await transport.write(_batch(database="metrics", precision="s"))

        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/write"
        assert request.url.params["db"] == "metrics"
        assert request.url.params["precision"] == "s"
        assert "rp" not in request.url.params
        assert request.content == (
            b"requests.count,host=a value=1i 1704067200\nload.gauge value=0.5 1704067200"
        )
        assert "Authorization" not in request.headers
        await transport.close()

    @pytest.mark.asyncio
    async def test_retention_policy(self) -> None:
        """Test that the retention policy is passed as rp."""
        handler = RecordingHandler()
        transport = _transport(handler)
        await transport.connect()

        await transport.write(_batch(database="metrics", retention_policy="weekly"))

        assert handler.requests[0].url.params["rp"] == "weekly"
        await transport.close()

    @pytest.mark.asyncio
    async def test_basic_auth(self) -> None:
        """Test that credentials are sent as basic auth."""
        handler = RecordingHandler()
        transport = _transport(handler, username="admin", password="secret")
        await transport.connect()

        await transport.write(_batch())

        expected = base64.b64encode(b"admin:secret").decode()
        assert handler.requests[0].headers["Authorization"] == f"Basic {expected}"
        await transport.close()

    @pytest.mark.asyncio
    async def test_status_200_accepted(self) -> None:
        """Test that 200 counts as success."""
        transport = _transport(RecordingHandler(status=200))
        await transport.connect()

        await transport.write(_batch())
        await transport.close()

    @pytest.mark.asyncio
    async def test_error_status(self) -> None:
        """Test that an error status raises WriteError with the body."""
        handler = RecordingHandler(status=404, text='{"error":"database not found: \\"nope\\""}')
        transport = _transport(handler)
        await transport.connect()

        with pytest.raises(WriteError, match="404") as exc_info:
            await transport.write(_batch(database="nope"))

        assert "database not found" in str(exc_info.value)
        assert exc_info.value.address == "http://influx.local:8086"
        await transport.close()

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        """Test that connection errors become WriteError."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = HttpTransport(
            "http://influx.local:8086",
            http_transport=httpx.MockTransport(refuse),
        )
        await transport.connect()

        with pytest.raises(WriteError, match="connection refused"):
            await transport.write(_batch())
        await transport.close()

    @pytest.mark.asyncio
    async def test_write_without_connect(self) -> None:
        """Test that writing without a client raises WriteError."""
        transport = _transport(RecordingHandler())

        with pytest.raises(WriteError, match="not connected"):
            await transport.write(_batch())


class TestHttpPing:
    """Tests for the liveness probe."""

    @pytest.mark.asyncio
    async def test_ping_ok(self) -> None:
        """Test that 204 is healthy."""
        handler = RecordingHandler()
        transport = _transport(handler)
        await transport.connect()

        elapsed = await transport.ping(timeout=1.0)

        assert elapsed >= 0
        assert handler.requests[0].method == "GET"
        assert handler.requests[0].url.path == "/ping"
        await transport.close()

    @pytest.mark.asyncio
    async def test_ping_bad_status(self) -> None:
        """Test that any status but 204 fails."""
        transport = _transport(RecordingHandler(ping_status=200))
        await transport.connect()

        with pytest.raises(HealthCheckError, match="200"):
            await transport.ping(timeout=1.0)
        await transport.close()

    @pytest.mark.asyncio
    async def test_ping_timeout(self) -> None:
        """Test that a timeout becomes HealthCheckError."""

        def slow(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        transport = HttpTransport(
            "http://influx.local:8086",
            http_transport=httpx.MockTransport(slow),
        )
        await transport.connect()

        with pytest.raises(HealthCheckError, match="ReadTimeout"):
            await transport.ping(timeout=0.1)
        await transport.close()

    @pytest.mark.asyncio
    async def test_ping_without_connect(self) -> None:
        """Test that pinging without a client fails."""
        transport = _transport(RecordingHandler())

        with pytest.raises(HealthCheckError, match="not connected"):
            await transport.ping(timeout=1.0)

    @pytest.mark.asyncio
    async def test_base_path_preserved(self) -> None:
        """Test that a path prefix in the address is kept."""
        handler = RecordingHandler()
        transport = HttpTransport(
            "https://proxy.local/influx/",
            http_transport=httpx.MockTransport(handler),
        )
        await transport.connect()

        await transport.ping(timeout=1.0)

        assert str(handler.requests[0].url) == "https://proxy.local/influx/ping"
        await transport.close()
