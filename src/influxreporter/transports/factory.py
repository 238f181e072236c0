"""Transport selection by destination address scheme."""

from urllib.parse import SplitResult, urlsplit

import httpx

from influxreporter.config.loader import ReporterConfig
from influxreporter.errors import ConfigValidationError, InvalidSchemeError
from influxreporter.transports.base import Transport
from influxreporter.transports.http import HttpTransport
from influxreporter.transports.udp import UdpTransport

TRANSPORT_TYPES: tuple[type[Transport], ...] = (HttpTransport, UdpTransport)

VALID_SCHEMES: set[str] = {scheme for cls in TRANSPORT_TYPES for scheme in cls.schemes}

# InfluxDB's default UDP listener port
DEFAULT_UDP_PORT = 8089


def parse_address(address: str) -> SplitResult:
    """Split a destination address and validate its scheme.

    Args:
        address: Destination URL such as ``http://localhost:8086``

    Returns:
        The split URL

    Raises:
        InvalidSchemeError: If the scheme selects no transport
        ConfigValidationError: If the address has no host or a bad port
    """
    parts = urlsplit(address.strip())
    scheme = parts.scheme.lower()
    if scheme not in VALID_SCHEMES:
        raise InvalidSchemeError(scheme, address, VALID_SCHEMES)

    try:
        parts.port
    except ValueError as e:
        raise ConfigValidationError(
            f"Invalid port in address: {e}",
            address=address,
        ) from e

    if not parts.hostname:
        raise ConfigValidationError(
            "Address has no host",
            address=address,
            suggestion=f"Use the form '{scheme}://host:port'",
        )
    return parts


def create_transport(
    config: ReporterConfig,
    *,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> Transport:
    """Construct the transport selected by the address scheme.

    Nothing is connected yet; call ``connect()`` on the result.

    Args:
        config: Reporter configuration
        http_transport: Optional httpx transport for the HTTP variant

    Returns:
        An HttpTransport for http/https, a UdpTransport for udp

    Raises:
        InvalidSchemeError: If the scheme selects no transport
        ConfigValidationError: If the address is malformed
    """
    parts = parse_address(config.address)
    scheme = parts.scheme.lower()

    if scheme in HttpTransport.schemes:
        return HttpTransport(
            config.address,
            username=config.username,
            password=config.password,
            timeout=config.write_timeout,
            http_transport=http_transport,
        )

    return UdpTransport(
        config.address,
        parts.hostname or "",
        parts.port or DEFAULT_UDP_PORT,
        payload_size=config.udp_payload_size,
    )
