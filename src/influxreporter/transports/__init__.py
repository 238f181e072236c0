"""Transports for influxreporter.

- Transport: Abstract sink with connect/write/ping/close
- HttpTransport: InfluxDB HTTP write API with basic auth
- UdpTransport: Fire-and-forget datagrams with a bounded payload
- create_transport: Picks the variant from the address scheme
"""

from influxreporter.transports.base import Transport
from influxreporter.transports.factory import (
    VALID_SCHEMES,
    create_transport,
    parse_address,
)
from influxreporter.transports.http import HttpTransport
from influxreporter.transports.udp import UdpTransport, chunk_lines

__all__ = [
    "Transport",
    "HttpTransport",
    "UdpTransport",
    "VALID_SCHEMES",
    "chunk_lines",
    "create_transport",
    "parse_address",
]
