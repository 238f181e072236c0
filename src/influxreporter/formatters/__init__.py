"""Formatters package for influxreporter.

This package converts registry entries into wire-ready data:

- encode_metric: Metric snapshot to Point, one field set per metric kind
- encode_batch / encode_point: Point to InfluxDB line protocol
"""

from influxreporter.formatters.line_protocol import (
    encode_batch,
    encode_point,
    iter_lines,
    to_epoch,
)
from influxreporter.formatters.points import QUANTILE_FIELDS, QUANTILES, encode_metric

__all__ = [
    "QUANTILES",
    "QUANTILE_FIELDS",
    "encode_metric",
    "encode_batch",
    "encode_point",
    "iter_lines",
    "to_epoch",
]
