"""Registry walking for influxreporter.

This module provides the batch accumulator used by every flush:

- Registry: Protocol for registries visited with each(visitor)
- iter_registry: Uniform (name, metric) iteration over registries and mappings
- collect_batch: One registry walk producing one Batch
"""

from influxreporter.collectors.accumulator import (
    Clock,
    Registry,
    collect_batch,
    is_registry,
    iter_registry,
)

__all__ = [
    "Clock",
    "Registry",
    "collect_batch",
    "is_registry",
    "iter_registry",
]
