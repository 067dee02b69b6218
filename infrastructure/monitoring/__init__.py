"""Counters for schema synthesis and decoding, mirrored into OpenTelemetry."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict

from opentelemetry import metrics

_meter = metrics.get_meter("typewire")
_counters: Dict[str, Any] = {}
_metrics: Dict[str, float] = {}
_lock = threading.Lock()

_OBSERVABILITY_LOGGER = logging.getLogger("typewire.observability")


def _counter(name: str) -> Any:
    counter = _counters.get(name)
    if counter is None:
        counter = _meter.create_counter(name)
        _counters[name] = counter
    return counter


def increment_metric(name: str, value: float = 1.0) -> float:
    """Add *value* to the counter *name* and return the new local total."""

    with _lock:
        _counter(name).add(value)
        total = _metrics.get(name, 0.0) + value
        _metrics[name] = total
    _OBSERVABILITY_LOGGER.debug("metric %s=%s", name, total)
    return total


def get_metric(name: str) -> float:
    """Retrieve a recorded metric."""

    with _lock:
        return _metrics.get(name, 0.0)


def snapshot_metrics() -> Dict[str, float]:
    with _lock:
        return dict(_metrics)


def reset_metrics() -> None:
    """Forget local totals; OpenTelemetry counters are monotonic and unaffected."""

    with _lock:
        _metrics.clear()


__all__ = [
    "get_metric",
    "increment_metric",
    "reset_metrics",
    "snapshot_metrics",
]
