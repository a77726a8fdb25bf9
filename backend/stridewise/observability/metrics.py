"""Lightweight metrics helpers."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from time import perf_counter
from typing import Any, Dict, Iterator, Optional

from stridewise.observability.tracing import trace

logger = logging.getLogger(__name__)


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record a metric as a short-lived Opik trace when tracing is enabled."""
    payload: Dict[str, Any] = {"value": value}
    if metadata:
        payload.update(metadata)

    try:
        with trace(f"metric:{name}", metadata=payload):
            pass
    except Exception as exc:  # pragma: no cover - defensive
        logger.debug("Unable to record metric %s: %s", name, exc)


@contextmanager
def timed(name: str, metadata: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
    """Emit ``<name>.latency_ms`` and ``<name>.success`` around the block.

    The yielded dict is merged into the metric metadata, so callers can attach
    outcome details (counts, flags) discovered inside the block.
    """
    extra: Dict[str, Any] = {}
    start = perf_counter()
    success = False
    try:
        yield extra
        success = True
    finally:
        latency_ms = (perf_counter() - start) * 1000
        merged = {**(metadata or {}), **extra}
        log_metric(f"{name}.success", 1 if success else 0, metadata=merged)
        log_metric(f"{name}.latency_ms", latency_ms, metadata=merged)
