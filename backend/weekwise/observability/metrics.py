"""Lightweight metrics helpers."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from weekwise.observability import tracing


def log_metric(name: str, value: float | int, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Record a metric as a short Opik trace; silently skipped when Opik is off."""
    if not tracing.get_opik_client():
        return

    payload: Dict[str, Any] = {"value": value}
    if metadata:
        payload.update(metadata)

    with tracing.trace(f"metric:{name}", metadata=payload):
        pass


@contextmanager
def timed(name: str, metadata: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
    """Emit ``<name>_latency_ms`` for the enclosed block.

    The yielded dict is merged into the metric metadata, so callers can record
    outcome details (``result["success"] = False``) before the block exits.
    """
    extra: Dict[str, Any] = dict(metadata or {})
    start = time.perf_counter()
    try:
        yield extra
    finally:
        latency_ms = (time.perf_counter() - start) * 1000
        log_metric(f"{name}_latency_ms", latency_ms, metadata=extra)
