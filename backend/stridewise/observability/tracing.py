"""Opik trace spans for planner, autopilot and job operations."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional

from stridewise.core.context import get_request_id
from stridewise.observability.client import get_opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace
else:  # pragma: no cover - typing helper
    Trace = object  # type: ignore[assignment]

logger = logging.getLogger(__name__)


def _span_metadata(metadata: Optional[Dict[str, Any]], request_id: Optional[str]) -> Dict[str, Any]:
    cleaned = {key: value for key, value in (metadata or {}).items() if value is not None}
    rid = request_id or get_request_id()
    if rid:
        cleaned.setdefault("request_id", rid)
    return cleaned


def _open_span(name: str, metadata: Dict[str, Any], tags: List[str]) -> Optional["Trace"]:
    client = get_opik_client()
    if client is None:
        return None
    try:
        return client.trace(name=name, metadata=metadata or None, tags=tags or None)
    except Exception as exc:  # pragma: no cover - defensive guard
        logger.debug("Opik trace %s not started: %s", name, exc)
        return None


def _safe(span: "Trace", action: str, name: str, **kwargs: Any) -> None:
    try:
        getattr(span, action)(**kwargs)
    except Exception:  # pragma: no cover
        logger.debug("Opik trace %s: %s failed", name, action, exc_info=True)


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> Iterator[Optional["Trace"]]:
    """
    Wrap a block in an Opik trace named ``name``.

    ``None`` metadata values are dropped and the request id falls back to the
    one bound in the logging context, so traces opened inside scheduler jobs
    carry the job's id. Yields ``None`` while Opik is disabled. Exceptions are
    attached to the trace and re-raised.
    """
    span = _open_span(name, _span_metadata(metadata, request_id), [name.split(".", 1)[0]])
    try:
        yield span
    except Exception as exc:
        if span is not None:
            _safe(span, "update", name, error_info={"message": str(exc), "type": type(exc).__name__})
        raise
    finally:
        if span is not None:
            _safe(span, "end", name)
