"""Process-wide Opik client used by :mod:`stridewise.observability.tracing`."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from stridewise.core.config import settings

try:
    from opik import Opik
except ImportError:  # pragma: no cover
    Opik = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

_client: Optional["Opik"] = None
_client_lock = Lock()
_init_attempted = False


def _build_client() -> Optional["Opik"]:
    if not settings.opik_enabled:
        logger.debug("Opik tracing disabled")
        return None
    if not settings.opik_api_key:
        logger.warning("OPIK_ENABLED is set without OPIK_API_KEY; planner traces will not be exported")
        return None
    try:
        client = Opik(project_name=settings.opik_project, api_key=settings.opik_api_key)
    except Exception as exc:  # pragma: no cover - defensive guard
        logger.warning("Opik client could not be created, tracing stays off: %s", exc)
        return None
    logger.info("Opik tracing on (project=%s)", settings.opik_project)
    return client


def init_opik() -> Optional["Opik"]:
    """Build the client on first use; later calls return the cached result, even a ``None``."""
    global _client, _init_attempted

    if Opik is None:
        return None
    with _client_lock:
        if not _init_attempted:
            _init_attempted = True
            _client = _build_client()
        return _client


def get_opik_client() -> Optional["Opik"]:
    return _client if _client is not None else init_opik()


def reset_opik_client() -> None:
    """Forget the cached client so the next call re-reads settings."""
    global _client, _init_attempted
    with _client_lock:
        _client = None
        _init_attempted = False
