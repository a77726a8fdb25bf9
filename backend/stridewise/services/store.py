"""Key-value persistence for planner statistics, streaks, plans and autopilot walks.

Values are JSON-compatible documents (dicts, lists, scalars). Typed callers go
through :func:`load_model`, which turns missing or corrupt documents into the
model's defaults instead of raising.
"""
from __future__ import annotations

import copy
import logging
from threading import Lock
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stridewise.db.models.kv_entry import KeyValueEntry

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class Store:
    """Base interface for key-value storage backends."""

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def put(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(Store):
    """Process-local store; values are deep-copied on the way in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})
        self._lock = Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return copy.deepcopy(self._data.get(key))

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)


class SqlStore(Store):
    """Store backed by the ``kv_entries`` table; one short session per call."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[Any]:
        session = self._session_factory()
        try:
            row = session.get(KeyValueEntry, key)
            return None if row is None else row.value
        finally:
            session.close()

    def put(self, key: str, value: Any) -> None:
        session = self._session_factory()
        try:
            row = session.get(KeyValueEntry, key)
            if row is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                row.value = value
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Failed to persist store key %s", key)
            raise
        finally:
            session.close()

    def delete(self, key: str) -> None:
        session = self._session_factory()
        try:
            row = session.get(KeyValueEntry, key)
            if row is not None:
                session.delete(row)
                session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Failed to delete store key %s", key)
            raise
        finally:
            session.close()


def load_model(store: Store, key: str, model: Type[ModelT]) -> ModelT:
    """Return ``model`` parsed from ``store[key]``, or ``model()`` when absent or unreadable."""
    raw = store.get(key)
    if raw is None:
        return model()
    try:
        return model.model_validate(raw)
    except (ValidationError, TypeError, ValueError) as exc:
        logger.warning("Stored value for %s is unreadable, using defaults: %s", key, exc)
        return model()


def save_model(store: Store, key: str, value: BaseModel) -> None:
    store.put(key, value.model_dump(mode="json"))
