"""Append-only audit trail of autopilot decisions and notification outcomes."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stridewise.core.context import get_request_id
from stridewise.db.models.action_log import ActionLog

logger = logging.getLogger(__name__)


class ActionRecorder:
    """Writes :class:`ActionLog` rows; without a session factory it only logs."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None) -> None:
        self._session_factory = session_factory

    def record(
        self,
        action_type: str,
        payload: Dict[str, Any],
        *,
        reason: str | None = None,
        request_id: str | None = None,
    ) -> None:
        rid = request_id or get_request_id()
        logger.info("Action %s recorded (%s)", action_type, reason or "-")
        if self._session_factory is None:
            return

        session = self._session_factory()
        try:
            session.add(
                ActionLog(
                    action_type=action_type,
                    action_payload=payload,
                    reason=reason,
                    request_id=rid or "",
                )
            )
            session.commit()
        except SQLAlchemyError:  # pragma: no cover - defensive guard
            session.rollback()
            logger.exception("Failed to write action log entry %s", action_type)
        finally:
            session.close()

    def recent(self, *, action_type: str | None = None, limit: int = 50) -> List[ActionLog]:
        if self._session_factory is None:
            return []
        session = self._session_factory()
        try:
            query = session.query(ActionLog)
            if action_type:
                query = query.filter(ActionLog.action_type == action_type)
            return query.order_by(ActionLog.created_at.desc()).limit(limit).all()
        finally:
            session.close()
