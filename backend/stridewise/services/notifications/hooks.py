"""Notification dispatch used by the autopilot: gating, tracing, metrics and audit log."""
from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from time import perf_counter
from typing import Callable, List

from stridewise.core.config import settings
from stridewise.core.context import get_request_id
from stridewise.observability.metrics import log_metric
from stridewise.observability.tracing import trace
from stridewise.services.action_log import ActionRecorder
from stridewise.services.notifications.base import NotificationResult, NotificationService
from stridewise.services.notifications.factory import get_notification_service
from stridewise.services.planning.models import AutopilotWalk

logger = logging.getLogger(__name__)

APPROVAL_PROMPT = "approval_prompt"
SUMMARY = "summary"


def _evening_before(walk_date, hour: int, now: datetime) -> datetime:
    """Configured hour on the eve of ``walk_date``, or ``now`` when that hour has already passed."""
    return max(datetime.combine(walk_date - timedelta(days=1), time(hour=hour)), now)


class NotificationDispatcher:
    """Fire-and-forget notifications; failures are logged and recorded, never raised."""

    def __init__(self, recorder: ActionRecorder, clock: Callable[[], datetime] = datetime.now) -> None:
        self._recorder = recorder
        self._clock = clock

    def schedule_approval_prompt(self, walk: AutopilotWalk) -> NotificationResult:
        fire_at = _evening_before(walk.walk_date, settings.approval_prompt_hour, self._clock())
        return self._dispatch(
            APPROVAL_PROMPT,
            [walk],
            fire_at,
            lambda service, rid: service.schedule_approval_prompt(walk=walk, fire_at=fire_at, request_id=rid),
        )

    def schedule_summary(self, walks: List[AutopilotWalk]) -> NotificationResult:
        if not walks:
            result = NotificationResult(status="skipped", reason="no walks to summarize")
            self._record(SUMMARY, walks, None, result)
            return result
        fire_at = _evening_before(walks[0].walk_date, settings.summary_hour, self._clock())
        return self._dispatch(
            SUMMARY,
            walks,
            fire_at,
            lambda service, rid: service.schedule_summary(walks=walks, fire_at=fire_at, request_id=rid),
        )

    def _dispatch(
        self,
        job_name: str,
        walks: List[AutopilotWalk],
        fire_at: datetime,
        send: Callable[[NotificationService, str | None], NotificationResult],
    ) -> NotificationResult:
        if not settings.notifications_enabled:
            result = NotificationResult(status="skipped", reason="notifications disabled")
            self._record(job_name, walks, fire_at, result)
            return result

        request_id = get_request_id()
        service = get_notification_service()
        metadata = {
            "provider": settings.notifications_provider,
            "walks": len(walks),
            "fire_at": fire_at.isoformat(),
        }
        start = perf_counter()
        with trace(f"notifications.{job_name}", metadata=metadata, request_id=request_id):
            try:
                result = send(service, request_id)
            except Exception as exc:
                logger.warning("Notification %s failed: %s", job_name, exc, exc_info=True)
                result = NotificationResult(status="failed", reason=str(exc))

        log_metric("notifications.sent", 1 if result.status != "failed" else 0, metadata={"job": job_name})
        log_metric("notifications.duration_ms", (perf_counter() - start) * 1000, metadata={"job": job_name})
        self._record(job_name, walks, fire_at, result)
        return result

    def _record(
        self,
        job_name: str,
        walks: List[AutopilotWalk],
        fire_at: datetime | None,
        result: NotificationResult,
    ) -> None:
        if result.status == "skipped":
            log_metric("notifications.skipped", 1, metadata={"job": job_name})
        self._recorder.record(
            f"notification_{job_name}",
            {
                "walk_ids": [walk.id for walk in walks],
                "fire_at": fire_at.isoformat() if fire_at else None,
                "provider": settings.notifications_provider,
                "result": result.__dict__,
            },
            reason="Notification dispatched" if result.status not in {"skipped", "failed"} else f"Notification {result.status}",
        )
