"""No-op notification provider (logs only)."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List

from stridewise.services.notifications.base import NotificationResult, NotificationService
from stridewise.services.planning.models import AutopilotWalk

logger = logging.getLogger(__name__)


class NoopNotificationService(NotificationService):
    def schedule_approval_prompt(
        self,
        *,
        walk: AutopilotWalk,
        fire_at: datetime,
        request_id: str | None,
    ) -> NotificationResult:
        logger.info(
            "Notification queued (noop) approval_prompt walk=%s start=%s fire_at=%s",
            walk.id,
            walk.start_time.isoformat(),
            fire_at.isoformat(),
        )
        return NotificationResult(status="noop", reason="notification provider is noop")

    def schedule_summary(
        self,
        *,
        walks: List[AutopilotWalk],
        fire_at: datetime,
        request_id: str | None,
    ) -> NotificationResult:
        logger.info("Notification queued (noop) summary walks=%d fire_at=%s", len(walks), fire_at.isoformat())
        return NotificationResult(status="noop", reason="notification provider is noop")
