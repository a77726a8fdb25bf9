"""Notification service interface."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List

from stridewise.services.planning.models import AutopilotWalk


@dataclass
class NotificationResult:
    status: str
    reason: str


class NotificationService:
    """Base interface for notification providers."""

    def schedule_approval_prompt(
        self,
        *,
        walk: AutopilotWalk,
        fire_at: datetime,
        request_id: str | None,
    ) -> NotificationResult:
        raise NotImplementedError

    def schedule_summary(
        self,
        *,
        walks: List[AutopilotWalk],
        fire_at: datetime,
        request_id: str | None,
    ) -> NotificationResult:
        raise NotImplementedError
