"""No-op providers (log only) used until a real backend is configured."""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List
from uuid import uuid4

from stridewise.services.planning.models import CalendarMeeting
from stridewise.services.providers.base import ActivityDataProvider, CalendarProvider, WorkoutRecord

logger = logging.getLogger(__name__)


class NoopCalendarProvider(CalendarProvider):
    def fetch_events(self, day: date) -> List[CalendarMeeting]:
        logger.debug("Calendar fetch (noop) day=%s", day.isoformat())
        return []

    def create_event(
        self,
        *,
        title: str,
        start: datetime,
        end: datetime,
        notes: str,
        alarm_offset_minutes: int,
    ) -> str:
        event_id = f"noop-{uuid4()}"
        logger.info("Calendar event created (noop) id=%s title=%s start=%s", event_id, title, start.isoformat())
        return event_id

    def delete_event(self, event_id: str) -> None:
        logger.info("Calendar event deleted (noop) id=%s", event_id)


class NoopActivityDataProvider(ActivityDataProvider):
    def fetch_steps(self, day: date) -> int:
        return 0

    def fetch_workouts(self, day: date) -> List[WorkoutRecord]:
        return []
