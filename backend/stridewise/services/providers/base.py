"""Calendar and activity-data provider interfaces."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional

from stridewise.services.planning.models import CalendarMeeting


@dataclass
class WorkoutRecord:
    start: datetime
    duration_minutes: int
    kind: Optional[str] = None


class CalendarProvider:
    """Base interface for calendar backends."""

    def fetch_events(self, day: date) -> List[CalendarMeeting]:
        raise NotImplementedError

    def create_event(
        self,
        *,
        title: str,
        start: datetime,
        end: datetime,
        notes: str,
        alarm_offset_minutes: int,
    ) -> str:
        raise NotImplementedError

    def delete_event(self, event_id: str) -> None:
        raise NotImplementedError


class ActivityDataProvider:
    """Base interface for step and workout history sources."""

    def fetch_steps(self, day: date) -> int:
        raise NotImplementedError

    def fetch_workouts(self, day: date) -> List[WorkoutRecord]:
        raise NotImplementedError

    def fetch_hourly_steps(self, day: date) -> Dict[int, int]:
        """Steps per hour of ``day``; providers without hourly data return nothing."""
        return {}
