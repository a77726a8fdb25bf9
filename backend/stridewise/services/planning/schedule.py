"""Manually scheduled, optionally recurring walks and workouts."""
from __future__ import annotations

import logging
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from threading import Lock
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from stridewise.services.planning.intervals import TimeInterval
from stridewise.services.planning.models import PlanningError
from stridewise.services.store import Store

logger = logging.getLogger(__name__)

SCHEDULE_KEY = "schedule.activities"


class ScheduledActivityNotFound(PlanningError):
    pass


class Recurrence(str, Enum):
    ONCE = "once"
    WEEKLY = "weekly"
    WEEKDAYS = "weekdays"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class ScheduledActivity(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    activity_kind: str = Field(default="walk", pattern="^(walk|workout)$")
    title: str
    start_hour: int = Field(ge=0, le=23)
    start_minute: int = Field(default=0, ge=0, le=59)
    duration_minutes: int = Field(gt=0, le=240)
    recurrence: Recurrence = Recurrence.ONCE
    start_date: date
    end_date: Optional[date] = None
    is_active: bool = True

    def occurs_on(self, day: date) -> bool:
        if not self.is_active or day < self.start_date:
            return False
        if self.end_date is not None and day > self.end_date:
            return False
        if self.recurrence is Recurrence.ONCE:
            return day == self.start_date
        if self.recurrence is Recurrence.WEEKLY:
            return day.weekday() == self.start_date.weekday()
        if self.recurrence is Recurrence.WEEKDAYS:
            return day.weekday() < 5
        if self.recurrence is Recurrence.BIWEEKLY:
            weeks = (day - self.start_date).days // 7
            return day.weekday() == self.start_date.weekday() and weeks % 2 == 0
        # Months without the start day fire on their last day instead.
        return day.day == min(self.start_date.day, monthrange(day.year, day.month)[1])

    def interval_on(self, day: date) -> TimeInterval:
        start = datetime.combine(day, time(self.start_hour, self.start_minute))
        return TimeInterval(start, start + timedelta(minutes=self.duration_minutes))


@dataclass(frozen=True)
class ScheduledOccurrence:
    activity_id: str
    title: str
    activity_kind: str
    interval: TimeInterval

    @property
    def label(self) -> str:
        return self.title


_activities_adapter = TypeAdapter(List[ScheduledActivity])


class ScheduleBook:
    """Store-backed list of manual schedule entries."""

    def __init__(self, store: Store) -> None:
        self._store = store
        self._lock = Lock()

    def list(self) -> List[ScheduledActivity]:
        raw = self._store.get(SCHEDULE_KEY)
        if raw is None:
            return []
        try:
            return _activities_adapter.validate_python(raw)
        except ValidationError as exc:
            logger.warning("Stored schedule is unreadable, starting empty: %s", exc)
            return []

    def _save(self, activities: List[ScheduledActivity]) -> None:
        self._store.put(SCHEDULE_KEY, _activities_adapter.dump_python(activities, mode="json"))

    def add(self, activity: ScheduledActivity) -> ScheduledActivity:
        with self._lock:
            activities = [a for a in self.list() if a.id != activity.id]
            activities.append(activity)
            self._save(activities)
        logger.info("Scheduled %s '%s' (%s)", activity.activity_kind, activity.title, activity.recurrence.value)
        return activity

    def remove(self, activity_id: str) -> None:
        with self._lock:
            activities = self.list()
            kept = [a for a in activities if a.id != activity_id]
            if len(kept) == len(activities):
                raise ScheduledActivityNotFound(f"scheduled activity {activity_id} not found")
            self._save(kept)

    def occurrences(self, day: date) -> List[ScheduledOccurrence]:
        found = [
            ScheduledOccurrence(a.id, a.title, a.activity_kind, a.interval_on(day))
            for a in self.list()
            if a.occurs_on(day)
        ]
        return sorted(found, key=lambda occ: (occ.interval.start, occ.activity_id))
