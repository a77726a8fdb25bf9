"""Fakes and builders shared by the test modules."""
from __future__ import annotations

from datetime import date, datetime, time
from typing import Dict, List, Optional

from stridewise.services.planning.models import CalendarMeeting
from stridewise.services.providers.base import ActivityDataProvider, CalendarProvider, WorkoutRecord


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute))


def meeting(day: date, start: tuple, end: tuple, *, title: str = "Meeting", attendees: int = 5, **extra) -> CalendarMeeting:
    return CalendarMeeting(
        id=extra.pop("id", f"m-{title}-{start[0]}{start[1]:02d}"),
        title=title,
        start=at(day, *start),
        end=at(day, *end),
        attendee_count=attendees,
        **extra,
    )


class FakeCalendar(CalendarProvider):
    def __init__(self, events: Optional[Dict[date, List[CalendarMeeting]]] = None) -> None:
        self.events = events or {}
        self.created: List[dict] = []
        self.deleted: List[str] = []
        self.fail_fetch = False
        self.fail_create = False

    def fetch_events(self, day: date) -> List[CalendarMeeting]:
        if self.fail_fetch:
            raise ConnectionError("calendar offline")
        return list(self.events.get(day, []))

    def create_event(self, *, title, start, end, notes, alarm_offset_minutes) -> str:
        if self.fail_create:
            raise PermissionError("calendar access denied")
        event_id = f"evt-{len(self.created) + 1}"
        self.created.append(
            {"id": event_id, "title": title, "start": start, "end": end, "notes": notes, "alarm": alarm_offset_minutes}
        )
        return event_id

    def delete_event(self, event_id: str) -> None:
        self.deleted.append(event_id)


class FakeActivityData(ActivityDataProvider):
    def __init__(self, steps: Optional[Dict[date, int]] = None) -> None:
        self.steps = steps or {}
        self.workouts: Dict[date, List[WorkoutRecord]] = {}
        self.hourly: Dict[date, Dict[int, int]] = {}
        self.fail = False

    def fetch_steps(self, day: date) -> int:
        if self.fail:
            raise TimeoutError("health data unavailable")
        return self.steps.get(day, 0)

    def fetch_workouts(self, day: date) -> List[WorkoutRecord]:
        return list(self.workouts.get(day, []))

    def fetch_hourly_steps(self, day: date) -> Dict[int, int]:
        return dict(self.hourly.get(day, {}))
