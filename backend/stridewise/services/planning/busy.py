"""Busy interval construction and the active-hours window for a day."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Protocol

from stridewise.services.planning.intervals import TimeInterval, clamp, total_minutes
from stridewise.services.planning.models import BusyInterval, BusySource, CalendarMeeting
from stridewise.services.planning.preferences import UserPreferences

HEAVY_MEETING_DAY_MINUTES = 360


class CommittedActivity(Protocol):
    """Anything already on the day's schedule: planned activities, manual occurrences."""

    @property
    def interval(self) -> TimeInterval: ...

    @property
    def label(self) -> str: ...


def day_bounds(day: date) -> TimeInterval:
    start = datetime.combine(day, time.min)
    return TimeInterval(start, start + timedelta(days=1))


def build_busy_intervals(
    day: date,
    meetings: Iterable[CalendarMeeting],
    activities: Iterable[CommittedActivity] = (),
) -> List[BusyInterval]:
    """Union real meetings and committed activities touching ``day``, sorted by (start, end)."""
    bounds = day_bounds(day)
    busy: List[BusyInterval] = []

    for meeting in meetings:
        if not meeting.is_real_meeting or meeting.interval is None:
            continue
        clipped = clamp(meeting.interval, bounds)
        if clipped is not None:
            busy.append(BusyInterval(clipped, BusySource.MEETING, meeting.title))

    for activity in activities:
        clipped = clamp(activity.interval, bounds)
        if clipped is not None:
            busy.append(BusyInterval(clipped, BusySource.ACTIVITY, activity.label))

    busy.sort(key=lambda item: (item.start, item.end))
    return busy


def active_window(
    day: date,
    prefs: UserPreferences,
    *,
    ceiling_hour: int = 21,
    not_before: Optional[datetime] = None,
) -> Optional[TimeInterval]:
    """Wake + 1h to min(sleep - 1h, ceiling) on ``day``; ``None`` when that range is empty."""
    start, buffered_end = prefs.buffered_active_hours(day)
    end = min(buffered_end, datetime.combine(day, time.min) + timedelta(hours=ceiling_hour))
    if not_before is not None and not_before > start:
        start = not_before
    if start >= end:
        return None
    return TimeInterval(start, end)


def meeting_load_minutes(day: date, meetings: Iterable[CalendarMeeting]) -> int:
    """Minutes of the day covered by at least one real meeting."""
    busy = build_busy_intervals(day, meetings)
    return total_minutes(item.interval for item in busy)


def is_heavy_meeting_day(day: date, meetings: Iterable[CalendarMeeting]) -> bool:
    return meeting_load_minutes(day, meetings) >= HEAVY_MEETING_DAY_MINUTES
