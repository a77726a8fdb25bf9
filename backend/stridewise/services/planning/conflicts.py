"""Detect clashes between scheduled activities, calendar meetings and the manual schedule."""
from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Iterable, List, Optional, Protocol, Tuple

from pydantic import BaseModel

from stridewise.services.planning.intervals import TimeInterval, gap_between
from stridewise.services.planning.models import CalendarMeeting
from stridewise.services.planning.schedule import ScheduledOccurrence

PROXIMITY = timedelta(minutes=30)


class ConflictKind(str, Enum):
    OVERLAP = "overlap"
    TOO_CLOSE = "too_close"


class ConflictSource(str, Enum):
    CALENDAR = "calendar"
    SCHEDULE = "schedule"


class ScheduleConflict(BaseModel):
    """``meeting_*`` name the other side: a calendar meeting or a manual schedule entry."""

    activity_id: str
    activity_label: str
    meeting_id: str
    meeting_title: str
    kind: ConflictKind
    description: str
    source: ConflictSource = ConflictSource.CALENDAR


class SchedulableItem(Protocol):
    @property
    def interval(self) -> TimeInterval: ...

    @property
    def label(self) -> str: ...


def _is_too_close(activity: TimeInterval, meeting: TimeInterval) -> bool:
    return gap_between(activity, meeting) < PROXIMITY


def _clash(
    item_id: str,
    item: SchedulableItem,
    other_id: str,
    other_title: str,
    other: TimeInterval,
    source: ConflictSource,
) -> Optional[ScheduleConflict]:
    if item.interval.overlaps(other):
        kind = ConflictKind.OVERLAP
        description = f"{item.label} overlaps with {other_title}"
    elif _is_too_close(item.interval, other):
        kind = ConflictKind.TOO_CLOSE
        description = f"{item.label} is less than 30 minutes from {other_title}"
    else:
        return None
    return ScheduleConflict(
        activity_id=item_id,
        activity_label=item.label,
        meeting_id=other_id,
        meeting_title=other_title,
        kind=kind,
        description=description,
        source=source,
    )


def _ordered(conflicts: Iterable[Optional[ScheduleConflict]]) -> List[ScheduleConflict]:
    return sorted((c for c in conflicts if c is not None), key=lambda c: (c.activity_id, c.meeting_id))


def detect_conflicts(
    items: Iterable[Tuple[str, SchedulableItem]],
    meetings: Iterable[CalendarMeeting],
) -> List[ScheduleConflict]:
    """Report overlaps and sub-30-minute proximity; nothing is resolved automatically."""
    real_meetings = [m for m in meetings if m.is_real_meeting and m.interval is not None]
    return _ordered(
        _clash(item_id, item, meeting.id, meeting.title, meeting.interval, ConflictSource.CALENDAR)
        for item_id, item in items
        for meeting in real_meetings
    )


def detect_plan_conflicts(
    planned: Iterable[Tuple[str, SchedulableItem]],
    manual: Iterable[ScheduledOccurrence],
) -> List[ScheduleConflict]:
    """Planned activities that clash with manual schedule entries added after the plan."""
    entries = list(manual)
    return _ordered(
        _clash(item_id, item, entry.activity_id, entry.title, entry.interval, ConflictSource.SCHEDULE)
        for item_id, item in planned
        for entry in entries
    )
