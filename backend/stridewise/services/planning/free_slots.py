"""Free slot finder: a linear sweep over sorted busy intervals inside the active window."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from stridewise.services.planning.busy import active_window
from stridewise.services.planning.intervals import TimeInterval
from stridewise.services.planning.models import BusyInterval, FreeSlot, SlotClass
from stridewise.services.planning.preferences import UserPreferences

DEFAULT_MIN_SLOT_MINUTES = 5


def find_free_slots(
    day: date,
    busy: Iterable[BusyInterval],
    window: Optional[TimeInterval] = None,
    min_duration: int = DEFAULT_MIN_SLOT_MINUTES,
    prefs: Optional[UserPreferences] = None,
) -> List[FreeSlot]:
    """
    Return the gaps of ``window`` not covered by ``busy``, in start order.

    When ``window`` is omitted it is derived from ``prefs`` for ``day``; a
    misconfigured wake/sleep pair yields an empty list. Gaps shorter than
    ``min_duration`` minutes are dropped. Meal-adjacent slots are kept and
    flagged; filtering them is up to the caller.
    """
    prefs = prefs or UserPreferences()
    if window is None:
        window = active_window(day, prefs)
    if window is None:
        return []

    minimum = timedelta(minutes=min_duration)
    slots: List[FreeSlot] = []
    cursor = window.start

    for item in sorted(busy, key=lambda b: (b.start, b.end)):
        if item.end <= window.start or item.start >= window.end:
            continue
        start = max(item.start, window.start)
        end = min(item.end, window.end)
        if start > cursor:
            _emit(slots, cursor, start, minimum, prefs)
        cursor = max(cursor, end)

    if cursor < window.end:
        _emit(slots, cursor, window.end, minimum, prefs)
    return slots


def _emit(slots: List[FreeSlot], start: datetime, end: datetime, minimum: timedelta, prefs: UserPreferences) -> None:
    if end - start < minimum:
        return
    interval = TimeInterval(start, end)
    slots.append(
        FreeSlot(
            interval=interval,
            slot_class=SlotClass.for_minutes(interval.duration_minutes),
            is_during_meal=prefs.is_during_meal(start),
            is_preferred_time=prefs.is_preferred_walk_hour(start.hour),
        )
    )
