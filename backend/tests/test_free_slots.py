from __future__ import annotations

from datetime import date, time

from helpers import at, meeting
from stridewise.services.planning.busy import (
    active_window,
    build_busy_intervals,
    is_heavy_meeting_day,
    meeting_load_minutes,
)
from stridewise.services.planning.free_slots import find_free_slots
from stridewise.services.planning.intervals import TimeInterval
from stridewise.services.planning.models import BusyInterval, BusySource, SlotClass
from stridewise.services.planning.preferences import UserPreferences

DAY = date(2024, 3, 4)


def _busy(*ranges):
    return [BusyInterval(TimeInterval(at(DAY, *start), at(DAY, *end)), BusySource.MEETING) for start, end in ranges]


def test_sweep_scenario() -> None:
    busy = _busy(((9, 0), (9, 30)), ((10, 0), (11, 0)))
    window = TimeInterval(at(DAY, 8), at(DAY, 18))

    slots = find_free_slots(DAY, busy, window, min_duration=15)

    assert [(s.start, s.end, s.duration_minutes) for s in slots] == [
        (at(DAY, 8), at(DAY, 9), 60),
        (at(DAY, 9, 30), at(DAY, 10), 30),
        (at(DAY, 11), at(DAY, 18), 420),
    ]
    assert [s.slot_class for s in slots] == [SlotClass.EXTENDED, SlotClass.STANDARD, SlotClass.EXTENDED]


def test_short_gaps_are_dropped_and_overlapping_busy_is_merged() -> None:
    busy = _busy(((9, 0), (10, 0)), ((9, 30), (10, 30)), ((10, 40), (12, 0)))
    window = TimeInterval(at(DAY, 9), at(DAY, 13))

    slots = find_free_slots(DAY, busy, window, min_duration=15)

    assert [(s.start, s.end) for s in slots] == [(at(DAY, 12), at(DAY, 13))]


def test_slots_never_overlap_busy_intervals() -> None:
    busy = _busy(((7, 0), (8, 45)), ((11, 50), (13, 10)), ((13, 0), (14, 0)), ((17, 55), (19, 0)))
    window = TimeInterval(at(DAY, 8), at(DAY, 21))

    slots = find_free_slots(DAY, busy, window, min_duration=5)

    for slot in slots:
        assert window.covers(slot.interval)
        assert not any(slot.interval.overlaps(item.interval) for item in busy)
    for earlier, later in zip(slots, slots[1:]):
        assert earlier.end <= later.start


def test_misconfigured_wake_and_sleep_yield_no_slots() -> None:
    prefs = UserPreferences(wake_time=time(22, 0), sleep_time=time(6, 0))

    assert active_window(DAY, prefs) is None
    assert find_free_slots(DAY, [], prefs=prefs) == []


def test_window_derived_from_preferences_and_ceiling() -> None:
    prefs = UserPreferences(wake_time=time(6, 0), sleep_time=time(23, 30))

    window = active_window(DAY, prefs, ceiling_hour=21)

    assert window == TimeInterval(at(DAY, 7), at(DAY, 21))
    assert active_window(DAY, prefs, not_before=at(DAY, 15, 10)).start == at(DAY, 15, 10)
    assert active_window(DAY, prefs, not_before=at(DAY, 22)) is None


def test_meal_and_preference_flags() -> None:
    prefs = UserPreferences(preferred_walk_time="evening")
    busy = _busy(((12, 10), (12, 50)), ((14, 0), (17, 30)))
    window = TimeInterval(at(DAY, 11, 0), at(DAY, 20))

    slots = find_free_slots(DAY, busy, window, min_duration=5, prefs=prefs)
    by_start = {slot.start: slot for slot in slots}

    assert by_start[at(DAY, 12, 50)].is_during_meal
    assert not by_start[at(DAY, 11)].is_during_meal
    assert by_start[at(DAY, 17, 30)].is_preferred_time
    assert not by_start[at(DAY, 11)].is_preferred_time


def test_busy_intervals_skip_all_day_and_out_of_office() -> None:
    meetings = [
        meeting(DAY, (9, 0), (10, 0), title="Planning"),
        meeting(DAY, (0, 0), (23, 59), title="Conference", is_all_day=True),
        meeting(DAY, (13, 0), (17, 0), title="Away", is_out_of_office=True),
        meeting(DAY, (8, 0), (8, 30), title="Early"),
    ]

    busy = build_busy_intervals(DAY, meetings)

    assert [item.label for item in busy] == ["Early", "Planning"]


def test_meeting_load() -> None:
    meetings = [
        meeting(DAY, (9, 0), (12, 0), title="Offsite prep"),
        meeting(DAY, (11, 0), (13, 0), title="Overlap"),
        meeting(DAY, (14, 0), (16, 0), title="Review"),
    ]

    assert meeting_load_minutes(DAY, meetings) == 240 + 120
    assert is_heavy_meeting_day(DAY, meetings)
    assert not is_heavy_meeting_day(DAY, meetings[:1])
