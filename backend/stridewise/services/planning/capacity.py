"""Capacity-tiered allocation for days that need both a walk and a workout.

Only free slots of at least 45 minutes inside buffered active hours and away
from meals are considered. How many of them reach a full hour decides the
strategy:

* none: the workout takes a shorter slot long enough for it; the walk goes to
  a walkable meeting, else a shorter slot.
* one: the workout gets the hour; the walk goes to a meeting or a shorter
  slot. Without a workout the walk takes the hour.
* two or more: workout and walk each pick their best slot by preference
  score (earliest wins ties) and up to two leftover hours become extra walks.

Anything still unplaced falls back to the preferred time of day.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence

from stridewise.services.planning.allocator import activity_id, activity_type_for
from stridewise.services.planning.intervals import TimeInterval
from stridewise.services.planning.models import (
    ActivityPriority,
    ActivityType,
    BusyInterval,
    FreeSlot,
    PlannedActivity,
    PreferredTime,
    WalkableMeeting,
    WorkoutKind,
)
from stridewise.services.planning.preferences import UserPreferences

MIN_CANDIDATE_MINUTES = 45
ONE_HOUR_MINUTES = 60
MAX_WALK_MINUTES = 45
FALLBACK_WALK_MINUTES = 45
MAX_EXTRA_WALKS = 2

WALK = "walk"
WORKOUT = "workout"

_WALK_IDEAL_HOURS = {
    PreferredTime.MORNING: 7,
    PreferredTime.AFTERNOON: 13,
    PreferredTime.EVENING: 18,
    PreferredTime.NO_PREFERENCE: 8,
}
_WALK_RANGES = {
    PreferredTime.MORNING: (6, 11),
    PreferredTime.AFTERNOON: (12, 17),
    PreferredTime.EVENING: (17, 21),
    PreferredTime.NO_PREFERENCE: (7, 20),
}
_WORKOUT_IDEAL_HOURS = {
    PreferredTime.MORNING: 7,
    PreferredTime.AFTERNOON: 13,
    PreferredTime.EVENING: 18,
    PreferredTime.NO_PREFERENCE: 7,
}
_WORKOUT_RANGES = {
    PreferredTime.MORNING: (5, 11),
    PreferredTime.AFTERNOON: (12, 17),
    PreferredTime.EVENING: (17, 21),
    PreferredTime.NO_PREFERENCE: (6, 21),
}


@dataclass
class CombinedSuggestion:
    walk: Optional[PlannedActivity] = None
    workout: Optional[PlannedActivity] = None
    extra_walks: List[PlannedActivity] = field(default_factory=list)
    used_fallback: bool = False

    @property
    def activities(self) -> List[PlannedActivity]:
        items = [a for a in (self.walk, self.workout) if a is not None] + list(self.extra_walks)
        return sorted(items, key=lambda a: (a.start_time, a.id))


def preference_score(hour: int, preference: PreferredTime, kind: str) -> int:
    """0-3 fit of ``hour`` for a walk or workout under ``preference``."""
    if kind == WORKOUT:
        if preference is PreferredTime.MORNING:
            if 5 <= hour < 10:
                return 3
            return 1 if 10 <= hour < 12 else 0
        if preference is PreferredTime.AFTERNOON:
            return 3 if 12 <= hour < 17 else 0
        if preference is PreferredTime.EVENING:
            return 3 if 17 <= hour < 21 else 0
        return 2 if 6 <= hour < 9 or 17 <= hour < 20 else 1

    if preference is PreferredTime.MORNING:
        if 6 <= hour < 10:
            return 3
        return 1 if 10 <= hour < 12 else 0
    if preference is PreferredTime.AFTERNOON:
        return 3 if 12 <= hour < 17 else 0
    if preference is PreferredTime.EVENING:
        return 3 if 17 <= hour < 21 else 0
    return 1


def walk_label(hour: int) -> str:
    if hour < 10:
        return "Morning"
    if hour < 14:
        return "Midday"
    if hour < 17:
        return "Afternoon"
    return "Evening"


def candidate_slots(free_slots: Iterable[FreeSlot], prefs: UserPreferences) -> List[FreeSlot]:
    return sorted(
        (
            slot
            for slot in free_slots
            if slot.duration_minutes >= MIN_CANDIDATE_MINUTES
            and not slot.is_during_meal
            and prefs.is_within_active_hours(slot.start, slot.end)
        ),
        key=lambda slot: slot.start,
    )


def _best(slots: Sequence[FreeSlot], preference: PreferredTime, kind: str) -> Optional[FreeSlot]:
    if not slots:
        return None
    return min(slots, key=lambda slot: (-preference_score(slot.hour, preference, kind), slot.start))


def _walk_in_slot(slot: FreeSlot, pace: int) -> PlannedActivity:
    duration = min(MAX_WALK_MINUTES, slot.duration_minutes)
    kind = activity_type_for(slot)
    return PlannedActivity(
        id=activity_id(kind, slot.start, duration),
        activity_type=kind,
        start_time=slot.start,
        duration_minutes=duration,
        estimated_steps=duration * pace,
        priority=ActivityPriority.RECOMMENDED,
        reason=f"{walk_label(slot.hour)} walk window",
        is_ideal=slot.is_preferred_time,
    )


def _walk_in_meeting(meeting: WalkableMeeting) -> PlannedActivity:
    return PlannedActivity(
        id=activity_id(ActivityType.STANDARD_WALK, meeting.start, meeting.duration_minutes),
        activity_type=ActivityType.STANDARD_WALK,
        start_time=meeting.start,
        duration_minutes=meeting.duration_minutes,
        estimated_steps=meeting.estimated_steps,
        priority=ActivityPriority.RECOMMENDED,
        reason=f"Walk during {meeting.title}",
    )


def _workout_at(start: datetime, prefs: UserPreferences, workout_kind: WorkoutKind, reason: str) -> PlannedActivity:
    duration = prefs.workout_duration_minutes
    return PlannedActivity(
        id=activity_id(ActivityType.WORKOUT, start, duration),
        activity_type=ActivityType.WORKOUT,
        start_time=start,
        duration_minutes=duration,
        priority=ActivityPriority.RECOMMENDED,
        reason=reason,
        is_ideal=preference_score(start.hour, prefs.preferred_gym_time, WORKOUT) >= 3,
        workout_kind=workout_kind,
    )


def preferred_time_interval(
    day: date,
    kind: str,
    prefs: UserPreferences,
    busy: Sequence[BusyInterval],
    taken: Sequence[TimeInterval] = (),
    not_before: Optional[datetime] = None,
) -> Optional[TimeInterval]:
    """First acceptable on-the-hour interval: the ideal hour, then the preference range in order."""
    if kind == WORKOUT:
        preference = prefs.preferred_gym_time
        ideal = _WORKOUT_IDEAL_HOURS[preference]
        low, high = _WORKOUT_RANGES[preference]
        minutes = prefs.workout_duration_minutes
    else:
        preference = prefs.preferred_walk_time
        ideal = _WALK_IDEAL_HOURS[preference]
        if (
            preference is PreferredTime.MORNING
            and prefs.preferred_gym_time is PreferredTime.MORNING
            and prefs.has_workout_goal
        ):
            ideal = 8
        low, high = _WALK_RANGES[preference]
        minutes = FALLBACK_WALK_MINUTES

    for hour in [ideal] + [h for h in range(low, high) if h != ideal]:
        start = datetime.combine(day, time(hour=hour))
        if not_before is not None and start < not_before:
            continue
        candidate = TimeInterval(start, start + timedelta(minutes=minutes))
        if prefs.is_during_meal(start) or not prefs.is_within_active_hours(candidate.start, candidate.end):
            continue
        if any(candidate.overlaps(item.interval) for item in busy):
            continue
        if any(candidate.overlaps(other) for other in taken):
            continue
        return candidate
    return None


def allocate_walk_and_workout(
    day: date,
    free_slots: Sequence[FreeSlot],
    walkable_meetings: Sequence[WalkableMeeting],
    busy: Sequence[BusyInterval],
    prefs: UserPreferences,
    *,
    needs_walk: bool = True,
    needs_workout: bool = False,
    workout_kind: WorkoutKind = WorkoutKind.PUSH,
    pace: int = 100,
    not_before: Optional[datetime] = None,
) -> CombinedSuggestion:
    """Place a walk and, when due, a workout; ``not_before`` drops meetings and fallback hours already past."""
    candidates = candidate_slots(free_slots, prefs)
    one_hour = [slot for slot in candidates if slot.duration_minutes >= ONE_HOUR_MINUTES]
    shorter = [slot for slot in candidates if slot.duration_minutes < ONE_HOUR_MINUTES]
    meetings = sorted(
        (m for m in walkable_meetings if m.is_recommended and (not_before is None or m.start >= not_before)),
        key=lambda m: m.start,
    )
    workout_reason = f"{workout_kind.value.title()} day"
    result = CombinedSuggestion()

    def meeting_or_shorter(exclude: Optional[FreeSlot]) -> Optional[PlannedActivity]:
        if meetings:
            return _walk_in_meeting(meetings[0])
        for slot in shorter:
            if slot is not exclude:
                return _walk_in_slot(slot, pace)
        return None

    if not one_hour:
        workout_slot = None
        if needs_workout:
            workout_slot = next(
                (slot for slot in shorter if slot.duration_minutes >= prefs.workout_duration_minutes), None
            )
            if workout_slot is not None:
                result.workout = _workout_at(workout_slot.start, prefs, workout_kind, workout_reason)
        if needs_walk:
            result.walk = meeting_or_shorter(workout_slot)
    elif len(one_hour) == 1:
        if needs_workout and one_hour[0].duration_minutes >= prefs.workout_duration_minutes:
            result.workout = _workout_at(one_hour[0].start, prefs, workout_kind, workout_reason)
            if needs_walk:
                result.walk = meeting_or_shorter(None)
        elif needs_walk:
            result.walk = _walk_in_slot(one_hour[0], pace)
    else:
        remaining = list(one_hour)
        if needs_workout:
            fits = [slot for slot in remaining if slot.duration_minutes >= prefs.workout_duration_minutes]
            workout_slot = _best(fits, prefs.preferred_gym_time, WORKOUT)
            if workout_slot is not None:
                result.workout = _workout_at(workout_slot.start, prefs, workout_kind, workout_reason)
                remaining.remove(workout_slot)
        if needs_walk:
            walk_slot = _best(remaining, prefs.preferred_walk_time, WALK)
            if walk_slot is not None:
                result.walk = _walk_in_slot(walk_slot, pace)
                remaining.remove(walk_slot)
            result.extra_walks = [_walk_in_slot(slot, pace) for slot in remaining[:MAX_EXTRA_WALKS]]

    taken = [a.interval for a in result.activities]
    if needs_workout and result.workout is None:
        interval = preferred_time_interval(day, WORKOUT, prefs, busy, taken, not_before)
        if interval is not None:
            result.workout = _workout_at(interval.start, prefs, workout_kind, f"{workout_reason} at your preferred time")
            result.used_fallback = True
            taken.append(interval)
    if needs_walk and result.walk is None:
        interval = preferred_time_interval(day, WALK, prefs, busy, taken, not_before)
        if interval is not None:
            result.walk = PlannedActivity(
                id=activity_id(ActivityType.STANDARD_WALK, interval.start, FALLBACK_WALK_MINUTES),
                activity_type=ActivityType.STANDARD_WALK,
                start_time=interval.start,
                duration_minutes=FALLBACK_WALK_MINUTES,
                estimated_steps=FALLBACK_WALK_MINUTES * pace,
                priority=ActivityPriority.RECOMMENDED,
                reason=f"{walk_label(interval.start.hour)} walk at your preferred time",
                is_ideal=True,
            )
            result.used_fallback = True
    return result
