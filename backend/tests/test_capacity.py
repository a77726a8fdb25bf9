from __future__ import annotations

from datetime import date

from helpers import at
from stridewise.services.planning.capacity import (
    WALK,
    WORKOUT,
    allocate_walk_and_workout,
    preference_score,
    preferred_time_interval,
)
from stridewise.services.planning.intervals import TimeInterval
from stridewise.services.planning.models import (
    ActivityType,
    BusyInterval,
    BusySource,
    FreeSlot,
    PreferredTime,
    SlotClass,
    WalkableMeeting,
    WorkoutKind,
)
from stridewise.services.planning.preferences import UserPreferences

DAY = date(2024, 3, 4)
PREFS = UserPreferences(preferred_gym_time="morning", preferred_walk_time="evening")


def _slot(start: tuple, minutes: int) -> FreeSlot:
    return FreeSlot(TimeInterval.of_minutes(at(DAY, *start), minutes), SlotClass.for_minutes(minutes))


def _walking_one_on_one() -> WalkableMeeting:
    return WalkableMeeting(
        meeting_id="m-1",
        title="1:1 catch up",
        start=at(DAY, 11),
        duration_minutes=30,
        attendee_count=2,
        is_one_on_one=True,
        score=1.0,
        is_recommended=True,
        estimated_steps=3000,
        reason="Perfect for a walking 1:1",
    )


def test_preference_scores() -> None:
    assert preference_score(7, PreferredTime.MORNING, WORKOUT) == 3
    assert preference_score(11, PreferredTime.MORNING, WORKOUT) == 1
    assert preference_score(18, PreferredTime.MORNING, WALK) == 0
    assert preference_score(18, PreferredTime.NO_PREFERENCE, WORKOUT) == 2
    assert preference_score(13, PreferredTime.NO_PREFERENCE, WALK) == 1


def test_plenty_of_hours_uses_preferences() -> None:
    slots = [_slot((9, 0), 90), _slot((14, 0), 90), _slot((17, 30), 70)]

    result = allocate_walk_and_workout(
        DAY, slots, [], [], PREFS, needs_workout=True, workout_kind=WorkoutKind.PULL
    )

    assert result.workout.start_time == at(DAY, 9)
    assert result.workout.workout_kind is WorkoutKind.PULL
    assert result.workout.duration_minutes == 45
    assert result.workout.is_ideal
    assert result.walk.start_time == at(DAY, 17, 30)
    assert [walk.start_time for walk in result.extra_walks] == [at(DAY, 14)]
    assert not result.used_fallback


def test_single_hour_goes_to_the_workout() -> None:
    slots = [_slot((14, 0), 60), _slot((16, 0), 50)]

    result = allocate_walk_and_workout(DAY, slots, [_walking_one_on_one()], [], PREFS, needs_workout=True)

    assert result.workout.start_time == at(DAY, 14)
    assert result.walk.start_time == at(DAY, 11)
    assert result.walk.estimated_steps == 3000


def test_single_hour_goes_to_the_walk_without_workout() -> None:
    result = allocate_walk_and_workout(DAY, [_slot((14, 0), 75)], [], [], PREFS)

    assert result.workout is None
    assert result.walk.start_time == at(DAY, 14)
    assert result.walk.duration_minutes == 45


def test_no_full_hour_uses_shorter_slots() -> None:
    slots = [_slot((10, 0), 50), _slot((15, 0), 45)]

    result = allocate_walk_and_workout(DAY, slots, [], [], PREFS, needs_workout=True)

    assert result.workout.start_time == at(DAY, 10)
    assert result.walk.start_time == at(DAY, 15)
    assert result.walk.activity_type is ActivityType.STANDARD_WALK


def test_long_workout_does_not_take_a_short_slot() -> None:
    prefs = PREFS.model_copy(update={"workout_duration_minutes": 90})
    slots = [_slot((10, 0), 50), _slot((15, 0), 45)]
    busy = [
        BusyInterval(TimeInterval(at(DAY, 8), at(DAY, 10)), BusySource.MEETING),
        BusyInterval(TimeInterval(at(DAY, 10, 50), at(DAY, 15)), BusySource.MEETING),
    ]

    result = allocate_walk_and_workout(DAY, slots, [], busy, prefs, needs_workout=True)

    assert result.workout is None
    assert result.walk.start_time == at(DAY, 10)


def test_fallback_to_preferred_times() -> None:
    result = allocate_walk_and_workout(DAY, [], [], [], PREFS, needs_workout=True)

    assert result.used_fallback
    # 07:00 is before the buffered wake window and 08:00 is breakfast
    assert result.workout.start_time == at(DAY, 9)
    assert result.walk.start_time == at(DAY, 18)
    assert result.walk.duration_minutes == 45


def test_preferred_interval_skips_busy_hours() -> None:
    busy = [BusyInterval(TimeInterval(at(DAY, 17, 30), at(DAY, 18, 30)), BusySource.MEETING)]

    interval = preferred_time_interval(DAY, WALK, PREFS, busy)

    assert interval == TimeInterval(at(DAY, 20), at(DAY, 20, 45))
