from __future__ import annotations

from datetime import date, timedelta

from stridewise.services.planning.models import StreakState
from stridewise.services.store import MemoryStore, save_model
from stridewise.services.streak import STREAK_KEY, StreakTracker

TODAY = date(2024, 3, 4)


def _tracker(**state) -> StreakTracker:
    store = MemoryStore()
    if state:
        save_model(store, STREAK_KEY, StreakState(**state))
    return StreakTracker(store)


def test_goal_hit_continues_streak() -> None:
    tracker = _tracker(current_streak=6, longest_streak=6, last_goal_date=TODAY - timedelta(days=1))

    state = tracker.record_goal_hit(TODAY)

    assert state.current_streak == 7
    assert state.longest_streak == 7
    assert tracker.state().last_goal_date == TODAY


def test_validate_resets_after_missed_days() -> None:
    tracker = _tracker(current_streak=4, longest_streak=9, last_goal_date=TODAY - timedelta(days=3))

    state = tracker.validate(TODAY)

    assert state.current_streak == 0
    assert state.longest_streak == 9


def test_validate_keeps_streak_through_yesterday() -> None:
    tracker = _tracker(current_streak=4, longest_streak=9, last_goal_date=TODAY - timedelta(days=1))

    assert tracker.validate(TODAY).current_streak == 4


def test_second_hit_on_same_day_is_a_no_op() -> None:
    tracker = _tracker()

    first = tracker.record_goal_hit(TODAY)
    second = tracker.record_goal_hit(TODAY)

    assert first == second
    assert second.current_streak == 1


def test_bounds_hold_across_a_month() -> None:
    tracker = _tracker()
    for offset in range(30):
        day = TODAY + timedelta(days=offset)
        if offset % 7 == 3:
            state = tracker.validate(day)
        else:
            state = tracker.record_goal_hit(day)
        assert 0 <= state.current_streak <= state.longest_streak


def test_gap_restarts_streak_at_one() -> None:
    tracker = _tracker(current_streak=5, longest_streak=5, last_goal_date=TODAY - timedelta(days=2))

    state = tracker.record_goal_hit(TODAY)

    assert state.current_streak == 1
    assert state.longest_streak == 5


def test_daily_total_below_goal_only_validates() -> None:
    tracker = _tracker(current_streak=2, longest_streak=2, last_goal_date=TODAY - timedelta(days=1))

    assert tracker.record_daily_total(TODAY, 4000, 10000).current_streak == 2
    assert tracker.record_daily_total(TODAY, 10000, 10000).current_streak == 3


def test_rebuild_from_history_counts_back_from_yesterday() -> None:
    history = {TODAY - timedelta(days=offset): 11000 for offset in range(1, 5)}
    history[TODAY] = 2000
    history[TODAY - timedelta(days=5)] = 3000
    tracker = _tracker(current_streak=0, longest_streak=2)

    state = tracker.rebuild_from_history(lambda day: history.get(day, 0), 10000, TODAY)

    assert state.current_streak == 4
    assert state.longest_streak == 4
    assert state.last_goal_date == TODAY - timedelta(days=1)


def test_rebuild_includes_today_when_goal_already_met() -> None:
    history = {TODAY: 12000, TODAY - timedelta(days=1): 10500}
    tracker = _tracker()

    state = tracker.rebuild_from_history(lambda day: history.get(day, 0), 10000, TODAY)

    assert state.current_streak == 2
    assert state.last_goal_date == TODAY


def test_rebuild_stops_on_fetch_error() -> None:
    def fetch(day: date) -> int:
        if day < TODAY - timedelta(days=2):
            raise TimeoutError("history unavailable")
        return 15000

    state = _tracker().rebuild_from_history(fetch, 10000, TODAY)

    assert state.current_streak == 3
