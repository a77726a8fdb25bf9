from __future__ import annotations

from datetime import date, timedelta

import pytest

from stridewise.services.planning.models import TimeOfDay, UserActivityPatterns
from stridewise.services.planning.patterns import ADHERENCE_KEY, PATTERNS_KEY, PatternLearner, ema
from stridewise.services.store import MemoryStore

MONDAY = date(2024, 3, 4)


def _two_weeks(weekday_steps: int, weekend_steps: int) -> dict:
    history = {}
    for offset in range(14):
        day = MONDAY - timedelta(days=offset + 1)
        history[day] = weekend_steps if day.weekday() >= 5 else weekday_steps
    return history


def test_ema_moves_a_fifth_of_the_way() -> None:
    assert ema(0.5, True) == pytest.approx(0.6)
    assert ema(0.5, False) == pytest.approx(0.4)


def test_defaults_when_store_is_empty() -> None:
    learner = PatternLearner(MemoryStore())

    patterns = learner.patterns()

    assert patterns.average_daily_steps == 6000
    assert patterns.peak_activity_hours == [8, 12, 17]
    assert learner.adherence().average_completion_rate == 0.5


def test_corrupt_values_fall_back_to_defaults() -> None:
    store = MemoryStore({PATTERNS_KEY: {"average_daily_steps": "lots"}, ADHERENCE_KEY: ["not", "a", "dict"]})
    learner = PatternLearner(store)

    assert learner.patterns() == UserActivityPatterns()
    assert learner.adherence().total_plans_generated == 0


def test_update_from_history_computes_averages() -> None:
    learner = PatternLearner(MemoryStore())
    history = _two_weeks(weekday_steps=8000, weekend_steps=12000)
    workouts = {day: day.weekday() in (0, 2) for day in history}

    patterns = learner.update_from_history(history, workouts, goal=10000)

    assert patterns.weekday_average == 8000
    assert patterns.weekend_average == 12000
    assert patterns.average_daily_steps == (10 * 8000 + 4 * 12000) // 14
    assert patterns.best_performing_days[:2] == [6, 7]
    assert patterns.best_performing_days[2] == 1
    assert patterns.goal_achievement_rate == pytest.approx(4 / 14)
    assert patterns.workout_frequency == 2.0
    assert learner.patterns() == patterns


def test_hourly_history_sets_peak_hours() -> None:
    learner = PatternLearner(MemoryStore())
    hourly = {7: [300, 500], 12: [1500, 1300], 18: [2000], 21: [100]}

    patterns = learner.update_from_history({MONDAY: 9000}, goal=10000, hourly_steps=hourly)

    assert patterns.peak_activity_hours == [7, 12, 18]


def test_empty_history_leaves_patterns_unchanged() -> None:
    store = MemoryStore()
    learner = PatternLearner(store)

    assert learner.update_from_history({}, goal=10000) == UserActivityPatterns()
    assert store.get(PATTERNS_KEY) is None


def test_outcomes_update_buckets_and_suggestions() -> None:
    learner = PatternLearner(MemoryStore())

    for _ in range(4):
        learner.record_outcome("walk", TimeOfDay.EVENING, completed=False)
    adherence = learner.record_outcome("walk", TimeOfDay.MORNING, completed=True)

    assert adherence.activities_completed == 1
    assert adherence.activities_skipped == 4
    assert adherence.average_completion_rate == pytest.approx(0.2)
    assert adherence.best_time_slots["evening"] == pytest.approx(0.5 * 0.8 ** 4)
    assert learner.should_suggest("walk", TimeOfDay.MORNING)
    assert not learner.should_suggest("walk", TimeOfDay.EVENING)
    assert learner.completion_rate("workout", TimeOfDay.AFTERNOON) == 0.5


def test_reset_restores_defaults() -> None:
    learner = PatternLearner(MemoryStore())
    learner.record_outcome("walk", TimeOfDay.MORNING, completed=True)
    learner.record_plan_generated()

    learner.reset()

    assert learner.adherence().total_plans_generated == 0
    assert learner.adherence().best_time_slots == {}
