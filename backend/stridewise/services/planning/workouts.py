"""Workout rotation and weekly gym-day accounting."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from threading import Lock
from typing import List, Optional

from pydantic import BaseModel, Field

from stridewise.services.planning.models import WorkoutKind
from stridewise.services.planning.preferences import UserPreferences
from stridewise.services.store import Store, load_model, save_model

logger = logging.getLogger(__name__)

WORKOUT_STATE_KEY = "workouts.state"
GYM_DAY_RETENTION = timedelta(days=60)


class WorkoutState(BaseModel):
    last_kind: Optional[WorkoutKind] = None
    gym_days: List[date] = Field(default_factory=list)


def _same_week(first: date, second: date) -> bool:
    return first.isocalendar()[:2] == second.isocalendar()[:2]


class WorkoutTracker:
    def __init__(self, store: Store) -> None:
        self._store = store
        self._lock = Lock()

    def state(self) -> WorkoutState:
        return load_model(self._store, WORKOUT_STATE_KEY, WorkoutState)

    def next_kind(self) -> WorkoutKind:
        last = self.state().last_kind
        return last.next() if last else WorkoutKind.PUSH

    def gym_days_in_week(self, day: date) -> int:
        return sum(1 for gym_day in self.state().gym_days if _same_week(gym_day, day))

    def needs_workout(self, day: date, prefs: UserPreferences) -> bool:
        if not prefs.has_workout_goal:
            return False
        if day in self.state().gym_days:
            return False
        return self.gym_days_in_week(day) < prefs.gym_frequency_per_week

    def record_workout(self, day: date, kind: Optional[WorkoutKind] = None) -> WorkoutState:
        with self._lock:
            state = self.state()
            performed = kind or (state.last_kind.next() if state.last_kind else WorkoutKind.PUSH)
            cutoff = day - GYM_DAY_RETENTION
            days = sorted({d for d in state.gym_days if d >= cutoff} | {day})
            updated = WorkoutState(last_kind=performed, gym_days=days)
            save_model(self._store, WORKOUT_STATE_KEY, updated)
        logger.info("Workout recorded on %s (%s)", day.isoformat(), performed.value)
        return updated
