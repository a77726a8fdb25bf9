"""Consecutive-day step goal streak."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from threading import Lock
from typing import Callable

from stridewise.services.planning.models import StreakState
from stridewise.services.store import Store, load_model, save_model

logger = logging.getLogger(__name__)

STREAK_KEY = "streak"
DEFAULT_LOOKBACK_DAYS = 365


class StreakTracker:
    """Day-granularity counter persisted in the store. All methods are idempotent per day."""

    def __init__(self, store: Store) -> None:
        self._store = store
        self._lock = Lock()

    def state(self) -> StreakState:
        return load_model(self._store, STREAK_KEY, StreakState)

    def record_goal_hit(self, today: date) -> StreakState:
        with self._lock:
            state = self.state()
            if state.last_goal_date == today:
                return state
            if state.last_goal_date == today - timedelta(days=1):
                current = state.current_streak + 1
            else:
                current = 1
            updated = StreakState(
                current_streak=current,
                longest_streak=max(state.longest_streak, current),
                last_goal_date=today,
            )
            save_model(self._store, STREAK_KEY, updated)
        logger.info("Goal hit on %s; streak=%d longest=%d", today.isoformat(), updated.current_streak, updated.longest_streak)
        return updated

    def validate(self, today: date) -> StreakState:
        """Zero the current streak when the last goal day is older than yesterday."""
        with self._lock:
            state = self.state()
            last = state.last_goal_date
            if last in (today, today - timedelta(days=1)) or state.current_streak == 0:
                return state
            updated = state.model_copy(update={"current_streak": 0})
            save_model(self._store, STREAK_KEY, updated)
        logger.info("Streak broken (last goal %s); longest stays %d", last, updated.longest_streak)
        return updated

    def record_daily_total(self, today: date, steps: int, goal: int) -> StreakState:
        if goal > 0 and steps >= goal:
            return self.record_goal_hit(today)
        return self.validate(today)

    def rebuild_from_history(
        self,
        fetch_steps: Callable[[date], int],
        goal: int,
        today: date,
        lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ) -> StreakState:
        """
        Recount the current streak by walking back from today through step history.

        Today counts when the goal is already met; otherwise counting starts
        at yesterday since the day is still in progress. A failing fetch ends
        the walk, keeping whatever was counted so far.
        """
        streak = 0
        last_hit = None
        check = today
        for offset in range(lookback_days):
            try:
                steps = fetch_steps(check)
            except Exception:
                logger.warning("Step history unavailable for %s; streak rebuild stops there", check, exc_info=True)
                break
            if steps >= goal:
                streak += 1
                last_hit = last_hit or check
            elif not (offset == 0 and check == today):
                break
            check -= timedelta(days=1)

        with self._lock:
            state = self.state()
            updated = StreakState(
                current_streak=streak,
                longest_streak=max(state.longest_streak, streak),
                last_goal_date=last_hit or state.last_goal_date,
            )
            save_model(self._store, STREAK_KEY, updated)
        logger.info("Streak rebuilt from history: %d days", streak)
        return updated
