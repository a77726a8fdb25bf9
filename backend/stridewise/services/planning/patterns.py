"""Pattern learning from step history and plan outcome feedback."""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from threading import Lock
from typing import Dict, List, Mapping, Optional, Sequence

from stridewise.services.planning.models import PlanAdherence, TimeOfDay, UserActivityPatterns
from stridewise.services.store import Store, load_model, save_model

logger = logging.getLogger(__name__)

PATTERNS_KEY = "patterns.activity"
ADHERENCE_KEY = "patterns.adherence"

SMOOTHING_FACTOR = 0.2
NEUTRAL_RATE = 0.5
SUGGESTION_THRESHOLD = 0.3
TOP_N = 3


def _mean(values: Sequence[int]) -> int:
    return sum(values) // len(values) if values else 0


def _top_keys(means: Mapping[int, float], limit: int = TOP_N) -> List[int]:
    ranked = sorted(means.items(), key=lambda item: (-item[1], item[0]))
    return [key for key, _ in ranked[:limit]]


def ema(previous: float, outcome: bool, alpha: float = SMOOTHING_FACTOR) -> float:
    return alpha * (1.0 if outcome else 0.0) + (1 - alpha) * previous


def summarize_history(
    base: UserActivityPatterns,
    daily_steps: Mapping[date, int],
    daily_workouts: Optional[Mapping[date, bool]],
    goal: int,
    hourly_steps: Optional[Mapping[int, Sequence[int]]] = None,
    now: Optional[datetime] = None,
) -> UserActivityPatterns:
    """Aggregate history into a new patterns record; pure, ``base`` is not mutated."""
    if not daily_steps:
        return base

    values = list(daily_steps.values())
    overall = _mean(values)
    weekday = [steps for day, steps in daily_steps.items() if day.weekday() < 5]
    weekend = [steps for day, steps in daily_steps.items() if day.weekday() >= 5]

    by_weekday: Dict[int, List[int]] = defaultdict(list)
    for day, steps in daily_steps.items():
        by_weekday[day.isoweekday()].append(steps)
    weekday_means = {weekday_no: sum(v) / len(v) for weekday_no, v in by_weekday.items()}

    update = {
        "average_daily_steps": overall,
        "weekday_average": _mean(weekday) if weekday else overall,
        "weekend_average": _mean(weekend) if weekend else overall,
        "best_performing_days": _top_keys(weekday_means),
        "goal_achievement_rate": sum(1 for steps in values if steps >= goal) / len(values),
        "last_updated": now or datetime.now(),
    }
    if daily_workouts is not None:
        update["workout_frequency"] = round(sum(1 for hit in daily_workouts.values() if hit) * 7 / len(values), 2)
    if hourly_steps:
        hour_means = {hour: sum(v) / len(v) for hour, v in hourly_steps.items() if v}
        update["peak_activity_hours"] = sorted(_top_keys(hour_means))
    return base.model_copy(update=update)


class PatternLearner:
    """Keeps :class:`UserActivityPatterns` and :class:`PlanAdherence` current in the store."""

    def __init__(self, store: Store) -> None:
        self._store = store
        self._lock = Lock()

    def patterns(self) -> UserActivityPatterns:
        return load_model(self._store, PATTERNS_KEY, UserActivityPatterns)

    def adherence(self) -> PlanAdherence:
        return load_model(self._store, ADHERENCE_KEY, PlanAdherence)

    def update_from_history(
        self,
        daily_steps: Mapping[date, int],
        daily_workouts: Optional[Mapping[date, bool]] = None,
        *,
        goal: int,
        hourly_steps: Optional[Mapping[int, Sequence[int]]] = None,
    ) -> UserActivityPatterns:
        with self._lock:
            current = self.patterns()
            updated = summarize_history(current, daily_steps, daily_workouts, goal, hourly_steps)
            if updated is not current:
                save_model(self._store, PATTERNS_KEY, updated)
                logger.info(
                    "Patterns updated from %d days (avg=%d, goal_rate=%.2f)",
                    len(daily_steps),
                    updated.average_daily_steps,
                    updated.goal_achievement_rate,
                )
            return updated

    def record_outcome(self, activity_kind: str, time_of_day: TimeOfDay, completed: bool) -> PlanAdherence:
        """Fold one completed/skipped outcome into the EMA rates."""
        with self._lock:
            adherence = self.adherence()
            bucket = time_of_day.value
            kind_bucket = f"{activity_kind}:{bucket}"

            slots = dict(adherence.best_time_slots)
            slots[bucket] = ema(slots.get(bucket, NEUTRAL_RATE), completed)
            kind_slots = dict(adherence.kind_time_slots)
            kind_slots[kind_bucket] = ema(kind_slots.get(kind_bucket, NEUTRAL_RATE), completed)

            completed_count = adherence.activities_completed + (1 if completed else 0)
            skipped_count = adherence.activities_skipped + (0 if completed else 1)
            updated = adherence.model_copy(
                update={
                    "best_time_slots": slots,
                    "kind_time_slots": kind_slots,
                    "activities_completed": completed_count,
                    "activities_skipped": skipped_count,
                    "average_completion_rate": completed_count / (completed_count + skipped_count),
                    "last_updated": datetime.now(),
                }
            )
            save_model(self._store, ADHERENCE_KEY, updated)
            logger.debug("Outcome recorded kind=%s bucket=%s completed=%s", activity_kind, bucket, completed)
            return updated

    def record_plan_generated(self) -> None:
        with self._lock:
            adherence = self.adherence()
            save_model(
                self._store,
                ADHERENCE_KEY,
                adherence.model_copy(update={"total_plans_generated": adherence.total_plans_generated + 1}),
            )

    def completion_rate(self, activity_kind: str, time_of_day: TimeOfDay) -> float:
        return self.adherence().kind_time_slots.get(f"{activity_kind}:{time_of_day.value}", NEUTRAL_RATE)

    def should_suggest(self, activity_kind: str, time_of_day: TimeOfDay) -> bool:
        return self.completion_rate(activity_kind, time_of_day) > SUGGESTION_THRESHOLD

    def reset(self) -> None:
        with self._lock:
            self._store.delete(PATTERNS_KEY)
            self._store.delete(ADHERENCE_KEY)
        logger.info("Pattern learning state reset")
