"""Daily plan orchestration: gathers inputs, runs the allocator and commits plans.

Plans for a date are replaced wholesale. Every generation takes a new epoch
for its date before it starts; only the newest epoch may commit, so a slow run
that was overtaken (or invalidated by a preference change) never overwrites a
fresher plan.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from threading import Lock
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from stridewise.observability.metrics import log_metric, timed
from stridewise.observability.tracing import trace
from stridewise.services.planning.allocator import allocate, confidence_and_reasoning
from stridewise.services.planning.busy import active_window, build_busy_intervals, is_heavy_meeting_day
from stridewise.services.planning.capacity import CombinedSuggestion, allocate_walk_and_workout
from stridewise.services.planning.conflicts import ScheduleConflict, detect_conflicts, detect_plan_conflicts
from stridewise.services.planning.free_slots import find_free_slots
from stridewise.services.planning.models import (
    ActivityStatus,
    ActivityType,
    CalendarMeeting,
    DailyMovementPlan,
    PlanningError,
    UserActivityPatterns,
)
from stridewise.services.planning.patterns import PatternLearner
from stridewise.services.planning.preferences import UserPreferences, load_preferences, save_preferences
from stridewise.services.planning.schedule import ScheduleBook
from stridewise.services.planning.walkability import analyze_walkable_meetings
from stridewise.services.planning.workouts import WorkoutTracker
from stridewise.services.providers.base import ActivityDataProvider, CalendarProvider
from stridewise.services.store import Store

logger = logging.getLogger(__name__)

PLAN_KEY_PREFIX = "plan:"

PlanListener = Callable[[DailyMovementPlan], None]


class PlanNotFound(PlanningError):
    pass


def plan_key(day: date) -> str:
    return f"{PLAN_KEY_PREFIX}{day.isoformat()}"


@dataclass
class PlanResult:
    plan: DailyMovementPlan
    committed: bool


class MovementPlanner:
    def __init__(
        self,
        *,
        store: Store,
        calendar: CalendarProvider,
        activity_data: ActivityDataProvider,
        learner: PatternLearner,
        schedule_book: ScheduleBook,
        workouts: WorkoutTracker,
        min_slot_minutes: int = 5,
        ceiling_hour: int = 21,
        history_days: int = 30,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._calendar = calendar
        self._activity_data = activity_data
        self._learner = learner
        self._schedule_book = schedule_book
        self._workouts = workouts
        self._min_slot_minutes = min_slot_minutes
        self._ceiling_hour = ceiling_hour
        self._history_days = history_days
        self._clock = clock

        self._epoch_lock = Lock()
        self._epochs: Dict[date, int] = {}
        self._date_locks: Dict[date, Lock] = {}
        self._listeners: List[PlanListener] = []

    # -- observers ---------------------------------------------------------

    def subscribe(self, listener: PlanListener) -> Callable[[], None]:
        """Call ``listener`` after every committed plan; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, plan: DailyMovementPlan) -> None:
        for listener in list(self._listeners):
            try:
                listener(plan)
            except Exception:  # pragma: no cover - defensive guard
                logger.exception("Plan listener failed for %s", plan.plan_date)

    # -- epochs ------------------------------------------------------------

    def _begin(self, day: date) -> int:
        with self._epoch_lock:
            epoch = self._epochs.get(day, 0) + 1
            self._epochs[day] = epoch
            return epoch

    def _date_lock(self, day: date) -> Lock:
        with self._epoch_lock:
            return self._date_locks.setdefault(day, Lock())

    def current_epoch(self, day: date) -> int:
        with self._epoch_lock:
            return self._epochs.get(day, 0)

    def invalidate(self) -> None:
        """Make every in-flight generation stale."""
        with self._epoch_lock:
            for day in self._epochs:
                self._epochs[day] += 1
        logger.debug("Planner epochs bumped for %d dates", len(self._epochs))

    def _commit(self, plan: DailyMovementPlan) -> bool:
        with self._date_lock(plan.plan_date):
            if plan.epoch != self.current_epoch(plan.plan_date):
                logger.info("Discarding stale plan for %s (epoch %d)", plan.plan_date, plan.epoch)
                return False
            self._store.put(plan_key(plan.plan_date), plan.model_dump(mode="json"))
        self._notify(plan)
        return True

    # -- inputs ------------------------------------------------------------

    def preferences(self) -> UserPreferences:
        return load_preferences(self._store)

    def update_preferences(self, prefs: UserPreferences) -> UserPreferences:
        saved = save_preferences(self._store, prefs)
        self.invalidate()
        return saved

    def _fetch_events(self, day: date) -> List[CalendarMeeting]:
        try:
            return list(self._calendar.fetch_events(day))
        except Exception:
            logger.warning("Calendar unavailable for %s; planning without meetings", day, exc_info=True)
            return []

    def _fetch_steps(self, day: date) -> int:
        try:
            return int(self._activity_data.fetch_steps(day))
        except Exception:
            logger.warning("Step data unavailable for %s; assuming 0", day, exc_info=True)
            return 0

    # -- generation --------------------------------------------------------

    def generate(self, day: date, *, prefs: Optional[UserPreferences] = None) -> PlanResult:
        """Build and (if still newest) commit the movement plan for ``day``."""
        epoch = self._begin(day)
        prefs = prefs or self.preferences()
        now = self._clock()
        is_today = day == now.date()

        with trace("planner.generate", metadata={"date": day.isoformat(), "epoch": epoch}), timed(
            "planner.generate", metadata={"date": day.isoformat()}
        ) as metric_extra:
            meetings = self._fetch_events(day)
            current_steps = self._fetch_steps(day) if is_today else 0
            steps_needed = max(0, prefs.daily_step_goal - current_steps)

            patterns = self._learner.patterns()
            adherence = self._learner.adherence()
            busy = build_busy_intervals(day, meetings, self._schedule_book.occurrences(day))
            window = active_window(
                day,
                prefs,
                ceiling_hour=self._ceiling_hour,
                not_before=now if is_today else None,
            )
            slots = find_free_slots(day, busy, window, self._min_slot_minutes, prefs) if window else []
            walkable = analyze_walkable_meetings(meetings, patterns.steps_per_minute_walking)
            activities = allocate(steps_needed, slots, walkable, patterns, adherence, prefs)
            confidence, reasoning = confidence_and_reasoning(steps_needed, activities, walkable, patterns)

            plan = DailyMovementPlan(
                id=str(uuid4()),
                plan_date=day,
                target_steps=prefs.daily_step_goal,
                current_steps=current_steps,
                steps_needed=steps_needed,
                activities=activities,
                walkable_meetings=walkable,
                confidence=confidence,
                reasoning=reasoning,
                generated_at=now,
                epoch=epoch,
            )
            committed = self._commit(plan)
            metric_extra.update(
                {
                    "activities": len(activities),
                    "committed": committed,
                    "heavy_meeting_day": is_heavy_meeting_day(day, meetings),
                }
            )

        if committed:
            self._learner.record_plan_generated()
        log_metric("planner.remaining_gap", plan.remaining_gap, metadata={"date": day.isoformat()})
        logger.info(
            "Plan for %s: %d activities, gap=%d, confidence=%.2f, committed=%s",
            day,
            len(activities),
            plan.remaining_gap,
            confidence,
            committed,
        )
        return PlanResult(plan=plan, committed=committed)

    def get_plan(self, day: date) -> Optional[DailyMovementPlan]:
        raw = self._store.get(plan_key(day))
        if raw is None:
            return None
        try:
            return DailyMovementPlan.model_validate(raw)
        except ValueError as exc:
            logger.warning("Stored plan for %s is unreadable: %s", day, exc)
            return None

    def _set_status(self, day: date, activity_id: str, status: ActivityStatus) -> DailyMovementPlan:
        with self._date_lock(day):
            plan = self.get_plan(day)
            if plan is None:
                raise PlanNotFound(f"no plan stored for {day.isoformat()}")
            activity = plan.find_activity(activity_id)
            updated_activity = activity.model_copy(update={"status": status})
            activities = [updated_activity if a.id == activity_id else a for a in plan.activities]
            updated = plan.model_copy(update={"activities": activities})
            self._store.put(plan_key(day), updated.model_dump(mode="json"))

        if activity.status is ActivityStatus.PLANNED:
            self._learner.record_outcome(
                activity.activity_type.kind,
                activity.time_of_day,
                status is ActivityStatus.COMPLETED,
            )
            if status is ActivityStatus.COMPLETED and activity.activity_type is ActivityType.WORKOUT:
                self._workouts.record_workout(day, activity.workout_kind)
        self._notify(updated)
        return updated

    def mark_completed(self, day: date, activity_id: str) -> DailyMovementPlan:
        return self._set_status(day, activity_id, ActivityStatus.COMPLETED)

    def mark_skipped(self, day: date, activity_id: str) -> DailyMovementPlan:
        return self._set_status(day, activity_id, ActivityStatus.SKIPPED)

    # -- combined walk + workout -------------------------------------------

    def combined_suggestion(self, day: date, *, prefs: Optional[UserPreferences] = None) -> CombinedSuggestion:
        prefs = prefs or self.preferences()
        now = self._clock()
        not_before = now if day == now.date() else None
        meetings = self._fetch_events(day)
        patterns = self._learner.patterns()
        busy = build_busy_intervals(day, meetings, self._schedule_book.occurrences(day))
        window = active_window(day, prefs, ceiling_hour=self._ceiling_hour, not_before=not_before)
        slots = find_free_slots(day, busy, window, self._min_slot_minutes, prefs) if window else []
        walkable = analyze_walkable_meetings(meetings, patterns.steps_per_minute_walking)
        needs_workout = self._workouts.needs_workout(day, prefs)
        suggestion = allocate_walk_and_workout(
            day,
            slots,
            walkable,
            busy,
            prefs,
            needs_walk=True,
            needs_workout=needs_workout,
            workout_kind=self._workouts.next_kind(),
            pace=patterns.steps_per_minute_walking,
            not_before=not_before,
        )
        logger.info(
            "Combined suggestion for %s: walk=%s workout=%s fallback=%s",
            day,
            suggestion.walk is not None,
            suggestion.workout is not None,
            suggestion.used_fallback,
        )
        return suggestion

    def conflicts(self, day: date) -> List[ScheduleConflict]:
        """Clashes with meetings for manual and planned items, then planned items against manual entries."""
        meetings = self._fetch_events(day)
        manual = self._schedule_book.occurrences(day)
        plan = self.get_plan(day)
        planned = [(a.id, a) for a in plan.activities if a.status is ActivityStatus.PLANNED] if plan else []
        found = detect_conflicts([(occ.activity_id, occ) for occ in manual] + planned, meetings)
        return found + detect_plan_conflicts(planned, manual)

    # -- pattern refresh ---------------------------------------------------

    def refresh_patterns(self, today: date, *, prefs: Optional[UserPreferences] = None) -> UserActivityPatterns:
        """Pull the last ``history_days`` of history (excluding today) into the learner."""
        prefs = prefs or self.preferences()
        daily_steps: Dict[date, int] = {}
        daily_workouts: Dict[date, bool] = {}
        hourly: Dict[int, List[int]] = {}
        for offset in range(1, self._history_days + 1):
            day = today - timedelta(days=offset)
            try:
                daily_steps[day] = int(self._activity_data.fetch_steps(day))
                daily_workouts[day] = bool(self._activity_data.fetch_workouts(day))
                for hour, steps in self._activity_data.fetch_hourly_steps(day).items():
                    hourly.setdefault(int(hour), []).append(int(steps))
            except Exception:
                logger.warning("History unavailable for %s; skipping day", day, exc_info=True)
                daily_steps.pop(day, None)
                daily_workouts.pop(day, None)
                continue
        with trace("patterns.refresh", metadata={"days": len(daily_steps)}):
            return self._learner.update_from_history(
                daily_steps,
                daily_workouts,
                goal=prefs.daily_step_goal,
                hourly_steps=hourly or None,
            )
