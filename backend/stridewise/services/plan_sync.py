"""Mirror generated movement plans into the user's calendar.

Event ids written for a date are kept in the store. Every sync for that date
first removes the events of the previous sync, then writes one event per
planned activity of the freshly generated plan.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from threading import Lock
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from stridewise.observability.metrics import log_metric
from stridewise.observability.tracing import trace
from stridewise.services.action_log import ActionRecorder
from stridewise.services.planning.models import ActivityStatus, ActivityType, PlannedActivity
from stridewise.services.planning.planner import MovementPlanner
from stridewise.services.providers.base import CalendarProvider
from stridewise.services.store import Store, load_model, save_model

logger = logging.getLogger(__name__)

SYNC_STATE_KEY = "plan_sync.state"
ALARM_OFFSET_MINUTES = 5
CALENDAR_RESYNC_HOURS = (8, 20)
DEFAULT_MOTIVATION = "Time to move!"

ACTIVITY_TITLES = {
    ActivityType.MICRO_WALK: "Quick Walk",
    ActivityType.SHORT_WALK: "Short Walk",
    ActivityType.STANDARD_WALK: "Walk",
    ActivityType.MORNING_WALK: "Morning Walk",
    ActivityType.LUNCH_WALK: "Lunch Walk",
    ActivityType.EVENING_WALK: "Evening Walk",
    ActivityType.POST_MEETING_WALK: "Post-Meeting Walk",
    ActivityType.WORKOUT: "Gym Workout",
}


class PlanSyncState(BaseModel):
    managed_events: Dict[date, List[str]] = Field(default_factory=dict)
    last_synced_date: Optional[date] = None


@dataclass
class PlanSyncResult:
    target_date: date
    created: int = 0
    deleted: int = 0
    activity_ids: List[str] = field(default_factory=list)
    skipped: Optional[str] = None
    errors: List[str] = field(default_factory=list)


def activity_notes(activity: PlannedActivity, motivation: str) -> str:
    return (
        f"{motivation}\n\n"
        f"{activity.reason}\n\n"
        f"Estimated steps: ~{activity.estimated_steps:,}\n"
        f"Duration: {activity.duration_minutes} minutes\n"
        f"Priority: {activity.priority.value.capitalize()}\n\n"
        "---\n"
        "Smart-planned by Stridewise"
    )


class PlanCalendarSync:
    def __init__(
        self,
        *,
        planner: MovementPlanner,
        calendar: CalendarProvider,
        store: Store,
        recorder: ActionRecorder,
        retention_days: int = 7,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._planner = planner
        self._calendar = calendar
        self._store = store
        self._recorder = recorder
        self._retention = timedelta(days=retention_days)
        self._clock = clock
        self._lock = Lock()

    def state(self) -> PlanSyncState:
        return load_model(self._store, SYNC_STATE_KEY, PlanSyncState)

    def managed_events(self, day: date) -> List[str]:
        return list(self.state().managed_events.get(day, []))

    def sync(self, day: date, *, force: bool = False) -> PlanSyncResult:
        """Regenerate the plan for ``day`` and replace its calendar events.

        A date other than today that was already synced is skipped unless
        ``force`` is set; today is always refreshed.
        """
        today = self._clock().date()
        with self._lock:
            state = self.state()
            if not force and day != today and state.last_synced_date == day:
                logger.info("Plan for %s already synced; skipping", day)
                return PlanSyncResult(target_date=day, skipped="already_synced")

            result = PlanSyncResult(target_date=day)
            with trace("plan_sync.sync", metadata={"date": day.isoformat(), "force": force}):
                # Old events go first so the generator does not see them as meetings.
                self._delete_managed(state.managed_events.pop(day, []), result)
                generated = self._planner.generate(day)
                created_ids: List[str] = []
                if generated.committed:
                    created_ids = self._create_events(generated.plan.activities, result)
                else:
                    result.skipped = "stale"

            managed = {d: ids for d, ids in state.managed_events.items() if d >= today - self._retention}
            if created_ids:
                managed[day] = created_ids
            save_model(self._store, SYNC_STATE_KEY, PlanSyncState(managed_events=managed, last_synced_date=day))

        log_metric("plan_sync.events_created", result.created, metadata={"date": day.isoformat()})
        self._recorder.record(
            "plan_sync",
            {
                "date": day.isoformat(),
                "created": result.created,
                "deleted": result.deleted,
                "activity_ids": result.activity_ids,
                "errors": result.errors,
            },
            reason=f"Synced {result.created} plan events",
        )
        logger.info(
            "Plan sync for %s: created=%d deleted=%d errors=%d",
            day,
            result.created,
            result.deleted,
            len(result.errors),
        )
        return result

    def _delete_managed(self, event_ids: List[str], result: PlanSyncResult) -> None:
        for event_id in event_ids:
            try:
                self._calendar.delete_event(event_id)
            except Exception as exc:
                logger.warning("Failed to delete managed event %s", event_id, exc_info=True)
                result.errors.append(f"Could not remove event {event_id}: {exc}")
                continue
            result.deleted += 1

    def _create_events(self, activities: List[PlannedActivity], result: PlanSyncResult) -> List[str]:
        motivation = self._planner.preferences().autopilot.motivation or DEFAULT_MOTIVATION
        created: List[str] = []
        for activity in activities:
            if activity.status is not ActivityStatus.PLANNED:
                continue
            try:
                event_id = self._calendar.create_event(
                    title=ACTIVITY_TITLES[activity.activity_type],
                    start=activity.start_time,
                    end=activity.end_time,
                    notes=activity_notes(activity, motivation),
                    alarm_offset_minutes=ALARM_OFFSET_MINUTES,
                )
            except Exception as exc:
                logger.warning("Calendar write failed for activity %s", activity.id, exc_info=True)
                result.errors.append(f"Could not add {activity.activity_type.value} at {activity.start_time:%H:%M}: {exc}")
                continue
            created.append(event_id)
            result.activity_ids.append(activity.id)
        result.created = len(created)
        return created

    def handle_preference_change(self) -> PlanSyncResult:
        return self.sync(self._clock().date(), force=True)

    def handle_calendar_change(self) -> PlanSyncResult:
        """Resync today's plan, but only during the working part of the day."""
        now = self._clock()
        low, high = CALENDAR_RESYNC_HOURS
        if not low <= now.hour < high:
            return PlanSyncResult(target_date=now.date(), skipped="outside_hours")
        return self.sync(now.date(), force=True)
