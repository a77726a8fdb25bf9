"""Wiring of the planner services shared by the API and the scheduler worker."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from stridewise.core.config import Settings
from stridewise.services.action_log import ActionRecorder
from stridewise.services.autopilot import AutopilotScheduler
from stridewise.services.notifications.hooks import NotificationDispatcher
from stridewise.services.plan_sync import PlanCalendarSync
from stridewise.services.planning.insights import InsightsService
from stridewise.services.planning.patterns import PatternLearner
from stridewise.services.planning.planner import MovementPlanner
from stridewise.services.planning.schedule import ScheduleBook
from stridewise.services.planning.workouts import WorkoutTracker
from stridewise.services.providers.base import ActivityDataProvider, CalendarProvider
from stridewise.services.providers.factory import get_activity_provider, get_calendar_provider
from stridewise.services.store import MemoryStore, SqlStore, Store
from stridewise.services.streak import StreakTracker

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    store: Store
    calendar: CalendarProvider
    activity_data: ActivityDataProvider
    recorder: ActionRecorder
    learner: PatternLearner
    schedule_book: ScheduleBook
    workouts: WorkoutTracker
    streak: StreakTracker
    planner: MovementPlanner
    autopilot: AutopilotScheduler
    plan_sync: PlanCalendarSync
    insights: InsightsService


def build_services(
    settings: Settings,
    session_factory: Optional[Callable[[], Session]] = None,
    *,
    store: Optional[Store] = None,
    calendar: Optional[CalendarProvider] = None,
    activity_data: Optional[ActivityDataProvider] = None,
) -> ServiceContainer:
    """Assemble the services; explicit arguments override the settings-driven defaults."""
    if store is None:
        if settings.store_backend == "sql" and session_factory is not None:
            store = SqlStore(session_factory)
        else:
            if settings.store_backend == "sql":
                logger.warning("SQL store requested without a session factory; using memory store")
            store = MemoryStore()
    calendar = calendar or get_calendar_provider()
    activity_data = activity_data or get_activity_provider()

    recorder = ActionRecorder(session_factory)
    learner = PatternLearner(store)
    schedule_book = ScheduleBook(store)
    workouts = WorkoutTracker(store)
    planner = MovementPlanner(
        store=store,
        calendar=calendar,
        activity_data=activity_data,
        learner=learner,
        schedule_book=schedule_book,
        workouts=workouts,
        min_slot_minutes=settings.min_slot_minutes,
        ceiling_hour=settings.day_end_ceiling_hour,
        history_days=settings.history_days,
    )
    autopilot = AutopilotScheduler(
        store=store,
        calendar=calendar,
        notifier=NotificationDispatcher(recorder),
        schedule_book=schedule_book,
        recorder=recorder,
        ceiling_hour=settings.day_end_ceiling_hour,
        retention_days=settings.autopilot_retention_days,
    )
    logger.info("Services ready (store=%s)", type(store).__name__)
    return ServiceContainer(
        settings=settings,
        store=store,
        calendar=calendar,
        activity_data=activity_data,
        recorder=recorder,
        learner=learner,
        schedule_book=schedule_book,
        workouts=workouts,
        streak=StreakTracker(store),
        planner=planner,
        autopilot=autopilot,
        plan_sync=PlanCalendarSync(
            planner=planner,
            calendar=calendar,
            store=store,
            recorder=recorder,
            retention_days=settings.plan_sync_retention_days,
        ),
        insights=InsightsService(
            calendar=calendar,
            activity_data=activity_data,
            schedule_book=schedule_book,
            ceiling_hour=settings.day_end_ceiling_hour,
        ),
    )
