from __future__ import annotations

from datetime import date, timedelta

import pytest

from helpers import at, meeting
from stridewise.services.action_log import ActionRecorder
from stridewise.services.plan_sync import ACTIVITY_TITLES, SYNC_STATE_KEY, PlanCalendarSync
from stridewise.services.planning.patterns import PatternLearner
from stridewise.services.planning.planner import MovementPlanner
from stridewise.services.planning.schedule import ScheduleBook
from stridewise.services.planning.workouts import WorkoutTracker
from stridewise.services.store import MemoryStore

TODAY = date(2024, 3, 4)
TOMORROW = TODAY + timedelta(days=1)


def _sync(store, calendar, activity_data, *, hour: int = 21, recorder=None) -> PlanCalendarSync:
    clock = lambda: at(TODAY, hour)  # noqa: E731
    planner = MovementPlanner(
        store=store,
        calendar=calendar,
        activity_data=activity_data,
        learner=PatternLearner(store),
        schedule_book=ScheduleBook(store),
        workouts=WorkoutTracker(store),
        clock=clock,
    )
    return PlanCalendarSync(
        planner=planner,
        calendar=calendar,
        store=store,
        recorder=recorder or ActionRecorder(),
        clock=clock,
    )


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def syncer(store, calendar, activity_data) -> PlanCalendarSync:
    calendar.events[TOMORROW] = [
        meeting(TOMORROW, (9, 0), (10, 0), title="Planning"),
        meeting(TOMORROW, (14, 0), (16, 0), title="Workshop"),
    ]
    return _sync(store, calendar, activity_data)


def test_sync_writes_one_event_per_planned_activity(syncer, calendar) -> None:
    result = syncer.sync(TOMORROW)

    assert result.skipped is None
    assert result.created == len(calendar.created) > 0
    assert syncer.managed_events(TOMORROW) == [event["id"] for event in calendar.created]
    assert all(event["alarm"] == 5 for event in calendar.created)
    assert calendar.created[0]["notes"].startswith("Time to move!")
    assert "Smart-planned by Stridewise" in calendar.created[0]["notes"]
    assert {event["title"] for event in calendar.created} <= set(ACTIVITY_TITLES.values())


def test_resync_replaces_previously_managed_events(syncer, calendar) -> None:
    first = syncer.sync(TOMORROW)
    first_ids = syncer.managed_events(TOMORROW)

    again = syncer.sync(TOMORROW, force=True)

    assert sorted(calendar.deleted) == sorted(first_ids)
    assert again.deleted == first.created
    assert set(syncer.managed_events(TOMORROW)).isdisjoint(first_ids)


def test_future_date_synced_once_unless_forced(syncer, calendar) -> None:
    syncer.sync(TOMORROW)
    created = len(calendar.created)

    repeat = syncer.sync(TOMORROW)

    assert repeat.skipped == "already_synced"
    assert len(calendar.created) == created


def test_today_is_always_refreshed(store, calendar, activity_data) -> None:
    syncer = _sync(store, calendar, activity_data, hour=6)
    syncer.sync(TODAY)

    assert syncer.sync(TODAY).skipped is None


def test_calendar_write_failure_is_reported(syncer, calendar) -> None:
    calendar.fail_create = True

    result = syncer.sync(TOMORROW)

    assert result.created == 0
    assert result.errors and "calendar access denied" in result.errors[0]
    assert syncer.managed_events(TOMORROW) == []


def test_old_managed_dates_are_pruned(syncer, store) -> None:
    stale_day = TODAY - timedelta(days=10)
    store.put(SYNC_STATE_KEY, {"managed_events": {stale_day.isoformat(): ["evt-old"]}})

    syncer.sync(TOMORROW)

    assert stale_day not in syncer.state().managed_events
    assert syncer.state().last_synced_date == TOMORROW


def test_calendar_change_only_resyncs_during_the_day(store, calendar, activity_data) -> None:
    late = _sync(store, calendar, activity_data, hour=21)
    assert late.handle_calendar_change().skipped == "outside_hours"

    midday = _sync(store, calendar, activity_data, hour=12)
    result = midday.handle_calendar_change()

    assert result.skipped is None
    assert result.target_date == TODAY


def test_preference_change_resyncs_today(store, calendar, activity_data) -> None:
    syncer = _sync(store, calendar, activity_data, hour=7)

    result = syncer.handle_preference_change()

    assert result.target_date == TODAY
    assert result.created == len(calendar.created)


def test_sync_is_recorded_in_the_action_log(store, calendar, activity_data, session_factory) -> None:
    recorder = ActionRecorder(session_factory)
    syncer = _sync(store, calendar, activity_data, recorder=recorder)

    syncer.sync(TOMORROW)

    [row] = recorder.recent(action_type="plan_sync")
    assert row.action_payload["date"] == TOMORROW.isoformat()
    assert row.action_payload["created"] == len(calendar.created)
