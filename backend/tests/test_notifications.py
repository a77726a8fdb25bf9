from __future__ import annotations

from datetime import date, datetime

import pytest

import stridewise.services.notifications.hooks as hooks
from stridewise.services.action_log import ActionRecorder
from stridewise.services.notifications.base import NotificationResult, NotificationService
from stridewise.services.notifications.factory import get_notification_service
from stridewise.services.notifications.noop import NoopNotificationService
from stridewise.services.planning.models import AutopilotWalk, TrustLevel, WalkType

WALK_DATE = date(2024, 3, 5)


def _walk(walk_id: str = "w1", hour: int = 9) -> AutopilotWalk:
    return AutopilotWalk(
        id=walk_id,
        walk_date=WALK_DATE,
        start_time=datetime(2024, 3, 5, hour, 0),
        duration_minutes=20,
        walk_type=WalkType.SHORT,
        trust_level=TrustLevel.CONFIRM_FIRST,
    )


class RecordingService(NotificationService):
    def __init__(self, fail: bool = False) -> None:
        self.calls = []
        self.fail = fail

    def schedule_approval_prompt(self, *, walk, fire_at, request_id):
        if self.fail:
            raise RuntimeError("push gateway down")
        self.calls.append(("prompt", walk.id, fire_at))
        return NotificationResult(status="scheduled", reason="ok")

    def schedule_summary(self, *, walks, fire_at, request_id):
        self.calls.append(("summary", [w.id for w in walks], fire_at))
        return NotificationResult(status="scheduled", reason="ok")


@pytest.fixture()
def recorder(session_factory) -> ActionRecorder:
    return ActionRecorder(session_factory)


def test_disabled_notifications_are_recorded_as_skipped(recorder, monkeypatch) -> None:
    monkeypatch.setattr(hooks.settings, "notifications_enabled", False)

    result = hooks.NotificationDispatcher(recorder).schedule_approval_prompt(_walk())

    assert result.status == "skipped"
    rows = recorder.recent(action_type="notification_approval_prompt")
    assert len(rows) == 1
    assert rows[0].action_payload["walk_ids"] == ["w1"]
    assert rows[0].reason == "Notification skipped"


def test_enabled_prompt_fires_evening_before(recorder, monkeypatch) -> None:
    service = RecordingService()
    monkeypatch.setattr(hooks.settings, "notifications_enabled", True)
    monkeypatch.setattr(hooks, "get_notification_service", lambda: service)

    dispatcher = hooks.NotificationDispatcher(recorder, clock=lambda: datetime(2024, 3, 4, 9, 0))
    result = dispatcher.schedule_approval_prompt(_walk())

    assert result.status == "scheduled"
    assert service.calls == [("prompt", "w1", datetime(2024, 3, 4, hooks.settings.approval_prompt_hour))]
    row = recorder.recent(action_type="notification_approval_prompt")[0]
    assert row.action_payload["result"] == {"status": "scheduled", "reason": "ok"}
    assert row.reason == "Notification dispatched"


def test_summary_lists_all_walks(recorder, monkeypatch) -> None:
    service = RecordingService()
    monkeypatch.setattr(hooks.settings, "notifications_enabled", True)
    monkeypatch.setattr(hooks, "get_notification_service", lambda: service)

    hooks.NotificationDispatcher(recorder).schedule_summary([_walk("a", 9), _walk("b", 17)])

    assert service.calls[0][:2] == ("summary", ["a", "b"])


def test_empty_summary_is_skipped(recorder) -> None:
    result = hooks.NotificationDispatcher(recorder).schedule_summary([])

    assert result.status == "skipped"
    assert recorder.recent(action_type="notification_summary")[0].action_payload["fire_at"] is None


def test_provider_failure_is_recorded_not_raised(recorder, monkeypatch) -> None:
    monkeypatch.setattr(hooks.settings, "notifications_enabled", True)
    monkeypatch.setattr(hooks, "get_notification_service", lambda: RecordingService(fail=True))

    result = hooks.NotificationDispatcher(recorder).schedule_approval_prompt(_walk())

    assert result.status == "failed"
    assert "push gateway down" in result.reason
    assert recorder.recent(action_type="notification_approval_prompt")[0].reason == "Notification failed"


def test_factory_defaults_to_noop() -> None:
    get_notification_service.cache_clear()

    assert isinstance(get_notification_service(), NoopNotificationService)


def test_recorder_without_database_only_logs() -> None:
    recorder = ActionRecorder()

    recorder.record("autopilot_run", {"walk_ids": []})

    assert recorder.recent() == []


def test_prompts_from_a_late_nightly_run_fire_immediately(recorder, monkeypatch) -> None:
    service = RecordingService()
    nightly_run = datetime(2024, 3, 4, 21, 0)
    monkeypatch.setattr(hooks.settings, "notifications_enabled", True)
    monkeypatch.setattr(hooks.settings, "approval_prompt_hour", 20)
    monkeypatch.setattr(hooks.settings, "summary_hour", 22)
    monkeypatch.setattr(hooks, "get_notification_service", lambda: service)
    dispatcher = hooks.NotificationDispatcher(recorder, clock=lambda: nightly_run)

    dispatcher.schedule_approval_prompt(_walk())
    dispatcher.schedule_summary([_walk("a", 9)])

    assert service.calls == [
        ("prompt", "w1", nightly_run),
        ("summary", ["a"], datetime(2024, 3, 4, 22, 0)),
    ]
