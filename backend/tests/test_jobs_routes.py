from __future__ import annotations

from datetime import date, timedelta

import stridewise.api.routes.jobs as jobs_module


def test_jobs_config_lists_schedule(client) -> None:
    response = client.get("/jobs")

    assert response.status_code == 200
    body = response.json()
    assert body["scheduler_enabled"] is False
    assert body["schedule"]["autopilot_time"] == "21:00"
    assert body["schedule"]["streak_time"] == "23:55"
    assert body["schedule"]["patterns_time"] == "03:30"
    assert body["schedule"]["plan_sync_time"] == "20:00"
    assert body["plan_sync_enabled"] is False
    assert body["request_id"]


def test_run_now_requires_debug(client, monkeypatch) -> None:
    monkeypatch.setattr(jobs_module.settings, "debug", False)

    response = client.post("/jobs/run-now", json={"job": "streak"})

    assert response.status_code == 403


def test_run_now_streak(client, monkeypatch, activity_data) -> None:
    monkeypatch.setattr(jobs_module.settings, "debug", True)
    day = date(2031, 5, 5)
    activity_data.steps[day] = 15000

    response = client.post("/jobs/run-now", json={"job": "streak", "today": day.isoformat()})

    assert response.status_code == 200
    body = response.json()
    assert body["job"] == "streak"
    assert body["target_date"] == day.isoformat()
    assert body["details"]["current_streak"] == 1
    assert body["request_id"]


def test_run_now_autopilot_targets_tomorrow(client, monkeypatch) -> None:
    monkeypatch.setattr(jobs_module.settings, "debug", True)
    day = date(2031, 5, 5)

    response = client.post("/jobs/run-now", json={"job": "autopilot", "today": day.isoformat()})

    assert response.status_code == 200
    assert response.json()["target_date"] == (day + timedelta(days=1)).isoformat()


def test_run_now_rejects_unknown_job(client, monkeypatch) -> None:
    monkeypatch.setattr(jobs_module.settings, "debug", True)

    response = client.post("/jobs/run-now", json={"job": "laundry"})

    assert response.status_code == 422
