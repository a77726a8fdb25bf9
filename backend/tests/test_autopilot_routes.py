from __future__ import annotations

from datetime import date, timedelta

import pytest

from helpers import meeting

TODAY = date(2031, 5, 5)
TARGET = TODAY + timedelta(days=1)


@pytest.fixture()
def seeded(client, calendar):
    calendar.events[TARGET] = [
        meeting(TARGET, (8, 0), (9, 0), title="Inbox"),
        meeting(TARGET, (10, 0), (11, 30), title="Planning"),
        meeting(TARGET, (12, 0), (13, 30), title="Lunch and learn"),
        meeting(TARGET, (14, 0), (17, 0), title="Workshop"),
        meeting(TARGET, (18, 30), (21, 0), title="Late call"),
    ]
    return client


def _run(client, **extra):
    return client.post("/autopilot/run", json={"today": TODAY.isoformat(), **extra})


def test_run_lists_pending_walks(seeded) -> None:
    response = _run(seeded)

    assert response.status_code == 200
    body = response.json()
    assert body["target_date"] == TARGET.isoformat()
    assert [w["approval_state"] for w in body["walks"]] == ["pending"] * 3

    pending = seeded.get("/autopilot/walks", params={"pending_only": True}).json()["walks"]
    assert len(pending) == 3
    assert _run(seeded).json()["skipped"] == "already_scheduled"


def test_approve_reject_and_error_mapping(seeded, calendar) -> None:
    walks = _run(seeded).json()["walks"]

    approved = seeded.post(f"/autopilot/walks/{walks[0]['id']}/approve")
    rejected = seeded.post(f"/autopilot/walks/{walks[1]['id']}/reject")
    reject_approved = seeded.post(f"/autopilot/walks/{walks[0]['id']}/reject")
    missing = seeded.post("/autopilot/walks/nope/approve")

    assert approved.status_code == 200
    assert approved.json()["walk"]["approval_state"] == "approved"
    assert approved.json()["error"] is None
    assert len(calendar.created) == 1
    assert rejected.json()["walk"]["approval_state"] == "rejected"
    assert reject_approved.status_code == 409
    assert missing.status_code == 404

    visible = seeded.get("/autopilot/walks", params={"day": TARGET.isoformat()}).json()["walks"]
    everything = seeded.get(
        "/autopilot/walks", params={"day": TARGET.isoformat(), "include_rejected": True}
    ).json()["walks"]
    assert len(visible) == 2
    assert len(everything) == 3


def test_adjust_walk(seeded) -> None:
    walks = _run(seeded).json()["walks"]

    moved = seeded.post(
        f"/autopilot/walks/{walks[0]['id']}/adjust", json={"start_time": f"{TARGET.isoformat()}T09:20:00"}
    )
    other_day = seeded.post(
        f"/autopilot/walks/{walks[1]['id']}/adjust", json={"start_time": f"{TODAY.isoformat()}T09:20:00"}
    )

    assert moved.status_code == 200
    assert moved.json()["walk"]["start_time"] == f"{TARGET.isoformat()}T09:20:00"
    assert moved.json()["walk"]["approval_state"] == "approved"
    assert other_day.status_code == 409


def test_calendar_failure_is_reported_not_raised(seeded, calendar) -> None:
    walks = _run(seeded).json()["walks"]
    calendar.fail_create = True

    response = seeded.post(f"/autopilot/walks/{walks[0]['id']}/approve")

    assert response.status_code == 200
    assert response.json()["walk"]["approval_state"] == "pending"
    assert "calendar access denied" in response.json()["error"]


def test_suggest_only_walks_cannot_be_approved(seeded) -> None:
    seeded.put("/preferences", json={"autopilot": {"trust_level": "suggest_only"}})
    walks = _run(seeded).json()["walks"]

    response = seeded.post(f"/autopilot/walks/{walks[0]['id']}/approve")

    assert response.status_code == 409


def test_post_meeting_walks(seeded) -> None:
    response = seeded.get(f"/autopilot/post-meeting/{TARGET.isoformat()}")

    assert response.status_code == 200
    starts = [w["start_time"] for w in response.json()["walks"]]
    assert f"{TARGET.isoformat()}T09:00:00" in starts
    assert all(w["activity_type"] == "post_meeting_walk" for w in response.json()["walks"])
