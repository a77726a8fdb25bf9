from __future__ import annotations

from datetime import date, timedelta


def test_preferences_round_trip(client) -> None:
    default = client.get("/preferences")
    assert default.status_code == 200
    assert default.json()["preferences"]["daily_step_goal"] == 10000

    updated = client.put(
        "/preferences",
        json={"daily_step_goal": 8000, "preferred_walk_time": "evening", "autopilot": {"walks_per_day": 2}},
    )

    assert updated.status_code == 200
    assert updated.json()["preferences"]["autopilot"]["walks_per_day"] == 2
    assert client.get("/preferences").json()["preferences"]["preferred_walk_time"] == "evening"


def test_preferences_validation(client) -> None:
    bad_duration = client.put("/preferences", json={"workout_duration_minutes": 50})
    bad_bounds = client.put("/preferences", json={"autopilot": {"min_walk_minutes": 40, "max_walk_minutes": 20}})

    assert bad_duration.status_code == 422
    assert bad_bounds.status_code == 422


def test_schedule_add_list_remove(client) -> None:
    created = client.post(
        "/schedule",
        json={
            "title": "Gym",
            "activity_kind": "workout",
            "start_hour": 18,
            "duration_minutes": 60,
            "recurrence": "weekly",
            "start_date": "2031-05-05",
        },
    )

    assert created.status_code == 201
    activity_id = created.json()["id"]
    assert [a["id"] for a in client.get("/schedule").json()["activities"]] == [activity_id]

    assert client.delete(f"/schedule/{activity_id}").status_code == 204
    assert client.delete(f"/schedule/{activity_id}").status_code == 404
    assert client.get("/schedule").json()["activities"] == []


def test_schedule_rejects_unknown_kind(client) -> None:
    response = client.post(
        "/schedule",
        json={"title": "Swim", "activity_kind": "swim", "start_hour": 7, "duration_minutes": 30, "start_date": "2031-05-05"},
    )

    assert response.status_code == 422


def test_streak_record_and_validate(client) -> None:
    day = date(2031, 5, 5)

    first = client.post("/streak/record", json={"day": day.isoformat(), "steps": 12000})
    second = client.post("/streak/record", json={"day": (day + timedelta(days=1)).isoformat(), "steps": 10000})
    under = client.post("/streak/record", json={"day": (day + timedelta(days=2)).isoformat(), "steps": 500})

    assert first.json()["current_streak"] == 1
    assert second.json()["current_streak"] == 2
    assert under.json()["current_streak"] == 2

    broken = client.post("/streak/validate", json={"day": (day + timedelta(days=3)).isoformat()})
    assert broken.json()["current_streak"] == 0
    assert broken.json()["longest_streak"] == 2
    assert client.get("/streak").json()["last_goal_date"] == (day + timedelta(days=1)).isoformat()


def test_streak_rejects_negative_steps(client) -> None:
    assert client.post("/streak/record", json={"steps": -1}).status_code == 422


def test_patterns_endpoints(client, activity_data) -> None:
    for offset in range(1, 31):
        activity_data.steps[date.today() - timedelta(days=offset)] = 11000

    before = client.get("/patterns").json()
    refreshed = client.post("/patterns/refresh")

    assert before["patterns"]["average_daily_steps"] == 6000
    assert refreshed.status_code == 200
    assert refreshed.json()["patterns"]["average_daily_steps"] == 11000
    assert refreshed.json()["patterns"]["goal_achievement_rate"] == 1.0


def _seed_stale_streak(store) -> None:
    store.put(
        "streak",
        {"current_streak": 6, "longest_streak": 9, "last_goal_date": (date.today() - timedelta(days=3)).isoformat()},
    )


def test_streak_read_breaks_a_stale_streak(client, services) -> None:
    _seed_stale_streak(services.store)

    body = client.get("/streak").json()

    assert body["current_streak"] == 0
    assert body["longest_streak"] == 9
    assert services.streak.state().current_streak == 0


def test_streak_validated_on_startup(services) -> None:
    from fastapi.testclient import TestClient

    from stridewise.main import app

    _seed_stale_streak(services.store)
    app.state.services = services
    try:
        with TestClient(app):
            assert services.streak.state().current_streak == 0
    finally:
        app.state.services = None


def test_streak_from_yesterday_survives_read(client, services) -> None:
    yesterday = date.today() - timedelta(days=1)
    services.store.put("streak", {"current_streak": 4, "longest_streak": 4, "last_goal_date": yesterday.isoformat()})

    assert client.get("/streak").json()["current_streak"] == 4
