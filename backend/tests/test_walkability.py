from __future__ import annotations

from datetime import date

from helpers import meeting
from stridewise.services.planning.walkability import (
    REASON_NOT_IDEAL,
    REASON_TOO_MANY_ATTENDEES,
    analyze_walkable_meetings,
    classify,
    is_background_listenable,
    is_walking_one_on_one,
    walkability_score,
)

DAY = date(2024, 3, 4)


def test_one_on_one_sync_is_walkable() -> None:
    item = meeting(DAY, (10, 0), (10, 30), title="1:1 sync", attendees=2)

    result = classify(item)

    assert result.is_walkable is True
    assert "walking 1:1" in result.reason
    assert result.score == 1.0
    assert result.estimated_steps == 3000


def test_classification_is_deterministic() -> None:
    item = meeting(DAY, (15, 0), (15, 45), title="Coffee catch up", attendees=3)

    assert classify(item) == classify(item)
    assert walkability_score(item) == walkability_score(item.model_copy())


def test_non_walkable_keyword_penalty() -> None:
    item = meeting(DAY, (9, 0), (9, 45), title="Design review", attendees=2)

    result = classify(item)

    assert result.score == 0.2
    assert result.is_walkable is False
    assert result.reason == REASON_NOT_IDEAL
    assert result.estimated_steps == 0


def test_large_meeting_reason_and_duration_bounds() -> None:
    team = classify(meeting(DAY, (11, 0), (11, 45), title="Team sync", attendees=6))
    short_chat = classify(meeting(DAY, (16, 0), (16, 15), title="Coffee chat", attendees=2))

    assert team.reason == REASON_TOO_MANY_ATTENDEES
    assert not team.is_walkable
    assert not short_chat.is_walkable


def test_predicates_stay_distinct() -> None:
    team = meeting(DAY, (11, 0), (11, 45), title="Team sync", attendees=6)
    hosted = meeting(DAY, (14, 0), (14, 45), title="Team sync", attendees=6, is_organizer=True)
    all_hands = meeting(DAY, (16, 0), (17, 0), title="Company All-Hands", attendees=80)

    assert is_background_listenable(team)
    assert not is_walking_one_on_one(walkability_score(team), is_one_on_one=False)
    assert not is_background_listenable(hosted)
    assert not is_background_listenable(all_hands)
    assert is_walking_one_on_one(0.5, is_one_on_one=True)
    assert not is_walking_one_on_one(0.49, is_one_on_one=True)


def test_analyze_orders_by_start_and_skips_all_day() -> None:
    meetings = [
        meeting(DAY, (14, 0), (14, 30), title="1:1 chat", attendees=2),
        meeting(DAY, (0, 0), (23, 0), title="Holiday", is_all_day=True),
        meeting(DAY, (9, 0), (9, 30), title="Standup", attendees=8),
    ]

    analyzed = analyze_walkable_meetings(meetings, steps_per_minute=110)

    assert [m.title for m in analyzed] == ["Standup", "1:1 chat"]
    assert analyzed[1].is_recommended
    assert analyzed[1].estimated_steps == 30 * 110
