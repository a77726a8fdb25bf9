"""Meeting walkability scoring.

Two predicates live here and are used at different call sites:

* :func:`is_walking_one_on_one` drives the smart planner's "walk this 1:1"
  recommendation (score >= 0.5 with at most two attendees).
* :func:`is_background_listenable` marks larger meetings where the user is a
  passive listener and could walk while dialled in.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from stridewise.services.planning.models import CalendarMeeting, WalkableMeeting

DEFAULT_STEPS_PER_MINUTE = 100
MIN_WALKABLE_MINUTES = 20
MAX_WALKABLE_MINUTES = 120
BACKGROUND_MIN_ATTENDEES = 4
RECOMMEND_THRESHOLD = 0.5

WALK_FRIENDLY_KEYWORDS = ("1:1", "one on one", "sync", "catch up", "check in", "chat", "coffee")
NON_WALKABLE_KEYWORDS = ("presentation", "demo", "workshop", "training", "all hands", "standup", "review", "interview")
BACKGROUND_EXCLUDED_KEYWORDS = NON_WALKABLE_KEYWORDS + ("stand-up", "all-hands", "onsite", "on-site")

REASON_WALKING_ONE_ON_ONE = "Perfect for a walking 1:1"
REASON_TOO_MANY_ATTENDEES = "Too many attendees for walking"
REASON_NOT_IDEAL = "Meeting type not ideal for walking"


@dataclass(frozen=True)
class WalkabilityResult:
    is_walkable: bool
    score: float
    reason: str
    is_one_on_one: bool
    estimated_steps: int


def _has_keyword(title: str, keywords: Iterable[str]) -> bool:
    lowered = title.lower()
    return any(keyword in lowered for keyword in keywords)


def walkability_score(meeting: CalendarMeeting) -> float:
    score = 0.0
    if meeting.attendee_count <= 2:
        score += 0.4
    elif meeting.attendee_count <= 3:
        score += 0.2

    minutes = meeting.duration_minutes
    if 30 <= minutes <= 60:
        score += 0.3
    elif 20 <= minutes < 90:
        score += 0.2

    if _has_keyword(meeting.title, WALK_FRIENDLY_KEYWORDS):
        score += 0.3
    if _has_keyword(meeting.title, NON_WALKABLE_KEYWORDS):
        score = max(0.0, score - 0.5)

    # Rounded so float noise never flips the 0.5 threshold.
    return round(min(1.0, score), 2)


def is_walking_one_on_one(score: float, is_one_on_one: bool) -> bool:
    return is_one_on_one and score >= RECOMMEND_THRESHOLD


def is_background_listenable(meeting: CalendarMeeting) -> bool:
    if not meeting.is_real_meeting:
        return False
    if not MIN_WALKABLE_MINUTES <= meeting.duration_minutes <= MAX_WALKABLE_MINUTES:
        return False
    if meeting.attendee_count < BACKGROUND_MIN_ATTENDEES or meeting.is_organizer:
        return False
    return not _has_keyword(meeting.title, BACKGROUND_EXCLUDED_KEYWORDS)


def classify(meeting: CalendarMeeting, steps_per_minute: int = DEFAULT_STEPS_PER_MINUTE) -> WalkabilityResult:
    is_one_on_one = meeting.attendee_count <= 2
    score = walkability_score(meeting)
    is_walkable = (
        meeting.is_real_meeting
        and MIN_WALKABLE_MINUTES <= meeting.duration_minutes <= MAX_WALKABLE_MINUTES
        and is_walking_one_on_one(score, is_one_on_one)
    )
    if is_walkable:
        reason = REASON_WALKING_ONE_ON_ONE
    elif meeting.attendee_count > 2:
        reason = REASON_TOO_MANY_ATTENDEES
    else:
        reason = REASON_NOT_IDEAL
    return WalkabilityResult(
        is_walkable=is_walkable,
        score=score,
        reason=reason,
        is_one_on_one=is_one_on_one,
        estimated_steps=meeting.duration_minutes * steps_per_minute if is_walkable else 0,
    )


def analyze_walkable_meetings(
    meetings: Iterable[CalendarMeeting],
    steps_per_minute: int = DEFAULT_STEPS_PER_MINUTE,
) -> List[WalkableMeeting]:
    """Score every real meeting of the day, ordered by start time."""
    analyzed: List[WalkableMeeting] = []
    for meeting in sorted(meetings, key=lambda m: (m.start, m.id)):
        if not meeting.is_real_meeting:
            continue
        result = classify(meeting, steps_per_minute)
        analyzed.append(
            WalkableMeeting(
                meeting_id=meeting.id,
                title=meeting.title,
                start=meeting.start,
                duration_minutes=meeting.duration_minutes,
                attendee_count=meeting.attendee_count,
                is_one_on_one=result.is_one_on_one,
                score=result.score,
                is_recommended=result.is_walkable,
                estimated_steps=result.estimated_steps,
                reason=result.reason,
            )
        )
    return analyzed
