"""Slot scoring and greedy step-gap allocation."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple
from uuid import NAMESPACE_URL, uuid5

from stridewise.services.planning.models import (
    ActivityPriority,
    ActivityType,
    FreeSlot,
    PlanAdherence,
    PlannedActivity,
    SlotClass,
    TimeOfDay,
    UserActivityPatterns,
    WalkableMeeting,
)
from stridewise.services.planning.patterns import NEUTRAL_RATE
from stridewise.services.planning.preferences import UserPreferences

SLOT_BUFFER_MINUTES = 5
MAX_ACTIVITY_MINUTES = 45
MIN_ACTIVITY_MINUTES = 5
MAX_CONFIDENCE = 0.95

ACTIVITY_NAMESPACE = uuid5(NAMESPACE_URL, "stridewise/planned-activity")


@dataclass(frozen=True)
class ScoredSlot:
    slot: FreeSlot
    score: float


def activity_id(activity_type: ActivityType, start, duration_minutes: int) -> str:
    """Stable id so identical inputs produce identical plans."""
    return str(uuid5(ACTIVITY_NAMESPACE, f"{activity_type.value}|{start.isoformat()}|{duration_minutes}"))


def score_slot(slot: FreeSlot, patterns: UserActivityPatterns, adherence: PlanAdherence) -> float:
    score = 0.0
    if slot.hour in patterns.peak_activity_hours:
        score += 0.3
    if slot.is_preferred_time:
        score += 0.25
    if slot.duration_minutes >= 20:
        score += 0.2
    if slot.duration_minutes >= 30:
        score += 0.15
    bucket = TimeOfDay.for_hour(slot.hour).value
    score += 0.3 * adherence.best_time_slots.get(bucket, NEUTRAL_RATE)
    return round(score, 6)


def rank_slots(
    slots: Iterable[FreeSlot],
    patterns: UserActivityPatterns,
    adherence: PlanAdherence,
) -> List[ScoredSlot]:
    """Highest score first; ties go to the earlier slot."""
    scored = [ScoredSlot(slot, score_slot(slot, patterns, adherence)) for slot in slots]
    return sorted(scored, key=lambda item: (-item.score, item.slot.start, item.slot.end))


def activity_type_for(slot: FreeSlot) -> ActivityType:
    hour = slot.hour
    if slot.slot_class is SlotClass.MICRO:
        return ActivityType.MICRO_WALK
    if slot.slot_class is SlotClass.EXTENDED:
        if hour < 10:
            return ActivityType.MORNING_WALK
        if hour >= 17:
            return ActivityType.EVENING_WALK
        return ActivityType.STANDARD_WALK
    if 11 <= hour <= 13:
        return ActivityType.LUNCH_WALK
    if hour < 10:
        return ActivityType.MORNING_WALK
    if hour >= 17:
        return ActivityType.EVENING_WALK
    return ActivityType.SHORT_WALK if slot.slot_class is SlotClass.SHORT else ActivityType.STANDARD_WALK


def priority_for(estimated_steps: int, remaining_steps: int) -> ActivityPriority:
    share = estimated_steps / remaining_steps if remaining_steps > 0 else 1.0
    if share > 0.4:
        return ActivityPriority.CRITICAL
    if share > 0.2:
        return ActivityPriority.RECOMMENDED
    return ActivityPriority.OPTIONAL


def reason_for(slot: FreeSlot, duration_minutes: int, patterns: UserActivityPatterns) -> str:
    parts: List[str] = []
    if slot.is_preferred_time:
        parts.append("Matches your preferred walking time")
    if slot.hour in patterns.peak_activity_hours:
        parts.append("You're typically most active around this time")
    if duration_minutes >= 30:
        parts.append(f"{duration_minutes}-min slot covers significant steps")
    elif duration_minutes >= 15:
        parts.append("Quick walk to boost your step count")
    else:
        parts.append("Micro-break to keep moving")
    return ". ".join(parts)


def meeting_steps(walkable_meetings: Iterable[WalkableMeeting]) -> int:
    return sum(m.estimated_steps for m in walkable_meetings if m.is_recommended)


def allocate(
    steps_needed: int,
    free_slots: Sequence[FreeSlot],
    walkable_meetings: Sequence[WalkableMeeting],
    patterns: UserActivityPatterns,
    adherence: PlanAdherence,
    prefs: UserPreferences,
) -> List[PlannedActivity]:
    """
    Greedily fill the step gap with walks in the best-scoring free slots.

    Meal-flagged slots are skipped and steps from recommended walking meetings
    are credited first. Each walk takes ``remaining // pace + 5`` minutes,
    capped by the slot (minus a 5-minute buffer) and by 45 minutes. The result
    is sorted by start time and depends only on the arguments.
    """
    pace = patterns.steps_per_minute_walking
    remaining = steps_needed - meeting_steps(walkable_meetings)
    if remaining <= 0:
        return []

    candidates = [slot for slot in free_slots if not (slot.is_during_meal or prefs.is_during_meal(slot.start))]
    activities: List[PlannedActivity] = []
    for scored in rank_slots(candidates, patterns, adherence):
        if remaining <= 0:
            break
        slot = scored.slot
        minutes_needed = remaining // pace + SLOT_BUFFER_MINUTES
        duration = min(slot.duration_minutes - SLOT_BUFFER_MINUTES, minutes_needed, MAX_ACTIVITY_MINUTES)
        if duration < MIN_ACTIVITY_MINUTES:
            continue

        estimated = duration * pace
        kind = activity_type_for(slot)
        activities.append(
            PlannedActivity(
                id=activity_id(kind, slot.start, duration),
                activity_type=kind,
                start_time=slot.start,
                duration_minutes=duration,
                estimated_steps=estimated,
                priority=priority_for(estimated, remaining),
                reason=reason_for(slot, duration, patterns),
                is_ideal=slot.is_preferred_time,
            )
        )
        remaining -= estimated

    return sorted(activities, key=lambda activity: (activity.start_time, activity.id))


def confidence_and_reasoning(
    steps_needed: int,
    activities: Sequence[PlannedActivity],
    walkable_meetings: Sequence[WalkableMeeting],
    patterns: UserActivityPatterns,
) -> Tuple[float, str]:
    planned = sum(a.estimated_steps for a in activities) + meeting_steps(walkable_meetings)
    if steps_needed <= 0:
        coverage = 1.0
        reasoning = "You've already hit your step goal! Great job!"
    else:
        coverage = min(1.0, planned / steps_needed)
        if coverage >= 0.9:
            reasoning = f"This plan covers your step goal. {len(activities)} walks scheduled across the day."
        elif coverage >= 0.7:
            reasoning = (
                f"Plan covers {int(coverage * 100)}% of steps needed. "
                "Consider walking meetings to close the gap."
            )
        else:
            gap = steps_needed - planned
            reasoning = (
                f"Limited availability today. You'll need ~{gap} extra steps "
                "from walking meetings or longer walks."
            )

    if any(m.is_recommended for m in walkable_meetings):
        reasoning += " Walking meeting opportunities identified."

    confidence = min(MAX_CONFIDENCE, 0.6 * coverage + 0.4 * patterns.goal_achievement_rate)
    return round(confidence, 4), reasoning
