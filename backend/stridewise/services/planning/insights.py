"""Weekday history insights: per-weekday patterns, the best recent day and today's cards.

History is read through the activity-data provider one day at a time. A day
whose steps cannot be read is left out of totals but still counts towards the
number of days analysed.
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from stridewise.observability.tracing import trace
from stridewise.services.planning.busy import active_window, build_busy_intervals, meeting_load_minutes
from stridewise.services.planning.free_slots import find_free_slots
from stridewise.services.planning.models import CalendarMeeting, FreeSlot, PreferredTime, WalkableMeeting
from stridewise.services.planning.preferences import UserPreferences
from stridewise.services.planning.schedule import ScheduleBook
from stridewise.services.planning.walkability import analyze_walkable_meetings
from stridewise.services.providers.base import ActivityDataProvider, CalendarProvider, WorkoutRecord

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = {1: "Monday", 2: "Tuesday", 3: "Wednesday", 4: "Thursday", 5: "Friday", 6: "Saturday", 7: "Sunday"}
PATTERN_WEEKS = 12
BEST_DAY_WEEKS = 8
WORKOUT_BONUS = 5000
GOAL_BONUS = 3000
HEAVY_DAY_MINUTES = 360
LIGHT_DAY_MINUTES = 120
STEPS_PER_WALK_MINUTE = 100


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


class InsightKind(str, Enum):
    STREAK = "streak"
    PATTERN = "pattern"
    COMPARISON = "comparison"
    ACHIEVEMENT = "achievement"
    MOTIVATION = "motivation"


class DayPattern(BaseModel):
    weekday: int = Field(ge=1, le=7)
    weekday_name: str
    average_steps: int
    workout_days: int
    goal_achievement_rate: float
    days_analyzed: int
    best_steps: int
    best_date: Optional[date] = None


class BestDayRecord(BaseModel):
    day: date
    steps: int
    workout_minutes: int
    weekday: int
    goal_achieved: bool

    def weeks_ago(self, today: date) -> int:
        return max(0, (today - self.day).days // 7)


class Insight(BaseModel):
    kind: InsightKind
    title: str
    subtitle: str
    value: str
    trend: Trend


class ReplicabilityCheck(BaseModel):
    best_day: BestDayRecord
    can_replicate: bool
    blockers: List[str]
    opportunities: List[str]
    adjusted_plan: Optional[str] = None
    confidence: float = Field(ge=0.0, le=1.0)


class DailyInsights(BaseModel):
    day: date
    weekday_patterns: List[DayPattern]
    current_pattern: Optional[DayPattern] = None
    best_recent_day: Optional[BestDayRecord] = None
    insights: List[Insight] = Field(default_factory=list)
    replicability: Optional[ReplicabilityCheck] = None


class HistoryReader:
    """Per-day cache over an :class:`ActivityDataProvider`; failed reads come back as ``None``/``[]``."""

    def __init__(self, provider: ActivityDataProvider) -> None:
        self._provider = provider
        self._steps: Dict[date, Optional[int]] = {}
        self._workouts: Dict[date, List[WorkoutRecord]] = {}

    def steps(self, day: date) -> Optional[int]:
        if day not in self._steps:
            try:
                self._steps[day] = int(self._provider.fetch_steps(day))
            except Exception:
                logger.warning("Step history unavailable for %s", day, exc_info=True)
                self._steps[day] = None
        return self._steps[day]

    def workouts(self, day: date) -> List[WorkoutRecord]:
        if day not in self._workouts:
            try:
                self._workouts[day] = list(self._provider.fetch_workouts(day))
            except Exception:
                logger.warning("Workout history unavailable for %s", day, exc_info=True)
                self._workouts[day] = []
        return self._workouts[day]


def weekday_dates(weekday: int, today: date, weeks: int) -> List[date]:
    """The most recent ``weekday`` on or before ``today``, then the same day in each earlier week."""
    latest = today - timedelta(days=(today.isoweekday() - weekday) % 7)
    return [latest - timedelta(weeks=offset) for offset in range(weeks)]


def weekday_pattern(
    weekday: int,
    history: HistoryReader,
    goal: int,
    today: date,
    weeks: int = PATTERN_WEEKS,
) -> DayPattern:
    dates = weekday_dates(weekday, today, weeks)
    total = goal_hits = workout_days = best_steps = 0
    best_date = None
    for day in dates:
        steps = history.steps(day)
        if steps is not None:
            total += steps
            if steps > best_steps:
                best_steps, best_date = steps, day
            if steps >= goal:
                goal_hits += 1
        if history.workouts(day):
            workout_days += 1
    return DayPattern(
        weekday=weekday,
        weekday_name=WEEKDAY_NAMES[weekday],
        average_steps=total // len(dates) if dates else 0,
        workout_days=workout_days,
        goal_achievement_rate=goal_hits / len(dates) if dates else 0.0,
        days_analyzed=len(dates),
        best_steps=best_steps,
        best_date=best_date,
    )


def best_recent_day(
    weekday: int,
    history: HistoryReader,
    goal: int,
    today: date,
    weeks: int = BEST_DAY_WEEKS,
) -> Optional[BestDayRecord]:
    """Highest scoring ``weekday`` of the last ``weeks``: steps plus bonuses for a workout and a goal hit."""
    best: Optional[BestDayRecord] = None
    best_score = 0
    for day in weekday_dates(weekday, today, weeks):
        steps = history.steps(day)
        if steps is None:
            continue
        workout_minutes = sum(w.duration_minutes for w in history.workouts(day))
        goal_met = steps >= goal
        score = steps + (WORKOUT_BONUS if workout_minutes > 0 else 0) + (GOAL_BONUS if goal_met else 0)
        if score > best_score:
            best_score = score
            best = BestDayRecord(
                day=day,
                steps=steps,
                workout_minutes=workout_minutes,
                weekday=weekday,
                goal_achieved=goal_met and workout_minutes > 0,
            )
    return best


def today_insights(
    day: date,
    pattern: Optional[DayPattern],
    best: Optional[BestDayRecord],
    history: HistoryReader,
    goal: int,
    streak_days: int,
) -> List[Insight]:
    name = WEEKDAY_NAMES[day.isoweekday()]
    insights: List[Insight] = []
    if pattern is not None:
        insights.append(
            Insight(
                kind=InsightKind.PATTERN,
                title=f"Your {name} Pattern",
                subtitle=f"Based on last {pattern.days_analyzed} weeks",
                value=f"{pattern.average_steps:,} avg steps",
                trend=Trend.UP if pattern.average_steps >= goal else Trend.DOWN,
            )
        )
        if pattern.workout_days > 0:
            insights.append(
                Insight(
                    kind=InsightKind.PATTERN,
                    title=f"{name} Workouts",
                    subtitle=f"Last {pattern.days_analyzed} weeks",
                    value=f"{pattern.workout_days} workouts",
                    trend=Trend.NEUTRAL,
                )
            )
        percent = int(pattern.goal_achievement_rate * 100)
        insights.append(
            Insight(
                kind=InsightKind.ACHIEVEMENT,
                title="Goal Achievement",
                subtitle=f"On {name}s",
                value=f"{percent}% success rate",
                trend=Trend.UP if percent >= 50 else Trend.DOWN,
            )
        )

    if best is not None:
        weeks_ago = best.weeks_ago(day)
        insights.append(
            Insight(
                kind=InsightKind.MOTIVATION,
                title=f"Your Best {name}",
                subtitle="This week!" if weeks_ago == 0 else f"{weeks_ago} weeks ago",
                value=f"{best.steps:,} steps",
                trend=Trend.UP,
            )
        )

    if streak_days > 1:
        insights.append(
            Insight(
                kind=InsightKind.STREAK,
                title="Step Goal Streak",
                subtitle="Keep it going!",
                value=f"{streak_days} days",
                trend=Trend.UP,
            )
        )

    last_week = history.steps(day - timedelta(weeks=1))
    if last_week is not None:
        difference = (history.steps(day) or 0) - last_week
        insights.append(
            Insight(
                kind=InsightKind.COMPARISON,
                title=f"vs Last {name}",
                subtitle="Same time comparison",
                value=f"+{difference:,}" if difference >= 0 else f"{difference:,}",
                trend=Trend.UP if difference >= 0 else Trend.DOWN,
            )
        )
    return insights


def _adjusted_plan(best: BestDayRecord, meeting_minutes: int, walkable_steps: int, slots: Sequence[FreeSlot]) -> str:
    extra_minutes = (best.steps - walkable_steps) // STEPS_PER_WALK_MINUTE
    if meeting_minutes > HEAVY_DAY_MINUTES:
        return f"Take walking breaks between meetings to hit {best.steps:,} steps"
    if extra_minutes > 30:
        if slots:
            return f"Start with a {extra_minutes} min walk at {slots[0].start:%H:%M}"
        return f"Add a {extra_minutes} min walk to match your best"
    return f"Stay active and you can match your best {WEEKDAY_NAMES[best.weekday]}!"


def _opportunity_plan(slots: Sequence[FreeSlot], prefs: UserPreferences) -> str:
    if len(slots) >= 2:
        walk_time = f"{slots[0].start:%H:%M}"
        if prefs.has_workout_goal:
            if prefs.preferred_gym_time in (PreferredTime.AFTERNOON, PreferredTime.EVENING):
                later = next((slot for slot in slots if slot.hour >= 14), None)
                if later is not None:
                    return f"Walk at {walk_time}, workout at {later.start:%H:%M}"
            elif prefs.preferred_gym_time is PreferredTime.MORNING:
                return f"Workout at {walk_time}, walk in the afternoon"
        return f"Great day! Start with a walk at {walk_time}"
    if slots:
        return f"Use your free time at {slots[0].start:%H:%M} for activity"
    return "Light day ahead - perfect for hitting your goals!"


def check_replicability(
    best: BestDayRecord,
    day: date,
    meetings: Sequence[CalendarMeeting],
    walkable: Sequence[WalkableMeeting],
    workout_slots: Sequence[FreeSlot],
    prefs: UserPreferences,
) -> ReplicabilityCheck:
    """Can ``day`` repeat ``best``? Meeting load, workout room and walkable meetings move the confidence."""
    blockers: List[str] = []
    opportunities: List[str] = []
    confidence = 1.0
    real_meetings = [m for m in meetings if m.is_real_meeting]
    meeting_minutes = meeting_load_minutes(day, real_meetings)

    if meeting_minutes > HEAVY_DAY_MINUTES:
        blockers.append(f"Heavy meeting day ({meeting_minutes // 60}h of meetings)")
        confidence -= 0.3
    elif meeting_minutes < LIGHT_DAY_MINUTES:
        opportunities.append("Light meeting day - more time for walks!")
        confidence += 0.1

    if not workout_slots and best.workout_minutes > 0:
        blockers.append(f"No {prefs.workout_duration_minutes}+ min free slot for workout")
        confidence -= 0.3
    elif len(workout_slots) >= 3:
        opportunities.append("Multiple workout slots available")
        confidence += 0.1

    recommended = [m for m in walkable if m.is_recommended]
    if len(real_meetings) > 5 and not recommended:
        blockers.append("Busy day with no walkable meetings")
        confidence -= 0.2
    elif len(real_meetings) <= 3:
        opportunities.append("Free calendar - schedule dedicated walk breaks")

    adjusted = None
    if blockers:
        walkable_steps = sum(m.estimated_steps for m in recommended)
        adjusted = _adjusted_plan(best, meeting_minutes, walkable_steps, workout_slots)
    elif opportunities:
        adjusted = _opportunity_plan(workout_slots, prefs)

    return ReplicabilityCheck(
        best_day=best,
        can_replicate=not blockers,
        blockers=blockers,
        opportunities=opportunities,
        adjusted_plan=adjusted,
        confidence=round(min(1.0, max(0.0, confidence)), 2),
    )


class InsightsService:
    def __init__(
        self,
        *,
        calendar: CalendarProvider,
        activity_data: ActivityDataProvider,
        schedule_book: ScheduleBook,
        ceiling_hour: int = 21,
    ) -> None:
        self._calendar = calendar
        self._activity_data = activity_data
        self._schedule_book = schedule_book
        self._ceiling_hour = ceiling_hour

    def _fetch_events(self, day: date) -> List[CalendarMeeting]:
        try:
            return list(self._calendar.fetch_events(day))
        except Exception:
            logger.warning("Calendar unavailable for %s; insights without meetings", day, exc_info=True)
            return []

    def daily(self, day: date, prefs: UserPreferences, *, streak_days: int = 0) -> DailyInsights:
        history = HistoryReader(self._activity_data)
        goal = prefs.daily_step_goal
        weekday = day.isoweekday()
        with trace("insights.daily", metadata={"date": day.isoformat()}):
            patterns = [weekday_pattern(w, history, goal, day) for w in WEEKDAY_NAMES]
            current = next(p for p in patterns if p.weekday == weekday)
            best = best_recent_day(weekday, history, goal, day)
            insights = today_insights(day, current, best, history, goal, streak_days)

            replicability = None
            if best is not None:
                meetings = self._fetch_events(day)
                busy = build_busy_intervals(day, meetings, self._schedule_book.occurrences(day))
                window = active_window(day, prefs, ceiling_hour=self._ceiling_hour)
                slots = find_free_slots(day, busy, window, prefs.workout_duration_minutes, prefs) if window else []
                walkable = analyze_walkable_meetings(meetings)
                replicability = check_replicability(best, day, meetings, walkable, slots, prefs)

        logger.info("Insights for %s: %d cards, best=%s", day, len(insights), best.day if best else None)
        return DailyInsights(
            day=day,
            weekday_patterns=patterns,
            current_pattern=current,
            best_recent_day=best,
            insights=insights,
            replicability=replicability,
        )
