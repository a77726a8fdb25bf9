"""Domain types shared by the planner, the autopilot and the API layer."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from stridewise.services.planning.intervals import TimeInterval

ON_TRACK_GAP_STEPS = 500


class PlanningError(Exception):
    """Base class for planner domain errors."""


class ActivityNotFound(PlanningError):
    pass


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"

    @classmethod
    def for_hour(cls, hour: int) -> "TimeOfDay":
        if hour < 12:
            return cls.MORNING
        if hour < 17:
            return cls.AFTERNOON
        return cls.EVENING


class PreferredTime(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NO_PREFERENCE = "no_preference"


class SlotClass(str, Enum):
    MICRO = "micro"
    SHORT = "short"
    STANDARD = "standard"
    EXTENDED = "extended"

    @classmethod
    def for_minutes(cls, minutes: int) -> "SlotClass":
        if minutes <= 10:
            return cls.MICRO
        if minutes <= 20:
            return cls.SHORT
        if minutes <= 40:
            return cls.STANDARD
        return cls.EXTENDED


class BusySource(str, Enum):
    MEETING = "meeting"
    ACTIVITY = "activity"


class ActivityType(str, Enum):
    MICRO_WALK = "micro_walk"
    SHORT_WALK = "short_walk"
    STANDARD_WALK = "standard_walk"
    MORNING_WALK = "morning_walk"
    LUNCH_WALK = "lunch_walk"
    EVENING_WALK = "evening_walk"
    POST_MEETING_WALK = "post_meeting_walk"
    WORKOUT = "workout"

    @property
    def kind(self) -> str:
        """Coarse kind used for adherence tracking: ``walk`` or ``workout``."""
        return "workout" if self is ActivityType.WORKOUT else "walk"


class ActivityPriority(str, Enum):
    CRITICAL = "critical"
    RECOMMENDED = "recommended"
    OPTIONAL = "optional"


class ActivityStatus(str, Enum):
    PLANNED = "planned"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    RESCHEDULED = "rescheduled"


class TrustLevel(str, Enum):
    FULL_AUTO = "full_auto"
    CONFIRM_FIRST = "confirm_first"
    SUGGEST_ONLY = "suggest_only"


class ApprovalState(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WalkType(str, Enum):
    MICRO = "micro"
    SHORT = "short"
    STANDARD = "standard"

    @classmethod
    def for_minutes(cls, minutes: int) -> "WalkType":
        if minutes <= 10:
            return cls.MICRO
        if minutes <= 20:
            return cls.SHORT
        return cls.STANDARD

    @property
    def display_name(self) -> str:
        return {
            WalkType.MICRO: "Quick Reset",
            WalkType.SHORT: "Energy Boost",
            WalkType.STANDARD: "Power Walk",
        }[self]


class WorkoutKind(str, Enum):
    PUSH = "push"
    PULL = "pull"
    LEGS = "legs"

    def next(self) -> "WorkoutKind":
        order = list(WorkoutKind)
        return order[(order.index(self) + 1) % len(order)]


@dataclass(frozen=True)
class BusyInterval:
    interval: TimeInterval
    source: BusySource
    label: str = ""

    @property
    def start(self) -> datetime:
        return self.interval.start

    @property
    def end(self) -> datetime:
        return self.interval.end


@dataclass(frozen=True)
class FreeSlot:
    interval: TimeInterval
    slot_class: SlotClass
    is_during_meal: bool = False
    is_preferred_time: bool = False

    @property
    def start(self) -> datetime:
        return self.interval.start

    @property
    def end(self) -> datetime:
        return self.interval.end

    @property
    def duration_minutes(self) -> int:
        return self.interval.duration_minutes

    @property
    def hour(self) -> int:
        return self.interval.start.hour


class CalendarMeeting(BaseModel):
    id: str
    title: str = ""
    start: datetime
    end: datetime
    attendee_count: int = Field(default=1, ge=0)
    is_organizer: bool = False
    is_all_day: bool = False
    is_out_of_office: bool = False
    location: Optional[str] = None
    notes: Optional[str] = None

    @property
    def is_real_meeting(self) -> bool:
        return not self.is_all_day and not self.is_out_of_office

    @property
    def duration_minutes(self) -> int:
        return max(0, int((self.end - self.start).total_seconds() // 60))

    @property
    def interval(self) -> Optional[TimeInterval]:
        if self.end <= self.start:
            return None
        return TimeInterval(self.start, self.end)


class PlannedActivity(BaseModel):
    id: str
    activity_type: ActivityType
    start_time: datetime
    duration_minutes: int = Field(gt=0)
    estimated_steps: int = Field(default=0, ge=0)
    priority: ActivityPriority = ActivityPriority.OPTIONAL
    status: ActivityStatus = ActivityStatus.PLANNED
    reason: str = ""
    is_ideal: bool = False
    workout_kind: Optional[WorkoutKind] = None

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(minutes=self.duration_minutes)

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)

    @property
    def label(self) -> str:
        return self.activity_type.value

    @property
    def time_of_day(self) -> TimeOfDay:
        return TimeOfDay.for_hour(self.start_time.hour)


class WalkableMeeting(BaseModel):
    meeting_id: str
    title: str
    start: datetime
    duration_minutes: int
    attendee_count: int
    is_one_on_one: bool
    score: float = Field(ge=0.0, le=1.0)
    is_recommended: bool
    estimated_steps: int = 0
    reason: str


class UserActivityPatterns(BaseModel):
    average_daily_steps: int = 6000
    weekday_average: int = 5500
    weekend_average: int = 7000
    # ISO weekday numbers (Monday=1 .. Sunday=7)
    best_performing_days: List[int] = Field(default_factory=lambda: [6, 7])
    peak_activity_hours: List[int] = Field(default_factory=lambda: [8, 12, 17])
    typical_walk_duration: int = 20
    steps_per_minute_walking: int = Field(default=100, gt=0)
    goal_achievement_rate: float = Field(default=0.3, ge=0.0, le=1.0)
    workout_frequency: float = 0.0
    consistent_walk_times: List[Tuple[int, float]] = Field(
        default_factory=lambda: [(8, 0.4), (12, 0.5), (18, 0.3)]
    )
    last_updated: Optional[datetime] = None


class PlanAdherence(BaseModel):
    total_plans_generated: int = 0
    activities_completed: int = 0
    activities_skipped: int = 0
    best_time_slots: Dict[str, float] = Field(default_factory=dict)
    kind_time_slots: Dict[str, float] = Field(default_factory=dict)
    preferred_walk_duration: int = 20
    rescheduling_frequency: float = 0.2
    average_completion_rate: float = Field(default=0.5, ge=0.0, le=1.0)
    last_updated: Optional[datetime] = None


class AutopilotWalk(BaseModel):
    id: str
    walk_date: date
    start_time: datetime
    duration_minutes: int = Field(gt=0)
    walk_type: WalkType
    approval_state: ApprovalState = ApprovalState.PENDING
    trust_level: TrustLevel
    calendar_event_id: Optional[str] = None
    last_error: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(minutes=self.duration_minutes)

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)

    @property
    def label(self) -> str:
        return self.walk_type.display_name


class StreakState(BaseModel):
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_goal_date: Optional[date] = None


class DailyMovementPlan(BaseModel):
    id: str
    plan_date: date
    target_steps: int
    current_steps: int
    steps_needed: int
    activities: List[PlannedActivity] = Field(default_factory=list)
    walkable_meetings: List[WalkableMeeting] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str
    generated_at: datetime
    epoch: int = 0

    @property
    def total_planned_steps(self) -> int:
        activity_steps = sum(activity.estimated_steps for activity in self.activities)
        meeting_steps = sum(m.estimated_steps for m in self.walkable_meetings if m.is_recommended)
        return activity_steps + meeting_steps

    @property
    def remaining_gap(self) -> int:
        return max(0, self.steps_needed - self.total_planned_steps)

    @property
    def is_on_track(self) -> bool:
        return self.remaining_gap < ON_TRACK_GAP_STEPS

    def find_activity(self, activity_id: str) -> PlannedActivity:
        for activity in self.activities:
            if activity.id == activity_id:
                return activity
        raise ActivityNotFound(f"activity {activity_id} is not part of the plan for {self.plan_date.isoformat()}")
