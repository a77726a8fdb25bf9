"""User preferences that shape the day: active hours, meals, goals and autopilot policy."""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from stridewise.services.planning.models import PreferredTime, TrustLevel
from stridewise.services.store import Store, load_model

logger = logging.getLogger(__name__)

PREFERENCES_KEY = "preferences"
MEAL_BUFFER_MINUTES = 30
ACTIVE_HOURS_BUFFER = timedelta(minutes=60)
WORKOUT_DURATION_OPTIONS = (30, 45, 60, 90)

# Hour bands [start, end) in which a walk counts as "at the preferred time".
WALK_PREFERENCE_BANDS = {
    PreferredTime.MORNING: (6, 11),
    PreferredTime.AFTERNOON: (11, 17),
    PreferredTime.EVENING: (17, 21),
}


class AutopilotPreferences(BaseModel):
    enabled: bool = True
    trust_level: TrustLevel = TrustLevel.CONFIRM_FIRST
    walks_per_day: int = Field(default=3, ge=1, le=6)
    include_micro_walks: bool = True
    min_walk_minutes: int = Field(default=10, ge=5)
    max_walk_minutes: int = Field(default=30, ge=5)
    calendar_id: str = ""
    motivation: Optional[str] = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "AutopilotPreferences":
        if self.min_walk_minutes > self.max_walk_minutes:
            raise ValueError("min_walk_minutes must not exceed max_walk_minutes")
        return self


class UserPreferences(BaseModel):
    wake_time: time = time(7, 0)
    sleep_time: time = time(23, 0)
    breakfast_time: time = time(8, 0)
    lunch_time: time = time(12, 30)
    dinner_time: time = time(19, 0)
    daily_step_goal: int = Field(default=10000, ge=0)
    preferred_walk_time: PreferredTime = PreferredTime.NO_PREFERENCE
    preferred_gym_time: PreferredTime = PreferredTime.NO_PREFERENCE
    workout_duration_minutes: int = 45
    gym_frequency_per_week: int = Field(default=3, ge=0, le=7)
    autopilot: AutopilotPreferences = Field(default_factory=AutopilotPreferences)

    @field_validator("workout_duration_minutes")
    @classmethod
    def _check_workout_duration(cls, value: int) -> int:
        if value not in WORKOUT_DURATION_OPTIONS:
            raise ValueError(f"workout_duration_minutes must be one of {WORKOUT_DURATION_OPTIONS}")
        return value

    @property
    def meal_times(self) -> List[time]:
        return [self.breakfast_time, self.lunch_time, self.dinner_time]

    @property
    def has_workout_goal(self) -> bool:
        return self.gym_frequency_per_week > 0

    def is_during_meal(self, moment: datetime) -> bool:
        """True when ``moment`` falls within the buffer around any meal time."""
        minutes = moment.hour * 60 + moment.minute
        return any(
            abs(minutes - (meal.hour * 60 + meal.minute)) < MEAL_BUFFER_MINUTES for meal in self.meal_times
        )

    def is_preferred_walk_hour(self, hour: int) -> bool:
        band = WALK_PREFERENCE_BANDS.get(self.preferred_walk_time)
        if band is None:
            return True
        return band[0] <= hour < band[1]

    def buffered_active_hours(self, day: date) -> tuple[datetime, datetime]:
        """Wake + 1h to sleep - 1h on ``day``."""
        return (
            datetime.combine(day, self.wake_time) + ACTIVE_HOURS_BUFFER,
            datetime.combine(day, self.sleep_time) - ACTIVE_HOURS_BUFFER,
        )

    def is_within_active_hours(self, start: datetime, end: datetime) -> bool:
        window_start, window_end = self.buffered_active_hours(start.date())
        return window_start <= start and end <= window_end


def load_preferences(store: Store) -> UserPreferences:
    """Read preferences from ``store``; missing or corrupt values fall back to defaults."""
    return load_model(store, PREFERENCES_KEY, UserPreferences)


def save_preferences(store: Store, prefs: UserPreferences) -> UserPreferences:
    store.put(PREFERENCES_KEY, prefs.model_dump(mode="json"))
    logger.info(
        "Preferences saved (goal=%s, walk_time=%s, trust=%s)",
        prefs.daily_step_goal,
        prefs.preferred_walk_time.value,
        prefs.autopilot.trust_level.value,
    )
    return prefs
