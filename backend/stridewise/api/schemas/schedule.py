"""Schemas for manually scheduled activities."""
from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from stridewise.services.planning.schedule import Recurrence, ScheduledActivity


class ScheduledActivityCreate(BaseModel):
    activity_kind: str = Field(default="walk", pattern="^(walk|workout)$")
    title: str = Field(min_length=1, max_length=200)
    start_hour: int = Field(ge=0, le=23)
    start_minute: int = Field(default=0, ge=0, le=59)
    duration_minutes: int = Field(gt=0, le=240)
    recurrence: Recurrence = Recurrence.ONCE
    start_date: date
    end_date: Optional[date] = None


class ScheduleListResponse(BaseModel):
    activities: List[ScheduledActivity]
    request_id: str
