"""Schemas for the step-goal streak."""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_goal_date: Optional[date]
    request_id: str


class StreakRecordRequest(BaseModel):
    day: Optional[date] = None
    steps: int = Field(ge=0)


class StreakValidateRequest(BaseModel):
    day: Optional[date] = None
