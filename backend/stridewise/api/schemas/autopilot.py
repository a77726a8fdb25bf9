"""Schemas for autopilot runs and walk approvals."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel

from stridewise.services.planning.models import AutopilotWalk, PlannedActivity


class AutopilotRunRequest(BaseModel):
    today: Optional[date] = None
    force: bool = False


class AutopilotRunResponse(BaseModel):
    target_date: date
    walks: List[AutopilotWalk]
    skipped: Optional[str]
    errors: List[str]
    superseded: int
    request_id: str


class WalkListResponse(BaseModel):
    walks: List[AutopilotWalk]
    request_id: str


class WalkAdjustRequest(BaseModel):
    start_time: datetime


class WalkActionResponse(BaseModel):
    walk: AutopilotWalk
    error: Optional[str] = None
    request_id: str


class PostMeetingWalksResponse(BaseModel):
    walks: List[PlannedActivity]
    request_id: str
