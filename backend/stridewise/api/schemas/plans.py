"""Schemas for daily movement plans."""
from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import List, Optional

from pydantic import BaseModel

from stridewise.services.plan_sync import PlanSyncResult
from stridewise.services.planning.conflicts import ScheduleConflict
from stridewise.services.planning.models import DailyMovementPlan, PlannedActivity


class PlanResponse(BaseModel):
    plan: DailyMovementPlan
    total_planned_steps: int
    remaining_gap: int
    is_on_track: bool
    committed: bool = True
    request_id: str

    @classmethod
    def from_plan(cls, plan: DailyMovementPlan, request_id: str | None, *, committed: bool = True) -> "PlanResponse":
        return cls(
            plan=plan,
            total_planned_steps=plan.total_planned_steps,
            remaining_gap=plan.remaining_gap,
            is_on_track=plan.is_on_track,
            committed=committed,
            request_id=request_id or "",
        )


class CombinedSuggestionResponse(BaseModel):
    walk: Optional[PlannedActivity]
    workout: Optional[PlannedActivity]
    extra_walks: List[PlannedActivity]
    used_fallback: bool
    request_id: str


class ConflictListResponse(BaseModel):
    conflicts: List[ScheduleConflict]
    request_id: str


class PlanSyncResponse(BaseModel):
    target_date: date
    created: int
    deleted: int
    activity_ids: List[str]
    skipped: Optional[str]
    errors: List[str]
    request_id: str

    @classmethod
    def from_result(cls, result: PlanSyncResult, request_id: str | None) -> "PlanSyncResponse":
        return cls(**asdict(result), request_id=request_id or "")
