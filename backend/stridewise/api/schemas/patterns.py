"""Schemas for learned activity patterns."""
from __future__ import annotations

from pydantic import BaseModel

from stridewise.services.planning.insights import DailyInsights
from stridewise.services.planning.models import PlanAdherence, UserActivityPatterns


class PatternsResponse(BaseModel):
    patterns: UserActivityPatterns
    adherence: PlanAdherence
    request_id: str


class InsightsResponse(BaseModel):
    insights: DailyInsights
    request_id: str
