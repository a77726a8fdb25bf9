"""Learned pattern endpoints."""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Request

from stridewise.api.deps import get_services, request_id_of
from stridewise.api.schemas.patterns import InsightsResponse, PatternsResponse
from stridewise.observability.metrics import timed
from stridewise.observability.tracing import trace
from stridewise.services.container import ServiceContainer

router = APIRouter()


@router.get("/patterns", response_model=PatternsResponse, tags=["patterns"])
def get_patterns(
    request: Request,
    services: ServiceContainer = Depends(get_services),
) -> PatternsResponse:
    request_id = request_id_of(request)
    with trace("patterns.get", request_id=request_id):
        patterns = services.learner.patterns()
        adherence = services.learner.adherence()
    return PatternsResponse(patterns=patterns, adherence=adherence, request_id=request_id or "")


@router.post("/patterns/refresh", response_model=PatternsResponse, tags=["patterns"])
def refresh_patterns(
    request: Request,
    services: ServiceContainer = Depends(get_services),
) -> PatternsResponse:
    """Re-learn patterns from the activity history ending yesterday."""
    request_id = request_id_of(request)
    with timed("patterns.refresh_api"):
        patterns = services.planner.refresh_patterns(date.today())
    return PatternsResponse(
        patterns=patterns,
        adherence=services.learner.adherence(),
        request_id=request_id or "",
    )


@router.get("/patterns/insights", response_model=InsightsResponse, tags=["patterns"])
def get_insights(
    request: Request,
    day: Optional[date] = None,
    services: ServiceContainer = Depends(get_services),
) -> InsightsResponse:
    """Weekday patterns, the best recent day like ``day`` and whether ``day`` can repeat it."""
    request_id = request_id_of(request)
    day = day or date.today()
    with timed("patterns.insights", metadata={"date": day.isoformat()}):
        streak = services.streak.validate(date.today())
        insights = services.insights.daily(day, services.planner.preferences(), streak_days=streak.current_streak)
    return InsightsResponse(insights=insights, request_id=request_id or "")
