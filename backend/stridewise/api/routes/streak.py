"""Step-goal streak endpoints."""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Request

from stridewise.api.deps import get_services, request_id_of
from stridewise.api.schemas.streak import StreakRecordRequest, StreakResponse, StreakValidateRequest
from stridewise.observability.tracing import trace
from stridewise.services.container import ServiceContainer
from stridewise.services.planning.models import StreakState

router = APIRouter(prefix="/streak", tags=["streak"])


def _response(state: StreakState, request_id: str | None) -> StreakResponse:
    return StreakResponse(**state.model_dump(), request_id=request_id or "")


@router.get("", response_model=StreakResponse)
def get_streak(
    request: Request,
    services: ServiceContainer = Depends(get_services),
) -> StreakResponse:
    request_id = request_id_of(request)
    with trace("streak.get", request_id=request_id):
        state = services.streak.validate(date.today())
    return _response(state, request_id)


@router.post("/record", response_model=StreakResponse)
def record_steps(
    request: Request,
    payload: StreakRecordRequest,
    services: ServiceContainer = Depends(get_services),
) -> StreakResponse:
    """Record a day's step total; hitting the goal extends the streak."""
    request_id = request_id_of(request)
    day = payload.day or date.today()
    goal = services.planner.preferences().daily_step_goal
    metadata = {"day": day.isoformat(), "steps": payload.steps, "goal": goal}
    with trace("streak.record", metadata=metadata, request_id=request_id):
        state = services.streak.record_daily_total(day, payload.steps, goal)
    return _response(state, request_id)


@router.post("/validate", response_model=StreakResponse)
def validate_streak(
    request: Request,
    payload: StreakValidateRequest,
    services: ServiceContainer = Depends(get_services),
) -> StreakResponse:
    request_id = request_id_of(request)
    day = payload.day or date.today()
    with trace("streak.validate", metadata={"day": day.isoformat()}, request_id=request_id):
        state = services.streak.validate(day)
    return _response(state, request_id)
