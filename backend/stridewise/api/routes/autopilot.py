"""Autopilot run and walk approval endpoints."""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from stridewise.api.deps import get_services, http_error, request_id_of
from stridewise.api.schemas.autopilot import (
    AutopilotRunRequest,
    AutopilotRunResponse,
    PostMeetingWalksResponse,
    WalkActionResponse,
    WalkAdjustRequest,
    WalkListResponse,
)
from stridewise.observability.metrics import log_metric
from stridewise.observability.tracing import trace
from stridewise.services.autopilot import ApprovalOutcome
from stridewise.services.container import ServiceContainer
from stridewise.services.planning.models import PlanningError

router = APIRouter(prefix="/autopilot", tags=["autopilot"])


@router.post("/run", response_model=AutopilotRunResponse)
def run_autopilot(
    request: Request,
    payload: AutopilotRunRequest,
    services: ServiceContainer = Depends(get_services),
) -> AutopilotRunResponse:
    """Schedule walks for the day after ``today`` (defaults to the server date)."""
    request_id = request_id_of(request)
    result = services.autopilot.run_nightly(payload.today or date.today(), force=payload.force)
    return AutopilotRunResponse(
        target_date=result.target_date,
        walks=result.walks,
        skipped=result.skipped,
        errors=result.errors,
        superseded=result.superseded,
        request_id=request_id or "",
    )


@router.get("/walks", response_model=WalkListResponse)
def list_walks(
    request: Request,
    day: Optional[date] = Query(default=None),
    pending_only: bool = Query(default=False),
    include_rejected: bool = Query(default=False),
    services: ServiceContainer = Depends(get_services),
) -> WalkListResponse:
    request_id = request_id_of(request)
    metadata = {"day": day.isoformat() if day else None, "pending_only": pending_only}
    with trace("autopilot.walks", metadata=metadata, request_id=request_id):
        if pending_only:
            walks = [w for w in services.autopilot.pending() if day is None or w.walk_date == day]
        else:
            walks = services.autopilot.walks(day, include_rejected=include_rejected)
    return WalkListResponse(walks=walks, request_id=request_id or "")


def _action_response(outcome: ApprovalOutcome, action: str, request_id: str | None) -> WalkActionResponse:
    log_metric(f"autopilot.walk_{action}", 1 if outcome.error is None else 0)
    return WalkActionResponse(walk=outcome.walk, error=outcome.error, request_id=request_id or "")


@router.post("/walks/{walk_id}/approve", response_model=WalkActionResponse)
def approve_walk(
    request: Request,
    walk_id: str,
    services: ServiceContainer = Depends(get_services),
) -> WalkActionResponse:
    request_id = request_id_of(request)
    try:
        outcome = services.autopilot.approve(walk_id)
    except PlanningError as exc:
        raise http_error(exc) from exc
    return _action_response(outcome, "approve", request_id)


@router.post("/walks/{walk_id}/reject", response_model=WalkActionResponse)
def reject_walk(
    request: Request,
    walk_id: str,
    services: ServiceContainer = Depends(get_services),
) -> WalkActionResponse:
    request_id = request_id_of(request)
    with trace("autopilot.reject", metadata={"walk_id": walk_id}, request_id=request_id):
        try:
            walk = services.autopilot.reject(walk_id)
        except PlanningError as exc:
            raise http_error(exc) from exc
    return _action_response(ApprovalOutcome(walk), "reject", request_id)


@router.post("/walks/{walk_id}/adjust", response_model=WalkActionResponse)
def adjust_walk(
    request: Request,
    walk_id: str,
    payload: WalkAdjustRequest,
    services: ServiceContainer = Depends(get_services),
) -> WalkActionResponse:
    request_id = request_id_of(request)
    metadata = {"walk_id": walk_id, "start_time": payload.start_time.isoformat()}
    with trace("autopilot.adjust", metadata=metadata, request_id=request_id):
        try:
            outcome = services.autopilot.adjust(walk_id, payload.start_time)
        except PlanningError as exc:
            raise http_error(exc) from exc
    return _action_response(outcome, "adjust", request_id)


@router.get("/post-meeting/{day}", response_model=PostMeetingWalksResponse)
def list_post_meeting_walks(
    request: Request,
    day: date,
    services: ServiceContainer = Depends(get_services),
) -> PostMeetingWalksResponse:
    request_id = request_id_of(request)
    with trace("autopilot.post_meeting", metadata={"day": day.isoformat()}, request_id=request_id):
        walks = services.autopilot.post_meeting_walks(day)
    return PostMeetingWalksResponse(walks=walks, request_id=request_id or "")
