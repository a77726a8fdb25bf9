"""Daily movement plan endpoints."""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request, status

from stridewise.api.deps import get_services, http_error, request_id_of
from stridewise.api.schemas.plans import (
    CombinedSuggestionResponse,
    ConflictListResponse,
    PlanResponse,
    PlanSyncResponse,
)
from stridewise.observability.metrics import log_metric
from stridewise.observability.tracing import trace
from stridewise.services.container import ServiceContainer
from stridewise.services.plan_sync import PlanSyncResult
from stridewise.services.planning.models import PlanningError

router = APIRouter()


@router.post("/plans/{plan_date}", response_model=PlanResponse, tags=["plans"])
def generate_plan(
    request: Request,
    plan_date: date,
    services: ServiceContainer = Depends(get_services),
) -> PlanResponse:
    """Generate (and store) the movement plan for ``plan_date``."""
    request_id = request_id_of(request)
    result = services.planner.generate(plan_date)
    return PlanResponse.from_plan(result.plan, request_id, committed=result.committed)


@router.get("/plans/{plan_date}", response_model=PlanResponse, tags=["plans"])
def get_plan(
    request: Request,
    plan_date: date,
    services: ServiceContainer = Depends(get_services),
) -> PlanResponse:
    request_id = request_id_of(request)
    with trace("plans.get", metadata={"date": plan_date.isoformat()}, request_id=request_id):
        plan = services.planner.get_plan(plan_date)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No plan for this date")
    return PlanResponse.from_plan(plan, request_id)


@router.post(
    "/plans/{plan_date}/activities/{activity_id}/{action}",
    response_model=PlanResponse,
    tags=["plans"],
)
def update_activity(
    request: Request,
    plan_date: date,
    activity_id: str,
    action: str,
    services: ServiceContainer = Depends(get_services),
) -> PlanResponse:
    if action not in {"complete", "skip"}:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown action")

    request_id = request_id_of(request)
    metadata = {"date": plan_date.isoformat(), "activity_id": activity_id, "action": action}
    with trace("plans.activity_update", metadata=metadata, request_id=request_id):
        try:
            if action == "complete":
                plan = services.planner.mark_completed(plan_date, activity_id)
            else:
                plan = services.planner.mark_skipped(plan_date, activity_id)
        except PlanningError as exc:
            raise http_error(exc) from exc
    log_metric(f"plans.activity_{action}", 1, metadata={"date": plan_date.isoformat()})
    return PlanResponse.from_plan(plan, request_id)


@router.get("/plans/{plan_date}/combined", response_model=CombinedSuggestionResponse, tags=["plans"])
def get_combined_suggestion(
    request: Request,
    plan_date: date,
    services: ServiceContainer = Depends(get_services),
) -> CombinedSuggestionResponse:
    request_id = request_id_of(request)
    with trace("plans.combined", metadata={"date": plan_date.isoformat()}, request_id=request_id):
        suggestion = services.planner.combined_suggestion(plan_date)
    return CombinedSuggestionResponse(
        walk=suggestion.walk,
        workout=suggestion.workout,
        extra_walks=suggestion.extra_walks,
        used_fallback=suggestion.used_fallback,
        request_id=request_id or "",
    )


@router.get("/plans/{plan_date}/conflicts", response_model=ConflictListResponse, tags=["plans"])
def get_conflicts(
    request: Request,
    plan_date: date,
    services: ServiceContainer = Depends(get_services),
) -> ConflictListResponse:
    request_id = request_id_of(request)
    with trace("plans.conflicts", metadata={"date": plan_date.isoformat()}, request_id=request_id):
        conflicts = services.planner.conflicts(plan_date)
    log_metric("plans.conflicts", len(conflicts), metadata={"date": plan_date.isoformat()})
    return ConflictListResponse(conflicts=conflicts, request_id=request_id or "")


@router.post("/plans/{plan_date}/sync", response_model=PlanSyncResponse, tags=["plans"])
def sync_plan(
    request: Request,
    plan_date: date,
    force: bool = False,
    services: ServiceContainer = Depends(get_services),
) -> PlanSyncResponse:
    """Regenerate the plan and replace the calendar events written by the previous sync."""
    request_id = request_id_of(request)
    with trace("plans.sync", metadata={"date": plan_date.isoformat(), "force": force}, request_id=request_id):
        result = services.plan_sync.sync(plan_date, force=force)
    return PlanSyncResponse.from_result(result, request_id)


@router.post("/calendar/changed", response_model=PlanSyncResponse, tags=["plans"])
def calendar_changed(
    request: Request,
    services: ServiceContainer = Depends(get_services),
) -> PlanSyncResponse:
    """Calendar change notification: resyncs today's plan when calendar sync is on."""
    request_id = request_id_of(request)
    if not services.settings.plan_sync_enabled:
        result = PlanSyncResult(target_date=date.today(), skipped="disabled")
    else:
        with trace("plans.calendar_changed", request_id=request_id):
            result = services.plan_sync.handle_calendar_change()
    return PlanSyncResponse.from_result(result, request_id)
