"""Manual schedule endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from stridewise.api.deps import get_services, http_error, request_id_of
from stridewise.api.schemas.schedule import ScheduledActivityCreate, ScheduleListResponse
from stridewise.observability.tracing import trace
from stridewise.services.container import ServiceContainer
from stridewise.services.planning.models import PlanningError
from stridewise.services.planning.schedule import ScheduledActivity

router = APIRouter()


@router.get("/schedule", response_model=ScheduleListResponse, tags=["schedule"])
def list_schedule(
    request: Request,
    services: ServiceContainer = Depends(get_services),
) -> ScheduleListResponse:
    request_id = request_id_of(request)
    with trace("schedule.list", request_id=request_id):
        activities = services.schedule_book.list()
    return ScheduleListResponse(activities=activities, request_id=request_id or "")


@router.post(
    "/schedule",
    response_model=ScheduledActivity,
    status_code=status.HTTP_201_CREATED,
    tags=["schedule"],
)
def add_scheduled_activity(
    request: Request,
    payload: ScheduledActivityCreate,
    services: ServiceContainer = Depends(get_services),
) -> ScheduledActivity:
    request_id = request_id_of(request)
    metadata = {"kind": payload.activity_kind, "recurrence": payload.recurrence.value}
    with trace("schedule.add", metadata=metadata, request_id=request_id):
        activity = services.schedule_book.add(ScheduledActivity(**payload.model_dump()))
    return activity


@router.delete("/schedule/{activity_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["schedule"])
def remove_scheduled_activity(
    request: Request,
    activity_id: str,
    services: ServiceContainer = Depends(get_services),
) -> Response:
    with trace("schedule.remove", metadata={"activity_id": activity_id}, request_id=request_id_of(request)):
        try:
            services.schedule_book.remove(activity_id)
        except PlanningError as exc:
            raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
