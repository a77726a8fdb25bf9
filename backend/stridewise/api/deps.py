"""Request-scoped dependencies for the API routes."""
from __future__ import annotations

from fastapi import HTTPException, Request, status

from stridewise.services.autopilot import AutopilotError, WalkNotFound
from stridewise.services.container import ServiceContainer
from stridewise.services.planning.models import ActivityNotFound, PlanningError
from stridewise.services.planning.planner import PlanNotFound
from stridewise.services.planning.schedule import ScheduledActivityNotFound

NOT_FOUND_ERRORS = (ActivityNotFound, PlanNotFound, ScheduledActivityNotFound, WalkNotFound)


def get_services(request: Request) -> ServiceContainer:
    services = getattr(request.app.state, "services", None)
    if services is None:  # pragma: no cover - startup hook always sets it
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Services not ready")
    return services


def request_id_of(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def http_error(exc: PlanningError) -> HTTPException:
    """Translate a domain error into the matching HTTP status."""
    if isinstance(exc, NOT_FOUND_ERRORS):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, AutopilotError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
