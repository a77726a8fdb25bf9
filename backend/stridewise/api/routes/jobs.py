"""Operational endpoints for scheduler jobs."""
from __future__ import annotations

from datetime import date
from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Request, status

from stridewise.api.deps import get_services, request_id_of
from stridewise.api.schemas.jobs import JobRunRequest, JobRunResponse
from stridewise.core.config import settings
from stridewise.observability.metrics import log_metric
from stridewise.observability.tracing import trace
from stridewise.services.container import ServiceContainer
from stridewise.services.job_runner import run_job

router = APIRouter()


def _at(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


@router.get("/jobs", tags=["jobs"])
def get_jobs_config(request: Request) -> dict:
    request_id = request_id_of(request)
    with trace("jobs.config", metadata={"request_id": request_id}, request_id=request_id):
        data = {
            "scheduler_enabled": settings.scheduler_enabled,
            "plan_sync_enabled": settings.plan_sync_enabled,
            "schedule": {
                "timezone": settings.scheduler_timezone,
                "autopilot_time": _at(settings.autopilot_job_hour, settings.autopilot_job_minute),
                "streak_time": _at(settings.streak_job_hour, settings.streak_job_minute),
                "patterns_time": _at(settings.patterns_job_hour, settings.patterns_job_minute),
                "plan_sync_time": _at(settings.plan_sync_job_hour, settings.plan_sync_job_minute),
            },
        }
    return {**data, "request_id": request_id or ""}


@router.post("/jobs/run-now", response_model=JobRunResponse, tags=["jobs"])
def run_job_now(
    request: Request,
    payload: JobRunRequest,
    services: ServiceContainer = Depends(get_services),
) -> JobRunResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Run-now only allowed in debug mode")

    request_id = request_id_of(request)
    metadata = {"job": payload.job, "force": payload.force}
    start = perf_counter()
    with trace("jobs.run_now", metadata=metadata, request_id=request_id):
        result = run_job(services, payload.job, payload.today or date.today(), force=payload.force)

    log_metric("jobs.run_now.success", 1, metadata={"job": payload.job})
    log_metric("jobs.run_now.latency_ms", (perf_counter() - start) * 1000, metadata={"job": payload.job})

    return JobRunResponse(
        job=result.job,
        target_date=result.target_date,
        items_written=result.items_written,
        skipped=result.skipped,
        errors=result.errors,
        details=result.details,
        request_id=request_id or "",
    )
