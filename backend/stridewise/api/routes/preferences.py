"""User preference endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from stridewise.api.deps import get_services, request_id_of
from stridewise.api.schemas.preferences import PreferencesResponse
from stridewise.observability.metrics import log_metric
from stridewise.observability.tracing import trace
from stridewise.services.container import ServiceContainer
from stridewise.services.planning.preferences import UserPreferences

router = APIRouter()


@router.get("/preferences", response_model=PreferencesResponse, tags=["preferences"])
def get_preferences(
    request: Request,
    services: ServiceContainer = Depends(get_services),
) -> PreferencesResponse:
    request_id = request_id_of(request)
    with trace("preferences.get", metadata={"route": "/preferences"}, request_id=request_id):
        prefs = services.planner.preferences()
    return PreferencesResponse(preferences=prefs, request_id=request_id or "")


@router.put("/preferences", response_model=PreferencesResponse, tags=["preferences"])
def update_preferences(
    request: Request,
    payload: UserPreferences,
    services: ServiceContainer = Depends(get_services),
) -> PreferencesResponse:
    """Replace the stored preferences. Plans being generated at this moment become stale.

    With calendar sync on, today's plan and its calendar events are rebuilt.
    """
    request_id = request_id_of(request)
    metadata = {
        "route": "/preferences",
        "daily_step_goal": payload.daily_step_goal,
        "trust_level": payload.autopilot.trust_level.value,
    }
    with trace("preferences.update", metadata=metadata, request_id=request_id):
        saved = services.planner.update_preferences(payload)
        if services.settings.plan_sync_enabled:
            services.plan_sync.handle_preference_change()
    log_metric("preferences.updated", 1, metadata={"trust_level": saved.autopilot.trust_level.value})
    return PreferencesResponse(preferences=saved, request_id=request_id or "")
