"""Main FastAPI application for the Stridewise planner."""
from datetime import date

from fastapi import FastAPI, Request

from stridewise.api.routes.autopilot import router as autopilot_router
from stridewise.api.routes.jobs import router as jobs_router
from stridewise.api.routes.patterns import router as patterns_router
from stridewise.api.routes.plans import router as plans_router
from stridewise.api.routes.preferences import router as preferences_router
from stridewise.api.routes.schedule import router as schedule_router
from stridewise.api.routes.streak import router as streak_router
from stridewise.core.config import settings
from stridewise.core.logging import configure_logging
from stridewise.core.middleware import RequestIDMiddleware
from stridewise.db.session import SessionLocal, init_db
from stridewise.observability.client import init_opik
from stridewise.observability.tracing import trace
from stridewise.services.container import build_services

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(preferences_router)
app.include_router(plans_router)
app.include_router(schedule_router)
app.include_router(patterns_router)
app.include_router(autopilot_router)
app.include_router(streak_router)
app.include_router(jobs_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.on_event("startup")
async def startup_services() -> None:
    """Create tables and wire the services unless a container was installed already."""
    if getattr(app.state, "services", None) is None:
        init_db()
        app.state.services = build_services(settings, SessionLocal)
    app.state.services.streak.validate(date.today())


@app.get("/health", tags=["health"], summary="Readiness check")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload for readiness checks."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
