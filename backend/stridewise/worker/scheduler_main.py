"""Dedicated APScheduler worker process for the nightly autopilot and streak jobs."""
from __future__ import annotations

import logging
import signal
import threading
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler

from stridewise.core.config import settings
from stridewise.core.context import bound_request_id, new_job_request_id
from stridewise.core.logging import configure_logging
from stridewise.db.session import SessionLocal, init_db
from stridewise.observability.client import init_opik
from stridewise.services.container import ServiceContainer, build_services
from stridewise.services.job_runner import (
    AUTOPILOT_JOB,
    PATTERNS_JOB,
    PLAN_SYNC_JOB,
    STREAK_JOB,
    JobRunResult,
    run_autopilot_job,
    run_patterns_job,
    run_plan_sync_job,
    run_streak_job,
)

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(log_level=settings.log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)
    init_opik()
    init_db()
    services = build_services(settings, SessionLocal)
    services.streak.validate(datetime.now(ZoneInfo(settings.scheduler_timezone)).date())

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        _register_jobs(scheduler, services)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running jobs once on startup")
            _run_job(PATTERNS_JOB, lambda today: run_patterns_job(services, today))
            _run_job(AUTOPILOT_JOB, lambda today: run_autopilot_job(services, today))
    else:
        logger.warning("Scheduler disabled via config; worker will idle")

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        stop_event.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def _register_jobs(scheduler: BackgroundScheduler, services: ServiceContainer) -> None:
    jobs = (
        (AUTOPILOT_JOB, settings.autopilot_job_hour, settings.autopilot_job_minute,
         lambda today: run_autopilot_job(services, today)),
        (STREAK_JOB, settings.streak_job_hour, settings.streak_job_minute,
         lambda today: run_streak_job(services, today)),
        (PATTERNS_JOB, settings.patterns_job_hour, settings.patterns_job_minute,
         lambda today: run_patterns_job(services, today)),
    )
    if settings.plan_sync_enabled:
        jobs += (
            (PLAN_SYNC_JOB, settings.plan_sync_job_hour, settings.plan_sync_job_minute,
             lambda today: run_plan_sync_job(services, today)),
        )
    for name, hour, minute, runner in jobs:
        scheduler.add_job(
            _run_job,
            trigger="cron",
            hour=hour,
            minute=minute,
            args=(name, runner),
            id=f"{name}_job",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Registered %s job at %02d:%02d %s", name, hour, minute, settings.scheduler_timezone)


def _run_job(name: str, runner: Callable[..., JobRunResult]) -> None:
    today = datetime.now(ZoneInfo(settings.scheduler_timezone)).date()
    with bound_request_id(new_job_request_id(name)):
        try:
            result = runner(today)
            logger.info(
                "%s job complete: date=%s, written=%s, skipped=%s, errors=%d",
                name,
                result.target_date,
                result.items_written,
                result.skipped,
                len(result.errors),
            )
        except Exception:  # pragma: no cover - defensive guard
            logger.exception("%s job failed", name)


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
