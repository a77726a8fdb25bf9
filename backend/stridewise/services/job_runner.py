"""Batch job runners for the nightly autopilot, streak bookkeeping and pattern refresh."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from stridewise.observability.metrics import timed
from stridewise.services.container import ServiceContainer

logger = logging.getLogger(__name__)

AUTOPILOT_JOB = "autopilot"
STREAK_JOB = "streak"
PATTERNS_JOB = "patterns"
PLAN_SYNC_JOB = "plan_sync"
JOB_NAMES = (AUTOPILOT_JOB, STREAK_JOB, PATTERNS_JOB, PLAN_SYNC_JOB)


@dataclass
class JobRunResult:
    job: str
    target_date: date
    items_written: int = 0
    skipped: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)


def run_autopilot_job(services: ServiceContainer, today: date, *, force: bool = False) -> JobRunResult:
    with timed("jobs.autopilot", metadata={"force": force}):
        result = services.autopilot.run_nightly(today, force=force)
        retried = services.autopilot.retry_failed_commits() if result.skipped is None else []
    return JobRunResult(
        job=AUTOPILOT_JOB,
        target_date=result.target_date,
        items_written=len(result.walks),
        skipped=result.skipped,
        errors=result.errors + [outcome.error for outcome in retried if outcome.error],
        details={"superseded": result.superseded, "retried": len(retried)},
    )


def run_streak_job(services: ServiceContainer, today: date, *, rebuild: bool = False) -> JobRunResult:
    """Record today's total against the goal, or recount the streak from history."""
    goal = services.planner.preferences().daily_step_goal
    with timed("jobs.streak", metadata={"rebuild": rebuild}):
        if rebuild:
            state = services.streak.rebuild_from_history(
                services.activity_data.fetch_steps,
                goal,
                today,
                lookback_days=services.settings.streak_lookback_days,
            )
            steps = None
        else:
            try:
                steps = int(services.activity_data.fetch_steps(today))
            except Exception as exc:
                logger.warning("Step data unavailable for %s; only validating streak", today, exc_info=True)
                state = services.streak.validate(today)
                return JobRunResult(
                    job=STREAK_JOB,
                    target_date=today,
                    errors=[f"Could not read steps: {exc}"],
                    details=state.model_dump(mode="json"),
                )
            state = services.streak.record_daily_total(today, steps, goal)
    return JobRunResult(
        job=STREAK_JOB,
        target_date=today,
        items_written=1,
        details={**state.model_dump(mode="json"), "steps": steps},
    )


def run_patterns_job(services: ServiceContainer, today: date) -> JobRunResult:
    with timed("jobs.patterns"):
        patterns = services.planner.refresh_patterns(today)
    return JobRunResult(
        job=PATTERNS_JOB,
        target_date=today,
        items_written=1,
        details={
            "average_daily_steps": patterns.average_daily_steps,
            "goal_achievement_rate": patterns.goal_achievement_rate,
        },
    )


def run_plan_sync_job(services: ServiceContainer, today: date, *, force: bool = False) -> JobRunResult:
    """Generate tomorrow's plan and write its activities to the calendar."""
    with timed("jobs.plan_sync", metadata={"force": force}):
        result = services.plan_sync.sync(today + timedelta(days=1), force=force)
    return JobRunResult(
        job=PLAN_SYNC_JOB,
        target_date=result.target_date,
        items_written=result.created,
        skipped=result.skipped,
        errors=result.errors,
        details={"deleted": result.deleted, "activity_ids": result.activity_ids},
    )


def run_job(services: ServiceContainer, job: str, today: date, *, force: bool = False) -> JobRunResult:
    if job == AUTOPILOT_JOB:
        return run_autopilot_job(services, today, force=force)
    if job == STREAK_JOB:
        return run_streak_job(services, today, rebuild=force)
    if job == PATTERNS_JOB:
        return run_patterns_job(services, today)
    if job == PLAN_SYNC_JOB:
        return run_plan_sync_job(services, today, force=force)
    raise ValueError(f"unknown job {job!r}")
