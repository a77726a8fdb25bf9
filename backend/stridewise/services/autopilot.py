"""Nightly autopilot: picks tomorrow's walks and applies the user's trust level.

Walk lifecycle is ``pending -> approved | rejected``. Full-auto walks are
committed to the calendar straight away, confirm-first walks wait for the user,
and suggest-only walks are display-only. A failed calendar write leaves the walk
pending with ``last_error`` set so it can be retried.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from threading import Lock, RLock
from typing import Iterable, List, Optional, Sequence
from uuid import uuid4

from pydantic import BaseModel, TypeAdapter, ValidationError

from stridewise.observability.metrics import log_metric
from stridewise.observability.tracing import trace
from stridewise.services.action_log import ActionRecorder
from stridewise.services.notifications.hooks import NotificationDispatcher
from stridewise.services.planning.busy import active_window, build_busy_intervals
from stridewise.services.planning.free_slots import find_free_slots
from stridewise.services.planning.models import (
    ActivityPriority,
    ActivityType,
    ApprovalState,
    AutopilotWalk,
    CalendarMeeting,
    FreeSlot,
    PlannedActivity,
    PlanningError,
    TrustLevel,
    WalkType,
)
from stridewise.services.planning.allocator import activity_id
from stridewise.services.planning.preferences import AutopilotPreferences, UserPreferences, load_preferences
from stridewise.services.planning.schedule import ScheduleBook
from stridewise.services.providers.base import CalendarProvider
from stridewise.services.store import Store, load_model, save_model

logger = logging.getLogger(__name__)

WALKS_KEY = "autopilot.walks"
STATE_KEY = "autopilot.state"

WALK_SPACING = timedelta(minutes=60)
MICRO_SPACING = timedelta(minutes=30)
MICRO_MIN_MINUTES = 5
MICRO_MAX_MINUTES = 15
MICRO_WALK_MINUTES = 10
ALARM_OFFSET_MINUTES = 5
POST_MEETING_MIN_GAP = 10
POST_MEETING_MAX_WALK = 15
DEFAULT_MOTIVATION = "Time to move!"


class AutopilotError(PlanningError):
    pass


class WalkNotFound(AutopilotError):
    pass


@dataclass(frozen=True)
class TimeCategory:
    name: str
    start_hour: int
    end_hour: int
    priority: int

    def contains(self, moment: datetime) -> bool:
        return self.start_hour <= moment.hour < self.end_hour


# Processed in this order: lower priority value first, declaration order on ties.
TIME_CATEGORIES = (
    TimeCategory("midday", 11, 14, 1),
    TimeCategory("morning", 8, 11, 2),
    TimeCategory("evening", 17, 20, 2),
    TimeCategory("afternoon", 14, 17, 3),
)


class AutopilotState(BaseModel):
    last_scheduled_date: Optional[date] = None
    last_run_at: Optional[datetime] = None


@dataclass(frozen=True)
class WalkPick:
    start: datetime
    duration_minutes: int
    category: str


@dataclass
class AutopilotRunResult:
    target_date: date
    walks: List[AutopilotWalk] = field(default_factory=list)
    skipped: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    superseded: int = 0


@dataclass
class ApprovalOutcome:
    walk: AutopilotWalk
    error: Optional[str] = None


_walks_adapter = TypeAdapter(List[AutopilotWalk])


def _too_close(start: datetime, picks: Iterable[WalkPick], spacing: timedelta) -> bool:
    return any(abs(start - pick.start) < spacing for pick in picks)


def select_walk_slots(slots: Sequence[FreeSlot], prefs: AutopilotPreferences) -> List[WalkPick]:
    """First fitting slot per time category, then micro-walk gaps if still short of the target."""
    picks: List[WalkPick] = []
    for category in sorted(TIME_CATEGORIES, key=lambda c: c.priority):
        if len(picks) >= prefs.walks_per_day:
            break
        for slot in slots:
            if not category.contains(slot.start) or slot.duration_minutes < prefs.min_walk_minutes:
                continue
            if _too_close(slot.start, picks, WALK_SPACING):
                continue
            duration = min(prefs.max_walk_minutes, max(prefs.min_walk_minutes, slot.duration_minutes))
            picks.append(WalkPick(slot.start, duration, category.name))
            break

    if prefs.include_micro_walks:
        for slot in slots:
            if len(picks) >= prefs.walks_per_day:
                break
            if not MICRO_MIN_MINUTES <= slot.duration_minutes <= MICRO_MAX_MINUTES:
                continue
            if _too_close(slot.start, picks, MICRO_SPACING):
                continue
            picks.append(WalkPick(slot.start, min(slot.duration_minutes, MICRO_WALK_MINUTES), "micro"))

    return sorted(picks, key=lambda pick: pick.start)


def event_notes(walk: AutopilotWalk, motivation: str) -> str:
    return (
        f"{motivation}\n\n"
        f"Duration: {walk.duration_minutes} minutes\n"
        f"Type: {walk.walk_type.display_name}\n\n"
        "---\n"
        "Auto-scheduled by Stridewise"
    )


def post_meeting_walk(
    meeting: CalendarMeeting,
    meetings: Sequence[CalendarMeeting],
    prefs: UserPreferences,
) -> Optional[PlannedActivity]:
    """Suggest a short walk right after ``meeting`` when the calendar leaves room for one."""
    start = meeting.end
    others = [m for m in meetings if m.is_real_meeting and m.id != meeting.id]
    if any(m.start <= start < m.end for m in others):
        return None
    following = sorted((m for m in others if m.start >= start), key=lambda m: m.start)
    if following:
        gap = int((following[0].start - start).total_seconds() // 60)
        if gap < POST_MEETING_MIN_GAP or prefs.is_during_meal(start):
            return None
        duration = min(gap - 5, POST_MEETING_MAX_WALK)
        reason = f"{gap} free minutes before {following[0].title}"
    else:
        duration = MICRO_WALK_MINUTES
        reason = "Nothing else on the calendar; stretch your legs"
    return PlannedActivity(
        id=activity_id(ActivityType.POST_MEETING_WALK, start, duration),
        activity_type=ActivityType.POST_MEETING_WALK,
        start_time=start,
        duration_minutes=duration,
        estimated_steps=duration * 100,
        priority=ActivityPriority.OPTIONAL,
        reason=f"After {meeting.title}: {reason}",
    )


class AutopilotScheduler:
    def __init__(
        self,
        *,
        store: Store,
        calendar: CalendarProvider,
        notifier: NotificationDispatcher,
        schedule_book: ScheduleBook,
        recorder: ActionRecorder,
        min_slot_minutes: int = 5,
        ceiling_hour: int = 21,
        retention_days: int = 7,
    ) -> None:
        self._store = store
        self._calendar = calendar
        self._notifier = notifier
        self._schedule_book = schedule_book
        self._recorder = recorder
        self._min_slot_minutes = min_slot_minutes
        self._ceiling_hour = ceiling_hour
        self._retention = timedelta(days=retention_days)
        self._run_lock = Lock()
        self._walks_lock = RLock()

    # -- persistence -------------------------------------------------------

    def state(self) -> AutopilotState:
        return load_model(self._store, STATE_KEY, AutopilotState)

    def _load_walks(self) -> List[AutopilotWalk]:
        raw = self._store.get(WALKS_KEY)
        if raw is None:
            return []
        try:
            return _walks_adapter.validate_python(raw)
        except ValidationError as exc:
            logger.warning("Stored autopilot walks are unreadable, starting empty: %s", exc)
            return []

    def _save_walks(self, walks: List[AutopilotWalk]) -> None:
        ordered = sorted(walks, key=lambda w: (w.start_time, w.id))
        self._store.put(WALKS_KEY, _walks_adapter.dump_python(ordered, mode="json"))

    def _replace(self, walk: AutopilotWalk) -> None:
        with self._walks_lock:
            walks = [walk if existing.id == walk.id else existing for existing in self._load_walks()]
            self._save_walks(walks)

    def walks(self, day: Optional[date] = None, *, include_rejected: bool = False) -> List[AutopilotWalk]:
        return [
            walk
            for walk in self._load_walks()
            if (day is None or walk.walk_date == day)
            and (include_rejected or walk.approval_state is not ApprovalState.REJECTED)
        ]

    def pending(self) -> List[AutopilotWalk]:
        return [
            walk
            for walk in self._load_walks()
            if walk.approval_state is ApprovalState.PENDING and walk.trust_level is not TrustLevel.SUGGEST_ONLY
        ]

    def get_walk(self, walk_id: str) -> AutopilotWalk:
        for walk in self._load_walks():
            if walk.id == walk_id:
                return walk
        raise WalkNotFound(f"autopilot walk {walk_id} not found")

    # -- nightly run -------------------------------------------------------

    def run_nightly(
        self,
        today: date,
        *,
        force: bool = False,
        prefs: Optional[UserPreferences] = None,
    ) -> AutopilotRunResult:
        """Schedule walks for ``today + 1``. At most one run executes at a time."""
        target = today + timedelta(days=1)
        if not self._run_lock.acquire(blocking=False):
            logger.info("Autopilot run for %s already in progress; skipping", target)
            return AutopilotRunResult(target_date=target, skipped="in_progress")

        try:
            prefs = prefs or load_preferences(self._store)
            if not prefs.autopilot.enabled:
                return AutopilotRunResult(target_date=target, skipped="disabled")

            state = self.state()
            if not force and state.last_scheduled_date == target:
                logger.info("Autopilot already scheduled %s; skipping", target)
                return AutopilotRunResult(target_date=target, skipped="already_scheduled")

            metadata = {"target_date": target.isoformat(), "trust_level": prefs.autopilot.trust_level.value, "force": force}
            with trace("autopilot.nightly", metadata=metadata):
                result = self._schedule(target, today, prefs, force)

            save_model(
                self._store,
                STATE_KEY,
                AutopilotState(last_scheduled_date=target, last_run_at=datetime.now()),
            )
            log_metric("autopilot.walks_scheduled", len(result.walks), metadata=metadata)
            if result.errors:
                log_metric("autopilot.errors", len(result.errors), metadata=metadata)
            self._recorder.record(
                "autopilot_run",
                {
                    **metadata,
                    "walk_ids": [walk.id for walk in result.walks],
                    "errors": result.errors,
                    "superseded": result.superseded,
                },
                reason=f"Scheduled {len(result.walks)} walks",
            )
            logger.info(
                "Autopilot scheduled %d walks for %s (trust=%s, errors=%d)",
                len(result.walks),
                target,
                prefs.autopilot.trust_level.value,
                len(result.errors),
            )
            return result
        finally:
            self._run_lock.release()

    def _fetch_events(self, day: date) -> List[CalendarMeeting]:
        try:
            return list(self._calendar.fetch_events(day))
        except Exception:
            logger.warning("Calendar unavailable for %s; scheduling without meetings", day, exc_info=True)
            return []

    def post_meeting_walks(self, day: date, *, prefs: Optional[UserPreferences] = None) -> List[PlannedActivity]:
        """Short walks that fit right after each of the day's meetings."""
        prefs = prefs or load_preferences(self._store)
        meetings = [m for m in self._fetch_events(day) if m.is_real_meeting]
        suggestions = []
        for meeting in sorted(meetings, key=lambda m: (m.end, m.id)):
            if not prefs.is_within_active_hours(meeting.end, meeting.end):
                continue
            walk = post_meeting_walk(meeting, meetings, prefs)
            if walk is not None:
                suggestions.append(walk)
        return suggestions

    def _schedule(self, target: date, today: date, prefs: UserPreferences, force: bool) -> AutopilotRunResult:
        result = AutopilotRunResult(target_date=target)
        meetings = self._fetch_events(target)
        busy = build_busy_intervals(target, meetings, self._schedule_book.occurrences(target))
        window = active_window(target, prefs, ceiling_hour=self._ceiling_hour)
        slots = [
            slot
            for slot in (find_free_slots(target, busy, window, self._min_slot_minutes, prefs) if window else [])
            if not slot.is_during_meal
        ]
        picks = select_walk_slots(slots, prefs.autopilot)
        trust = prefs.autopilot.trust_level

        superseded: List[AutopilotWalk] = []
        new_walks: List[AutopilotWalk] = []
        with self._walks_lock:
            cutoff = today - self._retention
            walks = [walk for walk in self._load_walks() if walk.walk_date >= cutoff]
            if force:
                superseded = [
                    w for w in walks if w.walk_date == target and w.approval_state is not ApprovalState.REJECTED
                ]
                superseded_ids = {w.id for w in superseded}
                walks = [w for w in walks if w.id not in superseded_ids]
            occupied = {
                w.start_time for w in walks if w.walk_date == target and w.approval_state is not ApprovalState.REJECTED
            }
            for pick in picks:
                if pick.start in occupied:
                    continue
                new_walks.append(
                    AutopilotWalk(
                        id=str(uuid4()),
                        walk_date=target,
                        start_time=pick.start,
                        duration_minutes=pick.duration_minutes,
                        walk_type=WalkType.for_minutes(pick.duration_minutes),
                        trust_level=trust,
                        created_at=datetime.now(),
                    )
                )
            self._save_walks(walks + new_walks)
        result.superseded = len(superseded)

        for walk in superseded:
            if not walk.calendar_event_id:
                continue
            try:
                self._calendar.delete_event(walk.calendar_event_id)
            except Exception as exc:
                logger.warning("Failed to delete superseded event %s", walk.calendar_event_id, exc_info=True)
                result.errors.append(f"Could not remove superseded walk at {walk.start_time:%H:%M}: {exc}")

        if trust is TrustLevel.FULL_AUTO:
            committed: List[AutopilotWalk] = []
            for walk in new_walks:
                outcome = self._commit(walk, prefs)
                result.walks.append(outcome.walk)
                if outcome.error:
                    result.errors.append(outcome.error)
                else:
                    committed.append(outcome.walk)
            if committed:
                self._notifier.schedule_summary(committed)
        elif trust is TrustLevel.CONFIRM_FIRST:
            for walk in new_walks:
                self._notifier.schedule_approval_prompt(walk)
            result.walks = new_walks
        else:
            result.walks = new_walks
        return result

    # -- approvals ---------------------------------------------------------

    def _commit(self, walk: AutopilotWalk, prefs: UserPreferences) -> ApprovalOutcome:
        notes = event_notes(walk, prefs.autopilot.motivation or DEFAULT_MOTIVATION)
        try:
            event_id = self._calendar.create_event(
                title=f"Walk: {walk.walk_type.display_name}",
                start=walk.start_time,
                end=walk.end_time,
                notes=notes,
                alarm_offset_minutes=ALARM_OFFSET_MINUTES,
            )
        except Exception as exc:
            logger.warning("Calendar write failed for walk %s", walk.id, exc_info=True)
            failed = walk.model_copy(update={"approval_state": ApprovalState.PENDING, "last_error": str(exc)})
            self._replace(failed)
            return ApprovalOutcome(failed, error=f"Could not add walk at {walk.start_time:%H:%M} to calendar: {exc}")

        approved = walk.model_copy(
            update={"approval_state": ApprovalState.APPROVED, "calendar_event_id": event_id, "last_error": None}
        )
        self._replace(approved)
        return ApprovalOutcome(approved)

    def _require_actionable(self, walk: AutopilotWalk) -> None:
        if walk.trust_level is TrustLevel.SUGGEST_ONLY:
            raise AutopilotError("Suggest-only walks are display-only")
        if walk.approval_state is ApprovalState.REJECTED:
            raise AutopilotError("Walk was already rejected")

    def approve(self, walk_id: str, *, prefs: Optional[UserPreferences] = None) -> ApprovalOutcome:
        prefs = prefs or load_preferences(self._store)
        # Spans the calendar write: one event per walk.
        with self._walks_lock:
            walk = self.get_walk(walk_id)
            self._require_actionable(walk)
            if walk.approval_state is ApprovalState.APPROVED and walk.calendar_event_id:
                return ApprovalOutcome(walk)
            with trace("autopilot.approve", metadata={"walk_id": walk_id}):
                outcome = self._commit(walk, prefs)
        self._recorder.record(
            "autopilot_walk_approved" if outcome.error is None else "autopilot_commit_failed",
            {"walk_id": walk_id, "start_time": walk.start_time.isoformat(), "error": outcome.error},
            reason="Walk approved" if outcome.error is None else "Calendar write failed",
        )
        return outcome

    def reject(self, walk_id: str) -> AutopilotWalk:
        with self._walks_lock:
            walk = self.get_walk(walk_id)
            if walk.trust_level is TrustLevel.SUGGEST_ONLY:
                raise AutopilotError("Suggest-only walks are display-only")
            if walk.approval_state is ApprovalState.REJECTED:
                return walk
            if walk.approval_state is ApprovalState.APPROVED:
                raise AutopilotError("Approved walks cannot be rejected")
            rejected = walk.model_copy(update={"approval_state": ApprovalState.REJECTED})
            self._replace(rejected)
        self._recorder.record(
            "autopilot_walk_rejected",
            {"walk_id": walk_id, "start_time": walk.start_time.isoformat()},
            reason="Walk rejected",
        )
        return rejected

    def adjust(self, walk_id: str, new_start: datetime, *, prefs: Optional[UserPreferences] = None) -> ApprovalOutcome:
        """Move a pending walk to ``new_start`` on the same day, then approve it."""
        with self._walks_lock:
            walk = self.get_walk(walk_id)
            self._require_actionable(walk)
            if walk.approval_state is not ApprovalState.PENDING:
                raise AutopilotError("Only pending walks can be adjusted")
            if new_start.date() != walk.walk_date:
                raise AutopilotError("Adjusted walks must stay on the same day")
            clash = any(
                other.id != walk.id
                and other.walk_date == walk.walk_date
                and other.start_time == new_start
                and other.approval_state is not ApprovalState.REJECTED
                for other in self._load_walks()
            )
            if clash:
                raise AutopilotError(f"Another walk already starts at {new_start:%H:%M}")
            self._replace(walk.model_copy(update={"start_time": new_start}))
        return self.approve(walk_id, prefs=prefs)

    def retry_failed_commits(self, *, prefs: Optional[UserPreferences] = None) -> List[ApprovalOutcome]:
        prefs = prefs or load_preferences(self._store)
        outcomes = []
        with self._walks_lock:
            for walk in self._load_walks():
                if (
                    walk.approval_state is ApprovalState.PENDING
                    and walk.last_error
                    and walk.trust_level is not TrustLevel.SUGGEST_ONLY
                ):
                    outcomes.append(self._commit(walk, prefs))
        return outcomes
