# src/dayroute/service.py

"""
Public operations of the itinerary core.

This is the surface an outer layer (console CLI, a web app) calls. Each
operation validates its input and resolves ids before mutating anything, and
raises the error kinds from core.errors; a web layer maps those to
400/401/404/500 through their `http_status`.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Callable
from datetime import datetime

from .core.errors import NotFoundError, UnauthorizedError, ValidationError
from .core.models import DelayResult, Location, ResetResult, ScheduleWithTasks, Task
from .core.ports import Clock, ScheduleRepo
from .core.timeutil import parse_date
from .delays.engine import DelayEngine, is_overdue, overdue_minutes, validate_delay_minutes
from .planning.generator import ScheduleGenerator

logger = logging.getLogger(__name__)

ChangeListener = Callable[[], None]


class ItineraryService:
    def __init__(
            self,
            store: ScheduleRepo,
            generator: ScheduleGenerator,
            engine: DelayEngine,
            *,
            clock: Clock,
            operator_name: str,
            admin_password: str,
    ) -> None:
        self._store = store
        self._generator = generator
        self._engine = engine
        self._clock = clock
        self._operator_name = operator_name
        self._admin_password = admin_password
        self._listeners: list[ChangeListener] = []

    @property
    def engine(self) -> DelayEngine:
        return self._engine

    # ---- change notifications (monitor wakeups) ----

    def add_change_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Change listener failed")

    # ---- helpers ----

    def _today(self) -> str:
        return self._clock.today().isoformat()

    def _normalize_date(self, date: str | None) -> str:
        if date is None:
            return self._today()
        try:
            return parse_date(date).isoformat()
        except ValueError as e:
            raise ValidationError(f"invalid date {date!r}, expected YYYY-MM-DD") from e

    def _check_password(self, password: str) -> None:
        # Placeholder gate, not a security model.
        if not self._admin_password or not hmac.compare_digest(
            (password or "").encode("utf-8"), self._admin_password.encode("utf-8")
        ):
            logger.warning("Admin operation rejected: bad password")
            raise UnauthorizedError("invalid admin password")

    def _require_task(self, task_id: str) -> Task:
        if not task_id or not str(task_id).strip():
            raise ValidationError("task_id is required")
        task = self._store.get_task(task_id)
        if task is None:
            raise NotFoundError(f"task {task_id} not found")
        return task

    # ---- schedules ----

    def get_or_create_schedule(self, date: str | None = None) -> ScheduleWithTasks:
        """Return the schedule for `date` (default today), generating it on first access."""
        day = self._normalize_date(date)
        existing = self._store.get_schedule_with_tasks_by_date(day)
        if existing is not None:
            return existing

        schedule_id = self._generator.generate(day, self._operator_name)
        schedule = self._store.get_schedule_with_tasks(schedule_id)
        if schedule is None:
            raise NotFoundError(f"could not create schedule for {day}")
        self._changed()
        return schedule

    def get_schedule(self, date: str | None = None) -> ScheduleWithTasks:
        """Like get_or_create_schedule, but never generates."""
        day = self._normalize_date(date)
        schedule = self._store.get_schedule_with_tasks_by_date(day)
        if schedule is None:
            raise NotFoundError(f"no schedule for {day}")
        return schedule

    def todays_schedule(self) -> ScheduleWithTasks | None:
        """Today's schedule if it exists. Used as the live monitor's fetcher."""
        return self._store.get_schedule_with_tasks_by_date(self._today())

    def regenerate_schedule(self, password: str, date: str | None = None) -> ScheduleWithTasks:
        """Admin flow: delete the date's schedule and its tasks, then generate anew."""
        self._check_password(password)
        day = self._normalize_date(date)

        existing = self._store.get_schedule_by_date(day)
        if existing is not None:
            removed = self._store.delete_schedule(existing.id)
            logger.info("Regenerating %s: removed schedule %s (%s tasks)", day, existing.id, removed)

        return self.get_or_create_schedule(day)

    def list_locations(self) -> list[Location]:
        return self._store.graph.list_locations()

    # ---- task operations ----

    def confirm_task(self, task_id: str, confirmed_at: datetime | None = None) -> Task:
        self._require_task(task_id)
        task = self._engine.confirm(task_id, confirmed_at or self._clock.now())
        self._changed()
        return task

    def report_delay(self, task_id: str, delay_minutes: int) -> DelayResult:
        validate_delay_minutes(delay_minutes)
        self._require_task(task_id)
        result = self._engine.report_delay(task_id, delay_minutes)
        self._changed()
        return result

    def replan(self, task_id: str, delay_minutes: int) -> DelayResult:
        validate_delay_minutes(delay_minutes)
        self._require_task(task_id)
        result = self._engine.replan(task_id, delay_minutes)
        self._changed()
        return result

    def confirm_with_delay(
            self,
            task_id: str,
            delay_minutes: int,
            confirmed_at: datetime | None = None,
    ) -> tuple[DelayResult, Task]:
        """Report a delay and confirm the task, back to back."""
        validate_delay_minutes(delay_minutes)
        self._require_task(task_id)
        result = self._engine.report_delay(task_id, delay_minutes)
        task = self._engine.confirm(task_id, confirmed_at or self._clock.now())
        self._changed()
        return result, task

    def confirm_current(
            self,
            task_id: str,
            *,
            delay_minutes: int | None = None,
            now: datetime | None = None,
    ) -> tuple[DelayResult | None, Task]:
        """
        Manual confirmation path.

        An overdue task is confirmed with a delay (the operator's explicit
        amount, else the observed one); a task inside its window is only
        confirmed.
        """
        if now is None:
            now = self._clock.now()
        task = self._require_task(task_id)

        if is_overdue(task, now):
            delay = delay_minutes if delay_minutes is not None else overdue_minutes(task, now)
            return self.confirm_with_delay(task_id, delay, confirmed_at=now)

        return None, self.confirm_task(task_id, confirmed_at=now)

    def reset_delays(self, password: str, mark_past_as_confirmed: bool = False) -> ResetResult:
        """
        Admin flow: clear every delay on today's schedule.

        Task windows are preserved, so schedule_regenerated is always False;
        use regenerate_schedule to rebuild the day instead.
        """
        self._check_password(password)
        schedule = self._store.get_schedule_by_date(self._today())
        if schedule is None:
            raise NotFoundError("no schedule for today")

        result = self._engine.reset_delays(
            schedule.id,
            mark_past_as_confirmed=mark_past_as_confirmed,
            now=self._clock.now(),
        )
        self._changed()
        return result
