# src/dayroute/delays/engine.py

"""
Delay engine.

Owns the task status transitions that involve time:
- report_delay: pending/any -> delayed, optionally shifting the rest of the day
- replan: explicit shift of downstream windows, status untouched
- reset_delays: delayed -> pending, optionally confirming tasks already past
- confirm: -> confirmed (confirmed_at set)

Overdue detection is pure (no store access) so the live monitor and the
selectors can call it on every tick.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..core.errors import NotFoundError, ValidationError
from ..core.models import DelayPolicy, DelayResult, ResetResult, Task, TaskStatus
from ..core.ports import Clock, ScheduleRepo
from ..core.timeutil import add_minutes, minutes_since_midnight, parse_hhmm, utc_now

logger = logging.getLogger(__name__)


def overdue_minutes(task: Task, now: datetime) -> int:
    """Minutes elapsed since the task window closed (0 if it has not closed yet)."""
    return max(0, minutes_since_midnight(now) - parse_hhmm(task.end_time))


def is_overdue(task: Task, now: datetime) -> bool:
    return task.status == TaskStatus.PENDING and overdue_minutes(task, now) > 0


def validate_delay_minutes(delay_minutes: object) -> int:
    if isinstance(delay_minutes, bool) or not isinstance(delay_minutes, int):
        raise ValidationError(f"delay_minutes must be an integer, got {delay_minutes!r}")
    if delay_minutes < 1:
        raise ValidationError("delay_minutes must be >= 1")
    return delay_minutes


class DelayEngine:
    def __init__(
            self,
            store: ScheduleRepo,
            *,
            clock: Clock,
            policy: DelayPolicy = DelayPolicy.MARK_ONLY,
    ) -> None:
        self._store = store
        self._clock = clock
        self._policy = DelayPolicy(policy)

    @property
    def policy(self) -> DelayPolicy:
        return self._policy

    def _require_task(self, task_id: str) -> Task:
        task = self._store.get_task(task_id)
        if task is None:
            raise NotFoundError(f"task {task_id} not found")
        return task

    def report_delay(
            self,
            task_id: str,
            delay_minutes: int,
            *,
            require_pending: bool = False,
    ) -> DelayResult:
        """
        Mark a task delayed and propagate according to the configured policy.

        With require_pending=True the status change is a compare-and-set from
        pending; if the task already moved on (confirmed by hand, or delayed by
        another caller) nothing is changed and affected_tasks is 0.
        """
        delay = validate_delay_minutes(delay_minutes)
        task = self._require_task(task_id)

        if require_pending:
            moved = self._store.try_transition(
                task_id, expected=[TaskStatus.PENDING], status=TaskStatus.DELAYED
            )
            if moved is None:
                logger.info("Delay for task %s skipped: no longer pending", task_id)
                return DelayResult(delay_minutes=delay, affected_tasks=0)
        elif self._store.update_task(task_id, status=TaskStatus.DELAYED) is None:
            raise NotFoundError(f"task {task_id} not found")

        affected = 0
        if self._policy == DelayPolicy.SHIFT_FORWARD:
            affected = self._shift_downstream(task, delay)

        logger.info(
            "Task %s delayed by %s min (policy=%s, shifted=%s)",
            task_id,
            delay,
            self._policy.value,
            affected,
        )
        return DelayResult(delay_minutes=delay, affected_tasks=affected)

    def replan(self, task_id: str, delay_minutes: int) -> DelayResult:
        """
        Shift every task after `task_id` by delay_minutes, whatever the policy.

        A replan moves the planned windows too, so a later reset keeps it.
        """
        delay = validate_delay_minutes(delay_minutes)
        task = self._require_task(task_id)
        affected = self._shift_downstream(task, delay, move_plan=True)
        logger.info("Replanned after task %s: +%s min on %s tasks", task_id, delay, affected)
        return DelayResult(delay_minutes=delay, affected_tasks=affected)

    def _shift_downstream(self, task: Task, delay: int, *, move_plan: bool = False) -> int:
        tasks = self._store.list_tasks(task.schedule_id)
        ids = [t.id for t in tasks]
        try:
            idx = ids.index(task.id)
        except ValueError:
            return 0

        shifted = 0
        for later in tasks[idx + 1:]:
            fields = {
                "start_time": add_minutes(later.start_time, delay),
                "end_time": add_minutes(later.end_time, delay),
            }
            if move_plan:
                fields["planned_start_time"] = add_minutes(later.planned_start_time, delay)
                fields["planned_end_time"] = add_minutes(later.planned_end_time, delay)
            updated = self._store.update_task(later.id, **fields)
            if updated is not None:
                shifted += 1
        return shifted

    def confirm(self, task_id: str, confirmed_at: datetime | None = None) -> Task:
        updated = self._store.update_task(
            task_id,
            status=TaskStatus.CONFIRMED,
            confirmed_at=confirmed_at or utc_now(),
        )
        if updated is None:
            raise NotFoundError(f"task {task_id} not found")
        logger.info("Task %s confirmed at %s", task_id, updated.confirmed_at)
        return updated

    def reset_delays(
            self,
            schedule_id: str,
            *,
            mark_past_as_confirmed: bool = False,
            now: datetime | None = None,
    ) -> ResetResult:
        """
        Revert every delayed task of the schedule to pending.

        With mark_past_as_confirmed, tasks that were pending before the reset
        and whose window closed strictly before `now` become confirmed at `now`.
        Formerly delayed tasks only go back to pending. Tasks still ahead stay
        pending.
        """
        if now is None:
            now = self._clock.now()

        tasks = self._store.list_tasks(schedule_id)
        was_pending = {t.id for t in tasks if t.status == TaskStatus.PENDING}

        resetted = 0
        for t in tasks:
            if t.status != TaskStatus.DELAYED:
                continue
            if self._store.try_transition(
                t.id, expected=[TaskStatus.DELAYED], status=TaskStatus.PENDING
            ) is not None:
                resetted += 1

        if self._policy == DelayPolicy.SHIFT_FORWARD:
            restored = 0
            for t in tasks:
                if t.start_time != t.planned_start_time or t.end_time != t.planned_end_time:
                    self._store.update_task(
                        t.id, start_time=t.planned_start_time, end_time=t.planned_end_time
                    )
                    restored += 1
            if restored:
                logger.info("Restored planned windows of %s tasks", restored)

        confirmed = 0
        if mark_past_as_confirmed:
            now_min = minutes_since_midnight(now)
            for t in self._store.list_tasks(schedule_id):
                if t.id not in was_pending or parse_hhmm(t.end_time) >= now_min:
                    continue
                if self._store.try_transition(
                    t.id,
                    expected=[TaskStatus.PENDING],
                    status=TaskStatus.CONFIRMED,
                    confirmed_at=now,
                ) is not None:
                    confirmed += 1

        logger.info(
            "Delays reset schedule=%s resetted=%s confirmed=%s",
            schedule_id,
            resetted,
            confirmed,
        )
        return ResetResult(resetted_tasks=resetted, confirmed_tasks=confirmed)
