# src/dayroute/storage/memory_store.py

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..core.errors import ValidationError
from ..core.models import NewTask, Schedule, ScheduleWithTasks, Task, TaskStatus
from ..core.ports import LocationLookup
from ..core.timeutil import is_valid_hhmm, utc_now
from .fields import UPDATABLE_TASK_FIELDS, normalize_task_update

logger = logging.getLogger(__name__)


class InMemoryScheduleStore:
    """
    Process-local schedule/task store.

    Holds the location graph as immutable seed data plus mutable schedule and
    task maps. Reads return copies, so callers never mutate stored tasks
    directly; every change goes through update_task / try_transition.

    Thread-safety:
    - one lock per task id guards read-modify-write on that task
    - a store-wide lock guards the maps themselves (create/delete/list)
    """

    def __init__(self, graph: LocationLookup) -> None:
        self._graph = graph
        self._schedules: dict[str, Schedule] = {}
        self._tasks: dict[str, Task] = {}
        self._lock = threading.RLock()
        self._task_locks: dict[str, threading.Lock] = {}
        logger.info("InMemoryScheduleStore ready locations=%s", len(graph.list_locations()))

    @property
    def graph(self) -> LocationLookup:
        return self._graph

    def close(self) -> None:
        """Compatibility hook for shutdown (nothing to release)."""
        return

    # ---- low-level helpers ----

    def _task_lock(self, task_id: str) -> threading.Lock | None:
        """Lock of a stored task; None for unknown ids (nothing is registered for them)."""
        with self._lock:
            return self._task_locks.get(task_id)

    def _with_location(self, task: Task) -> Task:
        return replace(task, location=self._graph.location_by_id(task.location_id))

    # ---- schedules ----

    def get_schedule(self, schedule_id: str) -> Schedule | None:
        with self._lock:
            s = self._schedules.get(schedule_id)
            return replace(s) if s is not None else None

    def get_schedule_by_date(self, date: str) -> Schedule | None:
        with self._lock:
            for s in self._schedules.values():
                if s.date == date:
                    return replace(s)
        return None

    def create_schedule_with_tasks(
        self,
        *,
        date: str,
        operator_name: str,
        tasks: Iterable[NewTask],
    ) -> Schedule:
        new_tasks = list(tasks)
        for nt in new_tasks:
            if not is_valid_hhmm(nt.start_time) or not is_valid_hhmm(nt.end_time):
                raise ValidationError(f"invalid task window {nt.start_time}-{nt.end_time}")

        with self._lock:
            if any(s.date == date for s in self._schedules.values()):
                raise ValidationError(f"a schedule for {date} already exists")

            schedule = Schedule(
                id=str(uuid.uuid4()),
                date=date,
                operator_name=operator_name,
                generated_at=utc_now(),
            )
            self._schedules[schedule.id] = schedule

            for nt in new_tasks:
                task = Task(
                    id=str(uuid.uuid4()),
                    schedule_id=schedule.id,
                    type=nt.type,
                    location_id=nt.location_id,
                    start_time=nt.start_time,
                    end_time=nt.end_time,
                    status=TaskStatus.PENDING,
                    description=nt.description,
                )
                self._tasks[task.id] = task
                self._task_locks[task.id] = threading.Lock()

        logger.debug("Schedule created id=%s date=%s tasks=%s", schedule.id, date, len(new_tasks))
        return replace(schedule)

    def delete_schedule(self, schedule_id: str) -> int:
        """Delete a schedule and its tasks. Returns the number of tasks removed."""
        with self._lock:
            if self._schedules.pop(schedule_id, None) is None:
                return 0
            doomed = [tid for tid, t in self._tasks.items() if t.schedule_id == schedule_id]
            for tid in doomed:
                del self._tasks[tid]
                self._task_locks.pop(tid, None)
        logger.info("Schedule deleted id=%s tasks=%s", schedule_id, len(doomed))
        return len(doomed)

    # ---- tasks ----

    def get_task(self, task_id: str) -> Task | None:
        with self._lock:
            t = self._tasks.get(task_id)
            return self._with_location(t) if t is not None else None

    def list_tasks(self, schedule_id: str) -> list[Task]:
        with self._lock:
            out = [self._with_location(t) for t in self._tasks.values() if t.schedule_id == schedule_id]
        out.sort(key=lambda t: t.start_time)
        return out

    def update_task(self, task_id: str, **fields: Any) -> Task | None:
        """
        Apply a partial update atomically. Returns the updated task, or None
        if the id is unknown.
        """
        unknown = set(fields) - UPDATABLE_TASK_FIELDS
        if unknown:
            raise ValidationError(f"cannot update task fields: {', '.join(sorted(unknown))}")

        lock = self._task_lock(task_id)
        if lock is None:
            return None
        with lock:
            with self._lock:
                current = self._tasks.get(task_id)
            if current is None:
                return None
            updated = replace(current, **normalize_task_update(current, fields))
            with self._lock:
                if task_id not in self._tasks:
                    return None
                self._tasks[task_id] = updated
        return self._with_location(updated)

    def try_transition(
        self,
        task_id: str,
        *,
        expected: Iterable[TaskStatus],
        status: TaskStatus,
        confirmed_at: datetime | None = None,
    ) -> Task | None:
        """
        Compare-and-set on status: only moves the task if its current status is
        one of `expected`. Returns the updated task, or None if not moved.
        """
        exp = set(expected)
        lock = self._task_lock(task_id)
        if lock is None:
            return None
        with lock:
            with self._lock:
                current = self._tasks.get(task_id)
            if current is None or current.status not in exp:
                return None
            updated = replace(
                current,
                **normalize_task_update(current, {"status": status, "confirmed_at": confirmed_at}),
            )
            with self._lock:
                if task_id not in self._tasks:
                    return None
                self._tasks[task_id] = updated
        return self._with_location(updated)

    # ---- combined queries ----

    def get_schedule_with_tasks(self, schedule_id: str) -> ScheduleWithTasks | None:
        schedule = self.get_schedule(schedule_id)
        if schedule is None:
            return None
        return ScheduleWithTasks(schedule=schedule, tasks=self.list_tasks(schedule_id))

    def get_schedule_with_tasks_by_date(self, date: str) -> ScheduleWithTasks | None:
        schedule = self.get_schedule_by_date(date)
        if schedule is None:
            return None
        return ScheduleWithTasks(schedule=schedule, tasks=self.list_tasks(schedule.id))

    def count_tasks(self) -> int:
        with self._lock:
            return len(self._tasks)
