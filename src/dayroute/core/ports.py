# src/dayroute/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The generator, delay engine and monitor depend on Protocols instead of concrete
implementations. This keeps the storage backend swappable (in-memory map or
SQLite) and lets tests inject a fixed clock.
"""

from collections.abc import Iterable
from datetime import date, datetime
from typing import Any, Protocol

from .models import (
    DelayResult,
    Location,
    NewTask,
    Schedule,
    ScheduleWithTasks,
    Task,
    TaskStatus,
)


class Clock(Protocol):
    """Source of the current local time."""

    def now(self) -> datetime: ...
    def today(self) -> date: ...


class LocationLookup(Protocol):
    def location_by_id(self, location_id: str) -> Location | None: ...
    def travel_time(self, from_id: str, to_id: str) -> int | None: ...
    def list_locations(self) -> list[Location]: ...


class ScheduleRepo(Protocol):
    """
    Authoritative collection of schedules and tasks.

    Every task mutation goes through update_task/try_transition, which are
    atomic per task id.
    """

    @property
    def graph(self) -> LocationLookup: ...

    def close(self) -> None: ...

    # Schedules
    def get_schedule(self, schedule_id: str) -> Schedule | None: ...
    def get_schedule_by_date(self, date: str) -> Schedule | None: ...
    def create_schedule_with_tasks(
            self,
            *,
            date: str,
            operator_name: str,
            tasks: Iterable[NewTask],
    ) -> Schedule: ...
    def delete_schedule(self, schedule_id: str) -> int: ...

    # Tasks
    def get_task(self, task_id: str) -> Task | None: ...
    def list_tasks(self, schedule_id: str) -> list[Task]: ...
    def update_task(self, task_id: str, **fields: Any) -> Task | None: ...
    def try_transition(
            self,
            task_id: str,
            *,
            expected: Iterable[TaskStatus],
            status: TaskStatus,
            confirmed_at: datetime | None = None,
    ) -> Task | None: ...

    # Combined queries
    def get_schedule_with_tasks(self, schedule_id: str) -> ScheduleWithTasks | None: ...
    def get_schedule_with_tasks_by_date(self, date: str) -> ScheduleWithTasks | None: ...


class DelayReporter(Protocol):
    """What the live monitor calls when a task has been overdue for too long."""

    def report_delay(
            self,
            task_id: str,
            delay_minutes: int,
            *,
            require_pending: bool = False,
    ) -> DelayResult: ...
