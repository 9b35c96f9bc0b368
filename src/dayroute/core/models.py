# src/dayroute/core/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class TaskType(StrEnum):
    TRAVEL = "travel"
    WORK = "work"
    BREAK = "break"


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Notes:
    - "missed" is part of the stored vocabulary but nothing in the core sets it;
      it is kept so data written by other tools still loads.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    DELAYED = "delayed"
    MISSED = "missed"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class DelayPolicy(StrEnum):
    """
    How a reported delay propagates to the rest of the day.

    MARK_ONLY: only the reported task changes (status -> delayed).
    SHIFT_FORWARD: every later task is shifted by the delay as well.
    """

    MARK_ONLY = "mark_only"
    SHIFT_FORWARD = "shift_forward"


@dataclass(slots=True, frozen=True)
class Location:
    id: str
    name: str


@dataclass(slots=True, frozen=True)
class TravelEdge:
    from_location_id: str
    to_location_id: str
    duration_minutes: int


@dataclass(slots=True)
class Task:
    id: str
    schedule_id: str
    type: TaskType
    location_id: str | None
    start_time: str
    end_time: str
    status: TaskStatus
    description: str

    confirmed_at: datetime | None = None

    # Window as first generated; restored on reset under the shift-forward policy.
    planned_start_time: str = ""
    planned_end_time: str = ""

    location: Location | None = None

    def __post_init__(self) -> None:
        if not self.planned_start_time:
            self.planned_start_time = self.start_time
        if not self.planned_end_time:
            self.planned_end_time = self.end_time


@dataclass(slots=True, frozen=True)
class NewTask:
    """A task as emitted by the generator, before the store assigns an id."""

    type: TaskType
    location_id: str | None
    start_time: str
    end_time: str
    description: str


@dataclass(slots=True)
class Schedule:
    id: str
    date: str
    operator_name: str
    generated_at: datetime


@dataclass(slots=True)
class ScheduleWithTasks:
    schedule: Schedule
    tasks: list[Task] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.schedule.id

    @property
    def date(self) -> str:
        return self.schedule.date

    def task_ids(self) -> set[str]:
        return {t.id for t in self.tasks}


@dataclass(slots=True, frozen=True)
class DelayResult:
    delay_minutes: int
    affected_tasks: int


@dataclass(slots=True, frozen=True)
class ResetResult:
    resetted_tasks: int
    confirmed_tasks: int
    schedule_regenerated: bool = False
