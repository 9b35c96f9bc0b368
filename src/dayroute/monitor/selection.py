# src/dayroute/monitor/selection.py

"""
Pure derivations over a task list and the current time.

Nothing here is stored: callers recompute on every tick/render with the
injected `now`, which keeps these functions testable without a real clock.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from ..core.models import Task, TaskStatus, TaskType
from ..core.timeutil import MINUTES_PER_DAY, minutes_since_midnight, parse_hhmm, seconds_since_midnight
from ..delays.engine import overdue_minutes

# Countdown switches to "urgent" below this many seconds left.
URGENT_SECONDS = 5 * 60


class Urgency(StrEnum):
    NORMAL = "normal"
    URGENT = "urgent"
    LATE = "late"


@dataclass(slots=True, frozen=True)
class TaskFocus:
    """The task the operator should act on now."""

    task: Task
    is_next: bool
    is_late: bool
    delay_minutes: int


@dataclass(slots=True, frozen=True)
class Countdown:
    remaining_seconds: int
    is_late: bool
    urgency: Urgency
    display: str


@dataclass(slots=True, frozen=True)
class DailyStats:
    locations_visited: int
    travel_minutes: int
    completed_tasks: int
    total_tasks: int
    on_time_percent: int


def _by_start(tasks: Iterable[Task]) -> list[Task]:
    return sorted(tasks, key=lambda t: t.start_time)


def select_focus_task(
        tasks: Iterable[Task],
        now: datetime,
        processed_ids: Collection[str] = (),
) -> TaskFocus | None:
    """
    Pick the current task, else the nearest future one.

    Current = first pending task (in start order) whose window has opened and
    that is either still open or overdue but not yet auto-processed.
    The window end is inclusive: at exactly end_time a task is not overdue yet.
    """
    now_min = minutes_since_midnight(now)
    pending = [t for t in _by_start(tasks) if t.status == TaskStatus.PENDING]

    for t in pending:
        if parse_hhmm(t.start_time) > now_min:
            continue
        late = overdue_minutes(t, now)
        if late == 0:
            return TaskFocus(task=t, is_next=False, is_late=False, delay_minutes=0)
        if t.id not in processed_ids:
            return TaskFocus(task=t, is_next=False, is_late=True, delay_minutes=late)

    for t in pending:
        if parse_hhmm(t.start_time) > now_min:
            return TaskFocus(task=t, is_next=True, is_late=False, delay_minutes=0)

    return None


def overdue_tasks(tasks: Iterable[Task], now: datetime) -> list[tuple[Task, int]]:
    """(task, minutes overdue) for each pending task whose window has closed."""
    out: list[tuple[Task, int]] = []
    for t in _by_start(tasks):
        if t.status != TaskStatus.PENDING:
            continue
        late = overdue_minutes(t, now)
        if late > 0:
            out.append((t, late))
    return out


def countdown(task: Task, now: datetime) -> Countdown:
    """Signed time left in the task window; negative once the task is late."""
    remaining = parse_hhmm(task.end_time) * 60 - seconds_since_midnight(now)
    is_late = remaining < 0

    if is_late:
        urgency = Urgency.LATE
    elif remaining < URGENT_SECONDS:
        urgency = Urgency.URGENT
    else:
        urgency = Urgency.NORMAL

    total = abs(remaining)
    display = f"{'-' if is_late else ''}{total // 60:02d}:{total % 60:02d}"
    return Countdown(remaining_seconds=remaining, is_late=is_late, urgency=urgency, display=display)


def daily_stats(tasks: Iterable[Task]) -> DailyStats:
    items = list(tasks)

    locations = {t.location_id for t in items if t.location_id}

    travel_minutes = 0
    for t in items:
        if t.type == TaskType.TRAVEL:
            travel_minutes += (parse_hhmm(t.end_time) - parse_hhmm(t.start_time)) % MINUTES_PER_DAY

    scored = [t for t in items if t.type != TaskType.TRAVEL]
    completed = sum(1 for t in scored if t.status == TaskStatus.CONFIRMED)
    on_time = round(completed / len(scored) * 100) if scored else 0

    return DailyStats(
        locations_visited=len(locations),
        travel_minutes=travel_minutes,
        completed_tasks=completed,
        total_tasks=len(scored),
        on_time_percent=on_time,
    )
