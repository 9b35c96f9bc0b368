# tests/test_selection.py

from __future__ import annotations

import pytest

from dayroute.core.models import Task, TaskStatus, TaskType
from dayroute.monitor.selection import Urgency, countdown, daily_stats, overdue_tasks, select_focus_task

from .fakes import at


def _task(
        tid: str,
        start: str,
        end: str,
        *,
        status: TaskStatus = TaskStatus.PENDING,
        type: TaskType = TaskType.WORK,
        location_id: str = "lugano",
) -> Task:
    return Task(
        id=tid,
        schedule_id="s1",
        type=type,
        location_id=location_id,
        start_time=start,
        end_time=end,
        status=status,
        description=tid,
    )


@pytest.mark.parametrize(
    ("now", "display", "urgency", "late"),
    [
        ("14:25", "05:00", Urgency.NORMAL, False),
        ("14:28", "02:00", Urgency.URGENT, False),
        ("14:30", "00:00", Urgency.URGENT, False),
        ("14:33", "-03:00", Urgency.LATE, True),
        ("14:45", "-15:00", Urgency.LATE, True),
        ("12:00", "150:00", Urgency.NORMAL, False),
    ],
)
def test_countdown(now: str, display: str, urgency: Urgency, late: bool) -> None:
    cd = countdown(_task("a", "14:00", "14:30"), at(now))
    assert cd.display == display
    assert cd.urgency == urgency
    assert cd.is_late is late


def test_focus_prefers_open_window() -> None:
    tasks = [_task("b", "15:00", "15:30"), _task("a", "14:00", "14:30")]
    focus = select_focus_task(tasks, at("14:10"))
    assert focus.task.id == "a"
    assert not focus.is_next and not focus.is_late


def test_focus_end_is_inclusive() -> None:
    focus = select_focus_task([_task("a", "14:00", "14:30")], at("14:30"))
    assert focus.task.id == "a" and not focus.is_late


def test_focus_reports_overdue_until_processed() -> None:
    tasks = [_task("a", "14:00", "14:30"), _task("b", "15:00", "15:30")]

    late = select_focus_task(tasks, at("14:33"))
    assert late.task.id == "a" and late.is_late and late.delay_minutes == 3

    moved_on = select_focus_task(tasks, at("14:33"), processed_ids={"a"})
    assert moved_on.task.id == "b" and moved_on.is_next


def test_focus_skips_non_pending_and_returns_none_at_day_end() -> None:
    tasks = [
        _task("a", "09:00", "10:00", status=TaskStatus.CONFIRMED),
        _task("b", "10:00", "11:00", status=TaskStatus.DELAYED),
    ]
    assert select_focus_task(tasks, at("09:30")) is None
    assert select_focus_task([], at("09:30")) is None


def test_overdue_tasks_lists_pending_only() -> None:
    tasks = [
        _task("a", "09:00", "10:00"),
        _task("b", "10:00", "11:00", status=TaskStatus.CONFIRMED),
        _task("c", "11:00", "12:00"),
        _task("d", "13:00", "14:00"),
    ]
    assert [(t.id, m) for t, m in overdue_tasks(tasks, at("12:30"))] == [("a", 150), ("c", 30)]


def test_daily_stats() -> None:
    tasks = [
        _task("t1", "08:00", "08:25", type=TaskType.TRAVEL, location_id="lugano"),
        _task("w1", "08:25", "09:30", status=TaskStatus.CONFIRMED),
        _task("t2", "09:30", "10:05", type=TaskType.TRAVEL, location_id="bellinzona"),
        _task("w2", "10:05", "11:00", location_id="bellinzona"),
        _task("w3", "11:00", "11:30", status=TaskStatus.CONFIRMED, location_id="bellinzona"),
        _task("w4", "11:30", "12:00", status=TaskStatus.DELAYED, location_id="bellinzona"),
    ]

    stats = daily_stats(tasks)

    assert stats.locations_visited == 2
    assert stats.travel_minutes == 60
    assert (stats.completed_tasks, stats.total_tasks) == (2, 4)
    assert stats.on_time_percent == 50
    assert daily_stats([]).on_time_percent == 0
