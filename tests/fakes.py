# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from dayroute.core.models import DelayResult, NewTask, TaskType
from dayroute.core.ports import ScheduleRepo

TEST_DATE = "2025-06-10"


def at(hhmm: str, day: str = TEST_DATE) -> datetime:
    """Local, timezone-aware instant on `day` at HH:mm."""
    h, m = (int(x) for x in hhmm.split(":"))
    d = date.fromisoformat(day)
    return datetime(d.year, d.month, d.day, h, m).astimezone()


class FixedClock:
    """
    Deterministic clock for unit tests.

    Time only moves when the test says so.
    """

    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self.current.date()

    def set(self, hhmm: str) -> None:
        self.current = at(hhmm, self.current.date().isoformat())

    def advance(self, minutes: int) -> None:
        self.current = self.current + timedelta(minutes=minutes)


@dataclass(slots=True)
class DelayCall:
    task_id: str
    delay_minutes: int
    require_pending: bool


@dataclass(slots=True)
class FakeDelayReporter:
    """
    DelayReporter that only records calls (does not touch any store), so the
    monitor's own dedup guard is the only thing preventing repeats.
    """

    calls: list[DelayCall] = field(default_factory=list)
    fail_times: int = 0

    def report_delay(
        self,
        task_id: str,
        delay_minutes: int,
        *,
        require_pending: bool = False,
    ) -> DelayResult:
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RuntimeError("transient failure")
        self.calls.append(DelayCall(task_id, delay_minutes, require_pending))
        return DelayResult(delay_minutes=delay_minutes, affected_tasks=0)


def seed_schedule(
    store: ScheduleRepo,
    windows: list[tuple[str, str]],
    *,
    day: str = TEST_DATE,
    operator_name: str = "Tester",
) -> tuple[str, list[str]]:
    """Create a schedule with work tasks on the given windows. Returns (schedule_id, task ids in order)."""
    schedule = store.create_schedule_with_tasks(
        date=day,
        operator_name=operator_name,
        tasks=[
            NewTask(
                type=TaskType.WORK,
                location_id="lugano",
                start_time=start,
                end_time=end,
                description=f"T{i}",
            )
            for i, (start, end) in enumerate(windows, start=1)
        ],
    )
    return schedule.id, [t.id for t in store.list_tasks(schedule.id)]
