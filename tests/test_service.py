# tests/test_service.py

from __future__ import annotations

import pytest

from dayroute.core.errors import NotFoundError, UnauthorizedError, ValidationError
from dayroute.core.models import TaskStatus, TaskType
from dayroute.core.state import AppState
from dayroute.service import ItineraryService

from .fakes import TEST_DATE, FixedClock, at, seed_schedule


def test_get_or_create_is_idempotent(state: AppState) -> None:
    first = state.service.get_or_create_schedule()
    second = state.service.get_or_create_schedule(TEST_DATE)

    assert first.date == TEST_DATE
    assert first.id == second.id
    assert [t.id for t in first.tasks] == [t.id for t in second.tasks]
    assert first.schedule.operator_name == "Tester"
    assert any(t.type == TaskType.BREAK and t.start_time == "13:40" for t in first.tasks)


def test_get_schedule_never_generates(state: AppState) -> None:
    with pytest.raises(NotFoundError):
        state.service.get_schedule("2025-06-11")
    with pytest.raises(ValidationError):
        state.service.get_schedule("June 11")
    assert state.service.todays_schedule() is None


def test_change_listeners_fire_on_mutations(state: AppState) -> None:
    calls: list[int] = []
    state.service.add_change_listener(lambda: calls.append(1))

    schedule = state.service.get_or_create_schedule()
    state.service.get_or_create_schedule()
    state.service.confirm_task(schedule.tasks[0].id)

    assert len(calls) == 2


def test_confirm_task_and_errors(state: AppState, clock: FixedClock) -> None:
    schedule = state.service.get_or_create_schedule()
    task = state.service.confirm_task(schedule.tasks[0].id)

    assert task.status == TaskStatus.CONFIRMED
    assert task.confirmed_at == clock.now()
    with pytest.raises(NotFoundError):
        state.service.confirm_task("missing")
    with pytest.raises(ValidationError):
        state.service.confirm_task("")


def test_report_delay_validates_before_lookup(state: AppState) -> None:
    with pytest.raises(ValidationError):
        state.service.report_delay("missing", 0)
    with pytest.raises(NotFoundError):
        state.service.report_delay("missing", 5)


def test_confirm_with_delay(state: AppState) -> None:
    schedule = state.service.get_or_create_schedule()
    tid = schedule.tasks[0].id

    result, task = state.service.confirm_with_delay(tid, 7)

    assert result.delay_minutes == 7
    assert task.status == TaskStatus.CONFIRMED
    assert task.confirmed_at is not None


def test_confirm_current_uses_observed_delay(state: AppState, clock: FixedClock) -> None:
    sid, (late, current) = seed_schedule(state.store, [("13:00", "14:00"), ("14:00", "15:00")])

    result, task = state.service.confirm_current(late, now=clock.now())
    assert result is not None and result.delay_minutes == 30
    assert task.status == TaskStatus.CONFIRMED

    result, task = state.service.confirm_current(current, now=clock.now())
    assert result is None
    assert task.status == TaskStatus.CONFIRMED


def test_confirm_current_explicit_delay_wins(state: AppState, clock: FixedClock) -> None:
    _, (late,) = seed_schedule(state.store, [("13:00", "14:00")])
    result, _ = state.service.confirm_current(late, delay_minutes=12, now=clock.now())
    assert result.delay_minutes == 12


def test_reset_delays_requires_password_and_schedule(state: AppState) -> None:
    with pytest.raises(UnauthorizedError):
        state.service.reset_delays("wrong")
    with pytest.raises(NotFoundError):
        state.service.reset_delays("s3cret")


def test_reset_delays_on_today(state: AppState, clock: FixedClock) -> None:
    _, (past, delayed, future) = seed_schedule(
        state.store, [("11:00", "12:00"), ("12:00", "13:00"), ("15:00", "16:00")]
    )
    state.service.report_delay(delayed, 10)

    result = state.service.reset_delays("s3cret", mark_past_as_confirmed=True)

    assert (result.resetted_tasks, result.confirmed_tasks, result.schedule_regenerated) == (1, 1, False)
    assert state.store.get_task(past).confirmed_at == clock.now()
    assert state.store.get_task(delayed).status == TaskStatus.PENDING
    assert state.store.get_task(future).status == TaskStatus.PENDING


def test_regenerate_replaces_schedule(state: AppState) -> None:
    old = state.service.get_or_create_schedule()

    with pytest.raises(UnauthorizedError):
        state.service.regenerate_schedule("nope")

    new = state.service.regenerate_schedule("s3cret")

    assert new.id != old.id
    assert new.date == old.date
    assert all(state.store.get_task(t.id) is None for t in old.tasks)


def test_empty_admin_password_rejects_everything(state: AppState) -> None:
    service = ItineraryService(
        state.store,
        state.generator,
        state.engine,
        clock=state.clock,
        operator_name="x",
        admin_password="",
    )
    with pytest.raises(UnauthorizedError):
        service.regenerate_schedule("")


def test_list_locations(state: AppState) -> None:
    assert "ertsfeld" in {loc.id for loc in state.service.list_locations()}


def test_todays_schedule_follows_clock(state: AppState, clock: FixedClock) -> None:
    state.service.get_or_create_schedule()
    assert state.service.todays_schedule() is not None

    clock.current = at("09:00", "2025-06-11")
    assert state.service.todays_schedule() is None
