# tests/test_commands.py

from __future__ import annotations

from dayroute.cli.commands import CommandRegistry, registry
from dayroute.core.models import TaskStatus
from dayroute.core.state import AppState

from .fakes import seed_schedule


def test_command_registry_routes_2_and_3_param_handlers(state: AppState) -> None:
    reg = CommandRegistry()

    def h2(st: AppState, args: list[str]) -> str:
        return "h2:" + ",".join(args)

    def h3(st: AppState, args: list[str], emit) -> str:
        if emit:
            emit("progress")
        return "h3:" + ",".join(args)

    reg.register("a", h2, "two-param handler")
    reg.register("b", h3, "three-param handler", aliases=["bb"])

    emitted: list[str] = []
    assert reg.handle(state, "/a x y") == "h2:x,y"
    assert reg.handle(state, "/BB z", emit=emitted.append) == "h3:z"
    assert emitted == ["progress"]
    assert reg.handle(state, "not a command") is None
    assert "Empty command" in reg.handle(state, "/")
    assert "Unknown command: /nope" in reg.handle(state, "/nope")


def test_help_lists_commands(state: AppState) -> None:
    out = registry.handle(state, "/help")
    assert "/today" in out
    assert "/confirm" in out
    assert registry.handle(state, "/?") == out


def test_today_generates_and_shows_lunch(state: AppState) -> None:
    out = registry.handle(state, "/today")
    assert out.startswith("Schedule 2025-06-10 for Tester")
    assert "Lunch break" in out
    assert "13:40-14:40" in out


def test_confirm_by_position(state: AppState) -> None:
    registry.handle(state, "/today")
    out = registry.handle(state, "/confirm 1")

    first = state.service.get_or_create_schedule().tasks[0]
    assert first.status == TaskStatus.CONFIRMED
    assert "late by" in out


def test_confirm_reports_domain_errors_as_text(state: AppState) -> None:
    registry.handle(state, "/today")
    assert registry.handle(state, "/confirm 999").startswith("Error (NotFoundError)")
    assert registry.handle(state, "/delay 1 abc").startswith("Error (ValidationError)")
    assert registry.handle(state, "/delay 1 0").startswith("Error (ValidationError)")
    assert registry.handle(state, "/confirm").startswith("Usage:")


def test_reset_requires_password(state: AppState) -> None:
    seed_schedule(state.store, [("09:00", "10:00")])
    assert registry.handle(state, "/reset wrong").startswith("Error (UnauthorizedError)")

    emitted: list[str] = []
    out = registry.handle(state, "/reset s3cret past", emit=emitted.append)
    assert out == "Reset 0 delayed task(s); confirmed 1 past task(s)."
    assert emitted == ["Resetting delays..."]


def test_now_shows_current_task(state: AppState) -> None:
    seed_schedule(state.store, [("14:00", "15:00")])
    out = registry.handle(state, "/now")
    assert out.startswith("Current task:")
    assert "Time left: 30:00 (normal)" in out


def test_status_and_locations(state: AppState) -> None:
    status = registry.handle(state, "/status")
    assert "Operator: Tester" in status
    assert "Monitor: stopped" in status
    assert "ertsfeld: Ertsfeld" in registry.handle(state, "/locations")
