# src/dayroute/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..core.errors import DayrouteError, NotFoundError, ValidationError
from ..core.models import ScheduleWithTasks, Task
from ..core.state import AppState
from ..monitor.selection import countdown, daily_stats, select_focus_task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /today, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Domain errors come back as readable replies; anything else propagates.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except DayrouteError as e:
            logger.info("/%s failed: %s", name, e.message)
            return f"Error ({type(e).__name__}): {e.message}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting / lookup helpers ----

def _format_task(index: int, task: Task) -> str:
    where = task.location.name if task.location is not None else (task.location_id or "-")
    return (
        f"{index:>2}. {task.start_time}-{task.end_time} "
        f"{task.type.value:<6} {task.description} @ {where} [{task.status.value}]"
    )


def _format_schedule(schedule: ScheduleWithTasks) -> str:
    lines = [
        f"Schedule {schedule.date} for {schedule.schedule.operator_name} "
        f"({len(schedule.tasks)} tasks):"
    ]
    for i, t in enumerate(schedule.tasks, start=1):
        lines.append(_format_task(i, t))
    return "\n".join(lines)


def _resolve_task(state: AppState, token: str) -> Task:
    """Accept a 1-based position in today's schedule, a full id, or a unique id prefix."""
    schedule = state.service.get_or_create_schedule()
    if token.isdigit():
        idx = int(token)
        if not 1 <= idx <= len(schedule.tasks):
            raise NotFoundError(f"no task #{idx} in today's schedule")
        return schedule.tasks[idx - 1]

    matches = [t for t in schedule.tasks if t.id.startswith(token)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise NotFoundError(f"task {token} not found")
    raise ValidationError(f"task id prefix {token} is ambiguous")


def _parse_minutes(raw: str) -> int:
    try:
        return int(raw)
    except ValueError as e:
        raise ValidationError(f"minutes must be an integer, got {raw!r}") from e


# ---- handlers ----

def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    return (
        "Status:\n"
        f"  Operator: {s.operator_name}\n"
        f"  Storage: {s.storage_backend}\n"
        f"  Delay policy: {state.engine.policy.value}\n"
        f"  Auto-delay threshold: {state.monitor.threshold_minutes} min\n"
        f"  Monitor: {'running' if state.monitor_runner is not None else 'stopped'}"
    )


def cmd_today(state: AppState, args: list[str]) -> str:
    """
    /today            -> today's schedule (generated on first access)
    /today YYYY-MM-DD -> schedule for another date
    """
    date = args[0] if args else None
    return _format_schedule(state.service.get_or_create_schedule(date))


def cmd_now(state: AppState, args: list[str]) -> str:
    schedule = state.service.get_or_create_schedule()
    now = state.clock.now()
    focus = select_focus_task(schedule.tasks, now, state.monitor.processed_ids)
    if focus is None:
        return "No active task: the working day is over or has not started."

    cd = countdown(focus.task, now)
    label = "Next task" if focus.is_next else "Current task"
    idx = [t.id for t in schedule.tasks].index(focus.task.id) + 1
    lines = [f"{label}:", _format_task(idx, focus.task)]
    if focus.is_late:
        lines.append(f"  Late by {focus.delay_minutes} min ({cd.display}). Confirm with /confirm {idx} [minutes].")
    elif not focus.is_next:
        lines.append(f"  Time left: {cd.display} ({cd.urgency.value})")
    return "\n".join(lines)


def cmd_confirm(state: AppState, args: list[str]) -> str:
    """
    /confirm <task>           -> confirm (with the observed delay if overdue)
    /confirm <task> <minutes> -> confirm with an explicit delay if overdue
    """
    if not args:
        return "Usage: /confirm <task#|id> [delay-minutes]"
    task = _resolve_task(state, args[0])
    delay = _parse_minutes(args[1]) if len(args) > 1 else None

    result, confirmed = state.service.confirm_current(task.id, delay_minutes=delay)
    if result is None:
        return f"Confirmed: {confirmed.description} at {confirmed.confirmed_at:%H:%M}."
    return (
        f"Confirmed late by {result.delay_minutes} min: {confirmed.description}. "
        f"{result.affected_tasks} later task(s) rescheduled."
    )


def cmd_delay(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /delay <task#|id> <minutes>"
    task = _resolve_task(state, args[0])
    result = state.service.report_delay(task.id, _parse_minutes(args[1]))
    return (
        f"Delay of {result.delay_minutes} min recorded for {task.description}. "
        f"{result.affected_tasks} later task(s) rescheduled."
    )


def cmd_replan(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /replan <task#|id> <minutes>"
    task = _resolve_task(state, args[0])
    result = state.service.replan(task.id, _parse_minutes(args[1]))
    return f"Shifted {result.affected_tasks} task(s) after {task.description} by {result.delay_minutes} min."


def cmd_reset(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /reset <password>       -> delayed tasks back to pending
    /reset <password> past  -> also confirm pending tasks whose window has closed
    """
    if not args:
        return "Usage: /reset <password> [past]"
    mark_past = len(args) > 1 and args[1].lower() in ("past", "yes", "1", "true")
    if emit:
        emit("Resetting delays...")
    result = state.service.reset_delays(args[0], mark_past_as_confirmed=mark_past)
    return f"Reset {result.resetted_tasks} delayed task(s); confirmed {result.confirmed_tasks} past task(s)."


def cmd_regenerate(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /regenerate <password> [YYYY-MM-DD]"
    date = args[1] if len(args) > 1 else None
    schedule = state.service.regenerate_schedule(args[0], date)
    return "Regenerated.\n" + _format_schedule(schedule)


def cmd_locations(state: AppState, args: list[str]) -> str:
    lines = ["Locations:"]
    for loc in state.service.list_locations():
        lines.append(f"  {loc.id}: {loc.name}")
    return "\n".join(lines)


def cmd_stats(state: AppState, args: list[str]) -> str:
    stats = daily_stats(state.service.get_or_create_schedule().tasks)
    return (
        "Daily stats:\n"
        f"  Locations: {stats.locations_visited}\n"
        f"  Travel time: {stats.travel_minutes // 60}h {stats.travel_minutes % 60}m\n"
        f"  Completed: {stats.completed_tasks}/{stats.total_tasks}\n"
        f"  On time: {stats.on_time_percent}%"
    )


def cmd_tick(state: AppState, args: list[str]) -> str:
    submitted = state.monitor.tick()
    if not submitted:
        return "Monitor tick: no automatic delays."
    return "Monitor tick: " + ", ".join(f"{a.task_id[:8]} +{a.delay_minutes} min" for a in submitted)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show operator, storage and delay settings.")
registry.register("today", cmd_today, help_text="Show a schedule: /today [YYYY-MM-DD].", aliases=["t"])
registry.register("now", cmd_now, help_text="Show the current or next task with its countdown.")
registry.register("confirm", cmd_confirm, help_text="Confirm arrival: /confirm <task> [delay].", aliases=["c"])
registry.register("delay", cmd_delay, help_text="Report a delay: /delay <task> <minutes>.")
registry.register("replan", cmd_replan, help_text="Shift later tasks: /replan <task> <minutes>.")
registry.register("reset", cmd_reset, help_text="Admin: /reset <password> [past].")
registry.register("regenerate", cmd_regenerate, help_text="Admin: /regenerate <password> [date].")
registry.register("locations", cmd_locations, help_text="List known locations.")
registry.register("stats", cmd_stats, help_text="Daily statistics.")
registry.register("tick", cmd_tick, help_text="Run one delay-monitor pass now.")
