# src/dayroute/monitor/live_monitor.py

"""
Live delay monitor.

A small polling loop that, every interval (or sooner when the schedule
changes):
- refetches the schedule,
- prunes the auto-processed set to the current schedule's task ids,
- submits one automatic delay for each pending task that has been overdue for
  at least `threshold_minutes` and was not auto-processed yet.

Tasks overdue for less than the threshold are left alone: that grace window
belongs to the operator, who can confirm by hand with an explicit delay.

To stop the loop, cancel the coroutine/task or set its stop event.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from ..core.models import DelayResult, ScheduleWithTasks, Task
from ..core.ports import Clock, DelayReporter
from ..core.timeutil import SystemClock
from .selection import TaskFocus, overdue_tasks, select_focus_task

logger = logging.getLogger(__name__)

ScheduleFetcher = Callable[[], ScheduleWithTasks | None]

DEFAULT_THRESHOLD_MINUTES = 5


@dataclass(slots=True, frozen=True)
class AutoDelay:
    task_id: str
    delay_minutes: int
    result: DelayResult


class LiveDelayMonitor:
    def __init__(
            self,
            fetch_schedule: ScheduleFetcher,
            reporter: DelayReporter,
            *,
            threshold_minutes: int = DEFAULT_THRESHOLD_MINUTES,
            clock: Clock | None = None,
    ) -> None:
        self._fetch_schedule = fetch_schedule
        self._reporter = reporter
        self._threshold = max(1, int(threshold_minutes))
        self._clock = clock or SystemClock()
        self._processed: set[str] = set()
        self._tasks: list[Task] = []
        self._lock = threading.Lock()

    @property
    def threshold_minutes(self) -> int:
        return self._threshold

    @property
    def processed_ids(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._processed)

    def load(self, schedule: ScheduleWithTasks | None) -> None:
        """Adopt a freshly fetched schedule and drop processed ids that left it."""
        with self._lock:
            if schedule is None:
                self._tasks = []
                self._processed.clear()
                return
            self._tasks = list(schedule.tasks)
            self._processed &= schedule.task_ids()

    def tick(self, now: datetime | None = None) -> list[AutoDelay]:
        """Run one evaluation pass. Returns the delays submitted in this pass."""
        if now is None:
            now = self._clock.now()

        try:
            schedule = self._fetch_schedule()
        except Exception:
            logger.exception("Delay monitor: fetching schedule failed")
            return []

        self.load(schedule)

        submitted: list[AutoDelay] = []
        failed: set[str] = set()

        while schedule is not None:
            candidate = self._next_candidate(schedule, now, failed)
            if candidate is None:
                break
            task, late = candidate

            try:
                result = self._reporter.report_delay(task.id, late, require_pending=True)
            except Exception:
                # Left unprocessed: the next tick retries.
                logger.exception("Delay monitor: auto-delay failed task_id=%s", task.id)
                failed.add(task.id)
                continue

            with self._lock:
                self._processed.add(task.id)
            submitted.append(AutoDelay(task_id=task.id, delay_minutes=late, result=result))
            logger.info("Auto-delay submitted task_id=%s delay=%s min", task.id, late)

            # A delay may have shifted the later windows; judge them on fresh data.
            try:
                schedule = self._fetch_schedule()
            except Exception:
                logger.exception("Delay monitor: refetching schedule failed")
                break
            self.load(schedule)

        return submitted

    def _next_candidate(
            self,
            schedule: ScheduleWithTasks,
            now: datetime,
            skip: set[str],
    ) -> tuple[Task, int] | None:
        with self._lock:
            processed = set(self._processed)
        for task, late in overdue_tasks(schedule.tasks, now):
            if late >= self._threshold and task.id not in processed and task.id not in skip:
                return task, late
        return None

    def focus(self, now: datetime | None = None) -> TaskFocus | None:
        """Current/next task over the last loaded schedule."""
        if now is None:
            now = self._clock.now()
        with self._lock:
            tasks = list(self._tasks)
            processed = frozenset(self._processed)
        return select_focus_task(tasks, now, processed)


async def _sleep_or_wake(
        seconds: float,
        wakeup: asyncio.Event | None,
        stop_event: asyncio.Event | None,
) -> None:
    events = [e for e in (wakeup, stop_event) if e is not None]
    if not events:
        await asyncio.sleep(seconds)
        return

    waiters = [asyncio.ensure_future(e.wait()) for e in events]
    try:
        await asyncio.wait(waiters, timeout=seconds, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for w in waiters:
            w.cancel()
    if wakeup is not None:
        wakeup.clear()


async def run_delay_monitor(
        monitor: LiveDelayMonitor,
        *,
        interval_seconds: float = 60.0,
        wakeup: asyncio.Event | None = None,
        stop_event: asyncio.Event | None = None,
) -> None:
    """
    Polling loop around monitor.tick().

    Every interval_seconds, or as soon as `wakeup` is set (schedule data
    changed), run one tick. The tick body runs to completion synchronously;
    the only suspension point is the wait between ticks.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while stop_event is None or not stop_event.is_set():
        try:
            monitor.tick()
        except Exception:
            logger.exception("Delay monitor tick failed")
        await _sleep_or_wake(sleep_s, wakeup, stop_event)

    logger.info("Delay monitor stopped.")


@dataclass
class MonitorBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event
    wakeup: asyncio.Event

    def notify_changed(self) -> None:
        """Ask for an early tick (schedule data changed)."""
        try:
            self.loop.call_soon_threadsafe(self.wakeup.set)
        except RuntimeError:
            logger.debug("Monitor loop already closed; wakeup ignored.")

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal monitor stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_monitor_in_background(
        monitor: LiveDelayMonitor,
        *,
        interval_seconds: float = 60.0,
) -> MonitorBackgroundRunner | None:
    """
    Run the delay monitor in a background thread with its own event loop,
    so a blocking console REPL can run in parallel.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()
        wakeup = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        holder["wakeup"] = wakeup
        ready.set()

        try:
            loop.run_until_complete(
                run_delay_monitor(
                    monitor,
                    interval_seconds=interval_seconds,
                    wakeup=wakeup,
                    stop_event=stop_event,
                )
            )
        finally:
            with contextlib.suppress(RuntimeError):
                loop.close()

    t = threading.Thread(target=runner, name="delay-monitor", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")
    wakeup = holder.get("wakeup")

    if (
        not isinstance(loop, asyncio.AbstractEventLoop)
        or not isinstance(stop_event, asyncio.Event)
        or not isinstance(wakeup, asyncio.Event)
    ):
        logger.error("Delay monitor thread did not initialize properly.")
        return None

    logger.info("Delay monitor started (interval=%ss, threshold=%s min).", interval_seconds, monitor.threshold_minutes)
    return MonitorBackgroundRunner(thread=t, loop=loop, stop_event=stop_event, wakeup=wakeup)
