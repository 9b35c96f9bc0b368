# src/dayroute/planning/generator.py

"""
Daily schedule generator.

Builds a day's task sequence as a random walk over the location graph:
- start at the home location at day_start,
- alternate travel -> work until day_end,
- for today's schedule, carve out a fixed lunch break at the lunch location
  followed by a hop to the post-lunch location.

Randomness comes from an injected random.Random so a seeded generator is
reproducible in tests.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass

from ..core.errors import ValidationError
from ..core.models import NewTask, TaskType
from ..core.ports import Clock, ScheduleRepo
from ..core.timeutil import format_hhmm, parse_date, parse_hhmm
from .locations import HOME_LOCATION_ID, LUNCH_LOCATION_ID, POST_LUNCH_LOCATION_ID

logger = logging.getLogger(__name__)

# Length of the step used to decide that lunch is "about to be straddled".
LUNCH_LOOKAHEAD_MINUTES = 30


@dataclass(slots=True, frozen=True)
class DayTemplate:
    day_start: str = "08:00"
    day_end: str = "19:00"
    lunch_start: str = "13:40"
    lunch_end: str = "14:40"
    home_location_id: str = HOME_LOCATION_ID
    lunch_location_id: str = LUNCH_LOCATION_ID
    post_lunch_location_id: str = POST_LUNCH_LOCATION_ID
    work_min_minutes: int = 30
    work_max_minutes: int = 90
    max_iterations: int = 500

    def validate(self) -> None:
        try:
            start = parse_hhmm(self.day_start)
            end = parse_hhmm(self.day_end)
            lunch_start = parse_hhmm(self.lunch_start)
            lunch_end = parse_hhmm(self.lunch_end)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if start >= end:
            raise ValidationError("day_start must be before day_end")
        if lunch_start > lunch_end:
            raise ValidationError("lunch_start must not be after lunch_end")
        if self.work_min_minutes < 1 or self.work_max_minutes < self.work_min_minutes:
            raise ValidationError("work duration bounds must satisfy 1 <= min <= max")
        if self.max_iterations < 1:
            raise ValidationError("max_iterations must be positive")


class ScheduleGenerator:
    def __init__(
            self,
            store: ScheduleRepo,
            *,
            clock: Clock,
            rng: random.Random | None = None,
            template: DayTemplate | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._rng = rng or random.Random()
        self._template = template or DayTemplate()
        self._template.validate()
        # Serializes the check-then-create in generate() so a date gets one schedule.
        self._lock = threading.Lock()

    @property
    def template(self) -> DayTemplate:
        return self._template

    def generate(self, date: str, operator_name: str) -> str:
        """
        Return the id of the schedule for `date`, creating it on first call.

        Idempotent per date: an existing schedule is returned untouched.
        """
        try:
            date = parse_date(date).isoformat()
        except ValueError as e:
            raise ValidationError(f"invalid date {date!r}, expected YYYY-MM-DD") from e
        if not operator_name or not operator_name.strip():
            raise ValidationError("operator_name is required")

        with self._lock:
            existing = self._store.get_schedule_by_date(date)
            if existing is not None:
                logger.debug("Schedule for %s already exists id=%s", date, existing.id)
                return existing.id

            tasks = self.build_tasks(date)
            schedule = self._store.create_schedule_with_tasks(
                date=date,
                operator_name=operator_name.strip(),
                tasks=tasks,
            )

        logger.info(
            "Generated schedule id=%s date=%s operator=%s tasks=%s",
            schedule.id,
            date,
            schedule.operator_name,
            len(tasks),
        )
        return schedule.id

    def build_tasks(self, date: str) -> list[NewTask]:
        """Run the random walk for `date` without persisting anything."""
        t = self._template
        graph = self._store.graph

        is_today = date == self._clock.today().isoformat()
        lunch_pending = is_today

        clock = parse_hhmm(t.day_start)
        day_end = parse_hhmm(t.day_end)
        lunch_start = parse_hhmm(t.lunch_start)
        position = t.home_location_id

        tasks: list[NewTask] = []
        iterations = 0

        while clock < day_end:
            iterations += 1
            if iterations > t.max_iterations:
                logger.warning(
                    "Generator hit max_iterations=%s for %s; ending day at %s",
                    t.max_iterations,
                    date,
                    format_hhmm(clock),
                )
                break

            if lunch_pending and clock + LUNCH_LOOKAHEAD_MINUTES >= lunch_start:
                clock, position = self._lunch_carve_out(tasks, clock, position)
                lunch_pending = False
                continue

            if not graph.reachable_from(position):
                logger.info(
                    "No destination reachable from %s at %s; ending day early",
                    position,
                    format_hhmm(clock),
                )
                break

            candidates = [loc for loc in graph.list_locations() if loc.id != position]
            dest = self._rng.choice(candidates)
            travel = graph.travel_time(position, dest.id)
            if travel is None:
                logger.debug("No travel time %s -> %s; skipping", position, dest.id)
                continue

            work = self._rng.randint(t.work_min_minutes, t.work_max_minutes)

            if lunch_pending:
                # The step plus the hop to lunch must fit before the break starts.
                hop = 0
                if dest.id != t.lunch_location_id:
                    hop = graph.travel_time(dest.id, t.lunch_location_id) or 0
                if clock + travel + work + hop > lunch_start:
                    clock, position = self._lunch_carve_out(tasks, clock, position)
                    lunch_pending = False
                    continue

            if clock + travel > day_end:
                break

            tasks.append(
                NewTask(
                    type=TaskType.TRAVEL,
                    location_id=dest.id,
                    start_time=format_hhmm(clock),
                    end_time=format_hhmm(clock + travel),
                    description=f"Travel to {dest.name}",
                )
            )
            clock += travel
            position = dest.id

            if clock + work > day_end:
                break

            tasks.append(
                NewTask(
                    type=TaskType.WORK,
                    location_id=dest.id,
                    start_time=format_hhmm(clock),
                    end_time=format_hhmm(clock + work),
                    description=f"Work at {dest.name}",
                )
            )
            clock += work

        return tasks

    def _lunch_carve_out(self, tasks: list[NewTask], clock: int, position: str) -> tuple[int, str]:
        t = self._template
        graph = self._store.graph

        if position != t.lunch_location_id:
            clock, position = self._travel(tasks, clock, position, t.lunch_location_id)

        tasks.append(
            NewTask(
                type=TaskType.BREAK,
                location_id=position,
                start_time=t.lunch_start,
                end_time=t.lunch_end,
                description="Lunch break",
            )
        )
        clock = max(clock, parse_hhmm(t.lunch_end))

        if position != t.post_lunch_location_id and graph.location_by_id(t.post_lunch_location_id):
            clock, position = self._travel(tasks, clock, position, t.post_lunch_location_id)

        return clock, position

    def _travel(self, tasks: list[NewTask], clock: int, position: str, to_id: str) -> tuple[int, str]:
        graph = self._store.graph
        travel = graph.travel_time(position, to_id)
        if travel is None:
            logger.warning("No travel time %s -> %s; staying at %s", position, to_id, position)
            return clock, position

        dest = graph.location_by_id(to_id)
        name = dest.name if dest is not None else to_id
        tasks.append(
            NewTask(
                type=TaskType.TRAVEL,
                location_id=to_id,
                start_time=format_hhmm(clock),
                end_time=format_hhmm(clock + travel),
                description=f"Travel to {name}",
            )
        )
        return clock + travel, to_id
