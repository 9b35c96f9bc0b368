# src/dayroute/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (graph/store/generator/engine/monitor).
"""

from __future__ import annotations

import logging
import random

from ..config import get_settings
from ..core.errors import ValidationError
from ..core.models import DelayPolicy
from ..core.ports import Clock, ScheduleRepo
from ..core.state import AppState
from ..core.timeutil import SystemClock
from ..delays.engine import DelayEngine
from ..monitor.live_monitor import LiveDelayMonitor
from ..planning.generator import DayTemplate, ScheduleGenerator
from ..planning.locations import LocationGraph
from ..service import ItineraryService
from ..storage.memory_store import InMemoryScheduleStore
from ..storage.sqlite_store import SqliteScheduleStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    if settings.storage_backend == "sqlite":
        settings.schedule_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_store(settings, graph: LocationGraph) -> ScheduleRepo:
    backend = str(getattr(settings, "storage_backend", "memory")).lower()
    if backend == "memory":
        return InMemoryScheduleStore(graph)
    if backend == "sqlite":
        return SqliteScheduleStore(settings.schedule_db_path, graph)
    raise ValidationError(f"unknown storage backend {backend!r} (expected memory or sqlite)")


def build_template(settings) -> DayTemplate:
    return DayTemplate(
        day_start=settings.day_start,
        day_end=settings.day_end,
        lunch_start=settings.lunch_start,
        lunch_end=settings.lunch_end,
        home_location_id=settings.home_location_id,
        lunch_location_id=settings.lunch_location_id,
        post_lunch_location_id=settings.post_lunch_location_id,
        work_min_minutes=settings.work_min_minutes,
        work_max_minutes=settings.work_max_minutes,
        max_iterations=settings.generator_max_iterations,
    )


def create_initial_state(
    *,
    settings=None,
    clock: Clock | None = None,
    graph: LocationGraph | None = None,
    rng: random.Random | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings/clock/rng injectable makes the app easy to test and avoids
    hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    clock = clock or SystemClock()
    graph = graph or LocationGraph.default()
    if rng is None:
        rng = random.Random(settings.random_seed)

    try:
        policy = DelayPolicy(settings.delay_policy)
    except ValueError as e:
        raise ValidationError(f"unknown delay policy {settings.delay_policy!r}") from e

    store = build_store(settings, graph)
    generator = ScheduleGenerator(store, clock=clock, rng=rng, template=build_template(settings))
    engine = DelayEngine(store, clock=clock, policy=policy)
    service = ItineraryService(
        store,
        generator,
        engine,
        clock=clock,
        operator_name=settings.operator_name,
        admin_password=settings.admin_password,
    )
    monitor = LiveDelayMonitor(
        service.todays_schedule,
        engine,
        threshold_minutes=settings.auto_delay_threshold_minutes,
        clock=clock,
    )

    if settings.admin_password == "admin":
        logger.warning("Using the default admin password; set DAYROUTE_ADMIN_PASSWORD.")

    logger.info(
        "State ready storage=%s policy=%s threshold=%s min",
        settings.storage_backend,
        policy.value,
        settings.auto_delay_threshold_minutes,
    )
    return AppState(
        settings=settings,
        clock=clock,
        store=store,
        generator=generator,
        engine=engine,
        service=service,
        monitor=monitor,
    )
