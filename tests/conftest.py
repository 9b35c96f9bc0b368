# tests/conftest.py

from __future__ import annotations

import random
from pathlib import Path
from types import SimpleNamespace

import pytest

from dayroute.cli.bootstrap import create_initial_state
from dayroute.core.state import AppState
from dayroute.planning.locations import LocationGraph
from dayroute.storage.memory_store import InMemoryScheduleStore
from dayroute.storage.sqlite_store import SqliteScheduleStore

from .fakes import FixedClock, at


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="dayroute-test",
        log_level="DEBUG",
        storage_backend="memory",
        data_dir=tmp_path,
        schedule_db_path=tmp_path / "schedules.sqlite3",
        operator_name="Tester",
        admin_password="s3cret",
        delay_policy="mark_only",
        auto_delay_threshold_minutes=5,
        monitor_interval_seconds=0.01,
        day_start="08:00",
        day_end="19:00",
        lunch_start="13:40",
        lunch_end="14:40",
        home_location_id="ertsfeld",
        lunch_location_id="lugano",
        post_lunch_location_id="bellinzona",
        work_min_minutes=30,
        work_max_minutes=90,
        generator_max_iterations=500,
        random_seed=7,
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(at("14:30"))


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FixedClock) -> AppState:
    """AppState wired with the real in-memory store, a fixed clock and a seeded RNG."""
    return create_initial_state(settings=settings, clock=clock, rng=random.Random(7))


@pytest.fixture()
def graph() -> LocationGraph:
    return LocationGraph.default()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path: Path, graph: LocationGraph):
    """
    Both store backends. They share one contract, so every store test runs
    against each of them.
    """
    if request.param == "memory":
        return InMemoryScheduleStore(graph)
    return SqliteScheduleStore(tmp_path / "schedules.sqlite3", graph)
