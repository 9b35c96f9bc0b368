# src/dayroute/core/state.py

from __future__ import annotations

"""
Application state container.

Constructed once by the composition root (cli/bootstrap.py) and passed by
reference to connectors and commands. Holds the wired store, generator,
delay engine, service and live monitor.
"""

from dataclasses import dataclass
from typing import Any

from ..delays.engine import DelayEngine
from ..monitor.live_monitor import LiveDelayMonitor, MonitorBackgroundRunner
from ..planning.generator import ScheduleGenerator
from ..service import ItineraryService
from .ports import Clock, ScheduleRepo


@dataclass
class AppState:
    # Kept loosely typed so tests can pass a SimpleNamespace.
    settings: Any

    clock: Clock
    store: ScheduleRepo
    generator: ScheduleGenerator
    engine: DelayEngine
    service: ItineraryService
    monitor: LiveDelayMonitor

    monitor_runner: MonitorBackgroundRunner | None = None
