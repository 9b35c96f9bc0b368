# src/dayroute/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the live delay monitor in a background thread,
- the console REPL in the main thread.
"""

from __future__ import annotations

import logging
import signal

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..logging_setup import setup_logging
from ..monitor.live_monitor import start_monitor_in_background
from .console import run_console_loop

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    # Generate today's schedule up front so the monitor has something to watch.
    state.service.get_or_create_schedule()

    runner = start_monitor_in_background(
        state.monitor,
        interval_seconds=settings.monitor_interval_seconds,
    )
    state.monitor_runner = runner
    if runner is not None:
        state.service.add_change_listener(runner.notify_changed)

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        raise KeyboardInterrupt

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError):
        # Not on the main thread or unsupported on this platform.
        pass

    try:
        run_console_loop(state)
    finally:
        if runner is not None:
            runner.stop()
            runner.join(timeout=10.0)
        state.store.close()
        logger.info("Bye.")


if __name__ == "__main__":
    main()
