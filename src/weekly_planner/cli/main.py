# src/weekly_planner/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState (which starts the reminder loop in a
background thread), reconciles reminders with the stored tasks, then runs
the console REPL in the main thread (or just waits for a signal).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    try:
        report = state.reminders.reconcile_all()
        for task_id, err in report.invalid.items():
            logger.warning("Task %s has an invalid reminder and was skipped: %s", task_id, err.reason)

        # Use an Event so main can wait without a busy while-loop.
        stop_main = threading.Event()

        def _handle_signal(signum, _frame) -> None:
            logger.info("Signal %s received, shutting down...", signum)
            stop_main.set()
            if settings.console_enabled:
                # Break out of the blocking input() in the REPL.
                raise KeyboardInterrupt

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                signal.signal(sig, _handle_signal)
            except (ValueError, OSError):
                # Some platforms may not support SIGTERM, etc.
                logger.debug("Cannot install handler for %s", sig)

        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running reminders only. Press Ctrl+C to stop.")
            stop_main.wait()

    finally:
        shutdown_state(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
