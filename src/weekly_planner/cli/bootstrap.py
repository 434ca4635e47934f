# src/weekly_planner/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState
  (task store, reminder loop, notification sink, coordinator),
- tears the reminder side down again on shutdown.
"""

from __future__ import annotations

import asyncio
import logging

from ..config import get_settings
from ..connectors.matrix_client import MatrixMessenger
from ..core.ports import Clock, NotificationSink
from ..core.state import AppState
from ..reminders.clock import SystemClock
from ..reminders.coordinator import ReminderCoordinator
from ..reminders.runner import ReminderBackgroundRunner, start_reminder_loop_in_background
from ..reminders.sinks import ConsoleNotificationSink, MessengerNotificationSink
from ..reminders.trigger import TriggerEngine
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def _build_sink(settings, runner: ReminderBackgroundRunner | None) -> NotificationSink:
    if not getattr(settings, "matrix_enabled", False):
        return ConsoleNotificationSink()

    messenger = MatrixMessenger(settings)
    if not messenger.configured:
        logger.error(
            "Matrix reminders enabled but not configured "
            "(homeserver/user_id/room_id); falling back to console."
        )
        return ConsoleNotificationSink()

    if runner is not None:
        runner.add_closer(messenger.close)
    logger.info("Reminders will be delivered to Matrix room %s", settings.matrix_room_id)
    return MessengerNotificationSink(messenger)


def create_initial_state(
    *,
    settings=None,
    loop: asyncio.AbstractEventLoop | None = None,
    clock: Clock | None = None,
    sink: NotificationSink | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Without `loop` a background reminder thread is started and owned by the
    state (state.runner). Passing a loop (tests) runs reminders there instead.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    runner: ReminderBackgroundRunner | None = None
    if loop is None:
        runner = start_reminder_loop_in_background()
        loop = runner.loop

    if sink is None:
        sink = _build_sink(settings, runner)

    if clock is None:
        clock = SystemClock(max_sleep_seconds=float(getattr(settings, "max_sleep_seconds", 60.0)))

    task_store = TaskStore(settings.tasks_db_path)
    engine = TriggerEngine(
        sink,
        clock=clock,
        loop=loop,
        title_prefix=str(getattr(settings, "reminder_title_prefix", "") or ""),
    )

    return AppState(
        settings=settings,
        task_store=task_store,
        reminders=ReminderCoordinator(task_store, engine),
        runner=runner,
    )


def shutdown_state(state: AppState, *, join_timeout: float = 10.0) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.reminders.shutdown()
    except Exception:
        logger.exception("Failed to cancel reminders.")

    runner = state.runner
    if runner is not None:
        runner.stop()
        runner.join(timeout=join_timeout)
        if runner.is_alive():
            logger.warning("Reminder thread did not stop within %.1fs", join_timeout)

    # TaskStore uses short-lived sqlite connections per call; close() is a no-op hook.
    try:
        state.task_store.close()
    except Exception:
        logger.debug("TaskStore close failed.", exc_info=True)
