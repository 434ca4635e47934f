# src/weekly_planner/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..reminders.coordinator import ReminderCoordinator
    from ..reminders.runner import ReminderBackgroundRunner
    from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    task_store: TaskStore
    reminders: ReminderCoordinator

    # None when the coordinator runs on a caller-provided loop (tests).
    runner: ReminderBackgroundRunner | None = None

    # Serializes console commands with any other front-end.
    lock: threading.RLock = field(default_factory=threading.RLock)
