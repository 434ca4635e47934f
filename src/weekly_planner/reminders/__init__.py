"""
Reminder subsystem.

Components:
- expression.py: cron expression parsing + next occurrence math (croniter)
- registry.py: task_id -> job map, at most one live job per task
- trigger.py: per-job asyncio loop (wait, notify, re-arm)
- coordinator.py: task events + startup reconciliation
- sinks.py: where fired reminders go (console, messenger)
- runner.py: background thread hosting the reminder event loop
"""

from .coordinator import ReconcileReport, ReminderCoordinator
from .expression import InvalidExpressionError, ParsedSchedule, next_after, next_n, parse_schedule
from .registry import JobRegistry, RegistryConflict
from .sinks import SinkError
from .trigger import JobState, ReminderJob, TriggerEngine

__all__ = [
    "InvalidExpressionError",
    "JobRegistry",
    "JobState",
    "ParsedSchedule",
    "ReconcileReport",
    "RegistryConflict",
    "ReminderCoordinator",
    "ReminderJob",
    "SinkError",
    "TriggerEngine",
    "next_after",
    "next_n",
    "parse_schedule",
]
