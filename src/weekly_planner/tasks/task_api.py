# src/weekly_planner/tasks/task_api.py

from __future__ import annotations

"""
Planner CRUD glue.

Every task write goes through here so the reminder coordinator sees it:
store first, then registry. With settings.reject_invalid_schedule on, a bad
cron expression is rejected before anything is written; otherwise the task
is saved without a reminder and the error is handed back in SaveResult.
"""

import logging
from dataclasses import dataclass

from ..core.state import AppState
from ..reminders.expression import InvalidExpressionError, parse_schedule
from ..reminders.trigger import ReminderJob
from .task_models import Subtask, Task, Weekday

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SaveResult:
    task: Task
    reminder: ReminderJob | None = None
    schedule_error: InvalidExpressionError | None = None


def _reject_invalid(state: AppState) -> bool:
    return bool(getattr(state.settings, "reject_invalid_schedule", True))


def _precheck(state: AppState, schedule: str | None) -> None:
    if not schedule or not schedule.strip() or not _reject_invalid(state):
        return
    parsed = parse_schedule(schedule)
    if isinstance(parsed, InvalidExpressionError):
        raise parsed


def create_task(
    state: AppState,
    *,
    label: str,
    detail: str = "",
    day: Weekday | None = None,
    time_text: str = "",
    schedule: str | None = None,
    pinned: bool = False,
) -> SaveResult:
    _precheck(state, schedule)

    task = state.task_store.add_task(
        label=label,
        detail=detail,
        day=day,
        time_text=time_text,
        schedule=schedule,
        pinned=pinned,
    )

    try:
        job = state.reminders.on_task_created(task)
    except InvalidExpressionError as e:
        logger.warning("Task %s saved without reminder: %s", task.id, e.reason)
        return SaveResult(task=task, schedule_error=e)

    return SaveResult(task=task, reminder=job)


def update_task(
    state: AppState,
    task_id: str,
    *,
    label: str | None = None,
    detail: str | None = None,
    day: Weekday | None = None,
    time_text: str | None = None,
    schedule: str | None = None,
    clear_schedule: bool = False,
    pinned: bool | None = None,
) -> SaveResult | None:
    """Returns None if the task does not exist."""
    if not clear_schedule:
        _precheck(state, schedule)

    task = state.task_store.update_task(
        task_id,
        label=label,
        detail=detail,
        day=day,
        time_text=time_text,
        schedule=schedule,
        clear_schedule=clear_schedule,
        pinned=pinned,
    )
    if task is None:
        # Nothing stored under this id, so no reminder may survive either.
        state.reminders.on_task_deleted(task_id)
        return None

    try:
        job = state.reminders.on_task_updated(task)
    except InvalidExpressionError as e:
        logger.warning("Task %s updated without reminder: %s", task.id, e.reason)
        return SaveResult(task=task, schedule_error=e)

    return SaveResult(task=task, reminder=job)


def toggle_done(state: AppState, task_id: str) -> Task | None:
    """Flip the done flag. Reminders keep firing: done-ness is a UI concern."""
    task = state.task_store.get_task(task_id)
    if task is None:
        return None
    return state.task_store.set_done(task_id, not task.done)


def delete_task(state: AppState, task_id: str) -> bool:
    deleted = state.task_store.delete_task(task_id)
    # Cancel even if the row was already gone; removal is idempotent.
    state.reminders.on_task_deleted(task_id)
    return deleted


# ---- subtasks (checklist items; no reminders of their own) ----


def add_subtask(state: AppState, task_id: str, *, label: str) -> Subtask | None:
    """Returns None if the parent task does not exist."""
    return state.task_store.add_subtask(task_id, label=label)


def rename_subtask(state: AppState, subtask_id: str, *, label: str) -> Subtask | None:
    return state.task_store.update_subtask(subtask_id, label=label)


def toggle_subtask(state: AppState, subtask_id: str) -> Subtask | None:
    sub = state.task_store.get_subtask(subtask_id)
    if sub is None:
        return None
    return state.task_store.update_subtask(subtask_id, done=not sub.done)


def delete_subtask(state: AppState, subtask_id: str) -> bool:
    return state.task_store.delete_subtask(subtask_id)
