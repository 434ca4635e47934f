# src/weekly_planner/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the reminder core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/delivery swappable and makes testing easier
(fake clock, recording sink, in-memory repo).
"""

from datetime import datetime
from typing import Any, Awaitable, Protocol


class TaskReference(Protocol):
    """What the scheduler reads from a task. It never writes these back."""

    id: str
    label: str
    detail: str | None
    schedule: str | None


class TaskRepo(Protocol):
    # Reconciliation API (the scheduler's only read path)
    def list_all(self) -> list[Any]: ...

    # Planner CRUD (used by tasks.task_api, never by the scheduler)
    def get_task(self, task_id: str) -> Any | None: ...

    def add_task(
            self,
            *,
            label: str,
            detail: str = "",
            day: Any = None,
            time_text: str = "",
            schedule: str | None = None,
            ord: int | None = None,
            pinned: bool = False,
    ) -> Any: ...

    def update_task(
            self,
            task_id: str,
            *,
            label: str | None = None,
            detail: str | None = None,
            day: Any = None,
            time_text: str | None = None,
            schedule: str | None = None,
            clear_schedule: bool = False,
            ord: int | None = None,
            pinned: bool | None = None,
    ) -> Any | None: ...

    def set_done(self, task_id: str, done: bool) -> Any | None: ...
    def delete_task(self, task_id: str) -> bool: ...

    # Subtasks (checklist items, never scheduled)
    def add_subtask(self, task_id: str, *, label: str, ord: int | None = None) -> Any | None: ...
    def get_subtask(self, subtask_id: str) -> Any | None: ...
    def list_subtasks(self, task_id: str) -> list[Any]: ...

    def update_subtask(
            self,
            subtask_id: str,
            *,
            label: str | None = None,
            done: bool | None = None,
            ord: int | None = None,
    ) -> Any | None: ...

    def delete_subtask(self, subtask_id: str) -> bool: ...


class NotificationSink(Protocol):
    """
    Displays a fired reminder.

    May return None (sync sinks) or an awaitable (async sinks).
    Failures should be raised as SinkError; the trigger loop logs them.
    """

    def show(self, label: str, detail: str) -> Awaitable[None] | None: ...


class OutboundMessenger(Protocol):
    """
    Connector-side port: how a sink can send text outward.

    The connector decides how to interpret room_id (can be None);
    e.g. the Matrix messenger falls back to its configured room.
    """

    def send_text(self, *, text: str, room_id: str | None = None) -> Awaitable[None]: ...


class Clock(Protocol):
    """Local wall clock + a cancellable wait."""

    def now(self) -> datetime: ...
    def sleep_until(self, when: datetime) -> Awaitable[None]: ...
