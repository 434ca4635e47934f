# src/weekly_planner/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Weekday(StrEnum):
    """Planner column a task lives in."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_db(cls, raw: str | None) -> Weekday:
        if not raw:
            return cls.MONDAY
        try:
            return cls(raw.strip().lower())
        except ValueError:
            return cls.MONDAY

    @classmethod
    def parse(cls, raw: str) -> Weekday | None:
        """Accept full names and 3-letter prefixes ("mon", "Tue")."""
        key = (raw or "").strip().lower()
        if not key:
            return None
        for day in cls:
            if day.value == key or (len(key) >= 3 and day.value.startswith(key)):
                return day
        return None

    @property
    def position(self) -> int:
        return list(Weekday).index(self)


@dataclass(slots=True)
class Task:
    id: str
    label: str
    detail: str

    day: Weekday
    time: str
    ord: int
    done: bool
    pinned: bool

    # Cron expression for a recurring reminder (None -> no reminder).
    schedule: str | None

    created_at: float = 0.0
    updated_at: float = 0.0


@dataclass(slots=True)
class Subtask:
    """Checklist item under a task. Subtasks never carry reminders."""

    id: str
    task_id: str
    label: str
    done: bool
    ord: int
    created_at: float = 0.0
