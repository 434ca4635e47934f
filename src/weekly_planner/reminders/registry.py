# src/weekly_planner/reminders/registry.py

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .trigger import ReminderJob

logger = logging.getLogger(__name__)


class RegistryConflict(RuntimeError):
    """Two live jobs for one task id. Always a bug, never user input."""


class JobRegistry:
    """
    task_id -> ReminderJob, at most one entry per task.

    Thread-safety:
    - every mutation runs under one RLock (callers come from the console
      thread and from the reminder loop thread)
    - cancelling a job only flags it and cancels its handle, so holding the
      lock never waits on a job's sleep
    """

    def __init__(self) -> None:
        self._jobs: dict[str, ReminderJob] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, task_id: object) -> bool:
        with self._lock:
            return task_id in self._jobs

    def put(self, task_id: str, job: ReminderJob) -> ReminderJob | None:
        """Install `job`, cancelling whatever was registered for the task."""
        if job.task_id != task_id:
            raise RegistryConflict(f"job for {job.task_id!r} registered under {task_id!r}")

        with self._lock:
            previous = self._jobs.pop(task_id, None)
            if previous is not None and previous is not job:
                previous.cancel()
                if previous.live:
                    raise RegistryConflict(f"replaced job for {task_id!r} is still live")
                logger.debug("Registry: replaced job task_id=%s", task_id)
            self._jobs[task_id] = job
            return previous

    def get(self, task_id: str) -> ReminderJob | None:
        with self._lock:
            return self._jobs.get(task_id)

    def remove(self, task_id: str) -> ReminderJob | None:
        with self._lock:
            job = self._jobs.pop(task_id, None)
        if job is not None:
            job.cancel()
            logger.debug("Registry: removed job task_id=%s", task_id)
        return job

    def all(self) -> list[ReminderJob]:
        with self._lock:
            return list(self._jobs.values())

    def task_ids(self) -> set[str]:
        with self._lock:
            return set(self._jobs)

    def prune(self) -> list[ReminderJob]:
        """Forget jobs that stopped on their own. Returns the dropped jobs."""
        with self._lock:
            dead = [j for j in self._jobs.values() if not j.live]
            for job in dead:
                del self._jobs[job.task_id]
        return dead

    def drain(self) -> int:
        """Cancel and forget every job. Returns how many were registered."""
        with self._lock:
            jobs = list(self._jobs.values())
            self._jobs.clear()
        for job in jobs:
            job.cancel()
        return len(jobs)
