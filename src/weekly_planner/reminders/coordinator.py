# src/weekly_planner/reminders/coordinator.py

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..core.ports import TaskRepo
from .expression import InvalidExpressionError, ParsedSchedule, next_n, parse_schedule
from .registry import JobRegistry
from .trigger import ReminderJob, TriggerEngine

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconcileReport:
    """Outcome of reconcile_all(), one bucket per task."""

    scheduled: list[str] = field(default_factory=list)
    unscheduled: list[str] = field(default_factory=list)
    invalid: dict[str, InvalidExpressionError] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.scheduled) + len(self.unscheduled) + len(self.invalid)


def _schedule_text(task: Any) -> str | None:
    raw = getattr(task, "schedule", None)
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


class ReminderCoordinator:
    """
    Keeps the job registry in step with the task store.

    This is the only reminder component that knows about tasks:
    - create/update/delete events from the planner glue
    - reconcile_all() once at startup
    - preview_occurrences() for the /crontest command

    All operations run under one lock, so events for the same task apply in
    arrival order. Firing never takes this lock.
    """

    def __init__(
        self,
        task_store: TaskRepo,
        engine: TriggerEngine,
        registry: JobRegistry | None = None,
    ) -> None:
        self._store = task_store
        self._engine = engine
        self.registry = registry if registry is not None else JobRegistry()
        self._lock = threading.RLock()

    # ---- task events ----

    def on_task_created(self, task: Any) -> ReminderJob | None:
        """
        Arm a reminder for `task` if it carries a schedule.

        Raises InvalidExpressionError for a bad schedule; the registry is not
        touched in that case.
        """
        with self._lock:
            return self._schedule(task)

    def on_task_updated(self, task: Any) -> ReminderJob | None:
        with self._lock:
            self.registry.remove(str(task.id))
            return self._schedule(task)

    def on_task_deleted(self, task_id: str) -> bool:
        with self._lock:
            removed = self.registry.remove(str(task_id))
        if removed is not None:
            logger.info("Reminder cancelled task_id=%s", task_id)
        return removed is not None

    def _schedule(self, task: Any) -> ReminderJob | None:
        expr = _schedule_text(task)
        if expr is None:
            return None

        parsed = parse_schedule(expr)
        if isinstance(parsed, InvalidExpressionError):
            raise parsed

        return self._arm(task, parsed)

    def _arm(self, task: Any, parsed: ParsedSchedule) -> ReminderJob:
        task_id = str(task.id)
        job = self._engine.arm(
            task_id,
            parsed,
            label=str(getattr(task, "label", "") or ""),
            detail=getattr(task, "detail", None),
        )
        self.registry.put(task_id, job)
        return job

    # ---- startup ----

    def reconcile_all(self) -> ReconcileReport:
        """
        Rebuild the registry from the task store.

        Each task is handled on its own: an invalid schedule is logged and
        reported, and reconciliation moves on to the next task.
        """
        report = ReconcileReport()

        with self._lock:
            dropped = self.registry.drain()
            if dropped:
                logger.info("Reconcile: dropped %d stale job(s)", dropped)

            try:
                tasks = list(self._store.list_all())
            except Exception:
                logger.exception("Reconcile: list_all failed; no reminders scheduled")
                return report

            for task in tasks:
                task_id = str(getattr(task, "id", ""))
                expr = _schedule_text(task)
                if not task_id:
                    logger.warning("Reconcile: task without id skipped: %r", task)
                    continue
                if expr is None:
                    report.unscheduled.append(task_id)
                    continue

                parsed = parse_schedule(expr)
                if isinstance(parsed, InvalidExpressionError):
                    logger.warning("Reconcile: task_id=%s skipped: %s", task_id, parsed.reason)
                    report.invalid[task_id] = parsed
                    continue

                try:
                    self._arm(task, parsed)
                except Exception:
                    logger.exception("Reconcile: arming failed task_id=%s", task_id)
                    continue
                report.scheduled.append(task_id)

        logger.info(
            "Reconcile done: tasks=%d scheduled=%d invalid=%d",
            report.total,
            len(report.scheduled),
            len(report.invalid),
        )
        return report

    # ---- diagnostics / shutdown ----

    def preview_occurrences(
        self, expression: str, count: int = 5
    ) -> list[datetime] | InvalidExpressionError:
        parsed = parse_schedule(expression)
        if isinstance(parsed, InvalidExpressionError):
            return parsed
        return next_n(parsed, self._engine.clock.now(), count)

    def active_jobs(self) -> list[ReminderJob]:
        """Live jobs by next fire time. Jobs whose loop crashed are dropped here."""
        with self._lock:
            for job in self.registry.prune():
                logger.warning("Reminder task_id=%s stopped unexpectedly and was removed", job.task_id)
            jobs = self.registry.all()
        return sorted(jobs, key=lambda j: (j.next_fire_time, j.task_id))

    def shutdown(self) -> int:
        with self._lock:
            n = self.registry.drain()
        logger.info("Reminders stopped: cancelled %d job(s)", n)
        return n
