# src/weekly_planner/reminders/trigger.py

from __future__ import annotations

"""
Trigger engine.

One asyncio task per reminder job:
- wait until next_fire_time (via the Clock port),
- show the reminder through the notification sink,
- recompute next_fire_time from *now* and wait again.

Recomputing from now means a process that was paused past several
occurrences fires once on wake-up and then continues with the next future
occurrence; missed occurrences are not replayed.

To stop a job, call job.cancel() (idempotent, safe from any thread).
"""

import asyncio
import concurrent.futures
import contextlib
import inspect
import logging
import threading
from collections.abc import Coroutine
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from ..core.ports import Clock, NotificationSink
from .clock import SystemClock
from .expression import ParsedSchedule, next_after
from .sinks import SinkError

logger = logging.getLogger(__name__)

JobHandle = asyncio.Future[Any] | concurrent.futures.Future[Any]


class JobState(StrEnum):
    ARMED = "armed"
    FIRED = "fired"
    CANCELLED = "cancelled"


@dataclass(slots=True, eq=False)
class ReminderJob:
    """
    Runtime trigger bound to one task and one schedule.

    Owned by the TriggerEngine that armed it; the registry only keeps it by
    task_id. State transitions go through a small lock because cancel() is
    called from the console thread while the loop thread advances the job.
    """

    task_id: str
    schedule: ParsedSchedule
    label: str
    detail: str
    next_fire_time: datetime
    state: JobState = JobState.ARMED
    fire_count: int = 0
    last_fired_at: datetime | None = None

    _handle: JobHandle | None = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def expression(self) -> str:
        return self.schedule.expression

    @property
    def live(self) -> bool:
        return self.state is not JobState.CANCELLED

    def attach(self, handle: JobHandle) -> None:
        with self._lock:
            self._handle = handle
            cancelled = self.state is JobState.CANCELLED
        if cancelled:
            _cancel_handle(handle)

    def cancel(self) -> bool:
        """Stop the job. Returns False if it was already cancelled."""
        with self._lock:
            if self.state is JobState.CANCELLED:
                return False
            self.state = JobState.CANCELLED
            handle = self._handle
        if handle is not None:
            _cancel_handle(handle)
        return True

    def _advance(self, state: JobState, next_fire_time: datetime | None = None) -> bool:
        with self._lock:
            if self.state is JobState.CANCELLED:
                return False
            self.state = state
            if next_fire_time is not None:
                self.next_fire_time = next_fire_time
            return True

    def _mark_cancelled(self) -> None:
        with self._lock:
            self.state = JobState.CANCELLED


def _cancel_handle(handle: JobHandle) -> None:
    if isinstance(handle, concurrent.futures.Future):
        # Chained by run_coroutine_threadsafe: cancels the loop task for us.
        handle.cancel()
        return

    loop = handle.get_loop()
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None

    if running is loop:
        handle.cancel()
        return

    # Loop already closed -> nothing left to cancel.
    with contextlib.suppress(RuntimeError):
        loop.call_soon_threadsafe(handle.cancel)


class TriggerEngine:
    """
    Arms reminder jobs on a single event loop.

    arm() may be called from the loop thread (tests, reconciliation inside
    the loop) or from any other thread (console commands); it never blocks
    on a job's wait.
    """

    def __init__(
        self,
        sink: NotificationSink,
        *,
        clock: Clock | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        title_prefix: str = "",
    ) -> None:
        self._sink = sink
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._loop = loop
        self._title_prefix = title_prefix

    @property
    def clock(self) -> Clock:
        return self._clock

    def arm(
        self,
        task_id: str,
        schedule: ParsedSchedule,
        *,
        label: str,
        detail: str | None = None,
    ) -> ReminderJob:
        job = ReminderJob(
            task_id=task_id,
            schedule=schedule,
            label=label,
            detail=detail or "",
            next_fire_time=next_after(schedule, self._clock.now()),
        )
        job.attach(self._spawn(self._run(job), name=f"reminder:{task_id}"))
        logger.info(
            "Reminder armed task_id=%s schedule=%r next=%s",
            task_id,
            schedule.expression,
            job.next_fire_time.isoformat(sep=" ", timespec="seconds"),
        )
        return job

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> JobHandle:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        loop = self._loop
        if loop is None:
            if running is None:
                coro.close()
                raise RuntimeError("TriggerEngine has no event loop to run reminders on")
            loop = self._loop = running

        if running is loop:
            return loop.create_task(coro, name=name)

        try:
            return asyncio.run_coroutine_threadsafe(coro, loop)
        except RuntimeError:
            coro.close()
            raise

    async def _run(self, job: ReminderJob) -> None:
        try:
            while job.live:
                await self._clock.sleep_until(job.next_fire_time)

                if not job._advance(JobState.FIRED):
                    break

                await self._fire(job)

                nxt = next_after(job.schedule, self._clock.now())
                if not job._advance(JobState.ARMED, nxt):
                    break
                logger.debug("Reminder re-armed task_id=%s next=%s", job.task_id, nxt.isoformat(sep=" "))

        except asyncio.CancelledError:
            job._mark_cancelled()
            raise
        except Exception:
            # Only the expression math can get here; the sink is guarded in _fire().
            logger.exception("Reminder loop crashed task_id=%s", job.task_id)
            job._mark_cancelled()
        finally:
            logger.debug("Reminder loop finished task_id=%s fired=%d", job.task_id, job.fire_count)

    async def _fire(self, job: ReminderJob) -> None:
        label = f"{self._title_prefix}{job.label}"
        job.fire_count += 1
        job.last_fired_at = self._clock.now()

        try:
            result = self._sink.show(label, job.detail)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except SinkError as e:
            logger.warning("Reminder delivery failed task_id=%s: %s", job.task_id, e)
        except Exception:
            logger.exception("Notification sink crashed task_id=%s", job.task_id)
        else:
            logger.info("Reminder fired task_id=%s label=%r", job.task_id, job.label)
