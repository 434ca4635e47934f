# src/weekly_planner/reminders/clock.py

from __future__ import annotations

import asyncio
from datetime import datetime


class SystemClock:
    """
    Process-local wall clock.

    sleep_until() waits in bounded slices and re-reads the clock after each
    one, so a machine that was suspended past the target wakes up promptly
    instead of finishing a stale monotonic sleep. Cancelling the awaiting task
    interrupts the current slice immediately.
    """

    def __init__(self, max_sleep_seconds: float = 60.0) -> None:
        self.max_sleep_seconds = max(0.05, float(max_sleep_seconds))

    def now(self) -> datetime:
        return datetime.now()

    async def sleep_until(self, when: datetime) -> None:
        while True:
            remaining = (when - self.now()).total_seconds()
            if remaining <= 0:
                return
            await asyncio.sleep(min(remaining, self.max_sleep_seconds))
