# src/weekly_planner/reminders/runner.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

AsyncCloser = Callable[[], Awaitable[None]]


async def _serve(stop_event: asyncio.Event, closers: list[AsyncCloser]) -> None:
    """
    Reminder loop body: idle until stop, then clean up.

    Jobs are spawned onto this loop by the TriggerEngine; by the time we get
    here on shutdown the registry has normally been drained already, and
    anything still pending is cancelled.
    """
    await stop_event.wait()

    for closer in closers:
        try:
            await closer()
        except Exception:
            logger.exception("Reminder loop closer failed.")

    current = asyncio.current_task()
    pending = [t for t in asyncio.all_tasks() if t is not current and not t.done()]
    for t in pending:
        t.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Reminder loop: cancelled %d leftover task(s)", len(pending))


@dataclass
class ReminderBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event
    closers: list[AsyncCloser] = field(default_factory=list)

    def add_closer(self, closer: AsyncCloser) -> None:
        """Register an async cleanup hook run inside the loop on stop()."""
        self.closers.append(closer)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal reminder loop stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self.thread.is_alive()


def start_reminder_loop_in_background() -> ReminderBackgroundRunner:
    """
    Start the reminder event loop in a background thread.

    Why a thread:
    - the console REPL is blocking (input()),
    - reminder jobs are asyncio tasks and want their own event loop.
    """
    ready = threading.Event()
    holder: dict[str, object] = {}
    closers: list[AsyncCloser] = []

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_serve(stop_event, closers))
        except Exception:
            logger.exception("Reminder loop crashed.")
        finally:
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            with contextlib.suppress(Exception):
                loop.close()
            logger.info("Reminder loop stopped.")

    t = threading.Thread(target=runner, name="reminders", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        raise RuntimeError("Reminder thread did not initialize properly.")

    logger.info("Reminder background thread started.")
    return ReminderBackgroundRunner(thread=t, loop=loop, stop_event=stop_event, closers=closers)
