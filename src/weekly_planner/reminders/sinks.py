# src/weekly_planner/reminders/sinks.py

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import TextIO

from ..core.ports import OutboundMessenger

logger = logging.getLogger(__name__)


class SinkError(RuntimeError):
    """A reminder could not be delivered. The job stays armed."""


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleNotificationSink:
    """Prints fired reminders into the interactive console."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def show(self, label: str, detail: str) -> None:
        stream = self._stream or sys.stdout
        line = f"[{_ts_local()}] [REMINDER] {label}"
        if detail:
            line += f" - {detail}"
        try:
            print(line, file=stream, flush=True)
        except (OSError, ValueError) as e:
            # ValueError: write to a closed stream during shutdown.
            raise SinkError(f"console write failed: {e}") from e


class MessengerNotificationSink:
    """
    Delivers reminders through an OutboundMessenger (e.g. Matrix).

    Formatting lives here; routing (which room) is the messenger's job.
    """

    def __init__(self, messenger: OutboundMessenger, *, room_id: str | None = None) -> None:
        self._messenger = messenger
        self._room_id = room_id

    @staticmethod
    def render(label: str, detail: str) -> str:
        label = (label or "").strip()
        detail = (detail or "").strip()
        return f"{label}\n{detail}" if detail else label

    async def show(self, label: str, detail: str) -> None:
        text = self.render(label, detail)
        if not text:
            logger.debug("Empty reminder text -> skipped")
            return
        try:
            await self._messenger.send_text(text=text, room_id=self._room_id)
        except SinkError:
            raise
        except Exception as e:
            raise SinkError(f"messenger send failed: {e!r}") from e
