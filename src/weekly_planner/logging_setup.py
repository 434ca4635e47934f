# src/weekly_planner/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

_TRIGGER_LOGGER = "weekly_planner.reminders.trigger"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the REPL readable: planner logs pass, except per-firing trigger
    chatter below WARNING (the console sink prints the reminder itself).
    Everything else (nio, aiohttp, py.warnings) only from ERROR up.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == _TRIGGER_LOGGER:
            return record.levelno >= logging.WARNING
        if record.name.startswith("weekly_planner."):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/planner",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Configure logging with:
    - Console handler: readable + filtered for interactive use
    - File handler: full logs for debugging

    Call this ONCE, very early (before first logger.info).
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "planner.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    # Remove any pre-existing handlers to avoid duplicates.
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Console (interactive)
    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    # File (everything)
    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
