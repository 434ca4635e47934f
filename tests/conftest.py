# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest

from weekly_planner.core.state import AppState
from weekly_planner.reminders.coordinator import ReminderCoordinator
from weekly_planner.reminders.trigger import TriggerEngine
from weekly_planner.tasks.task_store import TaskStore

from .fakes import START, FakeClock, RecordingSink


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment / .env.
    """
    return SimpleNamespace(
        app_name="planner-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "planner.sqlite3",
        matrix_enabled=False,
        reminder_title_prefix="Reminder: ",
        reject_invalid_schedule=True,
        preview_count=3,
        max_sleep_seconds=0.2,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def state(settings: SimpleNamespace, clock: FakeClock, sink: RecordingSink) -> Iterator[AppState]:
    """
    AppState wired with a fake clock and a recording sink.

    The engine gets no explicit loop: it binds to the test's event loop on
    the first arm(). We keep the real SQLite TaskStore here because the
    store/reminder hand-off is part of what we want to test.
    """
    task_store = TaskStore(settings.tasks_db_path)
    engine = TriggerEngine(sink, clock=clock, title_prefix=settings.reminder_title_prefix)
    st = AppState(
        settings=settings,
        task_store=task_store,
        reminders=ReminderCoordinator(task_store, engine),
    )
    yield st
    st.reminders.shutdown()
