# tests/test_runner.py

from __future__ import annotations

import threading
from types import SimpleNamespace

from weekly_planner.cli.bootstrap import create_initial_state, shutdown_state
from weekly_planner.tasks import task_api


class _EventSink:
    def __init__(self) -> None:
        self.fired = threading.Event()
        self.labels: list[str] = []

    def show(self, label: str, detail: str) -> None:
        self.labels.append(label)
        self.fired.set()


def test_background_loop_fires_and_shuts_down(settings: SimpleNamespace) -> None:
    sink = _EventSink()
    state = create_initial_state(settings=settings, sink=sink)
    assert state.runner is not None
    assert state.runner.is_alive()

    try:
        # Called from this (non-loop) thread, like the console does.
        result = task_api.create_task(state, label="tick", schedule="* * * * * *")
        assert result.reminder is not None

        assert sink.fired.wait(timeout=5.0)
        assert sink.labels[0] == "Reminder: tick"
    finally:
        shutdown_state(state, join_timeout=5.0)

    assert not state.runner.is_alive()
    assert len(state.reminders.registry) == 0


def test_startup_reconciliation_rearms_persisted_reminders(settings: SimpleNamespace) -> None:
    first = create_initial_state(settings=settings, sink=_EventSink())
    try:
        task_api.create_task(first, label="kept", schedule="0 9 * * 1")
        task_api.create_task(first, label="plain")
    finally:
        shutdown_state(first, join_timeout=5.0)

    second = create_initial_state(settings=settings, sink=_EventSink())
    try:
        report = second.reminders.reconcile_all()
        assert len(report.scheduled) == 1
        assert len(report.unscheduled) == 1
        (job,) = second.reminders.active_jobs()
        assert job.label == "kept"
    finally:
        shutdown_state(second, join_timeout=5.0)
