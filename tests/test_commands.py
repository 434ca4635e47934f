# tests/test_commands.py

from __future__ import annotations

import pytest

from weekly_planner.cli.commands import CommandRegistry, registry
from weekly_planner.core.state import AppState
from weekly_planner.tasks.task_models import Weekday

from .fakes import settle


def test_command_registry_routes_2_and_3_params(state: AppState) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x y") == "h2:x,y"
    assert reg.handle(state, "/AA") == "h2:"
    assert reg.handle(state, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_help_lists_reminder_commands(state: AppState) -> None:
    reply = registry.handle(state, "/help") or ""
    for name in ("/add", "/remind", "/jobs", "/crontest"):
        assert name in reply


def test_crontest_previews_next_runs(state: AppState) -> None:
    reply = registry.handle(state, "/crontest */5 * * * *") or ""

    # preview_count=3 in the test settings
    assert reply.splitlines() == [
        "Next 3 run(s) of '*/5 * * * *':",
        "  Mon 2024-01-01 10:05:00",
        "  Mon 2024-01-01 10:10:00",
        "  Mon 2024-01-01 10:15:00",
    ]


def test_crontest_reports_invalid_expression(state: AppState) -> None:
    reply = registry.handle(state, "/crontest bogus") or ""
    assert reply.startswith("Invalid:")
    assert len(state.reminders.registry) == 0


@pytest.mark.asyncio
async def test_add_then_jobs_then_delete(state: AppState) -> None:
    reply = registry.handle(state, "/add mon Water plants | balcony | */5 * * * *") or ""
    await settle()

    assert reply.startswith("Added ")
    assert "next reminder: Mon 2024-01-01 10:05:00" in reply
    (task,) = state.task_store.list_all()
    assert task.label == "Water plants"
    assert task.detail == "balcony"
    assert task.schedule == "*/5 * * * *"

    jobs = registry.handle(state, "/jobs") or ""
    assert task.id in jobs
    assert "[*/5 * * * *]" in jobs

    assert registry.handle(state, f"/del {task.id}") == f"Deleted {task.id}."
    await settle()
    assert registry.handle(state, "/jobs") == "No active reminders."


def test_add_with_invalid_cron_saves_nothing(state: AppState) -> None:
    reply = registry.handle(state, "/add tue Stretch | | 99 * * * *") or ""

    assert reply.startswith("Task not saved:")
    assert state.task_store.count_tasks() == 0


@pytest.mark.asyncio
async def test_remind_sets_and_drops_reminder(state: AppState) -> None:
    task = state.task_store.add_task(label="Stretch")

    reply = registry.handle(state, f"/remind {task.id} 0 9 * * *") or ""
    await settle()
    assert reply.startswith(f"Reminder set for {task.id}")
    assert task.id in state.reminders.registry

    assert registry.handle(state, f"/remind {task.id} off") == f"Reminder removed for {task.id}."
    await settle()
    assert task.id not in state.reminders.registry

    assert registry.handle(state, "/remind nope 0 9 * * *") == "No task with id nope."


def test_list_groups_by_day(state: AppState) -> None:
    assert registry.handle(state, "/list") == "No tasks yet. Use /add to create one."

    registry.handle(state, "/add fri Groceries")
    registry.handle(state, "/add monday Gym")

    lines = (registry.handle(state, "/ls") or "").splitlines()
    assert lines[0] == "Monday:"
    assert lines[1].endswith("Gym")
    assert lines[2] == "Friday:"
    assert registry.handle(state, "/list xyz") == "Unknown day: xyz."


def test_sub_commands_manage_checklist(state: AppState) -> None:
    task = state.task_store.add_task(label="Trip", day=Weekday.FRIDAY)

    reply = registry.handle(state, f"/sub add {task.id} renew passport") or ""
    assert reply.startswith("Added subtask ")
    (sub,) = state.task_store.list_subtasks(task.id)
    assert sub.label == "renew passport"

    assert registry.handle(state, f"/sub done {sub.id}") == f"{sub.id} marked done."
    assert registry.handle(state, f"/sub {task.id}") == f"{task.id} Trip:\n  [x] {sub.id} renew passport"

    listing = (registry.handle(state, "/list") or "").splitlines()
    assert listing[-1] == f"      [x] {sub.id} renew passport"

    assert registry.handle(state, f"/sub del {sub.id}") == f"Deleted subtask {sub.id}."
    assert registry.handle(state, f"/sub {task.id}") == f"No subtasks for {task.id}."
    assert registry.handle(state, "/sub add nope item") == "No task with id nope."
    assert (registry.handle(state, "/sub add") or "").startswith("Usage:")
