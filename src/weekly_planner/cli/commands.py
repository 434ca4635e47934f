# src/weekly_planner/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import datetime
from typing import cast

from ..core.state import AppState
from ..reminders.expression import InvalidExpressionError
from ..tasks import task_api
from ..tasks.task_models import Subtask, Task, Weekday

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_dt(dt: datetime) -> str:
    return dt.strftime("%a %Y-%m-%d %H:%M:%S")


def _split_pipes(args: list[str]) -> list[str]:
    """'Water plants | balcony | 0 9 * * 1' -> ['Water plants', 'balcony', '0 9 * * 1']"""
    return [p.strip() for p in " ".join(args).split("|")]


def _render_task(task: Task) -> str:
    mark = "x" if task.done else " "
    pin = "*" if task.pinned else ""
    when = f" {task.time}" if task.time else ""
    line = f"[{mark}] {task.id}{pin}{when} {task.label}"
    if task.detail:
        line += f" - {task.detail}"
    if task.schedule:
        line += f"  (remind: {task.schedule})"
    return line


def _render_subtask(sub: Subtask) -> str:
    mark = "x" if sub.done else " "
    return f"[{mark}] {sub.id} {sub.label}"


def _render_save(verb: str, result: task_api.SaveResult) -> str:
    lines = [f"{verb} {result.task.id} ({result.task.day.value}): {result.task.label}"]
    if result.reminder is not None:
        lines.append(f"  next reminder: {_fmt_dt(result.reminder.next_fire_time)}")
    if result.schedule_error is not None:
        lines.append(f"  reminder NOT scheduled: {result.schedule_error.reason}")
    return "\n".join(lines)


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    total = state.task_store.count_tasks()
    jobs = len(state.reminders.active_jobs())
    policy = "reject" if getattr(state.settings, "reject_invalid_schedule", True) else "save without reminder"
    return (
        "Status:\n"
        f"  Tasks: {total}\n"
        f"  Active reminders: {jobs}\n"
        f"  Invalid schedules: {policy}"
    )


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <day> <label> [| detail] [| cron]
    """
    usage = "Usage: /add <day> <label> [| detail] [| cron]"
    if len(args) < 2:
        return usage

    day = Weekday.parse(args[0])
    if day is None:
        return f"Unknown day: {args[0]}. {usage}"

    parts = _split_pipes(args[1:])
    label = parts[0]
    detail = parts[1] if len(parts) > 1 else ""
    schedule = parts[2] if len(parts) > 2 else None
    if not label:
        return usage

    try:
        result = task_api.create_task(state, label=label, detail=detail, day=day, schedule=schedule)
    except InvalidExpressionError as e:
        return f"Task not saved: {e.reason}"
    return _render_save("Added", result)


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <id> <label> [| detail] [| cron]

    An empty cron part ("/edit ab12 Label | detail |") drops the reminder;
    leaving the part out keeps the current one.
    """
    usage = "Usage: /edit <id> <label> [| detail] [| cron]"
    if len(args) < 2:
        return usage

    task_id = args[0]
    parts = _split_pipes(args[1:])
    label = parts[0] or None
    detail = parts[1] if len(parts) > 1 else None
    schedule = parts[2] if len(parts) > 2 else None

    try:
        result = task_api.update_task(
            state,
            task_id,
            label=label,
            detail=detail,
            schedule=schedule or None,
            clear_schedule=schedule == "",
        )
    except InvalidExpressionError as e:
        return f"Task not saved: {e.reason}"
    if result is None:
        return f"No task with id {task_id}."
    return _render_save("Updated", result)


def cmd_remind(state: AppState, args: list[str]) -> str:
    """
    /remind <id> <cron...>  -> set or replace the reminder
    /remind <id> off        -> drop it
    """
    if len(args) < 2:
        return "Usage: /remind <id> <cron...> | /remind <id> off"

    task_id = args[0]
    off = len(args) == 2 and args[1].lower() in ("off", "none", "-")
    schedule = None if off else " ".join(args[1:])

    try:
        result = task_api.update_task(state, task_id, schedule=schedule, clear_schedule=off)
    except InvalidExpressionError as e:
        return f"Reminder not saved: {e.reason}"
    if result is None:
        return f"No task with id {task_id}."
    if off:
        return f"Reminder removed for {task_id}."
    return _render_save("Reminder set for", result)


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <id>"
    task = task_api.toggle_done(state, args[0])
    if task is None:
        return f"No task with id {args[0]}."
    return f"{task.id} marked {'done' if task.done else 'not done'}."


def cmd_del(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <id>"
    if task_api.delete_task(state, args[0]):
        return f"Deleted {args[0]}."
    return f"No task with id {args[0]}."


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list        -> whole week
    /list <day>  -> one day
    """
    if args:
        day = Weekday.parse(args[0])
        if day is None:
            return f"Unknown day: {args[0]}."
        tasks = state.task_store.list_for_day(day)
        if not tasks:
            return f"No tasks on {day.value}."
        return "\n".join([f"{day.value.capitalize()}:"] + [f"  {_render_task(t)}" for t in tasks])

    tasks = state.task_store.list_all()
    if not tasks:
        return "No tasks yet. Use /add to create one."

    lines: list[str] = []
    current: Weekday | None = None
    for t in tasks:
        if t.day is not current:
            current = t.day
            lines.append(f"{current.value.capitalize()}:")
        lines.append(f"  {_render_task(t)}")
        lines.extend(f"      {_render_subtask(s)}" for s in state.task_store.list_subtasks(t.id))
    return "\n".join(lines)


def cmd_sub(state: AppState, args: list[str]) -> str:
    """
    /sub <task_id>                 -> list subtasks
    /sub add <task_id> <label...>  -> append one
    /sub done <sub_id>             -> toggle done
    /sub edit <sub_id> <label...>  -> rename
    /sub del <sub_id>              -> delete
    """
    usage = "Usage: /sub <task_id> | /sub add <task_id> <label> | /sub done|edit|del <sub_id>"
    if not args:
        return usage

    action = args[0].lower()
    if action not in ("add", "done", "edit", "del"):
        task = state.task_store.get_task(args[0])
        if task is None:
            return f"No task with id {args[0]}."
        subs = state.task_store.list_subtasks(task.id)
        if not subs:
            return f"No subtasks for {task.id}."
        return "\n".join([f"{task.id} {task.label}:"] + [f"  {_render_subtask(s)}" for s in subs])

    if len(args) < 2 or (action in ("add", "edit") and len(args) < 3):
        return usage

    target = args[1]
    if action == "add":
        sub = task_api.add_subtask(state, target, label=" ".join(args[2:]))
        return f"No task with id {target}." if sub is None else f"Added subtask {sub.id} to {target}."
    if action == "edit":
        sub = task_api.rename_subtask(state, target, label=" ".join(args[2:]))
        return f"No subtask with id {target}." if sub is None else f"Renamed {sub.id}: {sub.label}"
    if action == "done":
        sub = task_api.toggle_subtask(state, target)
        if sub is None:
            return f"No subtask with id {target}."
        return f"{sub.id} marked {'done' if sub.done else 'not done'}."

    if task_api.delete_subtask(state, target):
        return f"Deleted subtask {target}."
    return f"No subtask with id {target}."


def cmd_jobs(state: AppState, args: list[str]) -> str:
    jobs = state.reminders.active_jobs()
    if not jobs:
        return "No active reminders."
    lines = ["Active reminders:"]
    for j in jobs:
        lines.append(
            f"  {j.task_id} [{j.expression}] next {_fmt_dt(j.next_fire_time)}"
            f" fired={j.fire_count} - {j.label}"
        )
    return "\n".join(lines)


def cmd_crontest(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /crontest <cron expression>"

    expression = " ".join(args)
    count = int(getattr(state.settings, "preview_count", 5))
    result = state.reminders.preview_occurrences(expression, count)
    if isinstance(result, InvalidExpressionError):
        return f"Invalid: {result.reason}"

    lines = [f"Next {len(result)} run(s) of {expression!r}:"]
    lines.extend(f"  {_fmt_dt(dt)}" for dt in result)
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show task and reminder counts.")
registry.register("add", cmd_add, help_text="Add a task: /add <day> <label> [| detail] [| cron].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> <label> [| detail] [| cron].")
registry.register("remind", cmd_remind, help_text="Set/drop a reminder: /remind <id> <cron...|off>.")
registry.register("done", cmd_done, help_text="Toggle done: /done <id>.")
registry.register("del", cmd_del, help_text="Delete a task: /del <id>.", aliases=["rm"])
registry.register("list", cmd_list, help_text="List tasks: /list [day].", aliases=["ls"])
registry.register("sub", cmd_sub, help_text="Subtasks: /sub <task_id> | /sub add <task_id> <label> | /sub done|edit|del <sub_id>.")
registry.register("jobs", cmd_jobs, help_text="Show active reminders and their next run.")
registry.register("crontest", cmd_crontest, help_text="Preview a cron expression: /crontest <cron...>.")
