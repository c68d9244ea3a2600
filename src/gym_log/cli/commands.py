# src/gym_log/cli/commands.py

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from datetime import date, timedelta

from ..core.state import AppState
from ..records.coordinator import MutationResult, MutationStatus
from ..records.export import ExportStatus, write_backup
from ..records.models import Exercise, SetEntry, to_date_key

CommandHandler = Callable[[AppState, list[str]], Awaitable[str]]

logger = logging.getLogger(__name__)

# "5x100", "8x", "x60", "10x42.5"
SET_REGEX = re.compile(r"^(\d*)[xX](\d*(?:[.,]\d+)?)$")
MONTH_REGEX = re.compile(r"^\d{4}-\d{2}$")

_STATUS_TEXT = {
    MutationStatus.SAVED: "Saved",
    MutationStatus.DELETED: "Deleted",
    MutationStatus.REJECTED: "Nothing saved (invalid input)",
    MutationStatus.NOT_FOUND: "No such entry",
    MutationStatus.NOT_PERSISTED: "Not saved (storage unavailable this session)",
    MutationStatus.WRITE_FAILED: "Save failed",
    MutationStatus.DELETE_FAILED: "Delete failed",
}


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /ex, ...)."""

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

    async def handle(self, state: AppState, line: str) -> str | None:
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

        return await handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _report(state: AppState, result: MutationResult) -> str:
    text = _STATUS_TEXT[result.status]
    state.last_status = text
    return text


def _parse_position(raw: str) -> int | None:
    """User-facing positions are 1-based."""
    try:
        n = int(raw)
    except ValueError:
        return None
    return n - 1 if n >= 1 else None


def parse_exercise(args: list[str]) -> Exercise | None:
    """
    Parse `NAME... REPSxWEIGHT...` into an Exercise.

    The name is every token before the first set token.
    """
    name_parts: list[str] = []
    sets: list[SetEntry] = []
    for token in args:
        m = SET_REGEX.match(token)
        if m and name_parts:
            sets.append(SetEntry(reps=m.group(1), weight=m.group(2).replace(",", ".")))
        elif sets:
            return None
        else:
            name_parts.append(token)
    return Exercise(name=" ".join(name_parts), sets=sets)


def render_day(state: AppState) -> str:
    day = state.selected_day
    lines = [f"{day.isoformat()} ({day.strftime('%A')})", "Workout:"]

    exercises = state.records.get_workouts(day)
    if not exercises:
        lines.append("  No exercises logged for this day")
    for i, ex in enumerate(exercises, start=1):
        sets = ", ".join(f"{s.reps or '?'}x{s.weight or '?'}" for s in ex.sets)
        lines.append(f"  {i}. {ex.name}: {sets}")

    lines.append("Tasks:")
    tasks = state.records.get_tasks(day)
    if not tasks:
        lines.append("  No tasks for this day")
    for i, task in enumerate(tasks, start=1):
        mark = "x" if task.completed else " "
        lines.append(f"  {i}. [{mark}] {task.text}")
    return "\n".join(lines)


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    db_path = getattr(state.settings, "db_path", "?")
    return (
        "Status:\n"
        f"  Database: {db_path} ({state.load_status.value})\n"
        f"  Selected day: {state.selected_day.isoformat()}\n"
        f"  Last: {state.last_status or '-'}"
    )


async def cmd_day(state: AppState, args: list[str]) -> str:
    """
    /day              -> show selected day
    /day today        -> select today
    /day +1 | -1      -> move selection by N days
    /day YYYY-MM-DD   -> select a date
    """
    if args:
        arg = args[0].lower()
        if arg == "today":
            state.selected_day = date.today()
        elif re.fullmatch(r"[+-]\d+", arg):
            state.selected_day = state.selected_day + timedelta(days=int(arg))
        else:
            try:
                state.selected_day = date.fromisoformat(to_date_key(arg))
            except ValueError:
                return "Usage: /day [today | +N | -N | YYYY-MM-DD]"
    return render_day(state)


async def cmd_ex(state: AppState, args: list[str]) -> str:
    """
    /ex add NAME REPSxWEIGHT [REPSxWEIGHT ...]
    /ex del N
    """
    usage = "Usage: /ex add NAME REPSxWEIGHT [...] | /ex del N"
    if not args:
        return usage

    sub = args[0].lower()
    if sub == "add":
        exercise = parse_exercise(args[1:])
        if exercise is None:
            return usage
        result = await state.records.add_exercise(state.selected_day, exercise)
        return _report(state, result)

    if sub in ("del", "rm"):
        pos = _parse_position(args[1]) if len(args) > 1 else None
        if pos is None:
            return usage
        result = await state.records.delete_exercise(state.selected_day, pos)
        return _report(state, result)

    return usage


async def cmd_task(state: AppState, args: list[str]) -> str:
    """
    /task add TEXT
    /task toggle N
    /task del N
    """
    usage = "Usage: /task add TEXT | /task toggle N | /task del N"
    if not args:
        return usage

    sub = args[0].lower()
    if sub == "add":
        result = await state.records.add_task(state.selected_day, " ".join(args[1:]))
        return _report(state, result)

    pos = _parse_position(args[1]) if len(args) > 1 else None
    if pos is None:
        return usage

    if sub in ("toggle", "done"):
        result = await state.records.toggle_task(state.selected_day, pos)
        return _report(state, result)

    if sub in ("del", "rm"):
        result = await state.records.delete_task(state.selected_day, pos)
        return _report(state, result)

    return usage


async def cmd_month(state: AppState, args: list[str]) -> str:
    """/month [YYYY-MM] -> days that have workouts (W) or tasks (T)."""
    month = args[0] if args else state.selected_day.strftime("%Y-%m")
    if not MONTH_REGEX.match(month):
        return "Usage: /month [YYYY-MM]"

    marked = state.records.cache.marked_days(prefix=f"{month}-")
    if not marked:
        return f"{month}: nothing logged."
    lines = [f"{month}:"]
    for key, (has_workout, has_tasks) in marked.items():
        flags = ("W" if has_workout else "-") + ("T" if has_tasks else "-")
        lines.append(f"  {key} {flags}")
    return "\n".join(lines)


async def cmd_export(state: AppState, args: list[str]) -> str:
    out_dir = args[0] if args else getattr(state.settings, "export_dir", ".")
    result = await write_backup(state.store, out_dir)
    if result.status is ExportStatus.FAILED:
        state.last_status = "Export failed"
        return "Export failed."
    state.last_status = "Exported"
    return f"Exported to {result.path}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show database, selected day and last result.")
registry.register("day", cmd_day, help_text="Select/show a day: /day [today | +N | -N | YYYY-MM-DD].")
registry.register("ex", cmd_ex, help_text="Exercises: /ex add NAME 5x100 5x100 | /ex del N.")
registry.register("task", cmd_task, help_text="Tasks: /task add TEXT | /task toggle N | /task del N.")
registry.register("month", cmd_month, help_text="Days with workouts/tasks: /month [YYYY-MM].")
registry.register("export", cmd_export, help_text="Write a JSON backup: /export [DIR].")
