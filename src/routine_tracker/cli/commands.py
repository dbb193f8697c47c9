# src/routine_tracker/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..core.state import AppState
from ..routines.errors import RoutineError
from ..routines.routine_models import Frequency, Routine
from ..routines.streaks import streaks_as_of
from ..tasks import task_api

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /done, ...)."""

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

        Domain errors (unknown routine, bad schedule) become the reply text.
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

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except (RoutineError, LookupError, ValueError) as e:
            logger.debug("/%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _parse_id(args: list[str], usage: str) -> int:
    if not args:
        raise ValueError(usage)
    try:
        return int(args[0])
    except ValueError:
        raise ValueError(f"Not a number: {args[0]!r}. {usage}") from None


def _format_routine(state: AppState, routine: Routine, title: str) -> str:
    line = f"#{routine.id} {title} [{routine.describe_schedule()}]"
    if routine.track_streaks:
        today = state.clock.today()
        stats = streaks_as_of(routine, today)
        mark = "x" if routine.is_completed_on(today) else " "
        line = f"[{mark}] {line} streak {stats.current} (best {stats.longest})"
    else:
        line = f"    {line}"
    if routine.goal:
        line += f" goal: {routine.goal}"
    return line


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    tz = getattr(state.settings, "timezone", "UTC")
    return (
        "Status:\n"
        f"  Today: {state.clock.today().isoformat()} ({tz})\n"
        f"  Tasks: {state.task_store.count_tasks()}\n"
        f"  Routines: {state.routine_store.count_routines()}"
    )


def cmd_tasks(state: AppState, args: list[str]) -> str:
    limit = int(getattr(state.settings, "list_limit", 50))
    tasks = state.task_store.list_tasks(limit=limit)
    if not tasks:
        return "No tasks yet. Add one with /add <title>."
    lines = ["Tasks:"]
    for t in tasks:
        flag = " (routine)" if t.is_routine else ""
        lines.append(f"  {t.id}. {t.title}{flag}")
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    title = " ".join(args).strip()
    if not title:
        return "Usage: /add <title>"
    task_id = state.task_store.add_task(title=title)
    return f"Added task {task_id}: {title}"


def cmd_routine(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /routine <task_id> daily|monthly [--no-streaks]
    /routine <task_id> weekly <days>     days: 0-6 (Sunday=0), comma-separated
    /routine <task_id> custom <interval>
    """
    usage = "Usage: /routine <task_id> <daily|weekly|monthly|custom> [days|interval] [--no-streaks]"
    track_streaks = "--no-streaks" not in args
    rest = [a for a in args if a != "--no-streaks"]
    if len(rest) < 2:
        return usage

    task_id = _parse_id(rest, usage)
    frequency = Frequency.parse(rest[1])
    extra = rest[2] if len(rest) > 2 else None

    days_of_week: list[int] | None = None
    custom_interval: int | None = None
    if frequency is Frequency.WEEKLY and extra:
        days_of_week = [int(p) for p in extra.split(",") if p.strip()]
    elif frequency is Frequency.CUSTOM and extra:
        custom_interval = int(extra)

    existing = state.routine_store.get_by_task_id(task_id)
    if existing is not None and emit is not None:
        emit(
            f"Task {task_id} already has routine {existing.id} "
            f"({existing.describe_schedule()}); updating it. History is kept."
        )

    routine_id = task_api.save_routine_for_task(
        state,
        task_id,
        frequency=frequency,
        days_of_week=days_of_week,
        custom_interval=custom_interval,
        track_streaks=track_streaks,
    )
    return f"Routine {routine_id} saved for task {task_id} ({frequency.value})."


def cmd_routines(state: AppState, args: list[str]) -> str:
    limit = int(getattr(state.settings, "list_limit", 50))
    items = state.routine_store.list_routines(state.task_store, limit=limit)
    if not items:
        return "No routines yet. Turn a task into one with /routine <task_id> daily."
    lines = [f"Routines ({state.clock.today().isoformat()}):"]
    for item in items:
        lines.append("  " + _format_routine(state, item.routine, item.task.title))
    return "\n".join(lines)


def cmd_done(state: AppState, args: list[str]) -> str:
    routine_id = _parse_id(args, "Usage: /done <routine_id>")
    state.routine_store.complete(routine_id)
    progress = task_api.routine_progress(state, routine_id)
    if progress is None or not progress.routine.track_streaks:
        return f"Routine {routine_id} marked done."
    return (
        f"Routine {routine_id} done for {state.clock.today().isoformat()}. "
        f"Streak: {progress.streaks.current} (best {progress.streaks.longest})."
    )


def cmd_undo(state: AppState, args: list[str]) -> str:
    routine_id = _parse_id(args, "Usage: /undo <routine_id>")
    state.routine_store.uncomplete(routine_id)
    progress = task_api.routine_progress(state, routine_id)
    if progress is None or not progress.routine.track_streaks:
        return f"Routine {routine_id} unmarked."
    return (
        f"Routine {routine_id} unmarked for today. "
        f"Streak: {progress.streaks.current} (best {progress.streaks.longest})."
    )


def cmd_unroutine(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args, "Usage: /unroutine <task_id>")
    if not task_api.set_task_routine_flag(state, task_id, False):
        return f"No task with id {task_id}."
    return f"Task {task_id} is a plain task now."


def cmd_rmtask(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args, "Usage: /rmtask <task_id>")
    if not task_api.delete_task(state, task_id):
        return f"No task with id {task_id}."
    return f"Task {task_id} deleted."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show today's date and store totals.")
registry.register("tasks", cmd_tasks, help_text="List tasks.")
registry.register("add", cmd_add, help_text="Add a task: /add <title>.")
registry.register(
    "routine",
    cmd_routine,
    help_text="Make a task a routine: /routine <task_id> <daily|weekly|monthly|custom> "
    "[days|interval] [--no-streaks].",
)
registry.register("routines", cmd_routines, help_text="List routines with streaks.")
registry.register("done", cmd_done, help_text="Mark a routine done today: /done <routine_id>.")
registry.register(
    "undo", cmd_undo, help_text="Remove today's completion: /undo <routine_id>."
)
registry.register(
    "unroutine", cmd_unroutine, help_text="Turn a routine back into a plain task."
)
registry.register(
    "rmtask", cmd_rmtask, help_text="Delete a task (and its routine).", aliases=["rm"]
)
