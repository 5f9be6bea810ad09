# src/focus135/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import cast

from ..core.models import QUICK_BUCKET, TaskSize, display_project_name
from ..core.slots import QuickTaskNotSlotted, SlotFull, energy_percent, occupancy
from ..core.state import AppState
from ..core.urgency import completed_history, format_duration, rank_projects
from ..storage.transfer import ImportMissingKeys, ImportParseError

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_SLOT_LABELS = {
    TaskSize.LARGE: "Large",
    TaskSize.MEDIUM: "Medium",
    TaskSize.SMALL: "Small",
}


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /today, ...)."""

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

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except KeyError as e:
            return f"Not found: {e.args[0] if e.args else '?'}"
        except ValueError as e:
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _rest(args: list[str], start: int) -> str:
    return " ".join(args[start:]).strip()


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    snap = state.planner.state
    s = state.settings
    notify = "ON" if snap.settings.enable_notify else "OFF"
    return (
        "Status:\n"
        f"  Reset time: {snap.settings.reset_time}\n"
        f"  Reminders: {notify} (backend: {getattr(s, 'notify_backend', 'console')})\n"
        f"  Clock tick: {getattr(s, 'tick_seconds', 60.0):.0f}s\n"
        f"  Streak: {snap.streak.count} day(s)\n"
        f"  Projects: {sum(1 for p in snap.projects if not p.archived)} active, "
        f"{sum(1 for p in snap.projects if p.archived)} archived"
    )


def cmd_today(state: AppState, args: list[str]) -> str:
    snap = state.planner.state
    sizes = state.planner.sizes
    today = snap.today_tasks()
    used = occupancy(today, sizes)

    lines = [f"Today ({energy_percent(today, sizes)}% energy committed):"]
    for size, capacity in sizes.capacity.items():
        label = _SLOT_LABELS.get(size, size.value.title())
        lines.append(f"  {label} ({used[size]}/{capacity})")
        for t in today:
            if t.size is size:
                lines.append(f"    [{t.id}] {t.title} - {display_project_name(t, snap.projects)}")

    quick = [t for t in snap.tasks if t.project_id == QUICK_BUCKET and not t.completed]
    lines.append(f"  Quick list ({len(quick)})")
    for t in quick:
        lines.append(f"    [{t.id}] {t.title}")
    return "\n".join(lines)


def cmd_projects(state: AppState, args: list[str]) -> str:
    snap = state.planner.state
    ranked = rank_projects(snap.projects, snap.tasks, datetime.now(), state.planner.sizes)
    lines = ["Projects (most urgent first):"] if ranked else ["No active projects. Use /newproject."]
    for st in ranked:
        p = st.project
        lines.append(
            f"  [{p.id}] {p.name} - {st.tier.value} ({st.urgency:.2f} h/day), "
            f"{st.open_tasks} open, {format_duration(st.remaining_minutes)} left, due {p.deadline.isoformat()}"
        )
    if args and args[0].lower() == "all":
        archived = [p for p in snap.projects if p.archived]
        if archived:
            lines.append("Archived:")
            lines.extend(f"  [{p.id}] {p.name}" for p in archived)
    return "\n".join(lines)


def cmd_new_project(state: AppState, args: list[str]) -> str:
    """
    /newproject 2025-06-30 Thesis draft | Finish chapters 1-3
    """
    if len(args) < 2:
        return "Usage: /newproject YYYY-MM-DD name [| goal]"
    name, _, goal = _rest(args, 1).partition("|")
    project = state.planner.add_project(name.strip(), goal.strip(), args[0])
    return f"Project created: [{project.id}] {project.name} (due {project.deadline.isoformat()})"


def cmd_project(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /project <project_id>"
    snap = state.planner.state
    p = snap.project(args[0])
    if p is None:
        raise KeyError(args[0])
    own = [t for t in snap.tasks if t.project_id == p.id]
    done = sum(1 for t in own if t.completed)
    status = "archived" if p.archived else "active"
    return (
        f"[{p.id}] {p.name} ({status})\n"
        f"  Goal: {p.goal or '-'}\n"
        f"  Deadline: {p.deadline.isoformat()}\n"
        f"  Tasks: {done}/{len(own)} done"
    )


def cmd_rename(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /rename <project_id> new name"
    project = state.planner.rename_project(args[0], _rest(args, 1))
    return f"Project renamed: [{project.id}] {project.name}"


def cmd_delete_project(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /delproject <project_id> yes"
    project = state.planner.state.project(args[0])
    if project is None:
        raise KeyError(args[0])
    if len(args) < 2 or args[1].lower() != "yes":
        own = sum(1 for t in state.planner.state.tasks if t.project_id == project.id)
        return (
            f"This deletes project '{project.name}' and its {own} task(s) for good.\n"
            f"Confirm with: /delproject {project.id} yes"
        )
    removed = state.planner.delete_project(project.id)
    return f"Project '{project.name}' deleted ({removed} task(s) removed)."


def cmd_tasks(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /tasks <project_id>"
    snap = state.planner.state
    if snap.project(args[0]) is None:
        raise KeyError(args[0])
    open_tasks = [t for t in snap.tasks if t.project_id == args[0] and not t.completed]
    if not open_tasks:
        return "No open tasks."
    lines = ["Open tasks:"]
    for t in open_tasks:
        mark = "*" if t.is_today else " "
        minutes = state.planner.sizes.minutes_for(t.size)
        lines.append(f"  {mark} [{t.id}] {t.title} ({t.size.value}, {minutes}m)")
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    if len(args) < 3:
        return "Usage: /add <project_id> <large|medium|small> title"
    task = state.planner.add_task(args[0], _rest(args, 2), args[1])
    return f"Task added: [{task.id}] {task.title} ({task.size.value})"


def cmd_quick(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /quick title"
    task = state.planner.add_quick_task(_rest(args, 0))
    return f"Quick task added: [{task.id}] {task.title}"


def cmd_pick(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /pick <task_id>"
    try:
        task = state.planner.toggle_today(args[0])
    except SlotFull as e:
        return f"Today's {e.size.value} slots are full ({e.capacity}). Finish or release one first."
    except QuickTaskNotSlotted:
        return "Quick tasks stay on the quick list; they never take a slot."
    return f"[{task.id}] {task.title} {'added to' if task.is_today else 'removed from'} today."


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <task_id>"
    event = state.planner.complete_task(args[0])
    reply = f"Task {args[0]} done."
    if event is not None:
        reply += (
            f"\nProject '{event.name}' is complete! {format_duration(event.total_minutes)} of planned work."
            f"\nArchive it with: /ack {event.project_id}"
        )
    return reply


def cmd_delete_task(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /deltask <task_id>"
    state.planner.delete_task(args[0])
    return f"Task {args[0]} deleted."


def cmd_reorder(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /reorder <task_id> [task_id ...]"
    state.planner.reorder_tasks(args)
    return "Order updated."


def cmd_ack(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /ack <project_id>"
    project = state.planner.acknowledge(args[0])
    return f"Project '{project.name}' archived. Its tasks stay in /history."


def cmd_history(state: AppState, args: list[str]) -> str:
    snap = state.planner.state
    hist = completed_history(snap.tasks, state.planner.sizes)
    if not hist.tasks:
        return "Nothing completed yet."
    lines = [f"Completed ({format_duration(hist.total_minutes)} total):"]
    for t in hist.tasks:
        when = t.completed_at.strftime("%Y-%m-%d %H:%M") if t.completed_at else "?"
        lines.append(f"  {when} {t.title} ({t.size.value}) - {display_project_name(t, snap.projects)}")
    return "\n".join(lines)


def cmd_streak(state: AppState, args: list[str]) -> str:
    streak = state.planner.state.streak
    return f"Streak: {streak.count} day(s) (last active {streak.last_active_day or 'never'})."


def cmd_reset(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Daily reset at {state.planner.state.settings.reset_time}. Change with /reset HH:MM."
    state.planner.set_reset_time(args[0])
    return f"Daily reset moved to {args[0]}."


def cmd_notify(state: AppState, args: list[str]) -> str:
    if not args:
        flag = "ON" if state.planner.state.settings.enable_notify else "OFF"
        return f"Reminders are {flag}. Use /notify on or /notify off."

    arg = args[0].lower()
    if arg in ("on", "1", "true", "yes"):
        granted = bool(state.notifier.permission_granted())
        if state.planner.set_notifications(True, granted=granted):
            return "Reminders enabled (30 minutes before the daily reset)."
        return "Reminders stay OFF: the notification backend is not available."
    if arg in ("off", "0", "false", "no"):
        state.planner.set_notifications(False)
        return "Reminders disabled."
    return "Usage: /notify on or /notify off."


def cmd_check(state: AppState, args: list[str]) -> str:
    """
    /check               -> list
    /check add milk      -> add item
    /check done <id>     -> toggle item
    /check rm <id>       -> remove item
    """
    planner = state.planner
    if args:
        sub = args[0].lower()
        if sub == "add" and len(args) > 1:
            item = planner.add_checklist_item(_rest(args, 1))
            return f"Added [{item.id}] {item.title}"
        if sub == "done" and len(args) > 1:
            item = planner.toggle_checklist_item(args[1])
            return f"[{item.id}] {item.title}: {'done' if item.done else 'open'}"
        if sub == "rm" and len(args) > 1:
            planner.remove_checklist_item(args[1])
            return f"Removed {args[1]}"
        return "Usage: /check | /check add title | /check done <id> | /check rm <id>"

    items = planner.state.checklist
    if not items:
        return "Checklist is empty."
    return "\n".join(f"  [{'x' if c.done else ' '}] [{c.id}] {c.title}" for c in items)


def cmd_export(state: AppState, args: list[str]) -> str:
    text = state.planner.export_data()
    if not args:
        return text
    path = Path(args[0]).expanduser()
    path.write_text(text, "utf-8")
    return f"Exported to {path}"


def cmd_import(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /import <path>"
    path = Path(args[0]).expanduser()
    try:
        text = path.read_text("utf-8")
    except OSError as e:
        return f"Cannot read {path}: {e}"

    try:
        bundle = state.planner.import_data(text)
    except ImportMissingKeys as e:
        return f"Import rejected (format): {e}. Nothing was changed."
    except ImportParseError as e:
        return f"Import rejected (unreadable data): {e}. Nothing was changed."

    if emit is not None:
        emit(f"[IMPORT] read {path}")
    return f"Imported {len(bundle.projects)} project(s) and {len(bundle.tasks)} task(s)."


def cmd_tick(state: AppState, args: list[str]) -> str:
    outcome = state.planner.tick()
    if outcome is None:
        return "A tick is already running."
    if not outcome.effects:
        return "Nothing to do right now."
    # Reminders are left to the background clock, which delivers them.
    return "Tick: " + ", ".join(type(effect).__name__ for effect in outcome.effects)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show settings, streak and project counts.")
registry.register("today", cmd_today, help_text="Show today's 1-3-5 slots and the quick list.", aliases=["t"])
registry.register("projects", cmd_projects, help_text="Projects by urgency: /projects [all].", aliases=["p"])
registry.register("project", cmd_project, help_text="Project details: /project <id>.")
registry.register("newproject", cmd_new_project, help_text="Create: /newproject YYYY-MM-DD name [| goal].")
registry.register("rename", cmd_rename, help_text="Rename a project: /rename <id> name.")
registry.register("delproject", cmd_delete_project, help_text="Delete project and its tasks: /delproject <id> yes.")
registry.register("tasks", cmd_tasks, help_text="Open tasks of a project: /tasks <id>.")
registry.register("add", cmd_add, help_text="Add a task: /add <project_id> <large|medium|small> title.")
registry.register("quick", cmd_quick, help_text="Add a quick task: /quick title.", aliases=["q"])
registry.register("pick", cmd_pick, help_text="Toggle a task on today's list: /pick <task_id>.")
registry.register("done", cmd_done, help_text="Complete a task: /done <task_id>.")
registry.register("deltask", cmd_delete_task, help_text="Delete a task: /deltask <task_id>.")
registry.register("reorder", cmd_reorder, help_text="Move tasks to the front: /reorder <id> [id ...].")
registry.register("ack", cmd_ack, help_text="Archive a completed project: /ack <project_id>.")
registry.register("history", cmd_history, help_text="Completed tasks, newest first.")
registry.register("streak", cmd_streak, help_text="Show the day streak.")
registry.register("reset", cmd_reset, help_text="Show/set the daily reset time: /reset HH:MM.")
registry.register("notify", cmd_notify, help_text="Reminders before the reset: /notify on | /notify off.")
registry.register("check", cmd_check, help_text="Checklist: /check [add title | done id | rm id].")
registry.register("export", cmd_export, help_text="Export everything: /export [path].")
registry.register("import", cmd_import, help_text="Replace data from an export: /import <path>.")
registry.register("tick", cmd_tick, help_text="Run the daily clock once now.")
