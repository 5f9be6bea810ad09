# src/focus135/core/planner.py

from __future__ import annotations

"""
Planner service.

Holds the current PlannerState snapshot and applies every user action and clock tick
to it. Each operation:
- takes the lock,
- reads the snapshot once,
- computes a new snapshot (capacity checks included),
- swaps it in and persists it through the StateRepo.

Persistence failures are logged; in-memory state stays authoritative.
"""

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import date, datetime

from . import lifecycle, slots
from .clock import AdvanceStreak, ClearToday, TickOutcome, evaluate_tick, parse_reset_time
from .models import (
    DEFAULT_SIZES,
    QUICK_BUCKET,
    ChecklistItem,
    PlannerState,
    Project,
    SizeTable,
    StreakState,
    Task,
    TaskSize,
    new_id,
)
from .ports import StateRepo
from ..storage.transfer import ImportedBundle, export_envelope, parse_envelope

logger = logging.getLogger(__name__)


def _require_text(value: str, what: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValueError(f"{what} is required")
    return text


def _as_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ValueError(f"deadline must be YYYY-MM-DD, got {value!r}") from e


class Planner:
    def __init__(
        self,
        repo: StateRepo,
        *,
        sizes: SizeTable = DEFAULT_SIZES,
        now_fn: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._repo = repo
        self._sizes = sizes
        self._now = now_fn
        self.lock = threading.RLock()
        self._tick_guard = threading.Lock()
        self._state = repo.load_state()

    @property
    def state(self) -> PlannerState:
        return self._state

    @property
    def sizes(self) -> SizeTable:
        return self._sizes

    # ---- low-level helpers ----

    def _commit(self, new_state: PlannerState) -> None:
        old = self._state
        self._state = new_state
        try:
            if new_state.markers != old.markers:
                self._repo.save_markers(new_state.markers)
            if replace(new_state, markers=old.markers) != old:
                self._repo.save_state(new_state)
        except Exception:
            logger.exception("Failed to persist planner state")

    def _replace_task(self, state: PlannerState, task: Task) -> tuple[Task, ...]:
        return tuple(task if t.id == task.id else t for t in state.tasks)

    def _get_task(self, state: PlannerState, task_id: str) -> Task:
        task = state.task(task_id)
        if task is None:
            raise KeyError(task_id)
        return task

    def _get_project(self, state: PlannerState, project_id: str) -> Project:
        project = state.project(project_id)
        if project is None:
            raise KeyError(project_id)
        return project

    # ---- projects ----

    def add_project(self, name: str, goal: str, deadline: date | str) -> Project:
        project = Project(
            id=new_id(),
            name=_require_text(name, "project name"),
            goal=(goal or "").strip(),
            deadline=_as_date(deadline),
            created_at=self._now(),
        )
        with self.lock:
            state = self._state
            self._commit(replace(state, projects=state.projects + (project,)))
        logger.info("Project added id=%s deadline=%s", project.id, project.deadline)
        return project

    def rename_project(self, project_id: str, name: str) -> Project:
        """Rename in place. Task name snapshots are left as they were."""
        new_name = _require_text(name, "project name")
        with self.lock:
            state = self._state
            project = replace(self._get_project(state, project_id), name=new_name)
            projects = tuple(project if p.id == project_id else p for p in state.projects)
            self._commit(replace(state, projects=projects))
        return project

    def delete_project(self, project_id: str) -> int:
        """
        Delete the project and every task that references it.

        Irreversible; callers must have confirmed with the user first.
        Returns the number of tasks removed.
        """
        with self.lock:
            state = self._state
            self._get_project(state, project_id)
            tasks = tuple(t for t in state.tasks if t.project_id != project_id)
            removed = len(state.tasks) - len(tasks)
            projects = tuple(p for p in state.projects if p.id != project_id)
            self._commit(replace(state, projects=projects, tasks=tasks))
        logger.info("Project %s deleted with %d task(s)", project_id, removed)
        return removed

    def acknowledge(self, project_id: str) -> Project:
        """Acknowledge a completed project: archive it, keep its tasks."""
        with self.lock:
            state = self._state
            projects = lifecycle.acknowledge_completion(state.projects, project_id)
            self._commit(replace(state, projects=projects))
            project = self._get_project(self._state, project_id)
        logger.info("Project %s archived", project_id)
        return project

    # ---- tasks ----

    def add_task(self, project_id: str, title: str, size: TaskSize | str) -> Task:
        size = TaskSize.from_raw(size) if isinstance(size, str) else size
        if not size.slotted:
            raise ValueError("quick tasks go to the quick list, not into a project")
        title = _require_text(title, "task title")
        with self.lock:
            state = self._state
            project = self._get_project(state, project_id)
            if project.archived:
                raise ValueError(f"project {project_id} is archived")
            task = Task(id=new_id(), project_id=project.id, title=title, size=size, project_name=project.name)
            self._commit(replace(state, tasks=state.tasks + (task,)))
        logger.debug("Task added id=%s project=%s size=%s", task.id, project_id, size.value)
        return task

    def add_quick_task(self, title: str) -> Task:
        task = Task(
            id=new_id(),
            project_id=QUICK_BUCKET,
            title=_require_text(title, "task title"),
            size=TaskSize.QUICK,
        )
        with self.lock:
            state = self._state
            self._commit(replace(state, tasks=state.tasks + (task,)))
        return task

    def delete_task(self, task_id: str) -> None:
        with self.lock:
            state = self._state
            self._get_task(state, task_id)
            self._commit(replace(state, tasks=tuple(t for t in state.tasks if t.id != task_id)))

    def mark_today(self, task_id: str) -> Task:
        """Raises slots.SlotFull when the size's slots are taken."""
        with self.lock:
            state = self._state
            task = slots.try_mark_today(self._get_task(state, task_id), state.today_tasks(), self._sizes)
            self._commit(replace(state, tasks=self._replace_task(state, task)))
        return task

    def unmark_today(self, task_id: str) -> Task:
        with self.lock:
            state = self._state
            task = slots.unmark_today(self._get_task(state, task_id))
            self._commit(replace(state, tasks=self._replace_task(state, task)))
        return task

    def toggle_today(self, task_id: str) -> Task:
        with self.lock:
            state = self._state
            task = slots.toggle_today(self._get_task(state, task_id), state.today_tasks(), self._sizes)
            self._commit(replace(state, tasks=self._replace_task(state, task)))
        return task

    def complete_task(self, task_id: str) -> lifecycle.ProjectCompleted | None:
        with self.lock:
            state = self._state
            tasks, event = lifecycle.complete_task(state, task_id, self._now(), self._sizes)
            if tasks is not state.tasks:
                self._commit(replace(state, tasks=tasks))
        return event

    def reorder_tasks(self, ordered_ids: Sequence[str]) -> None:
        """
        Move the given tasks to the front, in the given order.

        Unknown ids are ignored; every other task keeps its relative order after them.
        """
        with self.lock:
            state = self._state
            by_id = {t.id: t for t in state.tasks}
            front: list[Task] = []
            seen: set[str] = set()
            for tid in ordered_ids:
                if tid in by_id and tid not in seen:
                    front.append(by_id[tid])
                    seen.add(tid)
            rest = [t for t in state.tasks if t.id not in seen]
            self._commit(replace(state, tasks=tuple(front + rest)))

    # ---- settings ----

    def set_reset_time(self, raw: str) -> None:
        parse_reset_time(raw)
        with self.lock:
            state = self._state
            self._commit(replace(state, settings=replace(state.settings, reset_time=raw.strip())))
        logger.info("Reset time set to %s", raw.strip())

    def set_notifications(self, enabled: bool, *, granted: bool = True) -> bool:
        """
        Turn reminders on or off. Enabling without host permission leaves them off.
        Returns the resulting flag.
        """
        effective = bool(enabled and granted)
        if enabled and not granted:
            logger.warning("Notification permission not granted; reminders stay disabled")
        with self.lock:
            state = self._state
            if state.settings.enable_notify != effective:
                self._commit(replace(state, settings=replace(state.settings, enable_notify=effective)))
        return effective

    # ---- checklist ----

    def add_checklist_item(self, title: str) -> ChecklistItem:
        item = ChecklistItem(id=new_id(), title=_require_text(title, "item title"))
        with self.lock:
            state = self._state
            self._commit(replace(state, checklist=state.checklist + (item,)))
        return item

    def toggle_checklist_item(self, item_id: str) -> ChecklistItem:
        with self.lock:
            state = self._state
            item = next((c for c in state.checklist if c.id == item_id), None)
            if item is None:
                raise KeyError(item_id)
            item = replace(item, done=not item.done)
            self._commit(replace(state, checklist=tuple(item if c.id == item_id else c for c in state.checklist)))
        return item

    def remove_checklist_item(self, item_id: str) -> None:
        with self.lock:
            state = self._state
            checklist = tuple(c for c in state.checklist if c.id != item_id)
            if len(checklist) == len(state.checklist):
                raise KeyError(item_id)
            self._commit(replace(state, checklist=checklist))

    # ---- export / import ----

    def export_data(self) -> str:
        return export_envelope(self._state, now=self._now())

    def import_data(self, text: str) -> ImportedBundle:
        """Replace collections from an export. Raises ImportRejected and changes nothing."""
        bundle = parse_envelope(text, self._sizes)
        with self.lock:
            state = self._state
            new_state = replace(state, projects=bundle.projects, tasks=bundle.tasks)
            if bundle.streak is not None:
                new_state = replace(new_state, streak=replace(state.streak, count=bundle.streak))
            if bundle.settings is not None:
                new_state = replace(new_state, settings=bundle.settings)
            if bundle.checklist is not None:
                new_state = replace(new_state, checklist=bundle.checklist)
            self._commit(new_state)
        logger.info("Imported projects=%d tasks=%d", len(bundle.projects), len(bundle.tasks))
        return bundle

    # ---- clock ----

    def tick(self, now: datetime | None = None, *, deliver_reminders: bool = False) -> TickOutcome | None:
        """
        Evaluate one clock tick and apply its effects.

        Only a caller that delivers SendReminder effects may pass deliver_reminders=True
        (the clock loop does). Otherwise the notify window is not evaluated, so the
        day's reminder is not spent on a tick that cannot send it.

        Non-reentrant: returns None without doing anything if another tick is running.
        """
        if not self._tick_guard.acquire(blocking=False):
            logger.debug("Tick skipped: previous tick still in flight")
            return None
        try:
            with self.lock:
                state = self._state
                settings = state.settings
                if not deliver_reminders and settings.enable_notify:
                    settings = replace(settings, enable_notify=False)
                outcome = evaluate_tick(
                    now or self._now(),
                    settings,
                    state.streak,
                    state.markers,
                    state.tasks,
                )
                tasks = state.tasks
                streak: StreakState = outcome.streak
                for effect in outcome.effects:
                    if isinstance(effect, ClearToday) and effect.task_ids:
                        cleared = set(effect.task_ids)
                        tasks = tuple(slots.unmark_today(t) if t.id in cleared else t for t in tasks)
                    elif isinstance(effect, AdvanceStreak):
                        logger.info("Streak advanced to %d", effect.count)
                self._commit(replace(state, tasks=tasks, streak=streak, markers=outcome.markers))
            return outcome
        finally:
            self._tick_guard.release()
